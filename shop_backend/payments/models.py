"""
Types de la feature 'payments': requête de checkout, article du panier, statuts.
"""
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FlowType(str, Enum):
    ORDER = "order"
    BOOKING = "booking"


class PaymentStatus(str, Enum):
    CREATED = "created"
    COMPLETED = "completed"
    EXPIRED = "expired"


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"


# Transitions autorisées: poser un statut est une affectation, jamais un incrément.
_PAYMENT_TRANSITIONS = {
    None: {PaymentStatus.CREATED, PaymentStatus.COMPLETED, PaymentStatus.EXPIRED},
    PaymentStatus.CREATED: {PaymentStatus.COMPLETED, PaymentStatus.EXPIRED},
    PaymentStatus.EXPIRED: {PaymentStatus.COMPLETED},
    PaymentStatus.COMPLETED: set(),
}

def payment_transition_applies(current: Optional[str], target: PaymentStatus) -> bool:
    """
    True si passer de current à target change quelque chose.
    - Réappliquer le statut courant est un no-op (rejeu de webhook).
    - 'completed' est terminal: un 'expired' tardif ne le rétrograde pas.
    """
    try:
        current_status = PaymentStatus(current) if current else None
    except ValueError:
        current_status = None
    return target in _PAYMENT_TRANSITIONS[current_status]


class CartItem(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(ge=0, allow_inf_nan=False)
    quantity: int = Field(ge=1)

    @field_validator("name")
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()

    @property
    def unit_amount(self) -> int:
        """Prix unitaire en unités mineures (centimes)."""
        return int(round(self.price * 100))


class CheckoutRequest(BaseModel):
    """Corps de POST /create-checkout-session (clés camelCase du site)."""
    model_config = ConfigDict(populate_by_name=True)

    cart: List[CartItem]
    customer_name: str = Field(alias="customerName")
    customer_phone: str = Field(alias="customerPhone")
    customer_email: str = Field(alias="customerEmail")
    customer_address: str = Field(alias="customerAddress")
    booking_id: Optional[str] = Field(default=None, alias="bookingId")
    booking_date_time: Optional[str] = Field(default=None, alias="bookingDateTime")
    booking_hours: Optional[Union[str, float]] = Field(default=None, alias="bookingHours")
    booking_emergency: Optional[bool] = Field(default=False, alias="bookingEmergency")
    booking_message: Optional[str] = Field(default=None, alias="bookingMessage")

    @field_validator("customer_phone", "booking_id", "booking_date_time", "booking_hours", mode="before")
    def numbers_as_text(cls, v):
        # Les formulaires envoient parfois téléphone / id de réservation en nombre
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def is_booking(self) -> bool:
        return bool(self.booking_id)

    @property
    def flow_type(self) -> FlowType:
        return FlowType.BOOKING if self.is_booking else FlowType.ORDER
