"""
Logique panier pure (pas de Stripe, pas de DB).
"""
import re
from typing import Any, Dict, List

from pydantic import ValidationError

from .errors import CheckoutValidationError
from .models import CartItem, CheckoutRequest

REQUIRED_CUSTOMER_FIELDS = ("customerName", "customerEmail", "customerPhone", "customerAddress")
MISSING_CUSTOMER_DETAILS = "Missing required customer details (name, email, phone, address)"
INVALID_CART_ITEM = "Invalid cart item"

# module shop_backend.payments.cart
def parse_checkout_request(body: Any) -> CheckoutRequest:
    """
    Valide le corps brut de /create-checkout-session.
    Ordre des contrôles (chaque échec lève CheckoutValidationError 400, sans effet de bord):
      1) panier: liste non vide -> "Cart is empty"
      2) champs client requis non vides (après trim)
      3) invariants des articles (nom, prix >= 0, quantité >= 1)
    """
    if not isinstance(body, dict):
        raise CheckoutValidationError("Invalid JSON body")
    cart = body.get("cart")
    if not isinstance(cart, list) or not cart:
        raise CheckoutValidationError("Cart is empty")
    missing = [f for f in REQUIRED_CUSTOMER_FIELDS if not str(body.get(f) or "").strip()]
    if missing:
        raise CheckoutValidationError(MISSING_CUSTOMER_DETAILS, missing=missing)
    try:
        req = CheckoutRequest.model_validate(body)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = first.get("loc", ())
        where = ".".join(str(p) for p in loc)
        label = INVALID_CART_ITEM if loc and loc[0] == "cart" else None
        raise CheckoutValidationError(label, message=f"{where}: {first.get('msg', 'invalid')}")
    return req.model_copy(update={
        "customer_name": req.customer_name.strip(),
        "customer_phone": req.customer_phone.strip(),
        "customer_email": req.customer_email.strip(),
        "customer_address": req.customer_address.strip(),
    })

def to_line_items(cart: List[CartItem], currency: str) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data) à partir du panier.
    - unit_amount en unités mineures
    - description omise si vide (Stripe refuse une description vide)
    """
    line_items: List[Dict[str, Any]] = []
    for item in cart:
        product_data: Dict[str, Any] = {"name": item.name}
        if item.description and item.description.strip():
            product_data["description"] = item.description.strip()
        line_items.append({
            "quantity": item.quantity,
            "price_data": {
                "currency": currency,
                "unit_amount": item.unit_amount,
                "product_data": product_data,
            },
        })
    return line_items

def total_minor(cart: List[CartItem]) -> int:
    """Total du panier en unités mineures: somme(unit_amount * quantité)."""
    return sum(item.unit_amount * item.quantity for item in cart)

def total_major(cart: List[Dict[str, Any]]) -> float:
    """
    Total d'un instantané de panier stocké (dicts), en unités majeures.
    Tolérant: prix/quantité illisibles comptent pour 0 / 1.
    """
    total = 0.0
    for it in cart or []:
        try:
            price = float(it.get("price") or 0)
        except (TypeError, ValueError):
            price = 0.0
        try:
            qty = int(it.get("quantity") or 1)
        except (TypeError, ValueError):
            qty = 1
        total += price * qty
    return round(total, 2)

def cart_snapshot(cart: List[CartItem]) -> List[Dict[str, Any]]:
    return [item.model_dump(exclude_none=True) for item in cart]

def order_summary(cart: List[CartItem]) -> str:
    return ", ".join(f"{item.quantity} x {item.name}" for item in cart)

def booking_service_label(cart: List[CartItem]) -> str:
    """Nom du service réservé: premier article sans le préfixe 'Booking:'."""
    if not cart:
        return "Consultation"
    return re.sub(r"^Booking:\s*", "", cart[0].name) or "Consultation"

def make_metadata(req: CheckoutRequest) -> Dict[str, str]:
    """Métadonnées de session Stripe relues par le webhook (flow_type, bookingId)."""
    return {
        "flow_type": req.flow_type.value,
        "bookingId": req.booking_id or "",
    }

def success_url(origin: str, req: CheckoutRequest) -> str:
    # {CHECKOUT_SESSION_ID} est substitué par Stripe
    if req.is_booking:
        from urllib.parse import quote
        return f"{origin}/thank-you.html?bookingId={quote(req.booking_id or '', safe='')}&sessionId={{CHECKOUT_SESSION_ID}}"
    return f"{origin}/thank-you-order.html?sessionId={{CHECKOUT_SESSION_ID}}"

def cancel_url(origin: str, req: CheckoutRequest) -> str:
    return f"{origin}/booking-page.html" if req.is_booking else f"{origin}/checkout.html"
