"""
Contenu des emails de confirmation (client) et de notification interne (opérations).
- Paramètres EmailJS: mêmes clés que les templates du site (order_* / booking_* + alias simples)
- Secours SMTP: sujet + lignes de texte, rendues en HTML échappé
"""
import html
from datetime import datetime
from typing import Any, Dict, List, Tuple

from shop_backend.config import Settings
from shop_backend.payments.cart import booking_service_label, order_summary
from shop_backend.payments.models import CheckoutRequest

CUSTOMER = "customer"
ADMIN = "admin"


def _total(req: CheckoutRequest) -> str:
    return f"{sum(i.price * i.quantity for i in req.cart):.2f}"

def _yes_no(flag: Any) -> str:
    return "Yes" if flag else "No"

def template_id(req: CheckoutRequest, audience: str, settings: Settings) -> str:
    if req.is_booking:
        return settings.emailjs_template_booking_admin if audience == ADMIN else settings.emailjs_template_booking_customer
    return settings.emailjs_template_order_admin if audience == ADMIN else settings.emailjs_template_order_customer

def emailjs_params(req: CheckoutRequest, to: str, settings: Settings) -> Dict[str, Any]:
    """Paramètres de template EmailJS pour le destinataire `to` (client ou boîte opérations)."""
    params: Dict[str, Any] = {
        "to_email": to,
        "email": to,
        "customer_name": req.customer_name,
        "customer_phone": req.customer_phone,
        "company_name": settings.company_name,
        "company_email": settings.company_email,
        "company_phone": settings.company_phone,
    }
    if not req.is_booking:
        params.update({
            "order_summary": order_summary(req.cart),
            "order_total": _total(req),
        })
        return params

    service = booking_service_label(req.cart)
    hours = "" if req.booking_hours is None else str(req.booking_hours)
    params.update({
        "name": req.customer_name,
        "phone": req.customer_phone,
        "service": service,
        "datetime": req.booking_date_time or "",
        "isEmergency": _yes_no(req.booking_emergency),
        "hours": hours,
        "price": _total(req),
        "message": req.booking_message or "",
        "booking_id": req.booking_id or "",
        "current_year": datetime.now().year,
        # alias booking_* attendus par certains templates
        "booking_service": service,
        "booking_datetime": req.booking_date_time or "",
        "booking_hours": hours,
        "booking_emergency": _yes_no(req.booking_emergency),
        "booking_price": _total(req),
    })
    return params

def _booking_lines(req: CheckoutRequest, currency: str) -> List[str]:
    lines = [
        f"Service: {booking_service_label(req.cart)}",
        f"Date/Time: {req.booking_date_time or ''}",
        f"Hours: {'' if req.booking_hours is None else req.booking_hours}",
        f"Emergency: {_yes_no(req.booking_emergency)}",
        f"Price: {_total(req)} {currency.upper()}",
    ]
    if req.booking_message:
        lines.append(f"Message: {req.booking_message}")
    lines.append(f"Booking ID: {req.booking_id or ''}")
    return lines

def fallback_message(req: CheckoutRequest, audience: str, settings: Settings) -> Tuple[str, List[str]]:
    """Sujet + lignes du mail de secours (SMTP)."""
    currency = settings.currency
    if audience == ADMIN:
        header = [
            f"Customer: {req.customer_name} ({req.customer_phone})",
            f"Email: {req.customer_email}",
        ]
        if req.is_booking:
            return f"New booking: {booking_service_label(req.cart)}", header + _booking_lines(req, currency)
        return "New order", header + [
            f"Items: {order_summary(req.cart)}",
            f"Total: {_total(req)} {currency.upper()}",
            f"Address: {req.customer_address}",
        ]

    if req.is_booking:
        return (
            f"Booking received: {booking_service_label(req.cart)}",
            [f"Hi {req.customer_name},", "Thanks for your booking. Here are the details:"] + _booking_lines(req, currency),
        )
    return "Order confirmation", (
        [f"Hi {req.customer_name},", "Thanks for your order. Summary:"]
        + [f"{i.quantity} x {i.name} @ {i.price:.2f}" for i in req.cart]
        + [f"Total: {_total(req)} {currency.upper()}"]
    )

def render_html(lines: List[str]) -> str:
    return "<div>" + "".join(f"<p>{html.escape(line)}</p>" for line in lines if line) + "</div>"

def render_text(lines: List[str]) -> str:
    return "\n".join(line for line in lines if line)
