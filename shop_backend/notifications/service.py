"""
Cas d'usage 'notifications': confirmation client + notification interne.
Chaque envoi tente EmailJS puis, en cas d'échec, le SMTP de secours.
Aucune exception ne remonte: un email raté ne fait jamais échouer un checkout.
"""
import logging
from typing import List, Optional

from shop_backend.config import Settings
from shop_backend.payments.models import CheckoutRequest
from shop_backend.utils.aio import run_blocking
from . import emailjs, smtp, templates

logger = logging.getLogger(__name__)

CHANNEL_EMAILJS = "emailjs"
CHANNEL_SMTP = "smtp"


class NotificationResult:
    def __init__(self, ok: bool, channel: Optional[str] = None, errors: Optional[List[str]] = None):
        self.ok = ok
        self.channel = channel
        self.errors = errors or []

    def __bool__(self) -> bool:
        return self.ok


async def _deliver(req: CheckoutRequest, audience: str, to: str, *, settings: Settings, origin: str) -> NotificationResult:
    errors: List[str] = []
    try:
        await emailjs.send_template(
            templates.template_id(req, audience, settings),
            templates.emailjs_params(req, to, settings),
            settings=settings,
            origin=origin,
        )
        logger.info("notifications.%s sent via emailjs to=%s", audience, to)
        return NotificationResult(True, CHANNEL_EMAILJS)
    except Exception as e:
        logger.warning("notifications.%s emailjs failed: %s", audience, e)
        errors.append(f"{CHANNEL_EMAILJS}: {e}")

    subject, lines = templates.fallback_message(req, audience, settings)
    try:
        await run_blocking(
            smtp.send_mail,
            to=to,
            subject=subject,
            html=templates.render_html(lines),
            text=templates.render_text(lines),
            settings=settings,
            timeout=settings.notify_timeout,
        )
        logger.info("notifications.%s sent via smtp to=%s", audience, to)
        return NotificationResult(True, CHANNEL_SMTP)
    except Exception as e:
        logger.warning("notifications.%s smtp failed: %s", audience, e)
        errors.append(f"{CHANNEL_SMTP}: {e}")

    logger.error("notifications.%s not delivered to=%s errors=%s", audience, to, errors)
    return NotificationResult(False, errors=errors)


async def send_customer_confirmation(req: CheckoutRequest, *, settings: Settings, origin: str = "") -> NotificationResult:
    """Confirmation envoyée au client (récapitulatif commande ou réservation)."""
    if not req.customer_email:
        return NotificationResult(False, errors=["missing customer email"])
    return await _deliver(req, templates.CUSTOMER, req.customer_email, settings=settings, origin=origin)


async def send_internal_notification(req: CheckoutRequest, *, settings: Settings, origin: str = "") -> NotificationResult:
    """Notification à la boîte opérations (ORDER_NOTIFY_EMAIL)."""
    if not settings.order_notify_email:
        return NotificationResult(False, errors=["missing ORDER_NOTIFY_EMAIL"])
    return await _deliver(req, templates.ADMIN, settings.order_notify_email, settings=settings, origin=origin)
