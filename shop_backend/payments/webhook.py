"""
Consommateur du webhook Stripe (checkout.session.completed / checkout.session.expired).

Une fois l'événement vérifié, la réponse est toujours {"received": True}: les échecs
de mise à jour sont journalisés (le rapprochement les détecte ensuite) pour éviter
les renvois en rafale du fournisseur.
Chaque transition est ignorée si l'enregistrement est déjà dans l'état cible,
ce qui rend le rejeu d'un événement sans effet.
"""
import logging
from typing import Any, Dict, Optional

from shop_backend.config import Settings, get_settings
from shop_backend.events import repository as events_repo
from shop_backend.orders import repository as orders_repo
from shop_backend.utils.aio import run_blocking
from shop_backend.utils.dates import now_iso

from . import repository as payments_repo
from .errors import WebhookNotConfigured, WebhookPayloadError
from .models import BookingStatus, FlowType, OrderStatus, PaymentStatus, payment_transition_applies
from .provider import PaymentProvider, get_provider

logger = logging.getLogger(__name__)

SESSION_COMPLETED = "checkout.session.completed"
SESSION_EXPIRED = "checkout.session.expired"


def verify_event(payload: bytes, signature: Optional[str], *, provider: PaymentProvider, settings: Settings) -> Dict[str, Any]:
    """
    Vérifie et parse l'événement.
    - Sans STRIPE_WEBHOOK_SECRET: refusé (WebhookNotConfigured) sauf si
      STRIPE_WEBHOOK_ALLOW_UNSIGNED=true, auquel cas l'événement est accepté sans vérification.
    """
    secret = settings.stripe_webhook_secret
    if not secret:
        if not settings.stripe_webhook_allow_unsigned:
            logger.error("payments.webhook rejected: STRIPE_WEBHOOK_SECRET not set")
            raise WebhookNotConfigured()
        logger.warning("payments.webhook accepting UNSIGNED event (STRIPE_WEBHOOK_ALLOW_UNSIGNED=true)")
    return provider.construct_webhook_event(payload, signature, secret)


def _session_payload(session: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "sessionId": session.get("id"),
        "amountTotal": session.get("amount_total"),
        "currency": session.get("currency"),
    }


def _mark_order_paid(order_id: str, session: Dict[str, Any]) -> None:
    order = orders_repo.get_order(order_id)
    if order is None:
        logger.warning("payments.webhook order not found order_id=%s session=%s", order_id, session.get("id"))
        return
    if order.get("status") == OrderStatus.PAID.value:
        logger.info("payments.webhook order already paid order_id=%s", order_id)
        return
    orders_repo.update_order(order_id, {"status": OrderStatus.PAID.value, "paid_at": now_iso()})
    events_repo.add_event("order", order_id, events_repo.EVENT_PAYMENT_SUCCEEDED, _session_payload(session))
    logger.info("payments.webhook order paid order_id=%s session=%s", order_id, session.get("id"))


def _confirm_booking(booking_id: str, session: Dict[str, Any]) -> None:
    session_id = session.get("id")
    booking = payments_repo.get_booking(booking_id)
    if (
        booking
        and booking.get("status") == BookingStatus.CONFIRMED.value
        and booking.get("stripe_session_id") == session_id
    ):
        logger.info("payments.webhook booking already confirmed booking_id=%s", booking_id)
        return
    payments_repo.upsert_booking(booking_id, {
        "status": BookingStatus.CONFIRMED.value,
        "stripe_session_id": session_id,
        "payment_id": session_id,
        "updated_at": now_iso(),
    })
    events_repo.add_event("booking", booking_id, events_repo.EVENT_PAYMENT_SUCCEEDED, _session_payload(session))
    logger.info("payments.webhook booking confirmed booking_id=%s session=%s", booking_id, session_id)


def apply_session_completed(session: Dict[str, Any]) -> None:
    session_id = session.get("id")
    if not session_id:
        logger.warning("payments.webhook completed event without session id")
        return
    metadata = session.get("metadata") or {}

    try:
        payment = payments_repo.get_payment(session_id) or {}
    except Exception:
        # 'completed' est terminal: l'écrire sans relire reste sûr
        logger.exception("payments.webhook get_payment failed session=%s", session_id)
        payment = {}

    if payment_transition_applies(payment.get("stripe_status"), PaymentStatus.COMPLETED):
        fields: Dict[str, Any] = {"stripe_status": PaymentStatus.COMPLETED.value, "updated_at": now_iso()}
        if session.get("amount_total") is not None:
            fields["amount_total"] = session.get("amount_total")
        if session.get("currency"):
            fields["currency"] = session.get("currency")
        try:
            payments_repo.upsert_payment(session_id, fields)
        except Exception:
            logger.exception("payments.webhook upsert_payment failed session=%s", session_id)
    else:
        logger.info("payments.webhook payment already completed session=%s", session_id)

    flow_type = payment.get("flow_type") or metadata.get("flow_type")
    booking_id = payment.get("booking_id") or metadata.get("bookingId")
    order_id = payment.get("order_id")

    if not order_id and not booking_id and flow_type != FlowType.BOOKING.value:
        # Lien payments.order_id manquant (écriture best-effort au checkout)
        try:
            order = orders_repo.get_order_by_session(session_id)
            order_id = order.get("id") if order else None
        except Exception:
            logger.exception("payments.webhook get_order_by_session failed session=%s", session_id)

    if order_id:
        try:
            _mark_order_paid(order_id, session)
        except Exception:
            logger.exception("payments.webhook order update failed order_id=%s", order_id)
    elif booking_id:
        try:
            _confirm_booking(str(booking_id), session)
        except Exception:
            logger.exception("payments.webhook booking update failed booking_id=%s", booking_id)
    elif flow_type == FlowType.BOOKING.value:
        logger.warning("payments.webhook booking flow without booking id session=%s", session_id)


def apply_session_expired(session: Dict[str, Any]) -> None:
    session_id = session.get("id")
    if not session_id:
        logger.warning("payments.webhook expired event without session id")
        return
    try:
        payment = payments_repo.get_payment(session_id) or {}
        if not payment_transition_applies(payment.get("stripe_status"), PaymentStatus.EXPIRED):
            logger.info("payments.webhook expired ignored session=%s status=%s", session_id, payment.get("stripe_status"))
            return
        payments_repo.upsert_payment(session_id, {"stripe_status": PaymentStatus.EXPIRED.value, "updated_at": now_iso()})
    except Exception:
        logger.exception("payments.webhook expired update failed session=%s", session_id)


async def handle_webhook(
    payload: bytes,
    signature: Optional[str],
    *,
    provider: Optional[PaymentProvider] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Point d'entrée de POST /stripe/webhook.
    Lève WebhookNotConfigured / WebhookSignatureError / WebhookPayloadError avant toute écriture.
    """
    settings = settings or get_settings()
    provider = provider or get_provider(settings=settings)
    event = verify_event(payload, signature, provider=provider, settings=settings)

    event_type = event.get("type")
    data = event.get("data")
    session = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session, dict):
        raise WebhookPayloadError(message="event data.object must be a JSON object")
    logger.info("payments.webhook event=%s id=%s", event_type, event.get("id"))

    if event_type == SESSION_COMPLETED:
        await run_blocking(apply_session_completed, session)
    elif event_type == SESSION_EXPIRED:
        await run_blocking(apply_session_expired, session)
    else:
        logger.info("payments.webhook ignored event type=%s", event_type)
    return {"received": True}
