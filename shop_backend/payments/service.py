"""
Cas d'usage 'payments': orchestre cart, provider, repositories et notifications.

Seule la création de la session chez le fournisseur est fatale. Client, paiement,
commande, événements et emails sont en best-effort: un échec est journalisé
et n'empêche jamais la redirection du client vers la page de paiement.
"""
import asyncio
import logging
from typing import Any, Callable, Optional

from shop_backend.config import Settings, get_settings
from shop_backend.customers import repository as customers_repo
from shop_backend.events import repository as events_repo
from shop_backend.notifications import service as notifications
from shop_backend.orders import repository as orders_repo
from shop_backend.utils.aio import run_blocking
from shop_backend.utils.dates import now_iso

from . import cart as cart_logic
from . import repository as payments_repo
from .errors import ProviderError, ProviderNotConfigured
from .models import CheckoutRequest, OrderStatus, PaymentStatus
from .provider import CheckoutSession, PaymentProvider, get_provider

logger = logging.getLogger(__name__)


class CheckoutOutcome:
    def __init__(self, url: str, session_id: str, order_id: Optional[str] = None, email_sent: bool = False):
        self.url = url
        self.session_id = session_id
        self.order_id = order_id
        self.email_sent = email_sent


async def _best_effort(step: str, key: Any, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Exécute une écriture non critique; retourne None (et journalise) en cas d'échec."""
    try:
        return await run_blocking(fn, *args, **kwargs)
    except Exception:
        logger.exception("payments.checkout %s failed key=%s", step, key)
        return None


async def _create_provider_session(req: CheckoutRequest, *, origin: str, provider: PaymentProvider, settings: Settings) -> CheckoutSession:
    try:
        return await run_blocking(
            provider.create_checkout,
            line_items=cart_logic.to_line_items(req.cart, settings.currency),
            success_url=cart_logic.success_url(origin, req),
            cancel_url=cart_logic.cancel_url(origin, req),
            metadata=cart_logic.make_metadata(req),
            customer_email=req.customer_email,
            timeout=settings.provider_timeout,
        )
    except ProviderNotConfigured:
        raise
    except asyncio.TimeoutError as e:
        logger.error("payments.checkout provider timeout after %ss", settings.provider_timeout)
        raise ProviderError.from_exception(e)
    except Exception as e:
        logger.exception("payments.checkout provider call failed")
        raise ProviderError.from_exception(e)


async def create_checkout_session(
    req: CheckoutRequest,
    *,
    origin: str,
    provider: Optional[PaymentProvider] = None,
    settings: Optional[Settings] = None,
) -> CheckoutOutcome:
    """
    Crée la session de paiement et fait la tenue de compte associée.
    - req: requête déjà validée (cart.parse_checkout_request)
    - origin: base des URLs de retour (BASE_URL ou base de la requête)
    - Lève ProviderNotConfigured / ProviderError (seuls cas fatals)
    """
    settings = settings or get_settings()
    provider = provider or get_provider(settings=settings)
    if not settings.stripe_configured and provider.name == "stripe":
        raise ProviderNotConfigured()

    customer_id = await _best_effort(
        "upsert_customer", req.customer_email, customers_repo.upsert_customer,
        email=req.customer_email, name=req.customer_name, phone=req.customer_phone,
    )

    session = await _create_provider_session(req, origin=origin, provider=provider, settings=settings)
    session_id = session.session_id
    amount_total = cart_logic.total_minor(req.cart)
    now = now_iso()

    await _best_effort("upsert_payment", session_id, payments_repo.upsert_payment, session_id, {
        "flow_type": req.flow_type.value,
        "booking_id": req.booking_id,
        "customer_email": req.customer_email,
        "customer_name": req.customer_name,
        "customer_id": customer_id,
        "currency": settings.currency,
        "amount_total": amount_total,
        "mode": "payment",
        "stripe_status": PaymentStatus.CREATED.value,
        "created_at": now,
        "updated_at": now,
    })

    order_id: Optional[str] = None
    if not req.is_booking:
        order_id = await _best_effort("insert_order", session_id, orders_repo.insert_order, {
            "session_id": session_id,
            "cart": cart_logic.cart_snapshot(req.cart),
            "customer_name": req.customer_name,
            "customer_phone": req.customer_phone,
            "customer_email": req.customer_email,
            "customer_address": req.customer_address,
            "customer_id": customer_id,
            "payment_id": session_id,
            "status": OrderStatus.PENDING_PAYMENT.value,
            "email_sent": False,
            "created_at": now,
        })
        if order_id:
            logger.info("payments.checkout order saved order_id=%s session=%s", order_id, session_id)
            await _best_effort("link_order", session_id, payments_repo.upsert_payment, session_id, {
                "order_id": order_id,
                "updated_at": now_iso(),
            })
            await _best_effort("order_created_event", order_id, events_repo.add_event, "order", order_id, events_repo.EVENT_CREATED, {
                "sessionId": session_id,
                "amountTotal": amount_total,
                "currency": settings.currency,
            })

    # Emails après la tenue de compte; les deux fonctions ne lèvent pas
    customer_mail = await notifications.send_customer_confirmation(req, settings=settings, origin=origin)
    await notifications.send_internal_notification(req, settings=settings, origin=origin)

    if order_id:
        await _best_effort("order_email_flag", order_id, orders_repo.update_order, order_id, {
            "email_sent": customer_mail.ok,
            "email_updated_at": now_iso(),
        })
        if customer_mail.ok:
            await _best_effort("order_email_event", order_id, events_repo.add_event, "order", order_id, events_repo.EVENT_EMAIL_SENT, {
                "to": req.customer_email,
                "channel": customer_mail.channel,
            })

    return CheckoutOutcome(url=session.url, session_id=session_id, order_id=order_id, email_sent=customer_mail.ok)
