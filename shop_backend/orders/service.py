"""
Cas d'usage 'orders': consultation d'une commande, dernières commandes,
rapprochement commandes stockées / sessions du fournisseur (lecture seule).
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from shop_backend.config import Settings, get_settings
from shop_backend.events import repository as events_repo
from shop_backend.payments.cart import total_major
from shop_backend.payments.provider import PaymentProvider, ProviderSession, get_provider
from shop_backend.utils.aio import run_blocking
from shop_backend.utils.dates import days_ago, to_iso

from . import repository as orders_repo

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 14
MAX_WINDOW_DAYS = 90
DEFAULT_LIST_LIMIT = 10
MAX_LIST_LIMIT = 100
RECONCILE_MAX_PAGES = 3
AMOUNT_TOLERANCE = 0.01


def clamp(value: Optional[int], default: int, upper: int, lower: int = 1) -> int:
    if value is None:
        return default
    return max(lower, min(int(value), upper))


def get_order_for_session(session_id: str) -> Optional[Dict[str, Any]]:
    """Commande de la session + son journal d'événements (clé 'events'), ou None."""
    order = orders_repo.get_order_by_session(session_id)
    if order is None:
        return None
    try:
        events = events_repo.list_events("order", order["id"])
    except Exception:
        logger.exception("orders.service list_events failed order_id=%s", order.get("id"))
        events = []
    return {**order, "events": events}


def _error_text(exc: BaseException) -> str:
    # asyncio.TimeoutError n'a pas de message
    return str(exc) or type(exc).__name__


def _session_summary(s: ProviderSession) -> Dict[str, Any]:
    return {"id": s.session_id, "created": to_iso(s.created), "status": s.status}


async def list_last_orders(
    limit: Optional[int] = None,
    *,
    provider: Optional[PaymentProvider] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Dernières commandes (created_at décroissant) + session fournisseur la plus récente.
    L'échec côté fournisseur n'est pas fatal (stripeLatest = None).
    """
    settings = settings or get_settings()
    limit = clamp(limit, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
    rows = await run_blocking(orders_repo.list_recent_orders, limit)
    orders = [{**row, "createdAtIso": to_iso(row.get("created_at"))} for row in rows]

    stripe_latest = None
    try:
        provider = provider or get_provider(settings=settings)
        latest = await run_blocking(provider.latest_session, timeout=settings.provider_timeout)
        if latest is not None:
            stripe_latest = _session_summary(latest)
    except Exception as e:
        logger.warning("orders.last latest_session unavailable: %s", _error_text(e))
    return {"count": len(orders), "stripeLatest": stripe_latest, "orders": orders}


def build_report(
    orders: List[Dict[str, Any]],
    sessions: List[ProviderSession],
    *,
    window_days: int,
    currency: str,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Apparie commandes et sessions par identifiant de session.
    - matched: présentes des deux côtés (avec contrôle des montants)
    - missingInStore: sessions sans commande stockée
    - missingInStripe: commandes avec session_id sans session fournisseur
    """
    store_by_session = {o["session_id"]: o for o in orders if o.get("session_id")}
    provider_ids = {s.session_id for s in sessions}

    matched: List[Dict[str, Any]] = []
    missing_in_store: List[Dict[str, Any]] = []
    for s in sessions:
        order = store_by_session.get(s.session_id)
        if order is None:
            missing_in_store.append({
                "sessionId": s.session_id,
                "stripeCreated": to_iso(s.created),
                "status": s.status,
            })
            continue
        store_total = total_major(order.get("cart") or [])
        stripe_total = s.amount_total / 100 if s.amount_total is not None else None
        matched.append({
            "sessionId": s.session_id,
            "orderId": order.get("id"),
            "stripeCreated": to_iso(s.created),
            "storeCreated": to_iso(order.get("created_at")),
            "status": s.status,
            "totals": {
                "store": store_total,
                "stripeAmount": stripe_total,
                "stripeCurrency": s.currency or currency,
                "amountMismatch": abs(store_total - stripe_total) > AMOUNT_TOLERANCE if stripe_total is not None else None,
            },
        })

    missing_in_stripe = [
        {"sessionId": o["session_id"], "orderId": o.get("id"), "storeCreated": to_iso(o.get("created_at"))}
        for o in orders
        if o.get("session_id") and o["session_id"] not in provider_ids
    ]

    report: Dict[str, Any] = {
        "windowDays": window_days,
        "totals": {"store": len(orders), "stripe": len(sessions), "matched": len(matched)},
        "matched": matched,
        "missingInStore": missing_in_store,
        "missingInStripe": missing_in_stripe,
    }
    if error:
        report["error"] = error
    return report


async def reconcile(
    days: Optional[int] = None,
    *,
    provider: Optional[PaymentProvider] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Rapport de rapprochement sur les `days` derniers jours (1..90, défaut 14).
    - Échec de lecture du stockage: l'exception remonte (500 côté vue).
    - Échec fournisseur (ou clé absente): rapport avec 'error', côté fournisseur vide.
    """
    settings = settings or get_settings()
    window_days = clamp(days, DEFAULT_WINDOW_DAYS, MAX_WINDOW_DAYS)
    since = days_ago(window_days)

    orders = await run_blocking(orders_repo.list_orders_since, since)

    sessions: List[ProviderSession] = []
    error: Optional[str] = None
    try:
        provider = provider or get_provider(settings=settings)
        sessions = await run_blocking(
            provider.list_sessions,
            since=since,
            max_pages=RECONCILE_MAX_PAGES,
            timeout=settings.provider_timeout * RECONCILE_MAX_PAGES,
        )
    except asyncio.TimeoutError as e:
        logger.warning("orders.reconcile provider timeout window=%sd", window_days)
        error = _error_text(e)
    except Exception as e:
        logger.exception("orders.reconcile provider listing failed window=%sd", window_days)
        error = _error_text(e)

    report = build_report(orders, sessions, window_days=window_days, currency=settings.currency, error=error)
    logger.info(
        "orders.reconcile window=%sd store=%s stripe=%s matched=%s",
        window_days, len(orders), len(sessions), len(report["matched"]),
    )
    return report
