import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from shop_backend.config import Settings, get_settings
from shop_backend.payments.provider import PaymentProvider, get_payment_provider
from shop_backend.utils.aio import run_blocking

from . import service as orders_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/order", tags=["Orders"])

# Routes statiques déclarées avant /{session_id}
@router.get("/reconcile")
async def reconcile_orders(
    days: Optional[int] = None,
    provider: PaymentProvider = Depends(get_payment_provider),
    settings: Settings = Depends(get_settings),
):
    """
    Rapprochement commandes stockées / sessions Stripe sur `days` jours (1..90, défaut 14).
    Lecture seule; un échec Stripe est signalé dans 'error' sans faire échouer la requête.
    """
    try:
        return await orders_service.reconcile(days, provider=provider, settings=settings)
    except Exception:
        logger.exception("Erreur reconcile_orders days=%s", days)
        return JSONResponse(status_code=500, content={"error": "Failed to reconcile orders"})

@router.get("/last/list")
async def last_orders(
    limit: Optional[int] = None,
    provider: PaymentProvider = Depends(get_payment_provider),
    settings: Settings = Depends(get_settings),
):
    """Dernières commandes (limit 1..100, défaut 10) + dernière session Stripe."""
    try:
        return await orders_service.list_last_orders(limit, provider=provider, settings=settings)
    except Exception:
        logger.exception("Erreur last_orders limit=%s", limit)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch last orders"})

@router.get("/{session_id}")
async def get_order(session_id: str):
    try:
        order = await run_blocking(orders_service.get_order_for_session, session_id)
    except Exception:
        logger.exception("Erreur get_order session=%s", session_id)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    if order is None:
        logger.info("orders.lookup not found session=%s", session_id)
        return JSONResponse(status_code=404, content={"error": "Order not found"})
    return order
