import json
import logging

from fastapi import APIRouter, Depends, Request

from shop_backend.config import Settings, get_settings
from shop_backend.utils.rate_limit import optional_rate_limit

from . import cart as payments_cart
from . import service as payments_service
from . import webhook as payments_webhook
from .errors import CheckoutValidationError
from .provider import PaymentProvider, get_payment_provider

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Payments"])

def request_origin(request: Request, settings: Settings) -> str:
    # BASE_URL prime; sinon la base de la requête (l'en-tête Origin n'est pas fiable)
    return settings.base_url or str(request.base_url).rstrip("/")

# module shop_backend.payments.views
@router.post("/create-checkout-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_session(
    request: Request,
    provider: PaymentProvider = Depends(get_payment_provider),
    settings: Settings = Depends(get_settings),
):
    """
    Crée une session Checkout pour une commande ou une réservation.
    - Entrée JSON: { cart: [{name, description?, price, quantity}], customerName, customerPhone,
      customerEmail, customerAddress, bookingId?, bookingDateTime?, bookingHours?,
      bookingEmergency?, bookingMessage? }
    - Sécurité: rate limit (10 req / 60s par IP)
    - Réponse: { "url": <page de paiement> }
    - Erreurs: 400 (validation, aucun effet de bord), 500 (fournisseur)
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise CheckoutValidationError("Invalid JSON body")

    req = payments_cart.parse_checkout_request(body)
    outcome = await payments_service.create_checkout_session(
        req,
        origin=request_origin(request, settings),
        provider=provider,
        settings=settings,
    )
    logger.info(
        "payments.checkout flow=%s session=%s order_id=%s email_sent=%s",
        req.flow_type.value, outcome.session_id, outcome.order_id, outcome.email_sent,
    )
    return {"url": outcome.url}

@router.post("/stripe/webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    provider: PaymentProvider = Depends(get_payment_provider),
    settings: Settings = Depends(get_settings),
):
    """
    Webhook Stripe (corps brut + en-tête Stripe-Signature).
    - Réponse: {"received": true} dès que l'événement est vérifié
    - Erreurs: 400 signature/payload invalide, 500 si le secret de signature manque
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    return await payments_webhook.handle_webhook(payload, signature, provider=provider, settings=settings)
