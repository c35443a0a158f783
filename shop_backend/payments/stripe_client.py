"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import stripe

from shop_backend.config import Settings
from shop_backend.utils.dates import from_timestamp
from .errors import ProviderNotConfigured, WebhookPayloadError, WebhookSignatureError
from .provider import CheckoutSession, PaymentProvider, ProviderSession

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

# module shop_backend.payments.stripe_client
def _plain(obj: Any) -> Dict[str, Any]:
    """
    Convertit un objet du SDK (Event, ListObject, Session) en dict natif.
    Les StripeObject ne sont plus des dict: .get() y lève AttributeError.
    """
    if isinstance(obj, stripe.StripeObject):
        return obj.to_dict()
    return obj if isinstance(obj, dict) else {}

def _to_provider_session(s: Dict[str, Any]) -> ProviderSession:
    details = s.get("customer_details") or {}
    return ProviderSession(
        session_id=s["id"],
        created=from_timestamp(s.get("created")),
        status=s.get("status"),
        amount_total=s.get("amount_total"),
        currency=s.get("currency"),
        customer_email=details.get("email") if isinstance(details, dict) else None,
    )


class StripeProvider(PaymentProvider):
    name = "stripe"

    def __init__(self, settings: Settings):
        self.settings = settings

    def require_stripe(self):
        """
        Prépare et retourne le module stripe prêt à l'emploi.
        - Configure stripe.api_key via STRIPE_SECRET_KEY.
        - Lève ProviderNotConfigured si la clé manque (aucun appel réseau tenté).
        """
        if not self.settings.stripe_secret_key:
            raise ProviderNotConfigured()
        stripe.api_key = self.settings.stripe_secret_key
        return stripe

    def create_checkout(
        self,
        *,
        line_items: List[Dict[str, Any]],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Crée une session Stripe Checkout en mode 'payment'.
        Retour: CheckoutSession(id "cs_...", url de redirection hébergée)
        """
        self.require_stripe()
        params: Dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        session = stripe.checkout.Session.create(**params)
        logger.info("stripe.create_checkout session=%s items=%s", session["id"], len(line_items))
        return CheckoutSession(session_id=session["id"], url=session["url"])

    def construct_webhook_event(self, payload: bytes, signature: Optional[str], secret: str) -> Dict[str, Any]:
        """
        Valide la signature via Webhook.construct_event et retourne l'événement en dict.
        - secret vide: parse le JSON sans vérification (mode non signé explicitement autorisé en amont).
        """
        if not secret:
            try:
                event = json.loads(payload.decode("utf-8"))
            except (UnicodeDecodeError, ValueError) as e:
                raise WebhookPayloadError(message=str(e))
            if not isinstance(event, dict):
                raise WebhookPayloadError(message="event must be a JSON object")
            return event
        try:
            event = stripe.Webhook.construct_event(payload, signature or "", secret)
        except ValueError as e:
            raise WebhookPayloadError(message=str(e))
        except stripe.SignatureVerificationError:
            raise WebhookSignatureError()
        return _plain(event)

    def list_sessions(self, *, since: datetime, max_pages: int = 3) -> List[ProviderSession]:
        self.require_stripe()
        sessions: List[ProviderSession] = []
        starting_after: Optional[str] = None
        for _ in range(max_pages):
            params: Dict[str, Any] = {"limit": PAGE_SIZE, "created": {"gte": int(since.timestamp())}}
            if starting_after:
                params["starting_after"] = starting_after
            page = _plain(stripe.checkout.Session.list(**params))
            data = list(page.get("data") or [])
            for s in data:
                ps = _to_provider_session(s)
                if ps.created and ps.created >= since:
                    sessions.append(ps)
            if not page.get("has_more") or not data:
                break
            starting_after = data[-1]["id"]
        return sessions

    def latest_session(self) -> Optional[ProviderSession]:
        self.require_stripe()
        page = _plain(stripe.checkout.Session.list(limit=1))
        data = list(page.get("data") or [])
        return _to_provider_session(data[0]) if data else None
