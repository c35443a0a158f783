"""
Interface fournisseur de paiement + registre.
L'orchestration (service, webhook, rapprochement) ne connaît que PaymentProvider;
les tests substituent un faux fournisseur sans toucher au reste.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from shop_backend.config import Settings, get_settings


class CheckoutSession:
    """Résultat de create_checkout: URL de redirection + identifiant de session."""

    def __init__(self, session_id: str, url: str):
        self.session_id = session_id
        self.url = url


class ProviderSession:
    """Vue normalisée d'une session côté fournisseur (rapprochement, diagnostic)."""

    def __init__(
        self,
        session_id: str,
        created: datetime,
        status: Optional[str] = None,
        amount_total: Optional[int] = None,
        currency: Optional[str] = None,
        customer_email: Optional[str] = None,
    ):
        self.session_id = session_id
        self.created = created
        self.status = status
        self.amount_total = amount_total
        self.currency = currency
        self.customer_email = customer_email


class PaymentProvider(ABC):
    name = ""

    @abstractmethod
    def create_checkout(
        self,
        *,
        line_items: List[Dict[str, Any]],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        """Crée une session de paiement hébergée. Lève en cas d'échec (fatal pour le checkout)."""

    @abstractmethod
    def construct_webhook_event(self, payload: bytes, signature: Optional[str], secret: str) -> Dict[str, Any]:
        """
        Vérifie la signature et parse l'événement.
        Lève WebhookSignatureError (signature) ou WebhookPayloadError (corps illisible).
        """

    @abstractmethod
    def list_sessions(self, *, since: datetime, max_pages: int = 3) -> List[ProviderSession]:
        """Sessions créées depuis `since` (paginées, au plus max_pages pages)."""

    @abstractmethod
    def latest_session(self) -> Optional[ProviderSession]:
        """Session la plus récente, ou None."""


def get_provider(name: Optional[str] = None, settings: Optional[Settings] = None) -> PaymentProvider:
    settings = settings or get_settings()
    key = (name or settings.payment_provider or "stripe").lower()
    if key == "stripe":
        # Import paresseux: le SDK n'est chargé que si le fournisseur est utilisé
        from .stripe_client import StripeProvider
        return StripeProvider(settings)
    raise RuntimeError(f"Unknown PAYMENT_PROVIDER: {key}")

def get_payment_provider() -> PaymentProvider:
    """Dépendance FastAPI (surchargée dans les tests via app.dependency_overrides)."""
    return get_provider()
