"""
Erreurs métier de la feature 'payments'.
Rendues en JSON {"error": ..., **fields} par shop_backend.app_setup.exceptions.
"""
from typing import Any, Dict, Optional


class CheckoutError(Exception):
    status_code = 500
    error = "Checkout failed. Please try again."

    def __init__(self, error: Optional[str] = None, **fields: Any):
        self.error = error or self.error
        self.fields: Dict[str, Any] = fields
        super().__init__(self.error)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, **self.fields}


class CheckoutValidationError(CheckoutError):
    status_code = 400
    error = "Invalid checkout request"


class ProviderNotConfigured(CheckoutError):
    status_code = 500
    error = "Stripe not configured (missing STRIPE_SECRET_KEY)"


class ProviderError(CheckoutError):
    """
    Échec fatal côté fournisseur (création de session).
    Seuls des champs non sensibles sont exposés: message, type, code, param.
    """
    status_code = 500

    @classmethod
    def from_exception(cls, exc: Exception) -> "ProviderError":
        return cls(
            message=str(getattr(exc, "user_message", None) or exc) or "unknown",
            type=getattr(getattr(exc, "error", None), "type", None) or type(exc).__name__,
            code=getattr(exc, "code", None),
            param=getattr(exc, "param", None),
        )


class WebhookSignatureError(CheckoutError):
    status_code = 400
    error = "Webhook signature verification failed"


class WebhookPayloadError(CheckoutError):
    status_code = 400
    error = "Invalid webhook payload"


class WebhookNotConfigured(CheckoutError):
    status_code = 500
    error = "Webhook signing secret not configured"
