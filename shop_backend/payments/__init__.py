"""
Module 'payments' (feature-first): point d'entrée public.
Réunit validation du panier, interface fournisseur, erreurs métier et statuts.
Le service (orchestration) et le webhook s'importent directement depuis leurs modules.
"""

from .cart import parse_checkout_request, to_line_items, total_minor, make_metadata
from .errors import (
    CheckoutError,
    CheckoutValidationError,
    ProviderError,
    ProviderNotConfigured,
    WebhookNotConfigured,
    WebhookPayloadError,
    WebhookSignatureError,
)
from .models import CartItem, CheckoutRequest, FlowType, OrderStatus, PaymentStatus, payment_transition_applies
from .provider import PaymentProvider, get_provider

__all__ = [
    # cart
    "parse_checkout_request",
    "to_line_items",
    "total_minor",
    "make_metadata",
    # errors
    "CheckoutError",
    "CheckoutValidationError",
    "ProviderError",
    "ProviderNotConfigured",
    "WebhookNotConfigured",
    "WebhookPayloadError",
    "WebhookSignatureError",
    # models
    "CartItem",
    "CheckoutRequest",
    "FlowType",
    "OrderStatus",
    "PaymentStatus",
    "payment_transition_applies",
    # provider
    "PaymentProvider",
    "get_provider",
]
