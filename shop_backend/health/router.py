from fastapi import APIRouter, Request

from shop_backend.config import get_settings
from shop_backend.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/ready")
def health_ready(request: Request):
    """Résumé de configuration (booléens uniquement, jamais de secret)."""
    settings = get_settings()
    webhook_mode = "signed" if settings.stripe_webhook_secret else (
        "unsigned" if settings.stripe_webhook_allow_unsigned else "disabled"
    )
    return {
        "ok": settings.stripe_configured and settings.supabase_configured,
        "stripe": settings.stripe_configured,
        "webhook": webhook_mode,
        "supabase": settings.supabase_configured,
        "emailjs": bool(settings.emailjs_service_id and settings.emailjs_user_id),
        "smtp": settings.smtp_configured,
        "currency": settings.currency,
        "rate_limit": rate_limit_health_info(request),
    }
