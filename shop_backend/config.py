# shop_backend.config
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH)

"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise les secrets/URLs (Stripe, Supabase, EmailJS, SMTP)
- Construit une seule fois un objet Settings passé explicitement aux services
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env(*names: str, default: str = "") -> str:
    # Premier nom défini (non vide) gagne
    for name in names:
        value = _clean_env(os.getenv(name) or "")
        if value:
            return value
    return default

def _env_bool(name: str, default: bool = False) -> bool:
    raw = _clean_env(os.getenv(name) or "")
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")

def _env_float(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

def _env_list(name: str) -> List[str]:
    return [v.strip() for v in (os.getenv(name) or "").split(",") if v.strip()]


@dataclass(frozen=True)
class Settings:
    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_allow_unsigned: bool = False
    currency: str = "zar"
    payment_provider: str = "stripe"
    base_url: str = ""

    # Supabase (service-role côté serveur)
    supabase_url: str = ""
    supabase_service_key: str = ""

    # EmailJS (canal principal)
    emailjs_service_id: str = ""
    emailjs_user_id: str = ""
    emailjs_origin: str = ""
    emailjs_template_order_customer: str = ""
    emailjs_template_order_admin: str = ""
    emailjs_template_booking_customer: str = ""
    emailjs_template_booking_admin: str = ""

    # SMTP (canal de secours)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_user: str = ""
    smtp_password: str = ""

    # Entreprise / boîte opérations
    company_name: str = "Myriad Green"
    company_email: str = "irrigationsa@gmail.com"
    company_phone: str = "+27 12 345 6789"
    order_notify_email: str = "irrigationsa@gmail.com"

    # Délais (secondes)
    provider_timeout: float = 8.0
    notify_timeout: float = 6.0

    # CORS: vide => localhost + réseaux privés uniquement
    cors_origins: tuple = ()

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)


def load_settings() -> Settings:
    """
    Lit l'environnement et retourne un Settings figé.
    Les alias de variables (ex: EMAILJS_PUBLIC_KEY) sont résolus ici et nulle part ailleurs.
    """
    supabase_url = _env("SUPABASE_URL")
    # SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
    if supabase_url and not supabase_url.startswith("http"):
        supabase_url = "https://" + supabase_url
    supabase_url = supabase_url.rstrip("/")

    company_email = _env("COMPANY_EMAIL", default="irrigationsa@gmail.com")
    booking_generic = _env("EMAILJS_TEMPLATE_ID_BOOKING", "EMAILJS_TEMPLATE_ID_CONTACT_US", "EMAILJS_TEMPLATE_ID_CONFIRMATION_ORDER")
    order_customer = _env("EMAILJS_TEMPLATE_ID_CONFIRMATION_ORDER")

    try:
        smtp_port = int(_env("SMTP_PORT", default="465"))
    except ValueError:
        smtp_port = 465

    return Settings(
        stripe_secret_key=_env("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
        stripe_webhook_allow_unsigned=_env_bool("STRIPE_WEBHOOK_ALLOW_UNSIGNED"),
        currency=_env("STRIPE_CURRENCY", default="zar").lower(),
        payment_provider=_env("PAYMENT_PROVIDER", default="stripe").lower(),
        base_url=_env("BASE_URL").rstrip("/"),
        supabase_url=supabase_url,
        supabase_service_key=_env("SUPABASE_SERVICE_KEY"),
        emailjs_service_id=_env("EMAILJS_SERVICE_ID"),
        emailjs_user_id=_env("EMAILJS_USER_ID", "EMAILJS_PUBLIC_KEY"),
        emailjs_origin=_env("EMAILJS_ORIGIN"),
        emailjs_template_order_customer=order_customer,
        emailjs_template_order_admin=_env("EMAILJS_TEMPLATE_ID_ORDER_ADMIN") or order_customer,
        emailjs_template_booking_customer=_env("EMAILJS_TEMPLATE_ID_BOOKING_CUSTOMER") or booking_generic,
        emailjs_template_booking_admin=_env("EMAILJS_TEMPLATE_ID_BOOKING_ADMIN") or booking_generic,
        smtp_host=_env("SMTP_HOST", default="smtp.gmail.com"),
        smtp_port=smtp_port,
        smtp_user=_env("GMAIL_USER", "SMTP_USER"),
        # Les mots de passe d'application Gmail sont souvent copiés avec des espaces
        smtp_password="".join(_env("GMAIL_PASS", "SMTP_PASSWORD").split()),
        company_name=_env("COMPANY_NAME", default="Myriad Green"),
        company_email=company_email,
        company_phone=_env("COMPANY_PHONE", default="+27 12 345 6789"),
        order_notify_email=_env("ORDER_NOTIFY_EMAIL", default=company_email),
        provider_timeout=_env_float("PROVIDER_TIMEOUT_SECONDS", 8.0),
        notify_timeout=_env_float("NOTIFY_TIMEOUT_SECONDS", 6.0),
        cors_origins=tuple(_env_list("CORS_ORIGINS")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings du process (chargés une seule fois)."""
    return load_settings()
