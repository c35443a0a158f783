"""
Canal de secours: SMTP over SSL (Gmail par défaut, mot de passe d'application).
Bloquant: appelé via run_blocking depuis le service.
"""
import smtplib
from email.message import EmailMessage

from shop_backend.config import Settings


class SMTPNotConfigured(RuntimeError):
    pass


def send_mail(*, to: str, subject: str, html: str, text: str, settings: Settings) -> str:
    """Envoie un email multipart (texte + HTML) et retourne le Message-ID."""
    if not settings.smtp_configured:
        raise SMTPNotConfigured("GMAIL_USER / GMAIL_PASS manquants")
    msg = EmailMessage()
    msg["From"] = settings.company_email or settings.smtp_user
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(text)
    msg.add_alternative(html, subtype="html")
    with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=settings.notify_timeout) as server:
        server.login(settings.smtp_user, settings.smtp_password)
        server.send_message(msg)
    return msg.get("Message-ID") or ""
