"""
Canal principal: API REST EmailJS (appel serveur, sans SDK navigateur).
"""
from typing import Any, Dict

import httpx

from shop_backend.config import Settings

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"


class EmailJSNotConfigured(RuntimeError):
    pass


async def send_template(template_id: str, params: Dict[str, Any], *, settings: Settings, origin: str) -> int:
    """
    Envoie un email via un template EmailJS et retourne le code HTTP.
    - Lève EmailJSNotConfigured si service/user/template manquent.
    - Lève httpx.HTTPError (statut non 2xx, timeout, réseau).
    """
    if not (settings.emailjs_service_id and settings.emailjs_user_id and template_id):
        raise EmailJSNotConfigured("EMAILJS_SERVICE_ID / EMAILJS_USER_ID / template manquants")
    payload = {
        "service_id": settings.emailjs_service_id,
        "template_id": template_id,
        "user_id": settings.emailjs_user_id,
        "template_params": params,
    }
    # EmailJS filtre les appels par origine autorisée
    headers = {"Origin": settings.emailjs_origin or origin or "http://localhost:3000"}
    async with httpx.AsyncClient(timeout=settings.notify_timeout) as client:
        resp = await client.post(EMAILJS_SEND_URL, json=payload, headers=headers)
        resp.raise_for_status()
        return resp.status_code
