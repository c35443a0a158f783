"""
Accès données pour les fiches clients (table 'customers').
La clé est l'email normalisé: un même client est retrouvé quel que soit le flux (commande ou réservation).
"""
from typing import Any, Dict, Optional
import logging

from shop_backend.infra.supabase_client import get_service_supabase
from shop_backend.utils.dates import now_iso

logger = logging.getLogger(__name__)

def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()

def get_customer(customer_id: str) -> Optional[Dict[str, Any]]:
    res = (
        get_service_supabase()
        .table("customers")
        .select("*")
        .eq("id", customer_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def upsert_customer(*, email: str, name: str, phone: str) -> Optional[str]:
    """
    Crée le client s'il n'existe pas, sinon rafraîchit le nom et updated_at.
    - Retourne l'identifiant (email normalisé), ou None si l'email est vide.
    - Ne supprime jamais rien; les listes phones/emails ne sont posées qu'à la création.
    """
    customer_id = normalize_email(email)
    if not customer_id:
        return None
    now = now_iso()
    existing = get_customer(customer_id)
    table = get_service_supabase().table("customers")
    if existing is None:
        table.upsert({
            "id": customer_id,
            "primary_email": customer_id,
            "name": name or "",
            "phones": [str(phone)] if phone else [],
            "emails": [customer_id],
            "created_at": now,
            "updated_at": now,
        }, on_conflict="id").execute()
        logger.info("customers.repository.upsert_customer created id=%s", customer_id)
    else:
        table.update({
            "name": name or existing.get("name") or "",
            "updated_at": now,
        }).eq("id", customer_id).execute()
    return customer_id
