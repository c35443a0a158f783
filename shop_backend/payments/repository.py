"""
Accès données pour la feature 'payments': tables 'payments' et 'bookings'.
Les écritures sont des upserts/updates qui ne touchent que les colonnes fournies (fusion, jamais d'écrasement).
Les erreurs remontent: c'est le service qui décide si elles sont fatales.
"""
from typing import Any, Dict, Optional

from shop_backend.infra.supabase_client import get_service_supabase

# module shop_backend.payments.repository
def get_payment(session_id: str) -> Optional[Dict[str, Any]]:
    res = (
        get_service_supabase()
        .table("payments")
        .select("*")
        .eq("session_id", session_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def upsert_payment(session_id: str, fields: Dict[str, Any]) -> None:
    """Crée ou fusionne la ligne 'payments' de la session (clé: session_id)."""
    (
        get_service_supabase()
        .table("payments")
        .upsert({"session_id": session_id, **fields}, on_conflict="session_id")
        .execute()
    )

def get_booking(booking_id: str) -> Optional[Dict[str, Any]]:
    res = (
        get_service_supabase()
        .table("bookings")
        .select("*")
        .eq("id", str(booking_id))
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def upsert_booking(booking_id: str, fields: Dict[str, Any]) -> None:
    """
    Met à jour la réservation (créée en amont par le module de réservation).
    Upsert: si la ligne manque encore, elle est créée avec les seuls champs de paiement.
    """
    (
        get_service_supabase()
        .table("bookings")
        .upsert({"id": str(booking_id), **fields}, on_conflict="id")
        .execute()
    )
