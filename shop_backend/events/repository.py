"""
Journal append-only des événements de cycle de vie (table 'events').
Un événement est rattaché à une commande ou à une réservation (parent_type, parent_id).
"""
from typing import Any, Dict, List, Optional

from shop_backend.infra.supabase_client import get_service_supabase
from shop_backend.utils.dates import now_iso

EVENT_CREATED = "created"
EVENT_EMAIL_SENT = "email_sent"
EVENT_PAYMENT_SUCCEEDED = "payment_succeeded"

def add_event(parent_type: str, parent_id: str, event_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
    get_service_supabase().table("events").insert({
        "parent_type": parent_type,
        "parent_id": str(parent_id),
        "type": event_type,
        "payload": payload or None,
        "created_at": now_iso(),
    }).execute()

def list_events(parent_type: str, parent_id: str) -> List[Dict[str, Any]]:
    res = (
        get_service_supabase()
        .table("events")
        .select("*")
        .eq("parent_type", parent_type)
        .eq("parent_id", str(parent_id))
        .order("created_at")
        .execute()
    )
    return res.data or []
