"""
Accès données pour les commandes (table 'orders').
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from shop_backend.infra.supabase_client import get_service_supabase

# module shop_backend.orders.repository
def insert_order(fields: Dict[str, Any]) -> str:
    """
    Insère une commande et retourne son identifiant.
    L'id est généré ici (uuid4) pour ne pas dépendre du retour de l'insert.
    """
    order_id = str(uuid4())
    get_service_supabase().table("orders").insert({"id": order_id, **fields}).execute()
    return order_id

def update_order(order_id: str, fields: Dict[str, Any]) -> None:
    get_service_supabase().table("orders").update(fields).eq("id", order_id).execute()

def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    res = (
        get_service_supabase()
        .table("orders")
        .select("*")
        .eq("id", order_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def get_order_by_session(session_id: str) -> Optional[Dict[str, Any]]:
    """Commande liée à une session Stripe (session_id unique par commande)."""
    res = (
        get_service_supabase()
        .table("orders")
        .select("*")
        .eq("session_id", session_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def list_recent_orders(limit: int = 10) -> List[Dict[str, Any]]:
    res = (
        get_service_supabase()
        .table("orders")
        .select("*")
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return res.data or []

def list_orders_since(since: datetime) -> List[Dict[str, Any]]:
    res = (
        get_service_supabase()
        .table("orders")
        .select("id, session_id, created_at, customer_name, customer_email, cart")
        .gte("created_at", since.isoformat())
        .order("created_at", desc=True)
        .execute()
    )
    return res.data or []
