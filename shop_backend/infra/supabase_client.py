from typing import Optional
from supabase import create_client, Client
from shop_backend.config import get_settings

_service_supabase: Optional[Client] = None

def get_service_supabase() -> Client:
    """
    Client Supabase service-role (bypass RLS), partagé par tous les repositories.
    Le backend n'opère jamais au nom d'un utilisateur: seules les routes serveur écrivent.
    """
    global _service_supabase
    settings = get_settings()
    if not settings.supabase_configured:
        raise RuntimeError("SUPABASE_URL/SUPABASE_SERVICE_KEY manquants pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(settings.supabase_url, settings.supabase_service_key)
    return _service_supabase
