from urban_auto.backend.memory import InMemoryBackend, ScriptedLocationDevice, StaticGeocoder
from urban_auto.backend.supabase import SupabaseBackend, create_admin_clients

__all__ = [
    "InMemoryBackend",
    "ScriptedLocationDevice",
    "StaticGeocoder",
    "SupabaseBackend",
    "create_admin_clients",
]
