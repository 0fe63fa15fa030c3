# backend/store_factory.py
from app.settings import Settings, settings as default_settings


def get_store(settings: Settings = default_settings):
    backend = (settings.STORE_BACKEND or "sqlite").strip().lower()
    if backend == "rest":
        from backend.db_rest import SupabaseREST
        from backend.store_rest import StoreREST
        return StoreREST(SupabaseREST(settings.SUPABASE_URL, settings.SUPABASE_JWT))
    if backend == "sqlite":
        from backend.db import DB
        from backend.store import Store
        return Store(DB(settings.DB_PATH))
    raise ValueError(f"unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")
