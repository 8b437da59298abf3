from supabase import acreate_client, AsyncClient
from app.configs.app_settings import settings
from typing import Optional

# The lifespan calls create_supabase_client() once at startup, which assigns the module-level _supabase_client.
# The entity store is built on that same client.


_supabase_client: Optional[AsyncClient] = None


async def create_supabase_client() -> AsyncClient:
    """Create async supabase client - only called once during startup"""
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    return _supabase_client


async def close_supabase_client():
    """Clean up supabase client during shutdown"""
    global _supabase_client
    if _supabase_client:
        # Supabase client doesn't have explicit close method, but we reset the reference
        _supabase_client = None
