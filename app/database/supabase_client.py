from fastapi import Request
from supabase import create_client, Client
from app.config import settings
import logging

logger = logging.getLogger(__name__)


def create_supabase_client() -> Client:
    """Build a client for the application lifespan. Prefers the service_role key (bypasses RLS)."""
    key = settings.supabase_service_role_key or settings.supabase_key
    if not settings.supabase_url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) must be set")
    if not settings.supabase_service_role_key:
        logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; using anon key, RLS policies will apply")
    return create_client(settings.supabase_url, key)


def get_supabase(request: Request) -> Client:
    """Return the client owned by the running application (created in the lifespan)."""
    client = getattr(request.app.state, "supabase", None)
    if client is None:
        raise RuntimeError("Database client not initialised; is the application lifespan running?")
    return client
