import logging

from supabase import create_client, Client

from ..core.config import Config


logger = logging.getLogger(__name__)


def get_client() -> Client:
    """Service-role client for table access. Callers scope every query by user id."""
    return create_client(Config.SUPABASE_URL, Config.SUPABASE_SERVICE_KEY)


def get_auth_client() -> Client:
    """Anon-key client for end-user auth flows (sign-in, sign-up, password reset)."""
    return create_client(Config.SUPABASE_URL, Config.SUPABASE_ANON_KEY)


def check_connection(supabase: Client) -> None:
    supabase.table('recipes').select('id').limit(1).execute()
