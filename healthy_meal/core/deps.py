"""Shared FastAPI dependencies: Supabase clients, the authenticated user and OpenRouter."""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from supabase import Client

from ..services.openrouter_service import OpenRouterService
from ..services.supabase_service import get_auth_client, get_client
from .config import Config
from .errors import create_internal_error, create_unauthorized_error


logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"

OPENROUTER_KEY_MISSING = (
    "OpenRouter API key is not configured. Please ensure OPEN_ROUTER_API_KEY is set "
    "in your .env file and restart the dev server."
)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: Optional[str]
    email_confirmed: bool


def get_supabase() -> Client:
    return get_client()


def get_auth_supabase() -> Client:
    return get_auth_client()


def access_token_from(request: Request) -> Optional[str]:
    # Bearer header first, then the session cookie set by sign-in
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return request.cookies.get(ACCESS_TOKEN_COOKIE) or None


def get_current_user(request: Request, supabase: Client = Depends(get_supabase)) -> AuthenticatedUser:
    token = access_token_from(request)
    if not token:
        raise create_unauthorized_error()

    try:
        response = supabase.auth.get_user(token)
    except Exception as e:
        logger.info(f"Rejected access token on {request.method} {request.url.path}: {e}")
        raise create_unauthorized_error()

    user = getattr(response, "user", None)
    if user is None:
        raise create_unauthorized_error()
    return AuthenticatedUser(
        id=user.id,
        email=getattr(user, "email", None),
        email_confirmed=getattr(user, "email_confirmed_at", None) is not None,
    )


def get_openrouter_service() -> OpenRouterService:
    if not Config.OPEN_ROUTER_API_KEY:
        logger.error("OPEN_ROUTER_API_KEY is not set")
        raise create_internal_error(OPENROUTER_KEY_MISSING)
    return OpenRouterService(
        Config.OPEN_ROUTER_API_KEY,
        Config.OPENROUTER_BASE_URL,
        referer=Config.SITE_URL,
    )
