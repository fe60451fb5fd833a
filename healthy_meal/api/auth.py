import logging
from typing import Type, TypeVar

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ValidationError
from supabase import Client

from ..core.config import Config
from ..core.deps import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    AuthenticatedUser,
    access_token_from,
    get_auth_supabase,
    get_current_user,
    get_supabase,
)
from ..core.errors import (
    UNAUTHORIZED,
    VALIDATION_ERROR,
    ApiError,
    create_internal_error,
)
from ..core.validation import parse_json_body, validation_failure_from
from ..models.schemas import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignUpRequest,
    UpdateProfileRequest,
)
from ..services.profile_service import ProfileService, to_profile_dto


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

M = TypeVar("M", bound=BaseModel)

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, you will receive password reset instructions"


async def _parse(request: Request, model: Type[M]) -> M:
    body = await parse_json_body(request)
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise validation_failure_from(e).error


def _with_cause(message: str, exc: Exception) -> str:
    # Supabase's own wording is only exposed while developing
    return f"{message} ({exc})" if Config.is_development() else message


def _set_session_cookies(response: Response, session) -> None:
    options = dict(path="/", httponly=True, samesite="lax", secure=not Config.is_development())
    response.set_cookie(ACCESS_TOKEN_COOKIE, session.access_token, max_age=session.expires_in, **options)
    response.set_cookie(REFRESH_TOKEN_COOKIE, session.refresh_token, **options)


@router.post("/sign-in")
async def sign_in(request: Request, response: Response, supabase: Client = Depends(get_auth_supabase)):
    body = await _parse(request, SignInRequest)

    try:
        result = supabase.auth.sign_in_with_password({"email": body.email, "password": body.password})
    except Exception as e:
        logger.info(f"Sign in failed for {body.email}: {e}")
        raise ApiError(UNAUTHORIZED, _with_cause("Invalid email or password", e), 401)

    if result.session is None or result.user is None:
        raise create_internal_error("Failed to create session")

    _set_session_cookies(response, result.session)
    return {"user": {"id": result.user.id, "email": result.user.email}}


@router.post("/sign-up", status_code=201)
async def sign_up(request: Request, supabase: Client = Depends(get_auth_supabase)):
    body = await _parse(request, SignUpRequest)

    try:
        result = supabase.auth.sign_up({
            "email": body.email,
            "password": body.password,
            "options": {"data": {"display_name": body.display_name}},
        })
    except Exception as e:
        logger.info(f"Sign up failed for {body.email}: {e}")
        if "already registered" in str(e):
            raise ApiError(VALIDATION_ERROR, _with_cause("An account with this email already exists", e), 409)
        raise ApiError(VALIDATION_ERROR, _with_cause("Unable to create account", e), 400)

    user = result.user
    return {
        "user": {"id": user.id if user else None, "email": user.email if user else None},
        "message": "Account created successfully",
    }


@router.post("/sign-out")
async def sign_out(request: Request, response: Response, supabase: Client = Depends(get_supabase)):
    token = access_token_from(request)
    if token:
        try:
            supabase.auth.admin.sign_out(token)
        except Exception as e:
            logger.warning(f"Sign out failed: {e}")
            raise ApiError(VALIDATION_ERROR, "Unable to sign out", 400)

    response.delete_cookie(ACCESS_TOKEN_COOKIE, path="/")
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")
    return {"message": "Signed out successfully"}


@router.post("/forgot-password")
async def forgot_password(request: Request, supabase: Client = Depends(get_auth_supabase)):
    """Start a password reset. The reply never reveals whether the account exists."""
    body = await _parse(request, ForgotPasswordRequest)

    try:
        supabase.auth.reset_password_for_email(
            body.email, {"redirect_to": f"{Config.SITE_URL.rstrip('/')}/reset-password"}
        )
    except Exception as e:
        logger.warning(f"Password reset email failed: {e}")

    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password")
async def reset_password(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    body = await _parse(request, ResetPasswordRequest)

    try:
        supabase.auth.admin.update_user_by_id(user.id, {"password": body.password})
    except Exception as e:
        logger.warning(f"Password reset failed for user {user.id}: {e}")
        if "token" in str(e):
            raise ApiError(UNAUTHORIZED, _with_cause("Invalid or expired reset link. Please request a new one", e), 401)
        raise ApiError(VALIDATION_ERROR, _with_cause("Unable to reset password", e), 400)

    return {"message": "Password reset successfully"}


@router.get("/me")
async def me(user: AuthenticatedUser = Depends(get_current_user), supabase: Client = Depends(get_supabase)):
    profile = ProfileService(supabase, user.id).get_profile()
    return {
        "user": {
            "id": user.id,
            "email": user.email,
            "emailConfirmed": user.email_confirmed,
            "profile": to_profile_dto(profile) if profile else None,
        }
    }


@router.patch("/profile")
async def update_profile(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
):
    body = await _parse(request, UpdateProfileRequest)
    profile = ProfileService(supabase, user.id).update_profile(body.supplied())
    return {"profile": to_profile_dto(profile), "message": "Profile updated successfully"}
