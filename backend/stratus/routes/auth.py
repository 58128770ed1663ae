"""
Stratus Backend: Auth Route Handlers
=====================================

What:  POST /api/auth/register, /login, /verify-email, /forgot-password,
       /reset-password and GET /api/auth/me.
How:   Thin handlers; AuthService does the work and raises StratusError
       subclasses that main.register_exception_handlers turns into JSON.
Who:   Called by the frontend login / signup / reset screens.
"""

import logging

from fastapi import APIRouter, Depends, status

from stratus.config import settings
from stratus.exceptions import NotFoundError
from stratus.repositories.user_repository import UserRepository
from stratus.routes.deps import get_auth_service, get_current_claims, get_user_repository
from stratus.schemas.auth import (
    Claims,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    UserPublic,
    VerifyEmailRequest,
)
from stratus.schemas.common import ErrorResponse
from stratus.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid email or weak password", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create an account pending email verification",
)
async def register(
    body: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    result = await auth.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return RegisterResponse(
        user_id=result.user_id,
        verification_token=result.verification_token,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials or unverified", "model": ErrorResponse}},
    summary="Exchange email and password for a session token",
)
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    result = await auth.login(body.email, body.password)
    return LoginResponse(
        token=result.token,
        expires_in=result.expires_in,
        user=UserPublic.model_validate(result.user),
    )


@router.post(
    "/verify-email",
    response_model=MessageResponse,
    responses={400: {"description": "Invalid or expired token", "model": ErrorResponse}},
    summary="Confirm an email address with its verification token",
)
async def verify_email(
    body: VerifyEmailRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.verify_email(body.token)
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    summary="Request a password reset token",
    description="Answers the same way whether or not the email is registered.",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> ForgotPasswordResponse:
    token = await auth.request_password_reset(body.email)
    if token is not None and settings.expose_reset_tokens:
        return ForgotPasswordResponse(reset_token=token)
    return ForgotPasswordResponse()


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={400: {"description": "Weak password or bad token", "model": ErrorResponse}},
    summary="Set a new password using a reset token",
)
async def reset_password(
    body: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.reset_password(body.token, body.password)
    return MessageResponse(message="Password reset successfully")


@router.get(
    "/me",
    response_model=UserPublic,
    responses={401: {"description": "Missing or invalid session", "model": ErrorResponse}},
    summary="The signed-in user",
)
async def me(
    claims: Claims = Depends(get_current_claims),
    users: UserRepository = Depends(get_user_repository),
) -> UserPublic:
    user = await users.find_by_id(claims.user_id)
    if user is None:
        raise NotFoundError(resource="user", resource_id=claims.sub)
    return UserPublic.model_validate(user)
