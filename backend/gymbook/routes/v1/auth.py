# backend/gymbook/routes/v1/auth.py
"""
Authentication routes - API v1

Versioned authentication endpoints under /api/v1/auth.

Endpoints:
    POST /register               → Member registration (rate limited, captcha)
    POST /login                  → Email/password login, sets session cookie
    POST /logout                 → Clears the session cookie
    GET /verify-email            → Confirm an email verification link
    POST /resend-verification    → Send a fresh verification link
    POST /forgot-password        → Request a password reset link
    POST /reset-password         → Set a new password from a reset link
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status

from ...api.dependencies.services import get_abuse_guard, get_member_service
from ...core.abuse_guard import AbuseGuard, client_ip
from ...core.config import settings
from ...core.exceptions import CaptchaFailedException, DomainException, RateLimitException
from ...errors import handle_domain_exception
from ...schemas.member import (
    EmailRequest,
    LoginResponse,
    MemberLogin,
    MemberRegister,
    MemberResponse,
    MessageResponse,
    PasswordResetConfirm,
)
from ...services.member_service import REGISTERED_MESSAGE, MemberService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["auth-v1"])

SIGNUP_LIMIT_MESSAGE = "Too many signup attempts from this location. Please try again tomorrow."


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    payload: MemberRegister = Body(...),
    guard: AbuseGuard = Depends(get_abuse_guard),
    member_service: MemberService = Depends(get_member_service),
) -> MessageResponse:
    """
    Register a new member.

    Limited to a handful of signups per address per day, and always gated by
    captcha when a captcha secret is configured.
    """
    ip = client_ip(request)
    try:
        decision = await guard.signups.check(ip)
        if not decision.allowed:
            raise RateLimitException(SIGNUP_LIMIT_MESSAGE)

        captcha_error = await guard.verify_captcha(payload.captcha_token, ip, "SIGNUP", payload.email)
        if captcha_error is not None:
            raise CaptchaFailedException(missing=captcha_error == "missing")

        await asyncio.to_thread(member_service.register, payload, ip)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message=REGISTERED_MESSAGE)


@router.post("/login", response_model=LoginResponse)
async def login(
    response: Response,
    payload: MemberLogin = Body(...),
    member_service: MemberService = Depends(get_member_service),
) -> LoginResponse:
    """Log in with email and password; the token is returned and set as a cookie."""
    try:
        member, token = await asyncio.to_thread(
            member_service.authenticate, payload.email, payload.password
        )
    except DomainException as e:
        handle_domain_exception(e)

    _set_session_cookie(response, token)
    return LoginResponse(access_token=token, member=MemberResponse.model_validate(member))


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    response.delete_cookie(key=settings.session_cookie_name, path="/")
    return MessageResponse(message="Logged out successfully")


@router.get("/verify-email", response_model=MessageResponse)
async def verify_email(
    token: str = Query(..., min_length=1),
    member_service: MemberService = Depends(get_member_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(member_service.verify_email, token)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message="Email verified successfully! You can now log in.")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    payload: EmailRequest = Body(...),
    member_service: MemberService = Depends(get_member_service),
) -> MessageResponse:
    try:
        message = await asyncio.to_thread(member_service.resend_verification, payload.email)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message=message)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: EmailRequest = Body(...),
    member_service: MemberService = Depends(get_member_service),
) -> MessageResponse:
    """Always answers with the same message whether or not the email exists."""
    message = await asyncio.to_thread(member_service.request_password_reset, payload.email)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: PasswordResetConfirm = Body(...),
    member_service: MemberService = Depends(get_member_service),
) -> MessageResponse:
    try:
        message = await asyncio.to_thread(
            member_service.reset_password, payload.token, payload.password
        )
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message=message)
