"""Registration, login and email verification endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from findash.api.admission import (
    ApiRateLimitedRoute,
    AuthRateLimitedRoute,
    StrictRateLimitedRoute,
)
from findash.deps import get_audit_service, get_email_service, get_user_service
from findash.schemas.auth import (
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PublicUser,
    RegisterRequest,
    RegisterResponse,
)
from findash.security import IdentityClaims, TokenService, get_token_service, require_identity
from findash.services.audit import AuditService
from findash.services.email import EmailService
from findash.services.rate_limit import client_key
from findash.services.users import UserExistsError, UserService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# Credential endpoints share the tight brute-force budget
router = APIRouter(prefix="/auth", tags=["auth"], route_class=AuthRateLimitedRoute)
verification_router = APIRouter(prefix="/auth", tags=["auth"], route_class=StrictRateLimitedRoute)
session_router = APIRouter(prefix="/auth", tags=["auth"], route_class=ApiRateLimitedRoute)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def register(
    payload: RegisterRequest,
    request: Request,
    users: UserService = Depends(get_user_service),
    audit: AuditService = Depends(get_audit_service),
    mailer: EmailService = Depends(get_email_service),
) -> RegisterResponse:
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )
    try:
        user = await users.create_user(email=payload.email, password=payload.password, name=payload.name)
    except UserExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="User already exists with this email"
        ) from None

    # A mail hiccup must not undo a successful registration
    try:
        if user.email_verification_token:
            await mailer.send_verification_email(user.email, user.email_verification_token, user.name)
    except Exception:
        logger.warning("Failed to send verification email", extra={"user_id": user.id}, exc_info=True)

    await audit.log_registration(
        user.id, ip=client_key(request), user_agent=request.headers.get("user-agent")
    )
    return RegisterResponse(
        message="Registration successful. Please check your email to verify your account.",
        user=PublicUser.model_validate(user),
    )


@router.post("/login", response_model=LoginResponse, summary="Exchange credentials for a bearer token")
async def login(
    payload: LoginRequest,
    request: Request,
    users: UserService = Depends(get_user_service),
    audit: AuditService = Depends(get_audit_service),
    tokens: TokenService = Depends(get_token_service),
) -> LoginResponse:
    ip = client_key(request)
    user_agent = request.headers.get("user-agent")
    user = await users.authenticate(payload.email, payload.password)
    if user is None:
        await audit.log_failed_login(payload.email, ip=ip, user_agent=user_agent)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    await users.record_login(user.id)
    await audit.log_login(user.id, ip=ip, user_agent=user_agent)
    token = tokens.issue(
        IdentityClaims(
            subject_id=user.id,
            email=user.email,
            display_name=user.name,
            role=user.role,  # type: ignore[arg-type]
        )
    )
    return LoginResponse(
        token=token,
        expires_in=int(tokens.ttl.total_seconds()),
        user=PublicUser.model_validate(user),
    )


@verification_router.get("/verify-email", response_model=MessageResponse, summary="Confirm an email address")
async def verify_email(
    token: str | None = Query(default=None, description="Token from the verification mail"),
    users: UserService = Depends(get_user_service),
) -> MessageResponse:
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Verification token is required")
    if not await users.verify_email(token):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired verification token"
        )
    return MessageResponse(message="Email verified successfully")


@session_router.get("/me", response_model=IdentityResponse, summary="Identity carried by the bearer token")
async def get_me(claims: IdentityClaims = Depends(require_identity)) -> IdentityResponse:
    return IdentityResponse(
        subject_id=claims.subject_id,
        email=claims.email,
        display_name=claims.display_name,
        role=claims.role,
    )
