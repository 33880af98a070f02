"""Password hashing and bearer-token identity.

Passwords use PBKDF2-HMAC-SHA256; identity tokens are HS256 JWTs carrying the
user's id, email, display name and role for a fixed lifetime.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

Role = Literal["user", "admin"]
ROLES: frozenset[str] = frozenset({"user", "admin"})


# ---------------------
# Passwords
# ---------------------

PBKDF2_ROUNDS = 200_000


def hash_password(password: str, *, rounds: int = PBKDF2_ROUNDS, salt: bytes | None = None) -> str:
    salt = salt if salt is not None else os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return f"pbkdf2_sha256${rounds}${base64.b64encode(salt).decode()}${base64.b64encode(digest).decode()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algo, rounds_s, salt_b64, hash_b64 = encoded.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        rounds = int(rounds_s)
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
    except (ValueError, TypeError):
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(digest, expected)


# ---------------------
# Identity tokens
# ---------------------


@dataclass(frozen=True, slots=True)
class IdentityClaims:
    subject_id: str
    email: str
    display_name: str
    role: Role = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class TokenService:
    """Mints and verifies signed identity tokens with one process-wide secret.

    There is no key rollover: changing the secret invalidates every token
    issued before the change.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, claims: IdentityClaims, *, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": claims.subject_id,
            "email": claims.email,
            "name": claims.display_name,
            "role": claims.role,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Optional[IdentityClaims]:
        """Return the embedded claims, or None when the token is unusable."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            logger.debug("Rejected bearer token: %s", exc)
            return None
        return _claims_from_payload(payload)


def is_well_formed(token: str) -> bool:
    """True when ``token`` parses as a compact JWS with a JSON object payload.

    Says nothing about the signature or expiry.
    """
    try:
        jwt.get_unverified_claims(token)
    except JWTError:
        return False
    return True


def _claims_from_payload(payload: dict[str, Any]) -> Optional[IdentityClaims]:
    subject = payload.get("sub")
    email = payload.get("email")
    name = payload.get("name")
    role = payload.get("role")
    if not all(isinstance(v, str) for v in (subject, email, name, role)):
        return None
    if role not in ROLES or "exp" not in payload:
        return None
    return IdentityClaims(subject_id=subject, email=email, display_name=name, role=role)  # type: ignore[arg-type]


# ---------------------
# Request dependencies
# ---------------------

_bearer = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    service: TokenService | None = getattr(request.app.state, "token_service", None)
    if service is None:
        raise RuntimeError("token service is not initialised; is the app lifespan running?")
    return service


def _unauthorized(code: str, message: str, *, invalid_token: bool = False) -> HTTPException:
    challenge = 'Bearer error="invalid_token"' if invalid_token else "Bearer"
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": challenge},
    )


async def require_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> IdentityClaims:
    """Resolve the caller's identity from ``Authorization: Bearer``.

    A missing header and a token that is not a JWT at all both report
    ``token_missing``; a JWT that fails verification reports
    ``token_invalid``. Clients can tell "log in" apart from "log in again".
    """
    token = credentials.credentials.strip() if credentials else ""
    if not token:
        raise _unauthorized("token_missing", "Authorization token required")
    if not is_well_formed(token):
        raise _unauthorized("token_missing", "Malformed authorization token")
    claims = tokens.verify(token)
    if claims is None:
        raise _unauthorized("token_invalid", "Invalid or expired token", invalid_token=True)
    return claims


async def require_admin(claims: IdentityClaims = Depends(require_identity)) -> IdentityClaims:
    if not claims.is_admin:
        logger.info("Admin route refused", extra={"subject_id": claims.subject_id, "role": claims.role})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "admin_required", "message": "Admin access required"},
        )
    return claims
