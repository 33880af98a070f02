"""Tests for identity tokens and password hashing."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from findash.security import (
    IdentityClaims,
    TokenService,
    hash_password,
    is_well_formed,
    verify_password,
)

SECRET = "unit-test-secret"


@pytest.fixture(name="tokens")
def tokens_fixture() -> TokenService:
    return TokenService(SECRET)


def test_issue_and_verify_round_trip(tokens: TokenService) -> None:
    claims = IdentityClaims(subject_id="u1", email="ada@example.com", display_name="Ada", role="admin")

    assert tokens.verify(tokens.issue(claims)) == claims


def test_token_carries_expiry_one_ttl_after_issue(tokens: TokenService) -> None:
    issued_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    claims = IdentityClaims(subject_id="u1", email="a@b.co", display_name="A")
    payload = jwt.get_unverified_claims(tokens.issue(claims, now=issued_at))

    assert payload["exp"] - payload["iat"] == 24 * 3600
    assert payload["sub"] == "u1"
    assert payload["role"] == "user"


def test_expired_token_is_rejected(tokens: TokenService) -> None:
    claims = IdentityClaims(subject_id="u1", email="a@b.co", display_name="A")
    stale = tokens.issue(claims, now=datetime.now(timezone.utc) - timedelta(hours=25))

    assert tokens.verify(stale) is None


def test_token_signed_with_another_secret_is_rejected(tokens: TokenService) -> None:
    claims = IdentityClaims(subject_id="u1", email="a@b.co", display_name="A")
    foreign = TokenService("someone-else").issue(claims)

    assert tokens.verify(foreign) is None


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_token_is_rejected(tokens: TokenService, token: str) -> None:
    assert tokens.verify(token) is None


def test_token_with_unknown_role_is_rejected(tokens: TokenService) -> None:
    now = datetime.now(timezone.utc)
    forged = jwt.encode(
        {
            "sub": "u1",
            "email": "a@b.co",
            "name": "A",
            "role": "root",
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(hours=1)).timestamp()),
        },
        SECRET,
        algorithm="HS256",
    )
    assert tokens.verify(forged) is None


def test_token_without_expiry_is_rejected(tokens: TokenService) -> None:
    forged = jwt.encode({"sub": "u1", "email": "a@b.co", "name": "A", "role": "user"}, SECRET, algorithm="HS256")
    assert tokens.verify(forged) is None


def test_empty_secret_is_refused() -> None:
    with pytest.raises(ValueError):
        TokenService("")


def test_password_hash_round_trip() -> None:
    encoded = hash_password("correct horse", rounds=1_000)

    assert encoded.startswith("pbkdf2_sha256$1000$")
    assert verify_password("correct horse", encoded)
    assert not verify_password("wrong horse", encoded)


def test_password_hash_is_salted() -> None:
    assert hash_password("same", rounds=1_000) != hash_password("same", rounds=1_000)


@pytest.mark.parametrize("encoded", ["", "plain", "md5$1$a$b", "pbkdf2_sha256$x$a$b"])
def test_verify_password_rejects_malformed_hashes(encoded: str) -> None:
    assert not verify_password("anything", encoded)


def test_structural_check_separates_garbage_from_unverifiable_tokens(tokens: TokenService) -> None:
    claims = IdentityClaims(subject_id="u1", email="a@b.co", display_name="A")
    expired = tokens.issue(claims, now=datetime.now(timezone.utc) - timedelta(hours=25))
    foreign = TokenService("someone-else").issue(claims)

    assert is_well_formed(expired) and tokens.verify(expired) is None
    assert is_well_formed(foreign) and tokens.verify(foreign) is None
    for garbage in ("", "%%%garbage%%%", "not.a.jwt", "a.b"):
        assert not is_well_formed(garbage)
