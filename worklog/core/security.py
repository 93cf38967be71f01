"""Signed bearer tokens for worklog users.

A token's subject is the user id that owns every record the caller touches.
Access tokens authorise API calls; refresh tokens only mint new pairs.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings

ALGORITHM = "HS256"
AUDIENCE = "worklog-clients"
ISSUER = "worklog"

TokenKind = Literal["access", "refresh"]


class TokenPair(BaseModel):
    user_id: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class UserClaims(BaseModel):
    sub: str
    typ: TokenKind
    iat: datetime
    exp: datetime
    aud: str
    iss: str

    @property
    def user_id(self) -> str:
        return self.sub


def _lifetime(kind: TokenKind) -> timedelta:
    if kind == "access":
        return timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    return timedelta(days=settings.JWT_REFRESH_TTL_DAYS)


def encode_user_token(user_id: str, kind: TokenKind, now: datetime | None = None) -> str:
    now = now or datetime.now(tz=timezone.utc)
    claims = {
        "sub": user_id,
        "typ": kind,
        "iat": int(now.timestamp()),
        "exp": int((now + _lifetime(kind)).timestamp()),
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def issue_token_pair(user_id: str) -> TokenPair:
    return TokenPair(
        user_id=user_id,
        access_token=encode_user_token(user_id, "access"),
        refresh_token=encode_user_token(user_id, "refresh"),
        expires_in=int(_lifetime("access").total_seconds()),
    )


def decode_token(token: str, *, expected: TokenKind | None = None) -> UserClaims:
    """Verify signature, audience and issuer; raise ``ValueError`` otherwise."""

    try:
        raw = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM], audience=AUDIENCE, issuer=ISSUER)
    except ExpiredSignatureError as exc:
        raise ValueError("Token expired") from exc
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    try:
        claims = UserClaims.model_validate(raw)
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc
    if not claims.sub.strip():
        raise ValueError("Token has no user")
    if expected and claims.typ != expected:
        raise ValueError(f"Expected a {expected} token")
    return claims


def refresh_access_token(refresh_token: str) -> TokenPair:
    claims = decode_token(refresh_token, expected="refresh")
    return issue_token_pair(claims.user_id)
