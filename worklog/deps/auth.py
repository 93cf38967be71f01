from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.config import settings
from ..core.security import decode_token
from ..middlewares import principal_ctx_var

DEFAULT_USER_ID = "default"


class AuthContext:
    """Who is calling. ``subject`` doubles as the owner id of every record."""

    def __init__(self, *, subject: str, scheme: str) -> None:
        self.subject = subject
        self.scheme = scheme

    @property
    def user_id(self) -> str:
        return self.subject


def _unauthorized(detail: str = "Unauthorized") -> None:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


async def require_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> AuthContext:
    """Resolve the caller from a bearer JWT, the shared API key, or open mode.

    API-key and open-mode callers pick their user with ``X-User-Id``.
    """
    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer" and credentials:
            try:
                claims = decode_token(credentials, expected="access")
            except ValueError as exc:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
            _set_principal(request, f"jwt:{claims.user_id}")
            return AuthContext(subject=claims.user_id, scheme="jwt")

    user_id = (x_user_id or "").strip() or DEFAULT_USER_ID
    api_key = (settings.API_KEY or "").strip()
    provided_key = (x_api_key or "").strip()
    if api_key and provided_key and hmac.compare_digest(api_key, provided_key):
        _set_principal(request, f"api-key:{user_id}")
        return AuthContext(subject=user_id, scheme="api_key")

    if not api_key:
        _set_principal(request, f"open:{user_id}")
        return AuthContext(subject=user_id, scheme="open")

    if provided_key:
        _unauthorized("Invalid API key")
    _unauthorized("Authorization required")
