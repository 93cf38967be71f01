from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, HTTPException, status

from ..core.config import settings
from ..core.security import issue_token_pair, refresh_access_token
from ..schemas.auth import RefreshRequest, TokenRequest, TokenResponse

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/token", response_model=TokenResponse, summary="Exchange the API key for a user's tokens")
async def exchange_token(payload: TokenRequest):
    configured_key = (settings.API_KEY or "").strip()
    if not configured_key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="API key authentication is disabled")
    if not hmac.compare_digest(payload.api_key, configured_key):
        logger.warning("auth.token_rejected", extra={"extra_data": {"user_id": payload.user_id}})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    pair = issue_token_pair(payload.user_id)
    logger.info("auth.token_issued", extra={"extra_data": {"user_id": pair.user_id}})
    return pair.model_dump()


@router.post("/refresh", response_model=TokenResponse, summary="Mint a new token pair from a refresh token")
async def refresh_token(payload: RefreshRequest):
    try:
        pair = refresh_access_token(payload.refresh_token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return pair.model_dump()
