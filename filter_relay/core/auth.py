from typing import Any

import httpx
import structlog
from fastapi import Header

from filter_relay.config import settings
from filter_relay.core.context import ANONYMOUS, CallerIdentity
from filter_relay.core.exceptions import AppError
from filter_relay.services.http_client import get_http_client

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


class TokenValidationError(Exception):
    pass


async def _query_tokeninfo(client: httpx.AsyncClient, param: str, token: str) -> dict[str, Any] | None:
    response = await client.get(settings.tokeninfo_url, params={param: token})
    if response.status_code != 200:
        logger.debug("tokeninfo_rejected", token_type=param, status=response.status_code)
        return None
    return response.json()


async def validate_token(token: str) -> CallerIdentity:
    """Validate a Google access token, falling back to ID-token validation."""
    client = get_http_client()
    try:
        info = await _query_tokeninfo(client, "access_token", token)
        if info is None:
            info = await _query_tokeninfo(client, "id_token", token)
    except (httpx.HTTPError, ValueError) as e:
        raise TokenValidationError(f"tokeninfo request failed: {e}") from e
    if info is None:
        raise TokenValidationError("token rejected as both access token and ID token")
    return CallerIdentity(
        subject=info.get("sub") or info.get("azp"),
        email=info.get("email"),
        scope=info.get("scope"),
        claims=info,
    )


async def require_caller(authorization: str | None = Header(default=None)) -> CallerIdentity:
    if not settings.auth_enabled:
        return ANONYMOUS

    if not authorization or not authorization.startswith(BEARER_PREFIX):
        logger.warning("auth_header_missing")
        raise AppError(
            status_code=401,
            error="Authentication required",
            message="Missing or invalid authorization header",
        )

    token = authorization[len(BEARER_PREFIX) :].strip()
    try:
        caller = await validate_token(token)
    except TokenValidationError as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise AppError(status_code=403, error="Authentication failed", message="Invalid or expired token") from e

    logger.info("auth_token_valid", caller=caller.label)
    return caller
