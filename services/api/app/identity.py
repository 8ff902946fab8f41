"""
Identity resolution — bearer token → auth provider user id.

  require_user_id   protected routes; any failure is a 401
  optional_user_id  public routes; failures (and the public anon key) mean
                    "anonymous" instead of an error
"""
import logging
from typing import Optional

import httpx
from fastapi import Depends, Header

from app.clients.auth_client import AuthClient, AuthProviderError, get_auth_client
from app.config import settings
from app.errors import Unauthorized
from app.telemetry import AUTH_FAILURES_TOTAL

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Second whitespace-separated part of the Authorization header, if any."""
    if not authorization:
        return None
    parts = authorization.split()
    return parts[1] if len(parts) > 1 else None


async def require_user_id(
    authorization: Optional[str] = Header(None),
    auth: AuthClient = Depends(get_auth_client),
) -> str:
    token = bearer_token(authorization)
    if not token:
        AUTH_FAILURES_TOTAL.labels(reason="missing_token").inc()
        raise Unauthorized()

    try:
        identity = await auth.get_user(token)
    except AuthProviderError as exc:
        AUTH_FAILURES_TOTAL.labels(reason="invalid_token").inc()
        logger.info("Token rejected by auth provider: %s", exc.message)
        raise Unauthorized() from exc
    return identity.id


async def optional_user_id(
    authorization: Optional[str] = Header(None),
    auth: AuthClient = Depends(get_auth_client),
) -> Optional[str]:
    token = bearer_token(authorization)
    if not token or token == settings.supabase_anon_key:
        return None

    try:
        identity = await auth.get_user(token)
    except (AuthProviderError, httpx.HTTPError) as exc:
        # Public views carry on anonymously
        logger.debug("Ignoring unverifiable token on public route: %s", exc)
        return None
    return identity.id
