"""
Auth provider client (Supabase GoTrue REST API).

Three calls are used:
  POST /auth/v1/admin/users                — create a confirmed user (service-role key)
  POST /auth/v1/token?grant_type=password  — exchange email + password for a session
  GET  /auth/v1/user                       — resolve a session token to its user

Credential storage and token issuance stay with the provider; this client
only forwards requests and normalises errors into AuthProviderError.
Transport failures (timeouts, refused connections) propagate as httpx errors.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class AuthProviderError(Exception):
    """The provider answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class AuthIdentity:
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    identity: AuthIdentity


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        for field in ("msg", "message", "error_description", "error"):
            if body.get(field):
                return str(body[field])
    return resp.reason_phrase


def _identity(payload) -> AuthIdentity:
    if not isinstance(payload, dict) or not payload.get("id"):
        raise AuthProviderError("Malformed user in auth provider response", 502)
    return AuthIdentity(id=payload["id"], email=payload.get("email"))


class AuthClient:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=f"{settings.supabase_url.rstrip('/')}/auth/v1",
            timeout=settings.auth_timeout_seconds,
            transport=self._transport,
            headers={"apikey": settings.supabase_anon_key},
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("Auth client not started — call start() at startup")
        return self._http

    async def _send(self, method: str, url: str, **kwargs) -> dict:
        resp = await self._client().request(method, url, **kwargs)
        if resp.is_error:
            raise AuthProviderError(_error_message(resp), resp.status_code)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise AuthProviderError("Auth provider returned a non-JSON body", 502) from exc
        if not isinstance(payload, dict):
            raise AuthProviderError("Auth provider returned an unexpected body", 502)
        return payload

    async def create_user(
        self, email: str, password: str, metadata: dict
    ) -> AuthIdentity:
        """Create a user with a pre-confirmed email (no mail server is configured)."""
        service_key = settings.supabase_service_role_key
        payload = await self._send(
            "POST",
            "/admin/users",
            json={
                "email": email,
                "password": password,
                "user_metadata": metadata,
                "email_confirm": True,
            },
            headers={"apikey": service_key, "Authorization": f"Bearer {service_key}"},
        )
        return _identity(payload)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        payload = await self._send(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if not payload.get("access_token"):
            raise AuthProviderError("Auth provider returned no access token", 502)
        return AuthSession(
            access_token=payload["access_token"],
            identity=_identity(payload.get("user")),
        )

    async def get_user(self, access_token: str) -> AuthIdentity:
        payload = await self._send(
            "GET",
            "/user",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        return _identity(payload)


# Singleton
auth_client = AuthClient()


def get_auth_client() -> AuthClient:
    return auth_client
