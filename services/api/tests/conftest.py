"""
Shared fixtures.

The key-value store is a fakeredis server and the auth provider is an
in-process GoTrue emulation mounted on httpx.MockTransport; both are wired
into the app through dependency_overrides, so the lifespan (real Redis, real
provider) never runs.
"""
import json
import os
import uuid
from dataclasses import dataclass

os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-key")

import fakeredis  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402

from app.clients.auth_client import AuthClient, get_auth_client  # noqa: E402
from app.clients.redis_client import KeyValueStore, get_store  # noqa: E402
from app.config import settings  # noqa: E402
from app.main import app  # noqa: E402
from app.repository import ContentRepository  # noqa: E402

API = settings.api_prefix


class FakeAuthProvider:
    """Just enough of the GoTrue REST API for signup, signin and token lookup."""

    def __init__(self) -> None:
        self.accounts: dict[str, dict] = {}
        self.tokens: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: Exception | None = None
        # Canned reply for every call, e.g. a malformed 2xx
        self.respond_with: httpx.Response | None = None

    def issue_token(self, user_id: str) -> str:
        token = f"token-{uuid.uuid4()}"
        self.tokens[token] = user_id
        return token

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        if self.respond_with is not None:
            return self.respond_with

        path = request.url.path
        if request.method == "POST" and path.endswith("/admin/users"):
            return self._create_user(json.loads(request.content))
        if request.method == "POST" and path.endswith("/token"):
            return self._password_grant(json.loads(request.content))
        if request.method == "GET" and path.endswith("/user"):
            token = request.headers.get("authorization", "").removeprefix("Bearer ")
            user_id = self.tokens.get(token)
            if user_id is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json={"id": user_id})
        return httpx.Response(404, json={"msg": "not found"})

    def _create_user(self, body: dict) -> httpx.Response:
        if body["email"] in self.accounts:
            return httpx.Response(
                422,
                json={"msg": "A user with this email address has already been registered"},
            )
        user = {"id": str(uuid.uuid4()), "email": body["email"], "password": body["password"]}
        self.accounts[body["email"]] = user
        return httpx.Response(200, json={"id": user["id"], "email": user["email"]})

    def _password_grant(self, body: dict) -> httpx.Response:
        user = self.accounts.get(body.get("email"))
        if user is None or user["password"] != body.get("password"):
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
            )
        return httpx.Response(
            200,
            json={
                "access_token": self.issue_token(user["id"]),
                "user": {"id": user["id"], "email": user["email"]},
            },
        )


@dataclass
class Account:
    id: str
    token: str

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
async def redis():
    r = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield r
    await r.flushall()
    await r.aclose()


@pytest.fixture
def store(redis):
    return KeyValueStore(redis)


@pytest.fixture
def repo(store):
    return ContentRepository(store)


@pytest.fixture
def provider():
    return FakeAuthProvider()


@pytest.fixture
async def auth(provider):
    client = AuthClient(transport=httpx.MockTransport(provider))
    await client.start()
    yield client
    await client.stop()


@pytest.fixture
async def client(store, auth):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_auth_client] = lambda: auth
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Sign up and sign in through the API; returns an Account."""

    async def _register(
        email: str, name: str = "Ada", country: str = "UK", password: str = "secret123"
    ) -> Account:
        resp = await client.post(
            f"{API}/signup",
            json={"email": email, "password": password, "name": name, "country": country},
        )
        assert resp.status_code == 200, resp.text
        resp = await client.post(f"{API}/signin", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return Account(id=body["user"]["id"], token=body["accessToken"])

    return _register
