import httpx
import pytest

from app.clients.auth_client import AuthClient, AuthProviderError


async def test_create_user_uses_service_role_key(auth, provider):
    identity = await auth.create_user("ada@example.com", "pw", {"name": "Ada", "country": "UK"})

    assert identity.email == "ada@example.com"
    request = provider.requests[-1]
    assert request.url.path == "/auth/v1/admin/users"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["authorization"] == "Bearer service-key"


async def test_sign_in_returns_session(auth, provider):
    created = await auth.create_user("ada@example.com", "pw", {})

    session = await auth.sign_in("ada@example.com", "pw")

    assert session.identity.id == created.id
    assert provider.tokens[session.access_token] == created.id
    request = provider.requests[-1]
    assert request.url.params["grant_type"] == "password"
    assert request.headers["apikey"] == "anon-key"


async def test_get_user_resolves_token(auth, provider):
    token = provider.issue_token("u-1")
    assert (await auth.get_user(token)).id == "u-1"


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"msg": "invalid JWT"}, "invalid JWT"),
        ({"message": "Bad"}, "Bad"),
        ({"error": "invalid_grant", "error_description": "Invalid login credentials"},
         "Invalid login credentials"),
    ],
)
async def test_error_message_extraction(body, expected):
    transport = httpx.MockTransport(lambda request: httpx.Response(400, json=body))
    client = AuthClient(transport=transport)
    await client.start()
    try:
        with pytest.raises(AuthProviderError) as info:
            await client.get_user("t")
    finally:
        await client.stop()

    assert info.value.message == expected
    assert info.value.status_code == 400


@pytest.mark.parametrize(
    "reply",
    [
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"email": "x@example.com"}),
        httpx.Response(200, json=[1, 2]),
    ],
)
async def test_malformed_user_reply_is_provider_error(auth, provider, reply):
    provider.respond_with = reply
    with pytest.raises(AuthProviderError) as info:
        await auth.get_user("t")
    assert info.value.status_code == 502


async def test_sign_in_without_token_is_provider_error(auth, provider):
    provider.respond_with = httpx.Response(200, json={"user": {"id": "u-1"}})
    with pytest.raises(AuthProviderError):
        await auth.sign_in("ada@example.com", "pw")


async def test_transport_errors_propagate(auth, provider):
    provider.fail_with = httpx.ConnectError("connection refused")
    with pytest.raises(httpx.ConnectError):
        await auth.get_user("t")


async def test_requires_start():
    with pytest.raises(RuntimeError):
        await AuthClient().get_user("t")
