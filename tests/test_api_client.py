import asyncio

import httpx
import pytest

from equiptrak.client.guards import AuthRedirectGuard, RouteContext
from equiptrak.client.http import ApiClient, HttpStatusError, ResponseFormatError, clean_params
from equiptrak.client.session import AuthContext, login

SESSION = {"id": "u1", "email": "user@acme.example", "role": "user", "token": "tok-123"}


def test_clean_params_drops_absent_values():
    assert clean_params({"company_id": "c1", "status": None, "type": ""}) == {"company_id": "c1"}
    assert clean_params({"flag": 0}) == {"flag": 0}
    assert clean_params(None) == {}


def test_bearer_token_attached_unless_disabled():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200, json={"ok": True})

    auth = AuthContext()
    auth.sign_in(SESSION)

    async def scenario():
        async with ApiClient(
            base_url="http://test",
            token_provider=auth.token,
            transport=httpx.MockTransport(handler),
        ) as client:
            await client.get("/api/test")
            await client.get("/api/test", auth=False)

    asyncio.run(scenario())
    assert seen == ["Bearer tok-123", None]


def test_error_message_taken_from_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/detail":
            return httpx.Response(404, json={"detail": "Company not found"})
        return httpx.Response(502, text="Bad gateway")

    async def scenario(path):
        async with ApiClient(base_url="http://test", transport=httpx.MockTransport(handler)) as client:
            await client.get(path)

    with pytest.raises(HttpStatusError) as detail:
        asyncio.run(scenario("/detail"))
    assert str(detail.value) == "Company not found"
    assert detail.value.payload == {"detail": "Company not found"}

    with pytest.raises(HttpStatusError) as plain:
        asyncio.run(scenario("/plain"))
    assert str(plain.value) == "Request failed"
    assert plain.value.status_code == 502
    assert plain.value.payload == "Bad gateway"


def test_unauthorized_response_signs_out_and_guard_redirects():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "Invalid or expired token"})

    auth = AuthContext()
    auth.sign_in(SESSION)
    route = RouteContext("/dashboard")
    AuthRedirectGuard(auth, route, login_path="/login").attach()

    async def scenario():
        async with ApiClient(
            base_url="http://test",
            token_provider=auth.token,
            on_unauthorized=auth.sign_out,
            transport=httpx.MockTransport(handler),
        ) as client:
            await client.get("/api/service-records", params={"company_id": "c1"})

    with pytest.raises(HttpStatusError) as exc:
        asyncio.run(scenario())
    assert exc.value.status_code == 401
    assert auth.session is None
    assert route.path == "/login"


def test_connection_check():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "API is working!"})

    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async def scenario(h):
        async with ApiClient(base_url="http://test", transport=httpx.MockTransport(h)) as client:
            return await client.test_connection()

    assert asyncio.run(scenario(handler)) is True
    assert asyncio.run(scenario(refused)) is False


def test_login_rejects_non_object_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    auth = AuthContext()

    async def scenario():
        async with ApiClient(base_url="http://test", transport=httpx.MockTransport(handler)) as client:
            await login(client, auth, "user@acme.example", "secret123")

    with pytest.raises(ResponseFormatError):
        asyncio.run(scenario())
    assert auth.is_authenticated is False
