"""
Unit tests for the authentication module.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.middleware import Middleware

from webstack.modules.auth import (
    SESSION_USER_KEY,
    ApiKeyStrategy,
    AuthInitializeMiddleware,
    Authenticator,
    AuthResult,
    AuthSessionMiddleware,
)
from webstack.modules.routing import RouteTable
from webstack.modules.session import CookieSigner, SessionMiddleware


class FakeRequest:
    def __init__(self, headers):
        self.headers = headers


class TestApiKeyStrategy:
    """Test API key parsing and verification."""

    def test_parse_api_keys(self):
        keys = ApiKeyStrategy.parse_api_keys("abc123, orchestrator:def456,,monitoring:ghi789")
        assert keys == {"abc123": None, "def456": "orchestrator", "ghi789": "monitoring"}

    def test_parse_api_keys_from_list(self):
        assert ApiKeyStrategy.parse_api_keys(["svc:key"]) == {"key": "svc"}

    @pytest.mark.asyncio
    async def test_valid_key_with_service(self):
        strategy = ApiKeyStrategy("orchestrator:service-key")

        result = await strategy.authenticate(FakeRequest({"x-api-key": "service-key"}))

        assert result.ok is True
        assert result.identity == "orchestrator"
        assert result.user == {"id": "orchestrator", "method": "api_key"}

    @pytest.mark.asyncio
    async def test_valid_plain_key(self):
        result = await ApiKeyStrategy("plain").authenticate(FakeRequest({"x-api-key": "plain"}))
        assert result.ok is True
        assert result.identity == "api_key"

    @pytest.mark.asyncio
    async def test_invalid_key(self):
        result = await ApiKeyStrategy("good").authenticate(FakeRequest({"x-api-key": "bad"}))
        assert result.ok is False
        assert result.error == "Invalid API key"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        result = await ApiKeyStrategy("good").authenticate(FakeRequest({}))
        assert result.ok is False
        assert result.error == "API key not provided"

    @pytest.mark.asyncio
    async def test_custom_header(self):
        strategy = ApiKeyStrategy("good", header_names=["authorization"])
        result = await strategy.authenticate(FakeRequest({"authorization": "good"}))
        assert result.ok is True


class StaticStrategy:
    def __init__(self, user=None):
        self.user = user

    async def authenticate(self, request):
        if self.user is None:
            return AuthResult(ok=False, error="nobody")
        return AuthResult(ok=True, user=self.user, identity=str(self.user))


class MemoryStore:
    def __init__(self):
        self.data = {}

    async def get(self, sid):
        return self.data.get(sid)

    async def set(self, sid, session, ttl):
        self.data[sid] = dict(session)

    async def destroy(self, sid):
        self.data.pop(sid, None)


def _app(authenticator: Authenticator, store: MemoryStore) -> FastAPI:
    table = RouteTable()

    @authenticator.authenticate("static")
    async def login(request):
        return {"user": request.state.user}

    async def whoami(request):
        return {"user": request.state.user}

    async def logout(request):
        request.scope["auth"].logout(request)
        return {"user": request.state.user}

    table.add("POST", "/login", None, login)
    table.add("GET", "/whoami", None, whoami)
    table.add("POST", "/logout", None, logout)

    return FastAPI(
        routes=table.routes,
        middleware=[
            Middleware(SessionMiddleware, store=store, signer=CookieSigner(["k"]), key="sid", max_age=60),
            Middleware(AuthInitializeMiddleware, authenticator=authenticator),
            Middleware(AuthSessionMiddleware, authenticator=authenticator),
        ],
    )


class TestAuthenticator:
    """Test strategy execution and session binding."""

    def test_use_registers_strategy(self):
        authenticator = Authenticator()
        strategy = StaticStrategy()

        authenticator.use("static", strategy)

        assert authenticator.strategies == {"static": strategy}

    @pytest.mark.asyncio
    async def test_unknown_strategy(self):
        with pytest.raises(LookupError, match="missing"):
            await Authenticator().run("missing", FakeRequest({}))

    def test_rejected_request_gets_401(self):
        authenticator = Authenticator()
        authenticator.use("static", StaticStrategy(user=None))
        client = TestClient(_app(authenticator, MemoryStore()))

        response = client.post("/login")

        assert response.status_code == 401
        assert response.json() == {"error": "Authentication failed: nobody", "status": 401}

    def test_login_persists_user_in_session(self):
        authenticator = Authenticator()
        authenticator.use("static", StaticStrategy(user="ann"))
        store = MemoryStore()
        client = TestClient(_app(authenticator, store))

        assert client.get("/whoami").json() == {"user": None}
        assert client.post("/login").json() == {"user": "ann"}
        assert client.get("/whoami").json() == {"user": "ann"}
        assert list(store.data.values()) == [{SESSION_USER_KEY: "ann"}]

    def test_logout_clears_user(self):
        authenticator = Authenticator()
        authenticator.use("static", StaticStrategy(user="ann"))
        store = MemoryStore()
        client = TestClient(_app(authenticator, store))
        client.post("/login")

        assert client.post("/logout").json() == {"user": None}
        assert client.get("/whoami").json() == {"user": None}
        assert store.data == {}

    def test_serializers(self):
        users = {7: {"id": 7, "name": "ann"}}
        authenticator = Authenticator()
        authenticator.use("static", StaticStrategy(user=users[7]))

        @authenticator.serialize_user
        def serialize(user):
            return user["id"]

        @authenticator.deserialize_user
        async def deserialize(user_id):
            return users.get(user_id)

        store = MemoryStore()
        client = TestClient(_app(authenticator, store))
        client.post("/login")

        assert list(store.data.values()) == [{SESSION_USER_KEY: 7}]
        assert client.get("/whoami").json() == {"user": {"id": 7, "name": "ann"}}

        # A user that no longer resolves is dropped from the session
        users.clear()
        assert client.get("/whoami").json() == {"user": None}
        assert store.data == {}

    def test_authenticate_wraps_sync_handler(self):
        authenticator = Authenticator()
        authenticator.use("static", StaticStrategy(user="ann"))
        table = RouteTable()

        @authenticator.authenticate("static", session=False)
        def report(request):
            return {"user": request.state.user}

        table.add("GET", "/report", None, report)
        app = FastAPI(
            routes=table.routes,
            middleware=[Middleware(AuthInitializeMiddleware, authenticator=authenticator)],
        )

        assert TestClient(app).get("/report").json() == {"user": "ann"}
