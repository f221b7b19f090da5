import time

import httpx
import jwt
import pytest
from httpx import ASGITransport

from app.api import deps
from app.core import security
from app.core.config import Settings
from app.core.db import get_db
from app.main import create_app

pytestmark = pytest.mark.anyio

SECRET = "test-signing-secret-with-at-least-32-bytes"


@pytest.fixture
def auth_settings(monkeypatch):
    configured = Settings(auth_enabled=True, jwt_algorithms="HS256", jwt_public_key=SECRET, jwks_url="")
    monkeypatch.setattr(deps, "settings", configured)
    monkeypatch.setattr(security, "settings", configured)
    return configured


@pytest.fixture
async def secured_client(session_factory, auth_settings):
    app = create_app()

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


def _token(**overrides) -> str:
    claims = {"sub": "player-1", "aud": "account", "exp": int(time.time()) + 300}
    claims.update(overrides)
    return jwt.encode(claims, SECRET, algorithm="HS256")


async def test_missing_token_is_rejected(secured_client):
    resp = await secured_client.get("/api/student/get_available_games")
    assert resp.status_code == 401
    body = resp.json()
    assert body["status_code"] == 401
    assert body["data"] is None


async def test_valid_token_is_accepted(secured_client):
    resp = await secured_client.get(
        "/api/student/get_available_games", headers={"Authorization": f"Bearer {_token()}"}
    )
    assert resp.status_code == 200
    assert resp.json()["data"] == []


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        _token(exp=int(time.time()) - 60),
        _token(aud="someone-else"),
        jwt.encode({"sub": "x", "aud": "account", "exp": int(time.time()) + 300},
                   "another-secret-that-is-also-32-bytes-long", algorithm="HS256"),
    ],
    ids=["garbage", "expired", "wrong-audience", "wrong-key"],
)
async def test_invalid_tokens_are_rejected(secured_client, token):
    resp = await secured_client.get(
        "/api/student/get_available_games", headers={"Authorization": f"Bearer {token}"}
    )
    assert resp.status_code == 401


async def test_health_is_public(secured_client):
    resp = await secured_client.get("/api/health")
    assert resp.status_code == 200


def test_decode_token_requires_subject(auth_settings):
    token = jwt.encode({"aud": "account", "exp": int(time.time()) + 300}, SECRET, algorithm="HS256")
    assert security.decode_token(token) is None
    assert security.decode_token(_token())["sub"] == "player-1"


def test_decode_token_without_key_material(monkeypatch):
    monkeypatch.setattr(security, "settings", Settings(jwt_public_key="", jwks_url=""))
    assert security.decode_token(_token()) is None
