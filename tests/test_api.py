import pytest
from fastapi.testclient import TestClient

from vaultnote.core.config import Settings, get_settings
from vaultnote.core.crypto import MessageCodec
from vaultnote.core.errors import StoreUnavailable
from vaultnote.core.rate_limit import limiter
from vaultnote.main import create_app

from conftest import FAST_SCRYPT, TEST_SECRET


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(
        database_url=database_url,
        encrypt_key=TEST_SECRET,
        max_content_length=50,
        cleanup_chance=0,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    limiter.reset()
    return create_app(settings, codec=MessageCodec.from_secret(TEST_SECRET, **FAST_SCRYPT))


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def create(client, **body):
    response = client.post("/messages", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_read_once(client):
    created = create(client, content="hello", ttl_hours=24)
    assert len(created["token"]) == 32
    assert created["url"].endswith(f"/messages/{created['token']}")
    assert "content" not in created and "password" not in created

    assert client.get(f"/messages/{created['token']}").json() == {"requires_password": False}

    first = client.post(f"/messages/{created['token']}/consume")
    assert first.status_code == 200
    assert first.json() == {"content": "hello"}

    second = client.post(f"/messages/{created['token']}/consume")
    assert second.status_code == 404


def test_password_flow(client):
    token = create(client, content="secret", password="pw")["token"]

    assert client.get(f"/messages/{token}").json() == {"requires_password": True}

    missing = client.post(f"/messages/{token}/consume", json={})
    assert missing.status_code == 401
    assert missing.json()["requires_password"] is True

    wrong = client.post(f"/messages/{token}/consume", json={"password": "bad"})
    assert wrong.status_code == 403

    right = client.post(f"/messages/{token}/consume", json={"password": "pw"})
    assert right.json() == {"content": "secret"}

    again = client.post(f"/messages/{token}/consume", json={"password": "pw"})
    assert again.status_code == 404


def test_unknown_and_malformed_tokens_look_the_same(client):
    unknown = client.get("/messages/" + "0" * 32)
    malformed = client.get("/messages/not-a-token")
    assert unknown.status_code == malformed.status_code == 404
    assert unknown.json() == malformed.json()


def test_invalid_input_is_reported(client):
    empty = client.post("/messages", json={"content": "   "})
    assert empty.status_code == 400
    assert "empty" in empty.json()["detail"]

    too_long = client.post("/messages", json={"content": "x" * 51})
    assert too_long.status_code == 400
    assert "50" in too_long.json()["detail"]


def post_raw_json(client, url, raw):
    # Escaped lone surrogates are legal JSON but not encodable text
    return client.post(url, content=raw, headers={"Content-Type": "application/json"})


def test_unencodable_text_is_invalid_input(client):
    content = post_raw_json(client, "/messages", b'{"content": "\\ud800x"}')
    assert content.status_code == 400
    assert "not valid text" in content.json()["detail"]

    password = post_raw_json(client, "/messages", b'{"content": "hi", "password": "\\ud800"}')
    assert password.status_code == 400


def test_timestamps_carry_utc_offset(client):
    created = create(client, content="hello")
    assert created["created_at"].endswith("+00:00")
    assert created["expire_at"].endswith("+00:00")


def test_non_integer_ttl_is_rejected(client):
    response = client.post("/messages", json={"content": "hello", "ttl_hours": "soon"})
    assert response.status_code == 422


def test_ttl_is_clamped(client):
    created = create(client, content="hello", ttl_hours=0)
    assert created["expire_at"] > created["created_at"]


def test_security_headers(client):
    response = client.get("/messages/" + "0" * 32)
    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_store_failure_is_opaque(client, app):
    lifecycle = app.state.lifecycle
    original = lifecycle.store.insert

    def broken(record):
        raise StoreUnavailable("connection refused to db-internal:5432")

    lifecycle.store.insert = broken
    try:
        response = client.post("/messages", json={"content": "hello"})
    finally:
        lifecycle.store.insert = original

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert "5432" not in response.text


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "checks": {"database": True, "encryption_key": True},
    }


def test_create_app_requires_key(database_url):
    with pytest.raises(RuntimeError):
        create_app(Settings(database_url=database_url, encrypt_key=None))


def test_consume_is_rate_limited(client, monkeypatch):
    monkeypatch.setenv("VAULTNOTE_CONSUME_LIMIT", "2/minute")
    get_settings.cache_clear()
    try:
        token = create(client, content="secret", password="pw")["token"]
        for _ in range(2):
            assert client.post(f"/messages/{token}/consume", json={"password": "bad"}).status_code == 403
        assert client.post(f"/messages/{token}/consume", json={"password": "pw"}).status_code == 429
    finally:
        monkeypatch.delenv("VAULTNOTE_CONSUME_LIMIT")
        get_settings.cache_clear()
