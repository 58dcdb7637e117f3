import pytest
from fastapi.testclient import TestClient

from slangbridge.core.pipeline import BridgeOrchestrator
from slangbridge.core.translation_cache import make_cache_key
from slangbridge.web.main import app
from slangbridge.web.routes import get_service

from conftest import TODAY


@pytest.fixture
def bridge(provider, cache, registry):
    return BridgeOrchestrator(provider, cache=cache, registry=registry, today=TODAY)


@pytest.fixture
def client(bridge):
    app.dependency_overrides[get_service] = lambda: bridge
    yield TestClient(app)
    app.dependency_overrides.clear()


def translate(client, text="hello", from_style="standard", to_style="formal", **params):
    return client.post(
        "/api/translate",
        params=params,
        json={"text": text, "from_style": from_style, "to_style": to_style},
    )


def test_root(client):
    assert client.get("/").json() == {"message": "SlangBridge API is running"}


def test_translate_miss_then_hit(client):
    first = translate(client)
    assert first.status_code == 200
    assert first.json()["translation"] == "translated: hello"
    assert first.headers["x-cache-hit"] == "false"
    assert first.headers["x-cache-key"] == make_cache_key("standard", "formal", "hello")[:12]

    second = translate(client)
    assert second.headers["x-cache-hit"] == "true"
    assert second.json()["metadata"]["cached"] is True


def test_translate_cache_skip(client, provider):
    translate(client)
    response = translate(client, cache="skip")
    assert response.headers["x-cache-hit"] == "false"
    assert len(provider.calls) == 2


def test_translate_cache_refresh(client, provider):
    translate(client)
    response = translate(client, cache="refresh")
    assert response.headers["x-cache-hit"] == "false"
    assert translate(client).headers["x-cache-hit"] == "true"
    assert len(provider.calls) == 2


def test_translate_invalid_cache_mode(client):
    assert translate(client, cache="sometimes").status_code == 422


@pytest.mark.parametrize("body", [
    {"text": "", "from_style": "standard", "to_style": "formal"},
    {"text": "hello", "from_style": "formal", "to_style": "formal"},
    {"text": "hello", "from_style": "standard", "to_style": "pirate"},
    {"text": "x" * 5001, "from_style": "standard", "to_style": "formal"},
])
def test_translate_validation_errors(client, body):
    assert client.post("/api/translate", json=body).status_code == 400


def test_translate_invalid_context(client):
    response = client.post(
        "/api/translate",
        json={"text": "hello", "from_style": "standard", "to_style": "british", "context": "sarcastic"},
    )
    assert response.status_code == 400


def test_translate_degrades_on_provider_failure(client, provider):
    provider.fail = True
    response = translate(client, text="hello there")
    assert response.status_code == 200
    assert response.json()["translation"] == "hello there"


def test_invalidate_by_key_and_by_text(client):
    key = make_cache_key("standard", "formal", "hello")
    assert client.post("/api/cache/invalidate", json={"key": key}).json() == {"removed": False}

    translate(client)
    response = client.post(
        "/api/cache/invalidate",
        json={"from_style": "standard", "to_style": "formal", "text": "hello"},
    )
    assert response.json() == {"removed": True}


def test_invalidate_needs_key_or_text(client):
    assert client.post("/api/cache/invalidate", json={"text": "hello"}).status_code == 400


def test_cache_stats(client):
    translate(client)
    stats = client.get("/api/cache/stats").json()
    assert stats["total"] == 1
    assert stats["fresh"] == 1
    assert stats["refreshing"] == 0


def test_cache_cleanup(client, clock):
    translate(client)
    clock.advance_days(31)
    assert client.post("/api/cache/cleanup").json() == {"removed": 1}


def test_cache_endpoints_report_store_failure(client, cache):
    cache._conn.close()
    assert client.get("/api/cache/stats").status_code == 503
    assert client.post("/api/cache/cleanup").status_code == 503
    assert client.post("/api/cache/invalidate", json={"key": "abc"}).status_code == 503


def test_system_status(client):
    body = client.get("/api/system/status").json()
    assert body["status"] == "online"
    assert body["api_status"] == {"engine": "fake"}
    assert body["slang_terms"] == 6


def test_cache_admin_calls_run_off_the_event_loop(client, bridge, monkeypatch):
    import threading

    threads = []

    def recording(method):
        def wrapper(*args, **kwargs):
            threads.append(threading.current_thread().name)
            return method(*args, **kwargs)
        return wrapper

    monkeypatch.setattr(bridge, "stats", recording(bridge.stats))
    monkeypatch.setattr(bridge, "invalidate", recording(bridge.invalidate))

    assert client.get("/api/cache/stats").status_code == 200
    assert client.post("/api/cache/invalidate", json={"key": "abc"}).status_code == 200
    # asyncio.to_thread runs on the loop's default executor
    assert len(threads) == 2
    assert all(name.startswith("asyncio") for name in threads)
