from datetime import datetime

from fastapi.testclient import TestClient

from humanivio.core.errors import UpstreamErrorKind, UpstreamServiceError
from humanivio.main import create_app
from humanivio.services.rewriter import RewriteService
from tests.conftest import FakeRewriter, make_settings


def _client(rewriter=None, **overrides) -> TestClient:
    app = create_app(make_settings(**overrides), rewrite_service=rewriter or FakeRewriter())
    return TestClient(app)


def test_root_banner(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "running" in response.text


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "OK"
    assert payload["service"] == "Humanivio API"
    assert payload["timestamp"].endswith("Z")
    datetime.fromisoformat(payload["timestamp"].replace("Z", "+00:00"))


def test_humanize_success(client, fake_rewriter):
    response = client.post("/api/humanize", json={"text": "The quick brown fox."})

    assert response.status_code == 200
    payload = response.json()
    assert payload == {
        "humanizedText": "A freshly rewritten sentence.",
        "originalWordCount": 4,
        "humanizedWordCount": 4,
    }
    assert fake_rewriter.calls == ["The quick brown fox."]
    assert response.headers["x-ratelimit-remaining"] == "999"


def test_humanize_empty_upstream_content():
    client = _client(FakeRewriter(result=None))

    response = client.post("/api/humanize", json={"text": "The quick brown fox."})

    assert response.status_code == 200
    assert response.json() == {"humanizedText": "", "originalWordCount": 4, "humanizedWordCount": 0}


def test_humanize_trims_rewritten_text():
    client = _client(FakeRewriter(result="\n  Quick fox.  \n"))

    response = client.post("/api/humanize", json={"text": "The quick brown fox."})

    assert response.json()["humanizedText"] == "Quick fox."


def test_humanize_empty_text(client, fake_rewriter):
    response = client.post("/api/humanize", json={"text": ""})

    assert response.status_code == 400
    assert response.json() == {"error": "Please provide text to humanize"}
    assert fake_rewriter.calls == []


def test_humanize_missing_text_field(client):
    response = client.post("/api/humanize", json={"content": "hello"})

    assert response.status_code == 400
    assert response.json() == {"error": "Please provide text to humanize"}


def test_humanize_over_word_limit(client, fake_rewriter):
    response = client.post("/api/humanize", json={"text": " ".join(["word"] * 1001)})

    assert response.status_code == 400
    assert response.json() == {"error": "Text exceeds 1000 words limit"}
    assert fake_rewriter.calls == []


def test_humanize_invalid_json(client):
    response = client.post("/api/humanize", content=b"{", headers={"content-type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON body"}


def test_humanize_non_object_json(client):
    response = client.post("/api/humanize", json=["The quick brown fox."])

    assert response.status_code == 400
    assert response.json() == {"error": "JSON body must be an object"}


def test_humanize_quota_exhausted():
    rewriter = FakeRewriter()
    client = _client(rewriter, DAILY_REQUEST_LIMIT=2)

    for _ in range(2):
        assert client.post("/api/humanize", json={"text": "hello there"}).status_code == 200
    response = client.post("/api/humanize", json={"text": "hello there"})

    assert response.status_code == 429
    assert response.json() == {"error": "Daily limit exceeded. Please try again tomorrow."}
    assert int(response.headers["retry-after"]) > 0
    assert len(rewriter.calls) == 2


def test_quota_is_checked_before_validation():
    client = _client(DAILY_REQUEST_LIMIT=1)

    assert client.post("/api/humanize", json={"text": ""}).status_code == 400
    response = client.post("/api/humanize", json={"text": ""})

    assert response.status_code == 429


def test_health_is_not_throttled():
    client = _client(DAILY_REQUEST_LIMIT=0)

    assert client.get("/api/health").status_code == 200
    assert client.get("/").status_code == 200
    assert client.post("/api/humanize", json={"text": "hi"}).status_code == 429


def test_quota_keyed_by_forwarded_address_when_trusted():
    client = _client(DAILY_REQUEST_LIMIT=1, TRUST_PROXY_HEADERS=True)

    first = client.post("/api/humanize", json={"text": "hi"}, headers={"x-forwarded-for": "203.0.113.7"})
    second = client.post("/api/humanize", json={"text": "hi"}, headers={"x-forwarded-for": "203.0.113.8, 10.0.0.1"})
    third = client.post("/api/humanize", json={"text": "hi"}, headers={"x-forwarded-for": "203.0.113.7"})

    assert [first.status_code, second.status_code, third.status_code] == [200, 200, 429]


def test_forwarded_address_ignored_by_default():
    client = _client(DAILY_REQUEST_LIMIT=1)

    client.post("/api/humanize", json={"text": "hi"}, headers={"x-forwarded-for": "203.0.113.7"})
    response = client.post("/api/humanize", json={"text": "hi"}, headers={"x-forwarded-for": "203.0.113.8"})

    assert response.status_code == 429


def test_upstream_quota_error_maps_to_500():
    client = _client(FakeRewriter(error=UpstreamServiceError(UpstreamErrorKind.QUOTA_EXCEEDED)))

    response = client.post("/api/humanize", json={"text": "The quick brown fox."})

    assert response.status_code == 500
    assert response.json() == {"error": "API quota exceeded. Please check your OpenAI account."}


def test_missing_api_key_maps_to_invalid_key():
    settings = make_settings(OPENAI_API_KEY="")
    client = TestClient(create_app(settings, rewrite_service=RewriteService(settings)))

    response = client.post("/api/humanize", json={"text": "The quick brown fox."})

    assert response.status_code == 500
    assert response.json() == {"error": "Invalid API key. Please check your configuration."}


def test_server_keeps_serving_after_failure():
    rewriter = FakeRewriter(error=UpstreamServiceError(UpstreamErrorKind.UNKNOWN))
    client = _client(rewriter)

    failed = client.post("/api/humanize", json={"text": "hello"})
    rewriter.error = None
    recovered = client.post("/api/humanize", json={"text": "hello"})

    assert failed.status_code == 500
    assert failed.json() == {"error": "Failed to humanize text. Please try again."}
    assert recovered.status_code == 200


def test_unexpected_error_returns_json_500():
    app = create_app(make_settings(), rewrite_service=FakeRewriter(error=ValueError("boom")))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.post("/api/humanize", json={"text": "hello"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_cors_allows_any_origin(client):
    response = client.get("/api/health", headers={"origin": "https://example.org"})

    assert response.headers["access-control-allow-origin"] == "*"


def test_cors_preflight_does_not_consume_quota():
    client = _client(DAILY_REQUEST_LIMIT=1)

    preflight = client.options(
        "/api/humanize",
        headers={"origin": "https://example.org", "access-control-request-method": "POST"},
    )
    response = client.post("/api/humanize", json={"text": "hi"})

    assert preflight.status_code == 200
    assert response.status_code == 200


def test_trace_id_is_echoed(client):
    response = client.get("/api/health", headers={"x-trace-id": "abc123"})

    assert response.headers["x-trace-id"] == "abc123"


def test_injected_quota_store_is_used():
    from humanivio.core.rate_limit import InMemoryQuotaStore

    store = InMemoryQuotaStore(limit=1, window_seconds=60)
    client = TestClient(create_app(make_settings(), quota_store=store, rewrite_service=FakeRewriter()))

    assert client.post("/api/humanize", json={"text": "hi"}).status_code == 200
    assert client.post("/api/humanize", json={"text": "hi"}).status_code == 429
    assert len(store) == 1


def test_humanize_rejects_byte_order_mark_only(client, fake_rewriter):
    response = client.post("/api/humanize", json={"text": chr(0xFEFF)})

    assert response.status_code == 400
    assert response.json() == {"error": "Please provide text to humanize"}
    assert fake_rewriter.calls == []


def test_humanize_counts_words_on_browser_whitespace(client):
    response = client.post("/api/humanize", json={"text": f"a{chr(0x1C)}b"})

    assert response.status_code == 200
    assert response.json()["originalWordCount"] == 1


def test_unexpected_error_keeps_trace_and_cors_headers():
    app = create_app(make_settings(), rewrite_service=FakeRewriter(error=ValueError("boom")))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.post(
        "/api/humanize",
        json={"text": "hello"},
        headers={"origin": "https://example.org", "x-trace-id": "trace-500"},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert response.headers["x-trace-id"] == "trace-500"
    assert response.headers["access-control-allow-origin"] == "*"


def test_unexpected_error_echoes_listed_origin_only():
    settings = make_settings(CORS_ALLOWED_ORIGINS="https://humanivio.app")
    app = create_app(settings, rewrite_service=FakeRewriter(error=ValueError("boom")))
    client = TestClient(app, raise_server_exceptions=False)

    allowed = client.post("/api/humanize", json={"text": "hi"}, headers={"origin": "https://humanivio.app"})
    other = client.post("/api/humanize", json={"text": "hi"}, headers={"origin": "https://example.org"})

    assert allowed.headers["access-control-allow-origin"] == "https://humanivio.app"
    assert "access-control-allow-origin" not in other.headers
