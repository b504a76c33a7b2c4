import json
from types import SimpleNamespace

from fastapi.testclient import TestClient

from config import Config, load_config
from dependencies import configure_rate_limit, limiter
from main import create_app, custom_rate_limit_handler
from schemas import BoardCreate, TaskCreate
from storage import MemStorage

# Create a test client with a trusted host (Host header matching TrustedHostMiddleware)
client = TestClient(create_app(storage=MemStorage()), base_url="http://localhost:8000")


# --- Test 1: Content Security Policy (HTTP Headers) ---
def test_security_headers():
    """
    Verify that the SecurityHeadersMiddleware adds the expected headers.
    """
    response = client.get("/api/boards")
    assert response.status_code == 200
    headers = response.headers

    assert "default-src 'self'" in headers["content-security-policy"]
    assert headers.get("x-content-type-options") == "nosniff"
    assert headers.get("x-frame-options") == "DENY"


# --- Test 2: Untrusted Host ---
def test_untrusted_host_rejected():
    evil = TestClient(create_app(storage=MemStorage()), base_url="http://evil.example.com")
    response = evil.get("/api/boards")
    assert response.status_code == 400


# --- Test 3: Input Sanitization (Bleach / XSS) ---
def test_input_sanitization():
    """
    Verify that HTML tags are stripped from task and board inputs.
    """
    unsafe_input = "<script>alert('XSS')</script>Meeting<b onmouseover=alert(1)>bold</b>"

    task = TaskCreate(name=unsafe_input, description=unsafe_input)
    board = BoardCreate(name=unsafe_input, created_by=1)

    for value in (task.name, task.description, board.name):
        assert "<script>" not in value
        assert "<b" not in value
        # Inhalt bleibt erhalten, nur die Tags verschwinden
        assert "Meeting" in value
        assert "bold" in value


# --- Test 4: Rate Limit Response ---
def test_rate_limit_handler_returns_429():
    exc = SimpleNamespace(detail="120 per 1 minute")
    response = custom_rate_limit_handler(None, exc)
    assert response.status_code == 429
    assert "120 per 1 minute" in json.loads(response.body)["detail"]


# --- Test 5: Rate Limit from the app's config ---
def _post_boards(config, count):
    limiter.reset()
    limited = TestClient(create_app(storage=MemStorage(), config=config), base_url="http://localhost:8000")
    board = {"name": "Burst", "createdBy": 1}
    try:
        return [limited.post("/api/boards", json=board).status_code for _ in range(count)]
    finally:
        # Limiter ist prozessweit, danach wieder die Umgebungs-Konfiguration
        configure_rate_limit(load_config())
        limiter.reset()


def test_configured_rate_limit_is_enforced():
    assert _post_boards(Config(RATE_LIMIT="1/minute"), 3) == [201, 429, 429]


def test_rate_limit_can_be_disabled():
    assert _post_boards(Config(RATE_LIMIT="1/minute", RATE_LIMIT_ENABLED=False), 3) == [201, 201, 201]
