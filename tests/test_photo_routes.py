"""Tests for photo import endpoints."""

import base64
import json

from fastapi.testclient import TestClient
from starlette.requests import Request

from app.config import PhotoImportConfig
from app.middleware.rate_limit import get_client_key
from app.utils.exceptions import UpstreamError
from tests.fakes import FakeGateway, echo_title


def _image(name: str) -> str:
    return base64.b64encode(name.encode()).decode()


def test_health_check(client: TestClient):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert "X-Request-ID" in response.headers


def test_readiness_check(client: TestClient):
    """Test readiness check endpoint."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert "gemini" in data["dependencies"]


def test_extract_not_configured(client: TestClient, use_service):
    """Test photo endpoints answer 503 without an API key."""
    use_service(FakeGateway(), PhotoImportConfig(api_key=None))
    response = client.post("/photos/extract", json={"imageGroups": [[_image("a")]]})
    assert response.status_code == 503
    assert response.json()["error"] == "Photo import not configured"


def test_extract_isolates_failures(client: TestClient, use_service):
    """Test a failing group is reported in place without failing the request."""
    bad = _image("bad")

    def responder(images, model):
        if images[0] == bad:
            return UpstreamError("rate limited", status_code=429)
        return echo_title(images, model)

    use_service(FakeGateway(responder))
    groups = [[_image("one")], [bad], [_image("three"), _image("three-b")]]
    response = client.post("/photos/extract", json={"imageGroups": groups})

    assert response.status_code == 200
    data = response.json()
    assert data["succeeded"] == 2
    assert data["failed"] == 1
    assert [r["ok"] for r in data["recipes"]] == [True, False, True]
    assert data["recipes"][0]["title"] == _image("one")
    assert data["recipes"][1]["title"] == "Failed Recipe 2"
    assert "rate limited" in data["recipes"][1]["extractionNotes"]


def test_extract_empty_group_rejected(client: TestClient, use_service):
    """Test a zero-length group is a 400."""
    gateway = FakeGateway()
    use_service(gateway)
    response = client.post("/photos/extract", json={"imageGroups": [[_image("a")], []]})
    assert response.status_code == 400
    assert gateway.calls == []


def test_extract_invalid_image_rejected(client: TestClient, use_service):
    """Test a non-image payload is a 400."""
    use_service(FakeGateway())
    response = client.post("/photos/extract", json={"imageGroups": [["data:text/html;base64,PGI+"]]})
    assert response.status_code == 400
    assert response.json()["error"] == "Image processing error"


def test_extract_stream(client: TestClient, use_service):
    """Test the NDJSON stream has one progress line per group then the result."""
    use_service(FakeGateway())
    groups = [[_image(f"g{i}")] for i in range(4)]
    response = client.post("/photos/extract/stream", json={"imageGroups": groups})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    lines = [json.loads(line) for line in response.text.splitlines() if line]
    progress = [line for line in lines if line["type"] == "progress"]
    assert [p["current"] for p in progress] == [1, 2, 3, 4]
    assert lines[-1]["type"] == "result"
    assert [r["title"] for r in lines[-1]["recipes"]] == [g[0] for g in groups]


def test_group_photos(client: TestClient, use_service):
    """Test grouping endpoint maps indices back to images."""
    use_service(FakeGateway(lambda images, model: '{"groups": [{"indices": [1, 0]}], "notes": "one recipe"}'))
    images = [_image("p1"), _image("p2"), _image("other")]
    response = client.post("/photos/group", json={"images": images})

    assert response.status_code == 200
    assert response.json() == {"groups": [[images[1], images[0]], [images[2]]], "notes": "one recipe"}


def test_import_photos(client: TestClient, use_service):
    """Test grouping plus extraction in one request."""
    config = PhotoImportConfig(api_key="test-gemini-key")

    def responder(images, model):
        if model == config.grouping_model:
            return "not json"
        return echo_title(images, model)

    use_service(FakeGateway(responder), config)
    images = [_image("x"), _image("y")]
    response = client.post("/photos/import", json={"images": images})

    assert response.status_code == 200
    data = response.json()
    assert [r["title"] for r in data["recipes"]] == images
    assert "separate recipe" in data["groupingNotes"]


def test_photo_responses_are_not_cached(client: TestClient, use_service):
    """Test photo results carry no-store and security headers."""
    use_service(FakeGateway())
    response = client.post("/photos/extract", json={"imageGroups": [[_image("a")]]})
    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_validation_error_does_not_echo_images(client: TestClient, use_service):
    """Test a malformed body is a 422 without the submitted payload."""
    use_service(FakeGateway())
    response = client.post("/photos/extract", json={"imageGroups": "secret-image-bytes"})
    assert response.status_code == 422
    assert "secret-image-bytes" not in response.text


def test_rate_limit_key_prefers_forwarded_for():
    """Test the first X-Forwarded-For hop identifies the client."""
    scope = {
        "type": "http",
        "headers": [(b"x-forwarded-for", b"203.0.113.7, 10.0.0.1")],
        "client": ("10.0.0.1", 1234),
    }
    assert get_client_key(Request(scope)) == "203.0.113.7"
