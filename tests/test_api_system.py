"""
respgate - API System Tests

Tests for the HTTP surface:
- Streaming and non-streaming create
- Retrieve, resume, delete and cancel passthroughs
- Enriched error responses
- Health, metrics and application lifespan
"""

import json
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from respgate.api.dependencies import get_dispatcher, get_openai_client
from respgate.api.models import CreateResponseRequest
from respgate.config import GatewayConfig
from respgate.server import create_app
from respgate.streaming.dispatcher import EventDispatcher


class FakeStream:
    """Async iterable upstream stream with a close() the route must call."""

    def __init__(self, events: List[Dict[str, Any]], fail_with: Optional[Exception] = None):
        self.events = events
        self.fail_with = fail_with
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for event in self.events:
            yield event
        if self.fail_with is not None:
            raise self.fail_with

    async def close(self):
        self.closed = True


def parse_sse(body: str) -> List[Dict[str, Any]]:
    """Split an SSE body into {event, data} frames."""
    frames = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        frames.append({"event": lines["event"], "data": json.loads(lines["data"])})
    return frames


@pytest.fixture
def upstream():
    """Stand-in for AsyncOpenAI with only the responses resource."""
    client = MagicMock()
    client.responses.create = AsyncMock()
    client.responses.retrieve = AsyncMock()
    client.responses.delete = AsyncMock(return_value=None)
    client.responses.cancel = AsyncMock()
    return client


@pytest.fixture
def app(upstream, monkeypatch, tmp_path):
    monkeypatch.delenv("OPENAI_DEFAULT_MODEL", raising=False)
    app = create_app(GatewayConfig(openai_api_key="sk-test", log_dir=str(tmp_path / "logs")))
    app.dependency_overrides[get_openai_client] = lambda: upstream
    app.dependency_overrides[get_dispatcher] = lambda: EventDispatcher()
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


# ============================================================
# Request Model Tests
# ============================================================

class TestCreateResponseRequest:
    """Test upstream parameter building."""

    def test_defaults_model(self):
        params = CreateResponseRequest(input="hi").upstream_params("gpt-4o")
        assert params == {"model": "gpt-4o", "input": "hi"}

    def test_stream_not_forwarded(self):
        params = CreateResponseRequest(model="o3-mini", input="hi", stream=True).upstream_params("gpt-4o")
        assert "stream" not in params
        assert params["model"] == "o3-mini"

    def test_unknown_fields_go_to_extra_body(self):
        request = CreateResponseRequest(input="hi", brand_new_option={"a": 1})
        params = request.upstream_params("gpt-4o")

        assert params["extra_body"] == {"brand_new_option": {"a": 1}}
        assert "brand_new_option" not in params


# ============================================================
# Create Tests
# ============================================================

class TestCreateResponse:
    """Test POST /v1/responses."""

    def test_streaming(self, client, upstream, count_to_three_events):
        stream = FakeStream(count_to_three_events)
        upstream.responses.create.return_value = stream

        response = client.post("/v1/responses", json={"input": "Count to 3", "stream": True})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"
        assert response.headers["x-request-id"].startswith("req_")

        frames = parse_sse(response.text)
        assert [f["event"] for f in frames] == [
            "response_created",
            "response_in_progress",
            "text_delta",
            "text_delta",
            "text_delta",
            "text_done",
            "response_completed",
        ]
        assert [f["data"]["sequence"] for f in frames] == list(range(7))
        assert frames[-1]["data"]["output_text"] == "1, 2, 3"
        assert stream.closed

        upstream.responses.create.assert_awaited_once_with(model="gpt-4o", input="Count to 3", stream=True)

    def test_streaming_mid_stream_failure(self, client, upstream):
        """A broken upstream ends the body with an error event."""
        stream = FakeStream(
            [{"type": "response.output_text.delta", "sequence_number": 1, "delta": "par"}],
            fail_with=ConnectionResetError("connection lost"),
        )
        upstream.responses.create.return_value = stream

        response = client.post("/v1/responses", json={"input": "hi", "stream": True})

        frames = parse_sse(response.text)
        assert response.status_code == 200
        assert [f["event"] for f in frames] == ["text_delta", "error"]
        assert frames[-1]["data"] == {"error": "connection lost", "sequence": 0}
        assert stream.closed

    def test_streaming_open_failure_is_http_error(self, client, upstream):
        """Errors before the first event are plain enriched HTTP errors."""
        upstream.responses.create.side_effect = ConnectionRefusedError("refused")

        response = client.post("/v1/responses", json={"input": "hi", "stream": True})

        assert response.status_code == 503
        assert response.json()["error_code"] == "ECONNREFUSED"

    def test_non_streaming(self, client, upstream, completed_response, metrics_collector):
        upstream.responses.create.return_value = completed_response

        response = client.post("/v1/responses", json={"model": "gpt-4o", "input": "Count to 3"})

        assert response.status_code == 200
        assert response.json() == completed_response
        assert metrics_collector.registry.get_sample_value(
            "respgate_tokens_total", {"model": "gpt-4o", "type": "output"},
        ) == 7

    def test_non_streaming_logged(self, client, upstream, completed_response, interaction_log_dir):
        upstream.responses.create.return_value = completed_response

        client.post("/v1/responses", json={"input": "Count to 3"})

        log_file = next(interaction_log_dir.glob("*/responses.log"))
        entry = json.loads(log_file.read_text(encoding="utf-8").split("\n" + "-" * 80)[0])
        assert entry["endpoint"] == "/v1/responses"
        assert entry["request"] == {"model": "gpt-4o", "input": "Count to 3"}
        assert entry["metadata"]["tokens_used"] == 19
        assert entry["metadata"]["response_status"] == "completed"
        assert entry["metadata"]["cost_estimate"] > 0

    def test_extra_fields_forwarded(self, client, upstream, completed_response):
        upstream.responses.create.return_value = completed_response

        client.post("/v1/responses", json={"input": "hi", "brand_new_option": True})

        kwargs = upstream.responses.create.call_args.kwargs
        assert kwargs["extra_body"] == {"brand_new_option": True}


# ============================================================
# Passthrough Tests
# ============================================================

class TestResponsePassthrough:
    """Test retrieve, resume, delete and cancel."""

    def test_retrieve(self, client, upstream, completed_response):
        upstream.responses.retrieve.return_value = completed_response

        response = client.get("/v1/responses/resp_123")

        assert response.status_code == 200
        assert response.json()["id"] == "resp_123"
        upstream.responses.retrieve.assert_awaited_once_with("resp_123")

    def test_resume_stream(self, client, upstream, count_to_three_events):
        upstream.responses.retrieve.return_value = FakeStream(count_to_three_events[4:])

        response = client.get("/v1/responses/resp_123/stream", params={"starting_after": 3})

        frames = parse_sse(response.text)
        assert [f["data"]["sequence"] for f in frames] == [4, 5, 6]
        upstream.responses.retrieve.assert_awaited_once_with("resp_123", stream=True, starting_after=3)

    def test_resume_stream_from_start(self, client, upstream):
        upstream.responses.retrieve.return_value = FakeStream([])

        client.get("/v1/responses/resp_123/stream")

        upstream.responses.retrieve.assert_awaited_once_with("resp_123", stream=True)

    def test_resume_rejects_negative_cursor(self, client):
        response = client.get("/v1/responses/resp_123/stream", params={"starting_after": -1})
        assert response.status_code == 422

    def test_delete(self, client, upstream):
        response = client.delete("/v1/responses/resp_123")

        assert response.json() == {"id": "resp_123", "object": "response.deleted", "deleted": True}
        upstream.responses.delete.assert_awaited_once_with("resp_123")

    def test_cancel(self, client, upstream):
        upstream.responses.cancel.return_value = {"id": "resp_123", "status": "cancelled"}

        response = client.post("/v1/responses/resp_123/cancel")

        assert response.json()["status"] == "cancelled"


# ============================================================
# Error Response Tests
# ============================================================

class TestErrorResponses:
    """Test enriched error bodies through the HTTP stack."""

    def test_rate_limit(self, client, upstream):
        upstream.responses.create.side_effect = openai.RateLimitError(
            "Rate limit reached",
            response=httpx.Response(
                429,
                headers={
                    "retry-after": "30",
                    "x-ratelimit-remaining-requests": "0",
                    "x-request-id": "req_upstream",
                },
                request=httpx.Request("POST", "https://api.openai.com/v1/responses"),
            ),
            body=None,
        )

        response = client.post("/v1/responses", json={"input": "hi"})
        body = response.json()

        assert response.status_code == 429
        assert response.headers["retry-after"] == "30"
        assert body["statusCode"] == 429
        assert body["path"] == "/v1/responses"
        assert body["retry_after_seconds"] == 30
        assert body["rate_limit_info"] == {"remaining_requests": "0"}
        assert body["request_id"] == "req_upstream"

    def test_not_found(self, client, upstream):
        upstream.responses.retrieve.side_effect = openai.NotFoundError(
            "No response found",
            response=httpx.Response(404, request=httpx.Request("GET", "https://api.openai.com/v1/responses/x")),
            body={"code": None, "message": "No response found"},
        )

        response = client.get("/v1/responses/resp_missing")

        assert response.status_code == 404
        assert response.json()["message"] == "Resource not found"
        assert response.json()["path"] == "/v1/responses/resp_missing"

    def test_error_logged_with_request(self, client, upstream, interaction_log_dir):
        upstream.responses.create.side_effect = openai.AuthenticationError(
            "bad key",
            response=httpx.Response(401, request=httpx.Request("POST", "https://api.openai.com/v1/responses")),
            body=None,
        )

        client.post("/v1/responses", json={"input": "hi"})

        log_file = next(interaction_log_dir.glob("*/responses.log"))
        entry = json.loads(log_file.read_text(encoding="utf-8").split("\n" + "-" * 80)[0])
        assert entry["request"] == {"model": "gpt-4o", "input": "hi"}
        assert entry["error"]["statusCode"] == 401
        assert entry["error"]["original_error"]["name"] == "AuthenticationError"

    def test_unknown_error(self, app, upstream):
        upstream.responses.create.side_effect = ValueError("boom")
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post("/v1/responses", json={"input": "hi"})
        body = response.json()

        assert response.status_code == 500
        assert body["message"] == "boom"
        assert body["error"] == "ValueError"
        assert "stack" in body["full_error"]

    def test_missing_api_key(self, monkeypatch, tmp_path):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        app = create_app(GatewayConfig(log_dir=str(tmp_path)))

        response = TestClient(app).post("/v1/responses", json={"input": "hi"})

        assert response.status_code == 503
        assert response.json()["message"] == "OpenAI API key is not configured"


# ============================================================
# Service Endpoint Tests
# ============================================================

class TestServiceEndpoints:
    """Test health, metrics and lifespan."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "version": "1.0.0",
            "environment": "development",
            "upstream_configured": True,
        }

    def test_metrics(self, client, upstream, completed_response):
        upstream.responses.create.return_value = completed_response
        client.post("/v1/responses", json={"input": "hi"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "respgate_requests_total" in response.text
        assert "respgate_tokens_total" in response.text

    def test_lifespan(self, app):
        tracing = MagicMock()
        with patch("respgate.server.setup_observability", return_value={"tracing": tracing}) as setup:
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200

        setup.assert_called_once()
        tracing.shutdown.assert_called_once()

    def test_lifespan_rejects_invalid_config(self, tmp_path):
        app = create_app(GatewayConfig(timeout_ms=0, log_dir=str(tmp_path)))
        with pytest.raises(ValueError, match="OPENAI_TIMEOUT"):
            with TestClient(app):
                pass
