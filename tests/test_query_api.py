"""Tests for the query HTTP surface (FastAPI app, mocked provider HTTP)."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from metaquery.main import app


def _provider_response(status_code: int = 200, json_data=None, text: str = "") -> httpx.Response:
    request = httpx.Request("POST", "https://example.com")
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, request=request)
    return httpx.Response(status_code, text=text, request=request)


def _openai_ok(content='{"answer": "4", "confidence": 1}'):
    return _provider_response(json_data={"choices": [{"message": {"content": content}}]})


def _patch_providers(mock_httpx, **post_kwargs) -> AsyncMock:
    """Wire the invoker's httpx module so every provider call hits one mock client."""
    mock_client = AsyncMock()
    for attr, value in post_kwargs.items():
        setattr(mock_client.post, attr, value)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    mock_httpx.AsyncClient.return_value = mock_client
    return mock_client


class TestMethodGating:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    async def test_non_post_rejected(self, client, method):
        resp = await client.request(method, "/api/v1/query")
        assert resp.status_code == 405
        body = resp.json()
        assert body["error"] == "Method not allowed. Use POST."
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_root_get_rejected(self, client):
        resp = await client.get("/")
        assert resp.status_code == 405


class TestRequestValidation:
    @pytest.mark.asyncio
    async def test_invalid_json(self, client):
        resp = await client.post("/api/v1/query", content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Invalid JSON in request body"
        assert "parseError" in body["details"]
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_empty_body(self, client):
        resp = await client.post("/api/v1/query", content=b"")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid JSON in request body"

    @pytest.mark.asyncio
    async def test_deeply_nested_body(self, client):
        resp = await client.post("/api/v1/query", content=b"[" * 100000 + b"]" * 100000)
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Invalid JSON in request body"
        assert "parseError" in body["details"]

    @pytest.mark.asyncio
    async def test_non_object_body(self, client):
        resp = await client.post("/api/v1/query", json=["What is 2+2?"])
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request body"

    @pytest.mark.asyncio
    async def test_missing_query(self, client):
        resp = await client.post("/api/v1/query", json={"apiKeys": {"openai": "sk"}})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Missing required field: query"

    @pytest.mark.asyncio
    async def test_whitespace_query_not_dispatched(self, client, install_gateway):
        install_gateway(openai="env-key")
        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            resp = await client.post("/api/v1/query", json={"query": "  "})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Query cannot be empty"
        mock_httpx.AsyncClient.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_api_keys(self, client):
        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            resp = await client.post("/api/v1/query", json={"query": "What is 2+2?"})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("No API keys provided")
        mock_httpx.AsyncClient.assert_not_called()


class TestSuccessResponse:
    @pytest.mark.asyncio
    async def test_combined_response_shape(self, client):
        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            _patch_providers(mock_httpx, return_value=_openai_ok())
            resp = await client.post("/api/v1/query", json={"query": "What is 2+2?", "apiKeys": {"openai": "sk"}})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.headers["access-control-allow-origin"] == "*"

        body = resp.json()
        assert set(body) == {"query", "responses", "totalLatency", "timestamp", "providersQueried"}
        assert body["query"] == "What is 2+2?"
        assert body["providersQueried"] == 1
        assert body["totalLatency"] >= 0
        assert body["responses"] == [
            {
                "provider": "OpenAI GPT-4",
                "success": True,
                "data": {"answer": "4", "confidence": 1},
                "latency": body["responses"][0]["latency"],
            }
        ]

    @pytest.mark.asyncio
    async def test_root_path_alias(self, client):
        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            _patch_providers(mock_httpx, return_value=_openai_ok())
            resp = await client.post("/", json={"query": "What is 2+2?", "apiKeys": {"grok": "xai"}})

        assert resp.status_code == 200
        assert resp.json()["responses"][0]["provider"] == "xAI Grok"

    @pytest.mark.asyncio
    async def test_provider_429_is_isolated(self, client):
        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            _patch_providers(mock_httpx, return_value=_provider_response(429, text="slow down"))
            resp = await client.post("/api/v1/query", json={"query": "What is 2+2?", "apiKeys": {"openai": "sk"}})

        assert resp.status_code == 200
        outcome = resp.json()["responses"][0]
        assert outcome["success"] is False
        assert "429" in outcome["error"]
        assert "data" not in outcome
        assert outcome["latency"] >= 0

    @pytest.mark.asyncio
    async def test_env_keys_used_when_body_has_none(self, client, install_gateway):
        install_gateway(openai="env-openai", anthropic="env-anthropic")

        def route(url, json=None, headers=None):
            if "anthropic" in url:
                return _provider_response(json_data={"content": [{"type": "tool_use", "input": {"answer": "4"}}]})
            return _openai_ok()

        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            mock_client = _patch_providers(mock_httpx, side_effect=route)
            resp = await client.post("/api/v1/query", json={"query": "What is 2+2?", "apiKeys": {"openai": "caller"}})

        body = resp.json()
        assert body["providersQueried"] == 2
        assert [r["provider"] for r in body["responses"]] == ["OpenAI GPT-4", "Anthropic Claude"]

        sent = {c.args[0]: c.kwargs["headers"] for c in mock_client.post.call_args_list}
        assert sent["https://api.openai.com/v1/chat/completions"]["Authorization"] == "Bearer caller"
        assert sent["https://api.anthropic.com/v1/messages"]["x-api-key"] == "env-anthropic"

    @pytest.mark.asyncio
    async def test_unencodable_answer_fails_only_its_provider(self, client):
        def route(url, json=None, headers=None):
            if "anthropic" in url:
                return _provider_response(json_data={"content": [{"type": "tool_use", "input": {"answer": "4"}}]})
            return _openai_ok('{"answer": "\\ud800"}')

        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            _patch_providers(mock_httpx, side_effect=route)
            resp = await client.post(
                "/api/v1/query",
                json={"query": "What is 2+2?", "apiKeys": {"openai": "sk", "anthropic": "sk-ant"}},
            )

        assert resp.status_code == 200
        openai, anthropic = resp.json()["responses"]
        assert openai["provider"] == "OpenAI GPT-4"
        assert openai["success"] is False
        assert openai["error"].startswith("JSON parse error:")
        assert anthropic["success"] is True
        assert anthropic["data"] == {"answer": "4"}

    @pytest.mark.asyncio
    async def test_query_with_lone_surrogate_is_echoed(self, client):
        raw = b'{"query": "What is \\ud800?", "apiKeys": {"openai": "sk"}}'
        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            _patch_providers(mock_httpx, return_value=_openai_ok())
            resp = await client.post("/api/v1/query", content=raw, headers={"Content-Type": "application/json"})

        assert resp.status_code == 200
        assert b"\\ud800" in resp.content
        assert resp.json()["query"] == "What is \ud800?"

    @pytest.mark.asyncio
    async def test_long_query(self, client):
        query = "Explain " + "quantum computing " * 500
        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            _patch_providers(mock_httpx, return_value=_openai_ok())
            resp = await client.post("/api/v1/query", json={"query": query, "apiKeys": {"openai": "sk"}})

        assert resp.status_code == 200
        assert resp.json()["query"] == query


class TestInternalErrors:
    @pytest.mark.asyncio
    async def test_unhandled_error_is_generic(self, install_gateway):
        gateway = install_gateway()
        gateway.handle = AsyncMock(side_effect=KeyError("secret internals"))

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            resp = await c.post("/api/v1/query", json={"query": "q"})

        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "Internal server error"
        assert "secret" not in resp.text


class TestHealthAndMetrics:
    @pytest.mark.asyncio
    async def test_health_lists_configured_providers(self, client, install_gateway):
        install_gateway(gemini="AIza", grok="xai")
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "providers": ["gemini", "grok"]}

    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, client):
        with patch("metaquery.gateway.invoker.httpx") as mock_httpx:
            _patch_providers(mock_httpx, return_value=_openai_ok())
            await client.post("/api/v1/query", json={"query": "q", "apiKeys": {"openai": "sk"}})

        resp = await client.get("/metrics")
        assert resp.status_code == 200
        assert "provider_calls_total" in resp.text
        assert "http_requests_total" in resp.text
