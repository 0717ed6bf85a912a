"""Vendor-Specific Adapters: protocol-level mapping for each provider.

Each adapter translates (query, schema, api key) into the provider's HTTP
request and extracts the normalized answer from its reply envelope. The
network call itself lives in ``invoker.invoke_provider``.

Vendor-specific behaviors:
  - OpenAI: chat completions with ``json_schema`` response_format, Bearer auth
  - Anthropic: messages API with one forced ``respond`` tool, ``x-api-key`` auth
  - Gemini: generateContent with native responseSchema, key in the query string,
    finishReason SAFETY / promptFeedback.blockReason → parse failure
  - Grok: OpenAI-compatible chat completions
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from metaquery.gateway.normalizer import safe_json_parse
from metaquery.gateway.types import (
    PROVIDER_CONFIGS,
    ParseResult,
    ProviderConfig,
    ProviderId,
)


def _dig(data: Any, *path: str | int) -> Any:
    """Walk a nested dict/list path, returning None at the first missing or mis-shaped level."""
    node = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(node, list) or len(node) <= key:
                return None
        elif not isinstance(node, dict):
            return None
        node = node[key] if isinstance(key, int) else node.get(key)
        if node is None:
            return None
    return node


class BaseVendorAdapter(ABC):
    """Base class for all provider adapters.

    Adapters are stateless; the credential is passed per call.
    """

    provider: ProviderId

    @property
    def config(self) -> ProviderConfig:
        return PROVIDER_CONFIGS[self.provider]

    @property
    def name(self) -> str:
        return self.config.name

    def build_url(self, api_key: str) -> str:
        """Final endpoint for a call. Override when the key goes in the URL."""
        return self.config.url

    @abstractmethod
    def build_headers(self, api_key: str) -> dict[str, str]:
        """Authentication and content headers for this provider."""
        ...

    @abstractmethod
    def build_body(self, query: str, schema: Any) -> dict[str, Any]:
        """Request body asking for schema-conformant output."""
        ...

    @abstractmethod
    def parse_response(self, data: Any) -> ParseResult:
        """Extract the structured answer from a decoded reply. Never raises."""
        ...


# ---------------------------------------------------------------------------
# OpenAI-compatible chat completions (OpenAI, Grok)
# ---------------------------------------------------------------------------


class _ChatCompletionsAdapter(BaseVendorAdapter):
    label: str

    def build_headers(self, api_key: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    def build_body(self, query: str, schema: Any) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [{"role": "user", "content": query}],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "response",
                    "strict": True,
                    "schema": schema,
                },
            },
        }

    def parse_response(self, data: Any) -> ParseResult:
        content = _dig(data, "choices", 0, "message", "content")
        if not content or not isinstance(content, str):
            return ParseResult.failure(f"No content in {self.label} response")
        return safe_json_parse(content)


class OpenAIAdapter(_ChatCompletionsAdapter):
    """OpenAI Chat Completions with strict JSON schema output."""

    provider = ProviderId.OPENAI
    label = "OpenAI"


class GrokAdapter(_ChatCompletionsAdapter):
    """xAI Grok, OpenAI-compatible wire format."""

    provider = ProviderId.GROK
    label = "Grok"


# ---------------------------------------------------------------------------
# Anthropic Adapter (forced tool use)
# ---------------------------------------------------------------------------

ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 4096
RESPOND_TOOL = "respond"


class AnthropicAdapter(BaseVendorAdapter):
    """Anthropic Messages API; structured output via a single forced tool call."""

    provider = ProviderId.ANTHROPIC

    def build_headers(self, api_key: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_body(self, query: str, schema: Any) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "tools": [
                {
                    "name": RESPOND_TOOL,
                    "description": "Respond to the query with structured data",
                    "input_schema": schema,
                }
            ],
            "tool_choice": {"type": "tool", "name": RESPOND_TOOL},
            "messages": [{"role": "user", "content": query}],
        }

    def parse_response(self, data: Any) -> ParseResult:
        blocks = _dig(data, "content")
        if not isinstance(blocks, list):
            return ParseResult.failure("No tool_use in Claude response")

        tool_use = next(
            (b for b in blocks if isinstance(b, dict) and b.get("type") == "tool_use"),
            None,
        )
        tool_input = tool_use.get("input") if tool_use else None
        if tool_input is None:
            return ParseResult.failure("No tool_use in Claude response")

        # Tool input is native JSON; re-parse only if it arrived as a string
        if isinstance(tool_input, str):
            return safe_json_parse(tool_input)
        return ParseResult.success(tool_input)


# ---------------------------------------------------------------------------
# Gemini Adapter (Google AI)
# ---------------------------------------------------------------------------


class GeminiAdapter(BaseVendorAdapter):
    """Google Gemini with native structured-output config and SAFETY detection."""

    provider = ProviderId.GEMINI

    def build_url(self, api_key: str) -> str:
        return str(httpx.URL(self.config.url, params={"key": api_key}))

    def build_headers(self, api_key: str) -> dict[str, str]:
        # Key travels in the URL
        return {"Content-Type": "application/json"}

    def build_body(self, query: str, schema: Any) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": query}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }

    def parse_response(self, data: Any) -> ParseResult:
        candidate = _dig(data, "candidates", 0)
        if candidate is None:
            block_reason = _dig(data, "promptFeedback", "blockReason")
            if block_reason:
                return ParseResult.failure(f"Gemini prompt blocked: {block_reason}")
            return ParseResult.failure("No content in Gemini response")

        if isinstance(candidate, dict) and candidate.get("finishReason") == "SAFETY":
            return ParseResult.failure("Gemini safety filter triggered")

        parts = _dig(candidate, "content", "parts")
        if not isinstance(parts, list):
            return ParseResult.failure("No content in Gemini response")

        text = "".join(p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str))
        if not text:
            return ParseResult.failure("No content in Gemini response")
        return safe_json_parse(text)


# ---------------------------------------------------------------------------
# Adapter registry
# ---------------------------------------------------------------------------

ADAPTER_REGISTRY: dict[ProviderId, type[BaseVendorAdapter]] = {
    ProviderId.OPENAI: OpenAIAdapter,
    ProviderId.ANTHROPIC: AnthropicAdapter,
    ProviderId.GEMINI: GeminiAdapter,
    ProviderId.GROK: GrokAdapter,
}


def get_adapter(provider: ProviderId) -> BaseVendorAdapter:
    """Factory: get the adapter for a provider."""
    cls = ADAPTER_REGISTRY.get(provider)
    if cls is None:
        raise ValueError(f"No adapter registered for provider: {provider}")
    return cls()
