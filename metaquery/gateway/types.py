"""Core types and DTOs for the multi-provider query gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ProviderId(str, Enum):
    """Known answer-generating providers, in registration (dispatch) order."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    GROK = "grok"


# ---------------------------------------------------------------------------
# Provider config: immutable, defined once at import time
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderConfig:
    """Identity, endpoint and model for one provider."""

    provider: ProviderId
    name: str  # Display identity used in outcomes and logs
    url: str
    model: str


# Provider table; dict order is dispatch order
PROVIDER_CONFIGS: dict[ProviderId, ProviderConfig] = {
    ProviderId.OPENAI: ProviderConfig(
        provider=ProviderId.OPENAI,
        name="OpenAI GPT-4",
        url="https://api.openai.com/v1/chat/completions",
        model="gpt-4o-2024-08-06",
    ),
    ProviderId.ANTHROPIC: ProviderConfig(
        provider=ProviderId.ANTHROPIC,
        name="Anthropic Claude",
        url="https://api.anthropic.com/v1/messages",
        model="claude-sonnet-4-20250514",
    ),
    ProviderId.GEMINI: ProviderConfig(
        provider=ProviderId.GEMINI,
        name="Google Gemini",
        url="https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-pro:generateContent",
        model="gemini-1.5-pro",
    ),
    ProviderId.GROK: ProviderConfig(
        provider=ProviderId.GROK,
        name="xAI Grok",
        url="https://api.x.ai/v1/chat/completions",
        model="grok-2-1212",
    ),
}


# Default output schema when the caller does not send one
DEFAULT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "answer": {
            "type": "string",
            "description": "The answer to the query",
        },
        "confidence": {
            "type": "number",
            "description": "Confidence level from 0 to 1",
        },
    },
    "required": ["answer", "confidence"],
    "additionalProperties": False,
}


# ---------------------------------------------------------------------------
# Parse result: tagged success / failure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a parse step: exactly one of ``value`` or ``error`` is meaningful."""

    ok: bool
    value: Any = None
    error: str = ""

    @classmethod
    def success(cls, value: Any) -> ParseResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> ParseResult:
        return cls(ok=False, error=error)


# ---------------------------------------------------------------------------
# Query: validated input to the gateway
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryRequest:
    """A validated inbound query.

    ``schema`` and ``api_keys`` are passed through unexamined; only the
    adapter or resolver that consumes them decides what they mean.
    """

    query: str
    schema: Any = None
    api_keys: Any = None
    payload: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Provider outcome: one per dispatched provider
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderOutcome:
    """Result of one provider call, success or failure, with timing."""

    provider: str
    success: bool
    latency_ms: int
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, provider: str, data: Any, latency_ms: int) -> ProviderOutcome:
        return cls(provider=provider, success=True, data=data, latency_ms=latency_ms)

    @classmethod
    def failed(cls, provider: str, error: str, latency_ms: int) -> ProviderOutcome:
        return cls(provider=provider, success=False, error=error, latency_ms=latency_ms)

    def to_dict(self) -> dict:
        """Serialize to the wire shape; ``data`` and ``error`` are mutually exclusive."""
        result: dict[str, Any] = {"provider": self.provider, "success": self.success}
        if self.success:
            result["data"] = self.data
        else:
            result["error"] = self.error
        result["latency"] = self.latency_ms
        return result


# ---------------------------------------------------------------------------
# Aggregated result: output of the gateway
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregatedResult:
    """Combined result of one fan-out request.

    ``responses`` keeps dispatch order, not completion order.
    """

    query: str
    responses: tuple[ProviderOutcome, ...]
    total_latency_ms: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def providers_queried(self) -> int:
        return len(self.responses)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.responses if r.success)

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible dict for the API response."""
        return {
            "query": self.query,
            "responses": [r.to_dict() for r in self.responses],
            "totalLatency": self.total_latency_ms,
            "timestamp": self.timestamp.isoformat(),
            "providersQueried": self.providers_queried,
        }
