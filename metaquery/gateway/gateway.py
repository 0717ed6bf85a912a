"""Query Gateway: fan-out to every provider with a key, fan-in the outcomes.

Main entry point for answering one query:
  1. Validates the decoded request body
  2. Resolves API keys (caller keys over process defaults, per provider)
  3. Dispatches one invocation per resolved provider, concurrently
  4. Waits for all of them and aggregates in dispatch order

Usage:
    gateway = QueryGateway(default_api_keys=settings.default_api_keys())
    result = await gateway.handle({"query": "What is 2+2?"})
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any

from metaquery.core.exceptions import DispatchError, NoProvidersAvailable
from metaquery.gateway.invoker import invoke_provider
from metaquery.gateway.normalizer import aggregate_outcomes
from metaquery.gateway.types import (
    DEFAULT_SCHEMA,
    PROVIDER_CONFIGS,
    AggregatedResult,
    ProviderId,
    ProviderOutcome,
)
from metaquery.gateway.validation import resolve_api_keys, validate_request
from metaquery.gateway.vendor_adapters import BaseVendorAdapter, get_adapter

logger = logging.getLogger(__name__)


class QueryGateway:
    """Multi-provider dispatch-and-aggregate engine.

    Holds no per-request state; one instance serves concurrent requests.
    """

    def __init__(
        self,
        default_api_keys: Mapping[ProviderId, str | None] | None = None,
        timeout: float | None = None,
    ):
        """
        Args:
            default_api_keys: Process-level key per provider, used when the caller sends none
            timeout: Transport timeout per provider call (None = no timeout)
        """
        self.default_api_keys = dict(default_api_keys or {})
        self.timeout = timeout
        self._adapters: dict[ProviderId, BaseVendorAdapter] = {p: get_adapter(p) for p in PROVIDER_CONFIGS}

    @property
    def configured_providers(self) -> list[str]:
        """Providers that have a process-level key."""
        return [p.value for p in PROVIDER_CONFIGS if self.default_api_keys.get(p)]

    async def dispatch(
        self,
        query: str,
        schema: Any,
        api_keys: Mapping[ProviderId, str],
    ) -> list[ProviderOutcome]:
        """Query every provider with a resolved key concurrently.

        Returns outcomes in registration order once all calls have finished.

        Raises:
            NoProvidersAvailable: no provider has a key
            DispatchError: the join itself failed
        """
        calls = [
            invoke_provider(self._adapters[provider], query, schema, api_keys[provider], timeout=self.timeout)
            for provider in PROVIDER_CONFIGS
            if api_keys.get(provider)
        ]
        if not calls:
            raise NoProvidersAvailable()

        logger.info("Querying LLMs in parallel", extra={"context": {"count": len(calls)}})

        try:
            return list(await asyncio.gather(*calls))
        except Exception as e:
            logger.error("Concurrent dispatch failed", extra={"context": {"error": str(e)}}, exc_info=True)
            raise DispatchError() from e

    async def handle(self, payload: Any) -> AggregatedResult:
        """Run the whole pipeline for one decoded request body."""
        start = time.monotonic()

        request = validate_request(payload)
        schema = request.schema or DEFAULT_SCHEMA
        api_keys = resolve_api_keys(request, self.default_api_keys)

        outcomes = await self.dispatch(request.query, schema, api_keys)

        total_latency = int((time.monotonic() - start) * 1000)
        return aggregate_outcomes(request.query, outcomes, total_latency)
