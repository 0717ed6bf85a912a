"""Provider invoker: one HTTP call per provider, always returns an outcome.

Failure classification, first match wins:
  1. Transport failure (connect error, timeout, anything raised) → error message
  2. Non-2xx status → "<name> API error: <status> <reason>", body preview logged only
  3. Body is not JSON → safe-parse failure message
  4. Adapter finds no answer in the envelope → adapter failure message
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from metaquery.core.metrics import record_provider_call
from metaquery.gateway.normalizer import safe_json_parse
from metaquery.gateway.types import ProviderOutcome
from metaquery.gateway.vendor_adapters import BaseVendorAdapter

logger = logging.getLogger(__name__)

QUERY_PREVIEW_CHARS = 100
BODY_PREVIEW_CHARS = 200


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.monotonic() - start) * 1000))


async def invoke_provider(
    adapter: BaseVendorAdapter,
    query: str,
    schema: Any,
    api_key: str,
    timeout: float | None = None,
) -> ProviderOutcome:
    """Send one request to ``adapter``'s provider and normalize the result.

    Never raises; latency is recorded on every path.
    """
    provider = adapter.name
    start = time.monotonic()

    logger.info("Querying %s", provider, extra={"context": {"query": query[:QUERY_PREVIEW_CHARS]}})

    try:
        url = adapter.build_url(api_key)
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(
                url,
                json=adapter.build_body(query, schema),
                headers=adapter.build_headers(api_key),
            )
        response_text = resp.text
        latency = _elapsed_ms(start)

        if not resp.is_success:
            error_msg = f"{provider} API error: {resp.status_code} {resp.reason_phrase}".rstrip()
            logger.warning(
                error_msg,
                extra={
                    "context": {
                        "status": resp.status_code,
                        "responsePreview": response_text[:BODY_PREVIEW_CHARS],
                    }
                },
            )
            return _finish(ProviderOutcome.failed(provider, error_msg, latency))

        body = safe_json_parse(response_text)
        if not body.ok:
            logger.error("%s JSON parse failed", provider, extra={"context": {"error": body.error}})
            return _finish(ProviderOutcome.failed(provider, body.error, latency))

        parsed = adapter.parse_response(body.value)
        if not parsed.ok:
            logger.error("%s response parse failed", provider, extra={"context": {"error": parsed.error}})
            return _finish(ProviderOutcome.failed(provider, parsed.error, latency))

        logger.info("%s query successful", provider, extra={"context": {"latency": latency}})
        return _finish(ProviderOutcome.ok(provider, parsed.value, latency))

    except Exception as e:
        latency = _elapsed_ms(start)
        error_msg = str(e) or type(e).__name__
        logger.error("%s query failed", provider, extra={"context": {"error": error_msg, "latency": latency}})
        return _finish(ProviderOutcome.failed(provider, error_msg, latency))


def _finish(outcome: ProviderOutcome) -> ProviderOutcome:
    record_provider_call(outcome.provider, outcome.success, outcome.latency_ms)
    return outcome
