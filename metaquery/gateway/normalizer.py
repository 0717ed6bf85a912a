"""Response Normalizer: safe JSON parsing and result aggregation.

  - ``safe_json_parse``: text → ParseResult, never raises
  - ``aggregate_outcomes``: per-provider outcomes → AggregatedResult
"""

from __future__ import annotations

import json
import logging
from typing import Any

from metaquery.gateway.types import AggregatedResult, ParseResult, ProviderOutcome

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    # Strict JSON: NaN / Infinity / -Infinity are not valid literals
    raise ValueError(f"Unexpected token {name} in JSON")


def safe_json_parse(text: Any) -> ParseResult:
    """Parse ``text`` as JSON, returning a failure instead of raising.

    Handles empty, whitespace-only, non-JSON and very large inputs. Also used
    on strings extracted from a provider envelope.

    A value holding lone surrogates (``"\\ud800"``) decodes fine but cannot be
    written back out as UTF-8, so it is reported as a parse failure here.
    """
    try:
        value = json.loads(text, parse_constant=_reject_constant)
        json.dumps(value, ensure_ascii=False).encode("utf-8")
    except UnicodeEncodeError as e:
        return ParseResult.failure(f"JSON parse error: invalid Unicode in string ({e.reason})")
    except (ValueError, TypeError, RecursionError) as e:
        return ParseResult.failure(f"JSON parse error: {e}")
    return ParseResult.success(value)


def aggregate_outcomes(
    query: str,
    outcomes: list[ProviderOutcome],
    total_latency_ms: int,
) -> AggregatedResult:
    """Combine per-provider outcomes into the final result.

    Partial success is a normal result; ``providers_queried`` counts every
    dispatched provider regardless of how many succeeded.
    """
    result = AggregatedResult(
        query=query,
        responses=tuple(outcomes),
        total_latency_ms=max(0, total_latency_ms),
    )
    logger.debug(
        "Aggregated %d outcomes (%d succeeded)",
        result.providers_queried,
        result.succeeded,
    )
    return result
