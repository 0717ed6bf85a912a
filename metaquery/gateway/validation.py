"""Inbound request validation and credential resolution."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from metaquery.core.exceptions import EmptyQuery, InvalidPayload, MissingField
from metaquery.gateway.types import PROVIDER_CONFIGS, ProviderId, QueryRequest


def validate_request(payload: Any) -> QueryRequest:
    """Check the decoded request body before anything is dispatched.

    Only ``query`` is validated. ``schema`` and ``apiKeys`` pass through
    as-is and fail later, at the provider that uses them, if malformed.

    Raises:
        InvalidPayload: payload is absent or not a JSON object
        MissingField: ``query`` is absent or not a string
        EmptyQuery: ``query`` is blank after trimming
    """
    if not isinstance(payload, dict):
        raise InvalidPayload()

    query = payload.get("query")
    if not isinstance(query, str):
        raise MissingField()

    if not query.strip():
        raise EmptyQuery()

    return QueryRequest(
        query=query,
        schema=payload.get("schema"),
        api_keys=payload.get("apiKeys"),
        payload=payload,
    )


def resolve_api_keys(
    request: QueryRequest,
    defaults: Mapping[ProviderId, str | None],
) -> dict[ProviderId, str]:
    """Merge caller-supplied keys over process-level defaults, per provider.

    A falsy caller value (missing, empty, null) falls through to the default.
    Providers with no key from either source are left out.
    """
    caller = request.api_keys if isinstance(request.api_keys, Mapping) else {}

    resolved: dict[ProviderId, str] = {}
    for provider in PROVIDER_CONFIGS:
        key = caller.get(provider.value) or defaults.get(provider)
        if key:
            resolved[provider] = str(key)
    return resolved
