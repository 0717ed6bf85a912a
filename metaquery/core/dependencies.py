from functools import lru_cache

from metaquery.core.config import settings
from metaquery.gateway.gateway import QueryGateway


@lru_cache
def get_gateway() -> QueryGateway:
    """Process-wide gateway built from settings; overridable in tests."""
    return QueryGateway(
        default_api_keys=settings.default_api_keys(),
        timeout=settings.provider_timeout_seconds,
    )
