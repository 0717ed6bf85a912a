"""Query API: fan one question out to every configured LLM provider."""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from metaquery.core.dependencies import get_gateway
from metaquery.core.exceptions import InvalidJSON
from metaquery.gateway.gateway import QueryGateway
from metaquery.gateway.types import AggregatedResult
from metaquery.schemas.query import ErrorResponse, HealthResponse, QueryRequestBody, QueryResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["query"])

_QUERY_DOCS = {
    "response_model": QueryResponse,
    "responses": {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    "openapi_extra": {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": QueryRequestBody.model_json_schema(by_alias=True)}},
        }
    },
}


class _QueryJSONResponse(JSONResponse):
    # Escape non-ASCII so a query echoed back with lone surrogates still encodes
    def render(self, content) -> bytes:
        return json.dumps(content, ensure_ascii=True, allow_nan=False, separators=(",", ":")).encode("utf-8")


def _success_response(result: AggregatedResult) -> JSONResponse:
    logger.info(
        "Request completed successfully",
        extra={
            "context": {
                "query": result.query[:100],
                "providersQueried": result.providers_queried,
                "totalLatency": result.total_latency_ms,
            }
        },
    )
    return _QueryJSONResponse(
        content=result.to_dict(),
        headers={"Access-Control-Allow-Origin": "*"},
    )


async def _run_query(request: Request, gateway: QueryGateway) -> JSONResponse:
    logger.info("Received request", extra={"context": {"method": request.method, "url": str(request.url)}})

    raw = await request.body()
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise InvalidJSON(details={"parseError": str(e)}) from e

    result = await gateway.handle(payload)
    return _success_response(result)


@router.post("/", **_QUERY_DOCS)
async def query_root(request: Request, gateway: QueryGateway = Depends(get_gateway)):
    """Query all providers (root alias of ``/api/v1/query``)."""
    return await _run_query(request, gateway)


@router.post("/api/v1/query", **_QUERY_DOCS)
async def query_providers(request: Request, gateway: QueryGateway = Depends(get_gateway)):
    """Query every provider that has an API key and return the combined result.

    Keys come from ``apiKeys`` in the body, falling back per provider to the
    server's environment. Individual provider failures are reported inside
    ``responses``; the request itself only fails on bad input or when no
    provider has a key.
    """
    return await _run_query(request, gateway)


@router.get("/api/v1/health", response_model=HealthResponse)
async def health(gateway: QueryGateway = Depends(get_gateway)):
    return {"status": "ok", "providers": gateway.configured_providers}
