from typing import Any

from pydantic import BaseModel, Field


class QueryRequestBody(BaseModel):
    """Documented shape of the inbound body; validation itself is done by the gateway."""

    query: str = Field(min_length=1, examples=["What is the capital of France?"])
    schema_: dict[str, Any] | None = Field(None, alias="schema")
    apiKeys: dict[str, str] | None = None


class ProviderResult(BaseModel):
    provider: str
    success: bool
    data: Any | None = None
    error: str | None = None
    latency: int = Field(ge=0, description="Milliseconds")


class QueryResponse(BaseModel):
    query: str
    responses: list[ProviderResult]
    totalLatency: int = Field(ge=0, description="Milliseconds")
    timestamp: str
    providersQueried: int


class ErrorResponse(BaseModel):
    error: str
    details: dict[str, Any] | None = None
    timestamp: str


class HealthResponse(BaseModel):
    status: str
    providers: list[str]
