"""Application errors rendered as client-facing JSON by the API layer."""

from typing import Any


class AppError(Exception):
    """Base error carrying an HTTP status and a client-safe message."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Request tier: reported once, no provider is dispatched
# ---------------------------------------------------------------------------


class QueryRequestError(AppError):
    status_code = 400
    message = "Bad request"


class InvalidJSON(QueryRequestError):
    message = "Invalid JSON in request body"


class InvalidPayload(QueryRequestError):
    message = "Invalid request body"


class MissingField(QueryRequestError):
    message = "Missing required field: query"


class EmptyQuery(QueryRequestError):
    message = "Query cannot be empty"


class NoProvidersAvailable(QueryRequestError):
    message = "No API keys provided. Include apiKeys in request body or configure environment variables."


# ---------------------------------------------------------------------------
# Dispatch tier
# ---------------------------------------------------------------------------


class DispatchError(AppError):
    """The concurrent join itself failed; details stay in the logs."""

    status_code = 500
    message = "Failed to query LLMs"
