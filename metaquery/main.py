import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from metaquery.api.v1.query import router as query_router
from metaquery.core.config import settings, validate_settings_for_production
from metaquery.core.exceptions import AppError
from metaquery.core.logging import setup_logging
from metaquery.core.metrics import PrometheusMiddleware, metrics_response
from metaquery.core.sentry import init_sentry

# Configure logging before anything else
setup_logging()
init_sentry()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    configured = [p.value for p, key in settings.default_api_keys().items() if key]
    logger.info("Starting LLM meta-query gateway", extra={"context": {"defaultProviders": configured}})

    yield

    logger.info("LLM meta-query gateway shut down")


app = FastAPI(
    title="LLM Meta-Query",
    description="Query multiple LLM providers in parallel and combine their structured answers",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.app_debug else None,
    redoc_url="/api/redoc" if settings.app_debug else None,
)


def _error_body(message: str, details: dict | None = None) -> dict:
    body: dict = {"error": message}
    if details:
        body["details"] = details
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return body


@app.exception_handler(AppError)
async def _app_error_handler(request: Request, exc: AppError):
    logger.error(exc.message, extra={"context": {"status": exc.status_code, "details": exc.details}})
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.details))


@app.exception_handler(StarletteHTTPException)
async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Method not allowed. Use POST." if exc.status_code == 405 else str(exc.detail)
    logger.warning(message, extra={"context": {"status": exc.status_code, "path": request.url.path}})
    return JSONResponse(status_code=exc.status_code, content=_error_body(message), headers=exc.headers)


# Log unhandled exceptions; the client only sees a generic message
@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error(
        "Unhandled error",
        extra={"context": {"error": str(exc), "path": request.url.path, "stack": "".join(tb)}},
    )
    return JSONResponse(status_code=500, content=_error_body("Internal server error"))


# Request metrics middleware
app.add_middleware(PrometheusMiddleware)

# CORS: parse allowed_origins from settings (comma-separated)
_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(query_router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()
