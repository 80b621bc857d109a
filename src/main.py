"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.api import admin, inventory, usage
from src.config import get_settings
from src.logging_utils import configure_logging, request_id_var
from src.services.errors import AppError, InvalidInput, StorageError, classify_error
from src.services.llm import LLMService
from src.services.opik_spans import OpikSpansClient
from src.services.tracing import build_tracer

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("homecuistot.access")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build process-lifetime clients on startup and release them on shutdown."""
    app.state.llm_service = LLMService(settings)
    app.state.tracer = build_tracer(settings)
    app.state.opik_spans = OpikSpansClient(settings)
    logger.info(f"Starting HomeCuistot API ({settings.environment})")
    yield
    await app.state.llm_service.aclose()
    await app.state.opik_spans.aclose()
    app.state.tracer.flush()


app = FastAPI(
    title="HomeCuistot Inventory API",
    description="Pantry inventory with natural-language and voice updates",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_request_response(request: Request, call_next):
    """Assign a request id and log method, path, status and duration."""
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    request.state.request_id = request_id
    token = request_id_var.set(request_id)
    start = perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = (perf_counter() - start) * 1000
        access_logger.exception(
            "HTTP %s %s status=500 duration_ms=%.2f",
            request.method,
            request.url.path,
            duration_ms,
        )
        raise
    finally:
        request_id_var.reset(token)

    duration_ms = (perf_counter() - start) * 1000
    response.headers.setdefault("X-Request-ID", request_id)
    access_logger.info(
        "HTTP %s %s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        extra={"request_id": request_id},
    )
    return response


def _error_response(request: Request, exc: AppError) -> JSONResponse:
    logger.warning(
        "%s on %s %s: %s",
        exc.category,
        request.method,
        request.url.path,
        exc.message,
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "user_id": getattr(request.state, "user_id", None),
        },
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.__cause__ is not None:
        logger.info(
            f"{exc.category} caused by {exc.__cause__!r} "
            f"(user_id={getattr(request.state, 'user_id', None)})"
        )
    return _error_response(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return _error_response(request, InvalidInput("Invalid request", details=details))


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(
        f"Database error on {request.method} {request.url.path} "
        f"(user_id={getattr(request.state, 'user_id', None)})",
        exc_info=exc,
    )
    return _error_response(request, StorageError())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path} "
        f"(user_id={getattr(request.state, 'user_id', None)})",
        exc_info=exc,
    )
    return _error_response(request, classify_error(exc))


# Register routers
app.include_router(inventory.router)
app.include_router(usage.router)
app.include_router(admin.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
