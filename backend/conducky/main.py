import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import dispose_engine
from .dependencies import get_db
from .errors import (
    AppError,
    ConflictError,
    InternalError,
    RateLimitExceededError,
    ValidationError,
    error_payload,
    resolve_error_code,
)
from .routers import auth, comments, notifications, reports

logger = logging.getLogger("conducky")

ROUTERS = (auth.router, reports.router, comments.router, notifications.router)

# Client-facing text for bare HTTP errors; the raw detail is only logged.
SAFE_HTTP_MESSAGES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "Invalid request",
    status.HTTP_401_UNAUTHORIZED: "Authentication failed",
    status.HTTP_403_FORBIDDEN: "Insufficient permissions",
    status.HTTP_404_NOT_FOUND: "Resource not found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
    status.HTTP_409_CONFLICT: "Resource conflict",
    status.HTTP_429_TOO_MANY_REQUESTS: RateLimitExceededError.message,
}


def configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app_starting name=%s", settings.app_name)
    if settings.debug:
        logger.warning("DEBUG=true, do not use in production")
    try:
        yield
    finally:
        await dispose_engine()
        logger.info("app_stopped")


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    *,
    exc: Exception | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    log_line = "request_failed code=%s status=%d path=%s request_id=%s message=%r"
    log_args = (
        code,
        status_code,
        request.url.path,
        request.headers.get("x-request-id", "n/a"),
        message,
    )
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(log_line, *log_args, exc_info=exc)
    else:
        logger.warning(log_line, *log_args)
    return JSONResponse(
        status_code=status_code,
        content=error_payload(code, message, details),
        headers=headers,
    )


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitExceededError) and isinstance(exc.details, dict):
        retry_after = exc.details.get("retry_after_seconds")
        if retry_after:
            headers = {"Retry-After": str(retry_after)}
    return _error_response(
        request, exc.status_code, exc.code, exc.message, exc.details, exc=exc, headers=headers
    )


async def handle_http_exception(
    request: Request, exc: HTTPException | StarletteHTTPException
) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        message = InternalError.message
    else:
        message = SAFE_HTTP_MESSAGES.get(exc.status_code, "Request failed")
    return _error_response(
        request,
        exc.status_code,
        resolve_error_code(exc.status_code),
        message,
        exc.detail if isinstance(exc.detail, (str, dict, list)) else None,
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ValidationError.code,
        "Request validation failed",
        exc.errors(),
    )


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    # Constraint text can leak schema details; keep it out of the response.
    return _error_response(
        request,
        status.HTTP_409_CONFLICT,
        ConflictError.code,
        "Request could not be completed due to a conflict",
        exc=exc,
    )


async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        InternalError.code,
        InternalError.message,
        exc=exc,
    )


async def healthcheck(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("healthcheck_failed probe=database", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"status": "error"}
        )
    return JSONResponse(status_code=status.HTTP_200_OK, content={"status": "ok"})


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=["*"],
    )

    for router in ROUTERS:
        app.include_router(router)
    app.add_api_route("/health", healthcheck, methods=["GET"], tags=["health"])

    handlers = (
        (AppError, handle_app_error),
        (HTTPException, handle_http_exception),
        (StarletteHTTPException, handle_http_exception),
        (RequestValidationError, handle_request_validation_error),
        (IntegrityError, handle_integrity_error),
        (Exception, handle_unhandled_exception),
    )
    for exc_class, handler in handlers:
        app.add_exception_handler(exc_class, handler)

    return app
