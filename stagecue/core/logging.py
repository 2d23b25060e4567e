import logging
import sys
import time
import json
import os
import requests
from typing import Optional, Callable
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError

from stagecue.core.errors import (
    AlreadyExecutingError,
    InvalidStateError,
    NotFoundError,
    TransportError,
)

# Container-optimized logging setup
LOG_LEVEL = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper())

logging.basicConfig(
    stream=sys.stdout,
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s"
)

logger = logging.getLogger("stagecue")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request to stdout with its outcome and duration.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Unhandled exception in %s %s: %s: %s",
                request.method,
                request.url.path,
                type(e).__name__,
                str(e),
                exc_info=True
            )
            raise

        duration = time.time() - start_time

        if response.status_code >= 400:
            error_details = getattr(request.state, 'user_facing_error', None)
            if error_details is None:
                error_details = await self._extract_error_details(response)

            logger.error(
                "Error %d on %s %s (%.3fs): %s",
                response.status_code,
                request.method,
                request.url.path,
                duration,
                error_details or "No details"
            )
        else:
            logger.info(
                "%s %s -> %d (%.3fs)",
                request.method,
                request.url.path,
                response.status_code,
                duration
            )

        return response

    async def _extract_error_details(self, response: Response) -> Optional[str]:
        """Extract the problem detail from a buffered response body"""
        try:
            if hasattr(response, 'body') and response.body:
                body_text = response.body.decode('utf-8')
                try:
                    body_json = json.loads(body_text)
                    return body_json.get('detail', body_text[:200])
                except json.JSONDecodeError:
                    return body_text[:200]
        except (UnicodeDecodeError, AttributeError):
            pass
        return None


def _problem(request: Request, status_code: int, title: str, detail) -> JSONResponse:
    request.state.user_facing_error = detail
    body = {
        "type": "about:blank",
        "title": title,
        "status": status_code,
        "detail": detail,
        "instance": str(request.url),
    }
    return JSONResponse(body, status_code=status_code, media_type="application/problem+json")


def install_error_handlers(app: FastAPI):
    """
    Install RFC 7807 Problem Details error handlers.

    Engine errors map onto HTTP semantics: a running cue is a 409 conflict,
    missing cues/devices/presets are 404, invalid cue state is 400 and a
    device that cannot be reached on a direct request is 503.

    Args:
        app: The FastAPI application instance to configure
    """
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        return _problem(request, exc.status_code, "HTTP Error", exc.detail)

    @app.exception_handler(AlreadyExecutingError)
    async def conflict_handler(request: Request, exc: AlreadyExecutingError):
        return _problem(request, 409, "Conflict", str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _problem(request, 404, "Not Found", str(exc))

    @app.exception_handler(InvalidStateError)
    async def invalid_state_handler(request: Request, exc: InvalidStateError):
        return _problem(request, 400, "Invalid State", str(exc))

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        logger.warning("Device %s request failed: %s", exc.device_id, exc)
        return _problem(request, 503, "Device Unavailable", str(exc))

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.warning("Validation failed: %s", exc)
        return _problem(
            request, 422, "Validation Error",
            "The request data failed validation. Please check your input."
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _problem(request, 400, "Invalid Request", str(exc))

    @app.exception_handler(requests.RequestException)
    async def request_exception_handler(request: Request, exc: requests.RequestException):
        logger.warning("Device request failed: %s", exc)
        return _problem(
            request, 503, "External Service Error",
            "Device unavailable. Please try again later."
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error: %s", exc)
        return _problem(
            request, 500, "Database Error",
            "A database error occurred. Please try again or contact support."
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unexpected %s: %s", type(exc).__name__, exc)
        return _problem(
            request, 500, "Internal Server Error",
            "An unexpected error occurred. Please try again or contact support."
        )
