"""Error taxonomy for account operations and its mapping to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from accounts.app.core.config import settings

logger = logging.getLogger(__name__)


class AccountError(Exception):
    """Base class for expected failures of an account operation."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AccountError):
    """Missing or malformed input, weak password."""
    status_code = 400


class ConflictError(AccountError):
    """Email already registered."""
    status_code = 400


class AuthenticationError(AccountError):
    """Bad credentials, unverified account, invalid or expired secret."""
    status_code = 401


class NotFoundError(AccountError):
    status_code = 404


class DeliveryError(AccountError):
    """The notifier could not deliver a message."""
    status_code = 500


class ServerFault(AccountError):
    status_code = 500


def _envelope(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _envelope(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return _envelope(400, ", ".join(messages) or "Invalid request")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.is_production:
        return _envelope(500, "Server Error")
    return _envelope(500, "Server Error", type=type(exc).__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Install the envelope-producing handlers on the application."""
    app.add_exception_handler(AccountError, account_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
