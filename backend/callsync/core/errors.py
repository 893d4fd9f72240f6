"""Error taxonomy for the sync pipeline and the handlers that render it.

Every error carries the HTTP status it maps to and a message that is safe to
return to the caller. Anything outside this taxonomy is logged at the ingress
boundary and replaced by :class:`UnexpectedError`.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CallSyncError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict:
        body: dict = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(CallSyncError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthError(CallSyncError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class ConfigurationError(CallSyncError):
    default_message = "Server misconfigured"


class UpstreamFetchError(CallSyncError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.upstream_status = status_code
        self.url = url


class StorageWriteError(CallSyncError):
    default_message = "Failed to store call records"


class UnexpectedError(CallSyncError):
    default_message = "Server error"


async def call_sync_error_handler(request: Request, exc: CallSyncError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": details},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CallSyncError, call_sync_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
