"""
Error taxonomy and the handlers that render it.

Every business error is an ``HTTPException`` so routers can keep re-raising
``HTTPException`` untouched while wrapping unexpected failures.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.message
        self.errors = errors
        super().__init__(status_code=self.status_code, detail=self.message, headers=headers)


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls(message, errors=[{"field": field, "message": message}])


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Not authorized to perform this action"


class AccountBlocked(Forbidden):
    message = "Account is not active"

    def __init__(self, account_status: Optional[str] = None):
        message = None
        if account_status:
            message = f"Account is {account_status}. Please contact support."
        super().__init__(message)


class SelfDeletionForbidden(Forbidden):
    message = "Cannot delete your own account through admin panel"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "Resource already exists"


class DuplicateLike(Conflict):
    message = "You have already liked this post"


class LikeNotFound(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "You have not liked this post"


class InternalFailure(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"


def error_body(message: str, errors: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_errors(raw_errors) -> List[Dict[str, str]]:
    errors = []
    for err in raw_errors:
        # Drop the "body"/"query"/"path" location prefix FastAPI adds
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        errors.append({"field": ".".join(loc) or "request", "message": err.get("msg", "Invalid value")})
    return errors


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.errors),
        headers=exc.headers,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, AppError):
        return await app_error_handler(request, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", _field_errors(exc.errors())),
    )


async def pydantic_validation_handler(request: Request, exc: PydanticValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", _field_errors(exc.errors())),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(InternalFailure.message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PydanticValidationError, pydantic_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
