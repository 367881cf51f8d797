"""Client-facing error catalog and the {code, message, data} error envelope."""
import enum
import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

log = logging.getLogger("uvicorn.error")


class ErrorCode(int, enum.Enum):
    INVALID_REQUEST_PAYLOAD = 1001
    DATABASE_QUERY_FAILED = 1002
    DATABASE_UPDATE_FAILED = 1003
    DATABASE_CREATE_FAILED = 1004
    INVALID_OTP = 1005
    USER_ALREADY_EXISTS = 1006
    HASHING_FAILED = 1007
    USER_NOT_FOUND = 1008
    INVALID_CREDENTIALS = 1009
    TOKEN_GENERATION_FAILED = 1010
    UNAUTHORIZED = 1011
    BAD_REQUEST = 1012


_ERROR_TEXT = {
    ErrorCode.INVALID_REQUEST_PAYLOAD: "Invalid request payload",
    ErrorCode.DATABASE_QUERY_FAILED: "Failed to query database",
    ErrorCode.DATABASE_UPDATE_FAILED: "Failed to update database",
    ErrorCode.DATABASE_CREATE_FAILED: "Failed to create record in database",
    ErrorCode.INVALID_OTP: "Invalid OTP",
    ErrorCode.USER_ALREADY_EXISTS: "User already exists",
    ErrorCode.HASHING_FAILED: "Error while parsing password",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorCode.TOKEN_GENERATION_FAILED: "Error while generating token",
    ErrorCode.UNAUTHORIZED: "Unauthorized",
    ErrorCode.BAD_REQUEST: "Bad request",
}


def error_text(code: int) -> str:
    try:
        return _ERROR_TEXT[ErrorCode(code)]
    except ValueError:
        return "Unknown error"


def error_body(code: int, message: str | None = None, data: Any = None) -> dict:
    return {"code": int(code), "message": message or error_text(code), "data": data}


class APIError(HTTPException):
    """HTTPException carrying a catalog code; rendered as {code, message, data}."""

    status_code = 400
    default_code = ErrorCode.BAD_REQUEST

    def __init__(self, code: int | None = None, message: str | None = None, data: Any = None, status_code: int | None = None):
        self.code = int(code if code is not None else self.default_code)
        self.message = message or error_text(self.code)
        self.data = data
        super().__init__(status_code=status_code or type(self).status_code, detail=self.message)


class ValidationError(APIError):
    status_code = 400
    default_code = ErrorCode.INVALID_REQUEST_PAYLOAD


class ConflictError(APIError):
    status_code = 409
    default_code = ErrorCode.USER_ALREADY_EXISTS


class AuthError(APIError):
    status_code = 401
    default_code = ErrorCode.UNAUTHORIZED


class ForbiddenError(APIError):
    status_code = 403
    default_code = ErrorCode.UNAUTHORIZED


class NotFoundError(APIError):
    status_code = 404
    default_code = ErrorCode.BAD_REQUEST


class StorageError(APIError):
    status_code = 500
    default_code = ErrorCode.DATABASE_QUERY_FAILED


class HashingError(APIError):
    status_code = 500
    default_code = ErrorCode.HASHING_FAILED


def _validation_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        if err.get("type") == "missing":
            messages.append(f"Field '{field}' is required")
        else:
            messages.append(f"Field '{field}': {err.get('msg', 'invalid value')}")
    return messages


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError):
        if exc.status_code >= 500:
            log.error("%s %s -> %s code=%s %s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message, exc.data))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error_body(ErrorCode.INVALID_REQUEST_PAYLOAD, data=_validation_messages(exc)),
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_storage_error(request: Request, exc: SQLAlchemyError):
        log.exception("Unhandled database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content=error_body(ErrorCode.DATABASE_QUERY_FAILED))
