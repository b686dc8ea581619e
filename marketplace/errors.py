from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.logging import get_logger
from marketplace.observability import API_ERRORS

logger = get_logger(__name__)

SERVER_ERROR_MESSAGE = "Server error"


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Validation errors", errors: list[dict] | None = None):
        super().__init__(status_code=400, detail=detail)
        self.errors = errors or []


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=403, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=409, detail=detail)


class InternalError(HTTPException):
    def __init__(self, detail: str = SERVER_ERROR_MESSAGE):
        super().__init__(status_code=500, detail=detail)


def error_body(message: str, errors: list | None = None) -> dict:
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    API_ERRORS.labels(status_code=str(exc.status_code)).inc()
    if exc.status_code >= 500:
        # Detail of internal failures never reaches the client.
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.detail)
        message = SERVER_ERROR_MESSAGE
    else:
        message = str(exc.detail)
    errors = getattr(exc, "errors", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, errors),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    API_ERRORS.labels(status_code="400").inc()
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in jsonable_encoder(exc.errors())
    ]
    return JSONResponse(status_code=400, content=error_body("Validation errors", errors))


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    API_ERRORS.labels(status_code="500").inc()
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body(SERVER_ERROR_MESSAGE))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
