import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from siva_orders.config import settings
from siva_orders.errors import OrderNotFound, StoreError

logger = logging.getLogger(__name__)


def failure(status_code: int, message: str, exc: Optional[BaseException] = None) -> HTTPException:
    """HTTPException carrying the envelope error; raw error text is added outside production."""
    detail = {"error": message}
    if exc is not None and not settings.is_production:
        detail["details"] = str(exc)
    return HTTPException(status_code=status_code, detail=detail)


def envelope(status_code: int, message: str, details: Optional[str] = None) -> JSONResponse:
    body = {"success": False, "error": message}
    if details is not None and not settings.is_production:
        body["details"] = details
    return JSONResponse(body, status_code=status_code)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict):
            return JSONResponse({"success": False, **exc.detail}, status_code=exc.status_code)
        return JSONResponse({"success": False, "error": str(exc.detail)}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning("Rejected request %s %s: %s", request.method, request.url.path, message)
        return envelope(400, message, str(exc.errors()))

    @app.exception_handler(OrderNotFound)
    async def not_found(request: Request, exc: OrderNotFound):
        return envelope(404, exc.message)

    @app.exception_handler(StoreError)
    async def store_error(request: Request, exc: StoreError):
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc.message)
        return envelope(500, "Record store request failed", exc.message)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        return envelope(500, "Internal server error", str(exc))
