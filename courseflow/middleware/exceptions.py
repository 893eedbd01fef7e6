from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from courseflow.core.config import settings
from courseflow.schemas.response import ErrorResponse, ErrorDetail
from datetime import datetime, timezone
import logging
import uuid

logger = logging.getLogger(__name__)

def _get_error_code(status_code: int) -> str:
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_FAILED",
        500: "INTERNAL_SERVER_ERROR",
        503: "STORAGE_UNAVAILABLE",
    }
    return code_map.get(status_code, f"HTTP_{status_code}")

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _render(request: Request, status_code: int, detail: ErrorDetail, headers=None) -> JSONResponse:
    error_response = ErrorResponse(
        error=detail,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
        request_id=_request_id(request),
    )
    content = error_response.model_dump()
    if content["error"]["details"] is None:
        del content["error"]["details"]
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content), headers=headers)

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _request_id(request)
    logger.warning(f"[{request_id}] Validation error: {exc.errors()}", extra={"request_id": request_id})
    return _render(
        request,
        422,
        ErrorDetail(
            code="VALIDATION_FAILED",
            message="Request validation failed",
            details={"validation_errors": jsonable_encoder(exc.errors())},
        ),
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    request_id = _request_id(request)
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(log_level, f"[{request_id}] HTTP {exc.status_code}: {exc.detail}", extra={"request_id": request_id})
    return _render(
        request,
        exc.status_code,
        ErrorDetail(
            code=_get_error_code(exc.status_code),
            message=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        ),
        headers=getattr(exc, "headers", None),
    )

async def global_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, HTTPException):
        return await http_exception_handler(request, exc)

    request_id = _request_id(request)
    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True, extra={"request_id": request_id})
    details = {"error_type": type(exc).__name__, "error": str(exc)} if settings.EXPOSE_ERROR_DETAILS else None
    return _render(
        request,
        500,
        ErrorDetail(code="INTERNAL_SERVER_ERROR", message="An unexpected error occurred", details=details),
    )
