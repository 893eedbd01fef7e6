import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs one line per response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else None,
        }
        # uploads can be large; the declared size makes slow requests easy to explain
        declared = request.headers.get("content-length", "")
        if declared.isdigit():
            context["content_length"] = int(declared)

        try:
            response = await call_next(request)
        except Exception as exc:
            context["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.error(f"[{request_id}] {route} - ERROR: {exc}", extra=context)
            raise

        context["status_code"] = response.status_code
        context["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, f"[{request_id}] {route} - {response.status_code} ({context['duration_ms']}ms)", extra=context)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
