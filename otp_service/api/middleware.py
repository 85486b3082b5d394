"""API middleware and error handlers producing the response envelope."""
import time
import uuid
from typing import Any, Callable, Dict, Optional

import structlog
from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.exceptions import BaseAPIException
from ..core.logging import RequestLogger
from ..config import settings

logger = structlog.get_logger("api.error")


def error_response(
    status_code: int,
    message: str,
    error_code: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """Failure envelope; `data` is never set on errors."""
    content = {
        "success": False,
        "message": message,
        "error_code": error_code,
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def api_exception_handler(request: Request, exc: BaseAPIException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            path=str(request.url.path),
            error_code=exc.error_code,
            error=exc.message
        )
    return error_response(exc.status_code, exc.message, exc.error_code, exc.details)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(
        exc.status_code,
        str(exc.detail),
        "HTTP_EXCEPTION",
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    details = {"errors": jsonable_encoder(exc.errors())} if settings.debug else None
    return error_response(400, "Invalid request body", "VALIDATION_ERROR", details)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the log context and logs each request."""
    
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        RequestLogger.bind(request_id, request.method, str(request.url.path))
        
        start_time = time.perf_counter()
        RequestLogger.log_request(
            extra_data={
                "client_ip": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent")
            }
        )
        
        try:
            response = await call_next(request)
            RequestLogger.log_response(
                status_code=response.status_code,
                response_time_ms=(time.perf_counter() - start_time) * 1000
            )
        finally:
            RequestLogger.clear()
        
        response.headers["X-Request-ID"] = request_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns unexpected exceptions into an opaque 500 envelope."""
    
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        
        except BaseAPIException as e:
            return await api_exception_handler(request, e)
        
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=str(request.url.path),
                method=request.method
            )
            return error_response(
                500,
                "Server Error",
                "INTERNAL_ERROR",
                {"message": str(e)} if settings.debug else None
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to responses."""
    
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        
        return response
