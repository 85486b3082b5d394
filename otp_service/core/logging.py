"""Logging configuration and utilities."""
import logging
import sys
from typing import Any, Dict

import structlog
from structlog.stdlib import LoggerFactory

from ..config import settings


def configure_logging():
    """Configure structured logging.
    
    JSON lines everywhere except local development, which gets the
    console renderer. Request-scoped values bound with
    `structlog.contextvars` are merged into every event.
    """
    if settings.environment == "development" and sys.stdout.isatty():
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()
    
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.monitoring.log_level.upper()),
    )
    
    # Quiet third-party loggers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(logging.WARNING)


class RequestLogger:
    """Request logging utility.
    
    `bind` attaches the request id to every event logged while the
    request is handled; `clear` drops it again.
    """
    
    @staticmethod
    def bind(request_id: str, method: str, path: str) -> None:
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=method, path=path
        )
    
    @staticmethod
    def clear() -> None:
        structlog.contextvars.clear_contextvars()
    
    @staticmethod
    def log_request(extra_data: Dict[str, Any] = None):
        structlog.get_logger("api.request").info(
            "Request started", **(extra_data or {})
        )
    
    @staticmethod
    def log_response(status_code: int, response_time_ms: float):
        structlog.get_logger("api.response").info(
            "Request completed",
            status_code=status_code,
            response_time_ms=round(response_time_ms, 2)
        )


class SecurityLogger:
    """Authentication event logging.
    
    Codes are never passed here, only their outcome.
    """
    
    auth = structlog.get_logger("security.auth")
    access = structlog.get_logger("security.access")
    
    @classmethod
    def log_registration(cls, email: str, user_id: str, refreshed: bool):
        cls.auth.info(
            "Registration OTP issued",
            event_type="registration",
            email=email,
            user_id=user_id,
            refreshed=refreshed
        )
    
    @classmethod
    def log_otp_issued(cls, email: str, user_id: str, purpose: str, expires_at: str):
        cls.auth.info(
            "OTP issued",
            event_type="otp_issued",
            email=email,
            user_id=user_id,
            purpose=purpose,
            expires_at=expires_at
        )
    
    @classmethod
    def log_otp_verification(
        cls,
        email: str,
        purpose: str,
        success: bool,
        failure_reason: str = None
    ):
        """Log OTP verification outcome; failures go out as warnings."""
        log = cls.auth.info if success else cls.auth.warning
        log(
            "OTP verification",
            event_type="otp_verification",
            email=email,
            purpose=purpose,
            success=success,
            failure_reason=failure_reason
        )
    
    @classmethod
    def log_login_attempt(cls, email: str, success: bool, failure_reason: str = None):
        cls.auth.info(
            "Login attempt",
            event_type="login_attempt",
            email=email,
            success=success,
            failure_reason=failure_reason
        )
    
    @classmethod
    def log_unauthorized_access(
        cls,
        path: str,
        method: str,
        ip_address: str = None,
        user_agent: str = None,
        reason: str = None
    ):
        """Log rejected access to a protected route."""
        cls.access.warning(
            "Unauthorized access attempt",
            event_type="unauthorized_access",
            path=path,
            method=method,
            ip_address=ip_address,
            user_agent=user_agent,
            reason=reason
        )
