"""Pydantic schemas module."""
from .auth import (
    RegisterRequest,
    LoginRequest,
    VerifyOTPRequest,
    ProfileUpdate,
    UserRecord,
    UserPublic,
    AuthResult,
)
from .common import APIResponse

__all__ = [
    # Auth
    "RegisterRequest",
    "LoginRequest",
    "VerifyOTPRequest",
    "ProfileUpdate",
    "UserRecord",
    "UserPublic",
    "AuthResult",
    # Common
    "APIResponse",
]
