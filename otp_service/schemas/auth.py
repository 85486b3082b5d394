"""Authentication schemas."""
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from .common import BaseSchema
from ..models.user import UserRole


def _coerce_text(value: Any) -> Any:
    # Clients sometimes post the code as a JSON number
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class RegisterRequest(BaseSchema):
    """Registration request; presence is checked by the controller."""
    
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="User email address")


class LoginRequest(BaseSchema):
    """Login request schema."""
    
    email: Optional[str] = Field(None, description="User email address")


class VerifyOTPRequest(BaseSchema):
    """OTP verification request for registration and login."""
    
    email: Optional[str] = Field(None, description="User email address")
    otp: Optional[str] = Field(None, description="6-digit code")
    
    @field_validator("otp", mode="before")
    @classmethod
    def coerce_otp(cls, value: Any) -> Any:
        return _coerce_text(value)


class ProfileUpdate(BaseSchema):
    """Profile update schema."""
    
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="User email address")


class UserRecord(BaseSchema):
    """Internal user view, including the pending OTP.
    
    Never serialize this into a response; use `UserPublic`.
    """
    
    id: uuid.UUID
    name: str
    email: str
    otp_hash: Optional[str] = None
    otp_expires_at: Optional[datetime] = None
    role: UserRole = UserRole.USER
    is_active: bool = True
    is_verified: bool = False
    created_at: datetime
    updated_at: datetime
    
    @property
    def has_pending_otp(self) -> bool:
        return self.otp_hash is not None and self.otp_expires_at is not None


class UserPublic(BaseSchema):
    """User response schema; fields listed here are the only ones exposed."""
    
    id: uuid.UUID = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="User email address")
    role: UserRole = Field(..., description="User role")
    is_active: bool = Field(..., description="User active status")
    is_verified: bool = Field(..., description="Email verification status")
    created_at: datetime = Field(..., description="Account creation time")
    updated_at: datetime = Field(..., description="Account last update time")


class AuthResult(BaseSchema):
    """Outcome of a successful authentication transition."""
    
    user: UserPublic = Field(..., description="User information")
    token: str = Field(..., description="Bearer access token")
