"""User model."""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserRole(str, Enum):
    """User roles."""
    
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """User account with the currently pending OTP."""
    
    __tablename__ = "users"
    
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    
    # Pending OTP; both set or both null
    otp_hash: Mapped[Optional[str]] = mapped_column(String(255))
    otp_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER.value, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(default=False, nullable=False)
    
    def __repr__(self) -> str:
        return f"<User(email={self.email}, role={self.role})>"
