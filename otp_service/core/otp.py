"""One-time password generation, hashing and expiry."""
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import bcrypt

from ..config import settings

OTP_LENGTH = 6
OTP_MIN = 10 ** (OTP_LENGTH - 1)
OTP_MAX = 10 ** OTP_LENGTH - 1


class OTPPurpose(str, Enum):
    """What an issued code authorizes."""

    VERIFICATION = "verification"
    LOGIN = "login"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_otp() -> str:
    """Generate a 6-digit numeric OTP in [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def hash_otp(code: str) -> str:
    """Hash OTP using bcrypt with a fresh salt."""
    salt = bcrypt.gensalt(rounds=settings.otp.hash_rounds)
    return bcrypt.hashpw(code.encode("utf-8"), salt).decode("utf-8")


def verify_otp(code: Optional[str], otp_hash: Optional[str]) -> bool:
    """Verify OTP against stored hash.

    Returns False for an absent hash, an empty code or a malformed hash.
    """
    if not otp_hash or not code:
        return False

    try:
        return bcrypt.checkpw(code.encode("utf-8"), otp_hash.encode("utf-8"))
    except ValueError:
        return False


def otp_expiry(now: Optional[datetime] = None) -> datetime:
    """Expiry timestamp for a code issued at `now`."""
    issued_at = now or utcnow()
    return issued_at + timedelta(minutes=settings.otp.expire_minutes)


def is_otp_expired(
    expires_at: Optional[datetime],
    now: Optional[datetime] = None
) -> bool:
    """A code is expired strictly after its expiry timestamp."""
    if expires_at is None:
        return True
    return (now or utcnow()) > expires_at
