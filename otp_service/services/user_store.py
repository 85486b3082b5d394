"""Persistent user store.

Rows never leave this module: reads are converted to `UserRecord` (which
carries the pending OTP) and responses are built from `UserPublic` via
`to_public`, which copies an explicit allow-list of fields.
"""
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    DuplicateEmailError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ..models.user import User, UserRole
from ..schemas.auth import UserPublic, UserRecord

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}$")
NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 255

MUTABLE_FIELDS = frozenset({
    "name",
    "email",
    "otp_hash",
    "otp_expires_at",
    "role",
    "is_active",
    "is_verified",
})


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything stored is UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_public(record: UserRecord) -> UserPublic:
    """Project a record onto the public view."""
    return UserPublic(**record.model_dump(include=set(UserPublic.model_fields)))


def validate_user_fields(fields: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate and normalize user fields.

    With ``partial`` only the given fields are checked; otherwise name and
    email are required.
    """
    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise StoreError(f"Unknown user fields: {', '.join(sorted(unknown))}")

    values = dict(fields)

    if "name" in values or not partial:
        name = (values.get("name") or "").strip()
        if not name:
            raise ValidationError("Please provide a name")
        if len(name) > NAME_MAX_LENGTH:
            raise ValidationError("Name cannot be more than 50 characters")
        values["name"] = name

    if "email" in values or not partial:
        email = normalize_email(values.get("email") or "")
        if not email:
            raise ValidationError("Please provide an email")
        if len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
            raise ValidationError("Please provide a valid email")
        values["email"] = email

    if "role" in values:
        try:
            values["role"] = UserRole(values["role"]).value
        except ValueError:
            raise ValidationError("Invalid role")

    return values


class UserStore:
    """User persistence over an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Get user by email, case-insensitively."""
        stmt = select(User).where(User.email == normalize_email(email))
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return self._to_record(row) if row else None

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[UserRecord]:
        """Get user by ID."""
        row = await self.session.get(User, user_id)
        return self._to_record(row) if row else None

    async def create(self, fields: Dict[str, Any]) -> UserRecord:
        """Create new user."""
        values = validate_user_fields(fields)
        self._check_otp_pair(values.get("otp_hash"), values.get("otp_expires_at"))
        row = User(**values)

        self.session.add(row)
        await self._flush()

        logger.info("User created", user_id=str(row.id))
        return self._to_record(row)

    async def update(self, user_id: uuid.UUID, fields: Dict[str, Any]) -> UserRecord:
        """Apply the given fields to an existing user."""
        row = await self.session.get(User, user_id)
        if row is None:
            raise NotFoundError("User not found")

        values = validate_user_fields(fields, partial=True)
        self._check_otp_pair(
            values.get("otp_hash", row.otp_hash),
            values.get("otp_expires_at", row.otp_expires_at),
        )
        for key, value in values.items():
            setattr(row, key, value)

        await self._flush()
        return self._to_record(row)

    async def save(self, record: UserRecord) -> UserRecord:
        """Write every mutable field of a record back to its row."""
        fields = record.model_dump(include=set(MUTABLE_FIELDS))
        return await self.update(record.id, fields)

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateEmailError() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Commit failed", error=str(e))
            raise StoreError() from e

    async def rollback(self) -> None:
        await self.session.rollback()

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateEmailError() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Flush failed", error=str(e))
            raise StoreError() from e

    @staticmethod
    def _check_otp_pair(otp_hash: Optional[str], otp_expires_at: Optional[datetime]) -> None:
        if (otp_hash is None) != (otp_expires_at is None):
            raise StoreError("OTP hash and expiry must be set and cleared together")

    @staticmethod
    def _to_record(row: User) -> UserRecord:
        return UserRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            otp_hash=row.otp_hash,
            otp_expires_at=_as_utc(row.otp_expires_at),
            role=row.role,
            is_active=row.is_active,
            is_verified=row.is_verified,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )
