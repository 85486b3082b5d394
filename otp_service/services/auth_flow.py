"""Registration and login flows driven by email one-time passwords."""
import uuid
from datetime import datetime
from typing import Callable, Optional

from starlette.concurrency import run_in_threadpool

from ..core.auth import TokenIssuer
from ..core.exceptions import (
    AccountStateError,
    DeliveryError,
    InvalidCredentialError,
    NotFoundError,
    OTPStateError,
    ValidationError,
)
from ..core.logging import SecurityLogger
from ..core.otp import (
    OTPPurpose,
    generate_otp,
    hash_otp,
    is_otp_expired,
    otp_expiry,
    utcnow,
    verify_otp,
)
from ..schemas.auth import AuthResult, UserPublic, UserRecord
from .notification import NotificationSender
from .user_store import UserStore, to_public


async def issue_otp(
    record: UserRecord,
    code: str,
    now: Optional[datetime] = None
) -> UserRecord:
    """Hash a code and attach it to a record as the pending OTP."""
    otp_hash = await run_in_threadpool(hash_otp, code)
    record.otp_hash = otp_hash
    record.otp_expires_at = otp_expiry(now)
    return record


def clear_otp(record: UserRecord) -> UserRecord:
    """Consume the pending OTP."""
    record.otp_hash = None
    record.otp_expires_at = None
    return record


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class AuthFlowController:
    """Orchestrates the OTP lifecycle against the store and the sender.

    Every verification walks the same checks in a fixed order: account
    existence, account state (where applicable), OTP presence, OTP expiry
    and finally the OTP match. The first failing check decides the error.

    Codes are persisted before they are sent but only committed once
    delivery succeeded; a failed delivery rolls the transaction back so a
    previously pending code stays usable.
    """

    def __init__(
        self,
        store: UserStore,
        sender: NotificationSender,
        token_issuer: TokenIssuer,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.sender = sender
        self.token_issuer = token_issuer
        self.clock = clock or utcnow

    async def register(self, name: Optional[str], email: Optional[str]) -> str:
        """Create or refresh an unverified user and send a verification code."""
        if not _present(name) or not _present(email):
            raise ValidationError("Please provide name and email")

        existing = await self.store.find_by_email(email)
        if existing and existing.is_verified:
            raise ValidationError("User already exists and is verified")

        code = generate_otp()

        if existing:
            existing.name = name
            user = await self.store.save(
                await issue_otp(existing, code, self.clock())
            )
        else:
            otp_hash = await run_in_threadpool(hash_otp, code)
            user = await self.store.create({
                "name": name,
                "email": email,
                "otp_hash": otp_hash,
                "otp_expires_at": otp_expiry(self.clock()),
                "is_verified": False,
            })

        await self._deliver(user, code, OTPPurpose.VERIFICATION)

        SecurityLogger.log_registration(
            email=user.email,
            user_id=str(user.id),
            refreshed=existing is not None
        )
        return user.email

    async def verify_otp(self, email: Optional[str], otp: Optional[str]) -> AuthResult:
        """Complete registration with the verification code."""
        if not _present(email) or not _present(otp):
            raise ValidationError("Please provide email and OTP")

        user = await self.store.find_by_email(email)
        if not user:
            SecurityLogger.log_otp_verification(
                email=email,
                purpose=OTPPurpose.VERIFICATION.value,
                success=False,
                failure_reason="unknown_email"
            )
            raise InvalidCredentialError("Invalid email")

        await self._check_otp(user, otp, OTPPurpose.VERIFICATION)

        clear_otp(user)
        user.is_verified = True
        user = await self.store.save(user)
        await self.store.commit()

        return self._authenticated(user)

    async def login(self, email: Optional[str]) -> str:
        """Send a login code to a verified, active user."""
        if not _present(email):
            raise ValidationError("Please provide an email")

        user = await self.store.find_by_email(email)
        if not user:
            SecurityLogger.log_login_attempt(
                email=email, success=False, failure_reason="unknown_email"
            )
            raise InvalidCredentialError(
                "User not found. Please register first.", status_code=401
            )

        self._check_account_state(user)

        code = generate_otp()
        user = await self.store.save(
            await issue_otp(user, code, self.clock())
        )

        await self._deliver(user, code, OTPPurpose.LOGIN)

        SecurityLogger.log_login_attempt(email=user.email, success=True)
        return user.email

    async def verify_login_otp(
        self,
        email: Optional[str],
        otp: Optional[str]
    ) -> AuthResult:
        """Complete login with the login code."""
        if not _present(email) or not _present(otp):
            raise ValidationError("Please provide email and OTP")

        user = await self.store.find_by_email(email)
        if not user:
            SecurityLogger.log_otp_verification(
                email=email,
                purpose=OTPPurpose.LOGIN.value,
                success=False,
                failure_reason="unknown_email"
            )
            raise InvalidCredentialError("Invalid email")

        self._check_account_state(user)
        await self._check_otp(user, otp, OTPPurpose.LOGIN)

        clear_otp(user)
        user = await self.store.save(user)
        await self.store.commit()

        return self._authenticated(user)

    async def get_me(self, user: UserRecord) -> UserPublic:
        return to_public(user)

    async def update_profile(
        self,
        user_id: uuid.UUID,
        name: Optional[str] = None,
        email: Optional[str] = None
    ) -> UserPublic:
        """Apply the provided, non-empty profile fields."""
        fields = {}
        if name:
            fields["name"] = name
        if email:
            fields["email"] = email

        if not fields:
            user = await self.store.get_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found")
            return to_public(user)

        user = await self.store.update(user_id, fields)
        await self.store.commit()
        return to_public(user)

    def _check_account_state(self, user: UserRecord) -> None:
        if not user.is_verified:
            raise AccountStateError("Please verify your email first")
        if not user.is_active:
            raise AccountStateError("Account is deactivated")

    async def _check_otp(self, user: UserRecord, otp: str, purpose: OTPPurpose) -> None:
        label = "login OTP" if purpose == OTPPurpose.LOGIN else "OTP"

        if not user.has_pending_otp:
            reason, message = "missing", f"No OTP found. Please request a new {label}"
        elif is_otp_expired(user.otp_expires_at, self.clock()):
            reason, message = "expired", f"OTP has expired. Please request a new {label}"
        elif not await run_in_threadpool(verify_otp, otp, user.otp_hash):
            reason, message = "mismatch", "Invalid OTP"
        else:
            SecurityLogger.log_otp_verification(
                email=user.email, purpose=purpose.value, success=True
            )
            return

        SecurityLogger.log_otp_verification(
            email=user.email,
            purpose=purpose.value,
            success=False,
            failure_reason=reason
        )
        raise OTPStateError(message)

    async def _deliver(self, user: UserRecord, code: str, purpose: OTPPurpose) -> None:
        try:
            await self.sender.send(user.email, code, purpose)
        except DeliveryError:
            await self.store.rollback()
            raise

        await self.store.commit()
        SecurityLogger.log_otp_issued(
            email=user.email,
            user_id=str(user.id),
            purpose=purpose.value,
            expires_at=user.otp_expires_at.isoformat()
        )

    def _authenticated(self, user: UserRecord) -> AuthResult:
        token = self.token_issuer.issue(user.id)
        return AuthResult(user=to_public(user), token=token)
