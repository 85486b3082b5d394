"""OTP notification delivery."""
import smtplib
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

import structlog
from starlette.concurrency import run_in_threadpool

from ..config.settings import EmailSettings
from ..core.exceptions import DeliveryError
from ..core.otp import OTPPurpose


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of a successful delivery."""

    success: bool
    message_id: str
    mode: str


@dataclass(frozen=True)
class OTPMessage:
    """Rendered notification for one code."""

    to: str
    subject: str
    text: str
    html: str


def render_otp_message(
    email: str,
    code: str,
    purpose: OTPPurpose,
    app_name: str = "NoAI Backend",
    expire_minutes: int = 10
) -> OTPMessage:
    """Render subject and bodies for the given purpose."""
    if purpose == OTPPurpose.LOGIN:
        subject = f"Login OTP - {app_name}"
        heading = "Login Verification"
        text = (
            f"Your login OTP is: {code}. "
            f"This OTP will expire in {expire_minutes} minutes."
        )
    else:
        subject = f"Email Verification OTP - {app_name}"
        heading = "Email Verification"
        text = (
            f"Your email verification OTP is: {code}. "
            f"This OTP will expire in {expire_minutes} minutes."
        )

    html = f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333; text-align: center;">{app_name}</h2>
  <div style="background-color: #f9f9f9; padding: 20px; border-radius: 10px; margin: 20px 0;">
    <h3 style="color: #555; margin-bottom: 15px;">{heading}</h3>
    <p style="color: #666; line-height: 1.6;">{text}</p>
    <div style="text-align: center; margin: 30px 0;">
      <span style="background-color: #007bff; color: white; padding: 15px 30px; font-size: 24px; font-weight: bold; border-radius: 5px; letter-spacing: 3px;">{code}</span>
    </div>
    <p style="color: #999; font-size: 14px; text-align: center;">
      If you didn't request this OTP, please ignore this email.
    </p>
  </div>
</div>
"""
    return OTPMessage(to=email, subject=subject, text=text, html=html)


class NotificationSender(ABC):
    """Delivers OTP codes to users."""

    mode: str = "abstract"

    def __init__(self, app_name: str = "NoAI Backend", expire_minutes: int = 10):
        self.app_name = app_name
        self.expire_minutes = expire_minutes

    def render(self, email: str, code: str, purpose: OTPPurpose) -> OTPMessage:
        return render_otp_message(
            email,
            code,
            purpose,
            app_name=self.app_name,
            expire_minutes=self.expire_minutes,
        )

    @abstractmethod
    async def send(
        self,
        email: str,
        code: str,
        purpose: OTPPurpose = OTPPurpose.VERIFICATION
    ) -> DeliveryResult:
        """Deliver a code; raises DeliveryError on transport failure."""
        pass


class TraceNotificationSender(NotificationSender):
    """Writes codes to the log instead of sending them."""

    mode = "development"

    def __init__(self, app_name: str = "NoAI Backend", expire_minutes: int = 10):
        super().__init__(app_name, expire_minutes)
        self.logger = structlog.get_logger("notification.trace")

    async def send(
        self,
        email: str,
        code: str,
        purpose: OTPPurpose = OTPPurpose.VERIFICATION
    ) -> DeliveryResult:
        message = self.render(email, code, purpose)
        self.logger.info(
            "OTP email (development mode)",
            to=message.to,
            subject=message.subject,
            message=message.text,
            otp=code,
            purpose=purpose.value,
        )
        return DeliveryResult(success=True, message_id="console-output", mode=self.mode)


class SMTPNotificationSender(NotificationSender):
    """Sends codes over SMTP."""

    mode = "email"

    def __init__(self, email_settings: EmailSettings, expire_minutes: int = 10):
        if not email_settings.is_configured:
            raise ValueError("SMTP delivery requires host, port, user and password")

        super().__init__(email_settings.from_name, expire_minutes)
        self.host = email_settings.host
        self.port = email_settings.port
        self.user = email_settings.user
        self.password = email_settings.password
        self.use_ssl = email_settings.use_ssl
        self.timeout = email_settings.timeout
        self.logger = structlog.get_logger("notification.smtp")

    def build_message(self, email: str, code: str, purpose: OTPPurpose) -> EmailMessage:
        rendered = self.render(email, code, purpose)

        message = EmailMessage()
        message["From"] = formataddr((self.app_name, self.user))
        message["To"] = rendered.to
        message["Subject"] = rendered.subject
        message["Message-ID"] = make_msgid()
        message.set_content(rendered.text)
        message.add_alternative(rendered.html, subtype="html")
        return message

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.use_ssl:
            return smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=context
            )

        client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        client.starttls(context=context)
        return client

    def _deliver(self, message: EmailMessage) -> None:
        with self._connect() as client:
            client.login(self.user, self.password)
            client.send_message(message)

    async def send(
        self,
        email: str,
        code: str,
        purpose: OTPPurpose = OTPPurpose.VERIFICATION
    ) -> DeliveryResult:
        message = self.build_message(email, code, purpose)

        try:
            await run_in_threadpool(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Error sending OTP email",
                to=email,
                purpose=purpose.value,
                error=str(e),
            )
            raise DeliveryError() from e

        message_id = message["Message-ID"]
        self.logger.info(
            "OTP email sent successfully",
            to=email,
            purpose=purpose.value,
            message_id=message_id,
        )
        return DeliveryResult(success=True, message_id=message_id, mode=self.mode)


def build_notification_sender(
    email_settings: EmailSettings,
    expire_minutes: int = 10
) -> NotificationSender:
    """Pick the delivery variant once, from configuration presence."""
    logger = structlog.get_logger("notification")

    if email_settings.is_configured:
        logger.info(
            "Email delivery configured",
            host=email_settings.host,
            port=email_settings.port,
        )
        return SMTPNotificationSender(email_settings, expire_minutes=expire_minutes)

    logger.warning("Email credentials not configured, using log output for OTP")
    return TraceNotificationSender(email_settings.from_name, expire_minutes=expire_minutes)
