"""Services module."""
from .auth_flow import AuthFlowController
from .notification import (
    NotificationSender,
    SMTPNotificationSender,
    TraceNotificationSender,
    build_notification_sender,
)
from .user_store import UserStore, to_public

__all__ = [
    "AuthFlowController",
    "NotificationSender",
    "SMTPNotificationSender",
    "TraceNotificationSender",
    "build_notification_sender",
    "UserStore",
    "to_public",
]
