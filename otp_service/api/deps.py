"""Request-scoped service wiring."""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import token_issuer
from ..database import get_db
from ..services.auth_flow import AuthFlowController
from ..services.notification import NotificationSender
from ..services.user_store import UserStore


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_notification_sender(request: Request) -> NotificationSender:
    """The sender chosen at startup."""
    return request.app.state.notification_sender


def get_auth_controller(
    store: UserStore = Depends(get_user_store),
    sender: NotificationSender = Depends(get_notification_sender)
) -> AuthFlowController:
    return AuthFlowController(store, sender, token_issuer)
