"""Bearer token gate for protected routes."""
import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..api.deps import get_user_store
from ..schemas.auth import UserRecord
from ..services.user_store import UserStore
from .auth import token_issuer
from .exceptions import AuthenticationError
from .logging import SecurityLogger

# Security scheme; missing credentials are reported by the gate itself
security = HTTPBearer(auto_error=False)


def _reject(request: Request, reason: str) -> AuthenticationError:
    SecurityLogger.log_unauthorized_access(
        path=str(request.url.path),
        method=request.method,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        reason=reason
    )
    return AuthenticationError()


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: UserStore = Depends(get_user_store)
) -> UserRecord:
    """Get current authenticated user."""
    if credentials is None:
        raise _reject(request, "missing_token")
    
    # Verify token
    payload = token_issuer.decode(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise _reject(request, "invalid_token")
    
    # Get user ID
    user_id_str = payload.get("sub")
    if user_id_str is None:
        raise _reject(request, "invalid_token")
    
    try:
        user_id = uuid.UUID(user_id_str)
    except ValueError:
        raise _reject(request, "invalid_token")
    
    user = await store.get_by_id(user_id)
    if user is None:
        raise _reject(request, "unknown_user")
    
    if not user.is_active:
        raise _reject(request, "inactive_user")
    
    return user
