"""Bearer token issuing and decoding."""
import uuid
from datetime import timedelta
from typing import Optional, Union

from jose import JWTError, jwt

from ..config import settings
from .otp import utcnow


class TokenIssuer:
    """Mints and decodes access tokens bound to a user id."""

    def __init__(self):
        self.secret_key = settings.auth.secret_key
        self.algorithm = settings.auth.algorithm
        self.access_token_expire_minutes = settings.auth.access_token_expire_minutes

    def issue(
        self,
        user_id: Union[uuid.UUID, str],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create JWT access token."""
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.access_token_expire_minutes)

        to_encode = {
            "sub": str(user_id),
            "type": "access",
            "exp": utcnow() + expires_delta,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode(self, token: str) -> Optional[dict]:
        """Verify and decode JWT token."""
        try:
            return jwt.decode(
                token, self.secret_key, algorithms=[self.algorithm]
            )
        except JWTError:
            return None


# Global token issuer instance
token_issuer = TokenIssuer()
