"""
Authentication utilities for identity provider access tokens.
Tokens are issued by the external identity provider; this module only verifies them.
"""

from typing import Optional, Dict, Any
from jose import JWTError, jwt
from app.config import settings
import uuid


class TokenPayload:
    """Verified access token claims."""

    def __init__(self, user_id: uuid.UUID, email: Optional[str]):
        self.user_id = user_id
        self.email = email

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from decoded claims."""
        try:
            user_id = uuid.UUID(str(data["sub"]))
        except (KeyError, ValueError) as e:
            raise JWTError(f"Invalid token subject: {e}")

        return cls(
            user_id=user_id,
            email=data.get("email"),
        )


def verify_access_token(
    token: str,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
    audience: Optional[str] = None
) -> TokenPayload:
    """
    Verify signature, expiry and audience of an identity provider token.

    Args:
        token: JWT token string
        secret: Signing secret (defaults to settings)
        algorithm: Signing algorithm (defaults to settings)
        audience: Expected ``aud`` claim (defaults to settings)

    Returns:
        TokenPayload with the subject id

    Raises:
        JWTError: If token is invalid, expired, or has no usable subject
    """
    payload = jwt.decode(
        token,
        secret or settings.identity_jwt_secret,
        algorithms=[algorithm or settings.identity_jwt_algorithm],
        audience=audience or settings.identity_jwt_audience,
    )
    return TokenPayload.from_dict(payload)


def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the bearer token from an Authorization header.

    Returns None when the header is missing or not a Bearer credential.
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
