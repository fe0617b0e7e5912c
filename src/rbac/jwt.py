"""
JWT Token Handling

Bearer tokens are issued by the upstream authentication service; this
module only verifies them and extracts the caller's identity.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

from config.settings import AuthSettings, get_settings


# Claim names accepted for each identity field, in lookup order
USER_ID_CLAIMS = ("sub", "userId", "user_id")
SCHOOL_ID_CLAIMS = ("schoolId", "school_id")


@dataclass(frozen=True)
class TokenIdentity:
    """Who the bearer token says the caller is."""

    user_id: str
    school_id: str


def decode_token(token: str, settings: Optional[AuthSettings] = None) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string
        settings: Verification settings. Uses default if not provided.

    Returns:
        Token payload as dictionary

    Raises:
        jwt.InvalidTokenError: If token is invalid or expired
    """
    settings = settings or get_settings().auth
    return jwt.decode(token, settings.secret, algorithms=[settings.algorithm])


def _first_claim(payload: Dict[str, Any], names) -> Optional[str]:
    for name in names:
        value = payload.get(name)
        if value:
            return str(value)
    return None


def identity_from_payload(payload: Dict[str, Any]) -> TokenIdentity:
    """
    Extract (user_id, school_id) from a decoded payload.

    Raises:
        jwt.InvalidTokenError: If either claim is missing
    """
    user_id = _first_claim(payload, USER_ID_CLAIMS)
    school_id = _first_claim(payload, SCHOOL_ID_CLAIMS)

    if not user_id or not school_id:
        raise jwt.InvalidTokenError("Token is missing user or school claims")

    return TokenIdentity(user_id=user_id, school_id=school_id)


def identity_from_token(token: str, settings: Optional[AuthSettings] = None) -> TokenIdentity:
    """Decode a token and return the identity it carries."""
    return identity_from_payload(decode_token(token, settings))
