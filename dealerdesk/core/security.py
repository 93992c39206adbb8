"""
core/security.py
----------------
Verification of access tokens issued by the external identity provider.

Design decisions:
  - We never mint tokens; sign-in lives entirely with the identity provider.
  - The token's 'sub' claim is the provider's user id. It is mapped to a local
    User row by the identity service, never trusted for tenant scoping.
  - The optional 'role' claim is only compared with the stored role so a
    stale identity-provider role shows up in the logs. Authorisation always
    uses the role stored on the local User row.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from dealerdesk.core.config import settings


@dataclass(frozen=True)
class CallerIdentity:
    """What the authentication boundary tells us about the caller."""

    subject: str
    role: Optional[str] = None


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an identity-provider access token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered with.

    Returns:
        Raw payload dict.
    """
    options = {"verify_aud": settings.IDP_AUDIENCE is not None}
    return jwt.decode(
        token,
        settings.IDP_SECRET_KEY,
        algorithms=[settings.IDP_ALGORITHM],
        audience=settings.IDP_AUDIENCE,
        options=options,
    )


def identity_from_token(token: Optional[str]) -> Optional[CallerIdentity]:
    """
    Turn a bearer token into a CallerIdentity.
    Returns None for an anonymous caller (no token, or a token without 'sub').

    Raises:
        JWTError: If a token is present but fails verification.
    """
    if not token:
        return None
    payload = decode_access_token(token)
    subject = payload.get("sub")
    if not subject:
        return None
    return CallerIdentity(
        subject=str(subject),
        role=payload.get("role"),
    )
