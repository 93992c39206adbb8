"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication and authorisation.

Flow:
  1. HTTPBearer extracts the Bearer token from the Authorization header
     (auto_error=False: a missing header is an anonymous caller, not a crash).
  2. identity_from_token verifies the identity provider's signature and
     returns the CallerIdentity (or None when anonymous).
  3. get_current_user resolves the subject to the local User through
     IdentityService. Tenant scope comes from that row, not from the token.
     A role claim that disagrees with the stored role is logged, never used.
  4. require_capability layers a capability check on top of get_current_user.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from dealerdesk.core.errors import Forbidden, Unauthorized
from dealerdesk.core.logging import bind_request_context, get_logger
from dealerdesk.core.permissions import Role, has_permission
from dealerdesk.core.security import CallerIdentity, identity_from_token
from dealerdesk.db.session import get_db
from dealerdesk.schemas.user import CurrentUser
from dealerdesk.services.identity_service import IdentityService

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_caller_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> Optional[CallerIdentity]:
    """Verified identity of the caller, or None for anonymous requests."""
    if credentials is None:
        return None
    try:
        return identity_from_token(credentials.credentials)
    except JWTError as exc:
        logger.warning("Access token rejected", error=str(exc))
        raise Unauthorized("Could not validate credentials")


async def get_current_user(
    identity: Annotated[Optional[CallerIdentity], Depends(get_caller_identity)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CurrentUser:
    """
    Resolve the caller to their local User projection.
    Raises Unauthorized for anonymous callers, NotFound when the subject has
    no local record.
    """
    subject = identity.subject if identity else None
    current_user = await IdentityService.resolve(db, subject)
    bind_request_context(user_id=current_user.id, company_id=current_user.company_id)
    if identity.role and Role.parse(identity.role) is not current_user.role_enum:
        logger.warning(
            "Token role claim differs from stored role",
            claim_role=identity.role,
            stored_role=current_user.role,
        )
    return current_user


def require_capability(capability: str):
    """
    Dependency factory: the caller's stored role must grant `capability`.

    Usage:
        @router.get("/x", dependencies=[Depends(require_capability("technicalSites.listSites"))])
    """

    async def checker(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if not has_permission(current_user.role_enum, capability):
            raise Forbidden(f"Missing capability '{capability}'")
        return current_user

    return checker
