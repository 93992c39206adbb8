"""
api/routes/me.py
----------------
Caller endpoints.

GET /me              — The resolved local user (id, role, company, names).
GET /me/permissions  — Capability keys granted by the caller's role; the
                       dashboard uses them to decide which tabs to show.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from dealerdesk.core.permissions import permissions_for
from dealerdesk.dependencies import get_current_user
from dealerdesk.schemas.user import CurrentUser, PermissionsRead

router = APIRouter(tags=["Me"])


@router.get(
    "/me",
    response_model=CurrentUser,
    summary="Get the currently authenticated user",
)
async def get_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    return current_user


@router.get(
    "/me/permissions",
    response_model=PermissionsRead,
    summary="Capabilities granted to the current user's role",
)
async def get_my_permissions(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> PermissionsRead:
    role = current_user.role_enum
    return PermissionsRead(
        role=role.value,
        capabilities=sorted(permissions_for(role)),
    )
