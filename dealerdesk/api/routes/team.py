"""
api/routes/team.py
------------------
Users & team endpoints.

GET  /team/overview    — Company users with managers and direct reports.
POST /team/mapping     — Replace a user's manager and direct reports.
POST /team/role        — Change a user's role.
GET  /users/locations  — Distinct user regions / areas in the company.
GET  /users/roles      — Distinct roles in the company.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dealerdesk.db.session import Database, get_database, get_db
from dealerdesk.dependencies import get_current_user, require_capability
from dealerdesk.schemas.hierarchy import HierarchyResult, HierarchyUpdate
from dealerdesk.schemas.user import (
    CurrentUser,
    RoleChange,
    RoleChangeResult,
    TeamMember,
    UserLocations,
    UserRoles,
)
from dealerdesk.services.hierarchy_service import HierarchyService
from dealerdesk.services.user_service import UserService

router = APIRouter(tags=["Users & Team"])


@router.get(
    "/team/overview",
    response_model=list[TeamMember],
    summary="Team overview for the current company",
)
async def team_overview(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[
        CurrentUser, Depends(require_capability("usersAndTeam.teamOverview"))
    ],
    role: Optional[str] = Query(default=None, description="Role filter, or 'all'"),
) -> list[TeamMember]:
    return await UserService.team_overview(db, current_user, role)


@router.post(
    "/team/mapping",
    response_model=HierarchyResult,
    summary="Replace a user's manager and direct reports",
)
async def edit_mapping(
    body: HierarchyUpdate,
    database: Annotated[Database, Depends(get_database)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> HierarchyResult:
    """
    After success the user reports to `reports_to_id` and exactly the users
    in `manages_ids` report to the user. Nothing changes on failure.
    """
    return await HierarchyService.apply(database, current_user, body)


@router.post(
    "/team/role",
    response_model=RoleChangeResult,
    summary="Change a user's role",
)
async def edit_role(
    body: RoleChange,
    database: Annotated[Database, Depends(get_database)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> RoleChangeResult:
    return await HierarchyService.change_role(database, current_user, body)


@router.get(
    "/users/locations",
    response_model=UserLocations,
    summary="Distinct user regions and areas",
)
async def user_locations(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> UserLocations:
    return await UserService.locations(db, current_user.company_id)


@router.get(
    "/users/roles",
    response_model=UserRoles,
    summary="Distinct roles in the company",
)
async def user_roles(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> UserRoles:
    return await UserService.roles(db, current_user.company_id)
