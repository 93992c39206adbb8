"""
services/user_service.py
------------------------
Read-side queries over a company's users: team overview, location and role
filters.

All queries are scoped by company_id to enforce strict data isolation.
"""

from collections import defaultdict
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from dealerdesk.core.errors import Forbidden
from dealerdesk.core.logging import get_logger
from dealerdesk.core.permissions import TEAM_VIEW_ROLES, Role
from dealerdesk.models.user import User
from dealerdesk.schemas.user import (
    CurrentUser,
    ReportSummary,
    TeamMember,
    UserLocations,
    UserRoles,
)

logger = get_logger(__name__)


def _name(first: Optional[str], last: Optional[str]) -> str:
    return f"{first or ''} {last or ''}".strip()


class UserService:

    @staticmethod
    async def team_overview(
        db: AsyncSession,
        actor: CurrentUser,
        role: Optional[str] = None,
    ) -> list[TeamMember]:
        """
        Every user of the actor's company with their manager and direct
        reports. `role` narrows the list; 'all' or an unknown role is ignored.
        """
        if actor.role_enum not in TEAM_VIEW_ROLES:
            raise Forbidden()

        role_filter = Role.parse(role) if role and role != "all" else Role.unknown

        manager = aliased(User, name="managers")
        query = (
            select(User, manager.first_name, manager.last_name)
            .outerjoin(manager, User.reports_to_id == manager.id)
            .where(User.company_id == actor.company_id)
            .order_by(User.first_name, User.id)
        )
        if role_filter is not Role.unknown:
            query = query.where(User.role == role_filter.value)
        members = (await db.execute(query)).all()

        # One query for all reporting lines instead of one per member
        reports_result = await db.execute(
            select(User.id, User.first_name, User.last_name, User.role, User.reports_to_id)
            .where(User.company_id == actor.company_id, User.reports_to_id.is_not(None))
            .order_by(User.id)
        )
        reports_by_manager: dict[int, list[ReportSummary]] = defaultdict(list)
        for row in reports_result:
            reports_by_manager[row.reports_to_id].append(
                ReportSummary(id=row.id, name=_name(row.first_name, row.last_name), role=row.role)
            )

        team = []
        for member, manager_first, manager_last in members:
            reports = reports_by_manager.get(member.id, [])
            team.append(
                TeamMember(
                    id=member.id,
                    name=member.full_name,
                    email=member.email,
                    role=member.role,
                    status=member.status,
                    region=member.region,
                    area=member.area,
                    managed_by=_name(manager_first, manager_last) if manager_first else "none",
                    managed_by_id=member.reports_to_id,
                    manages=", ".join(r.name for r in reports if r.name) or "None",
                    manages_ids=[r.id for r in reports],
                    manages_reports=reports,
                )
            )
        return team

    @staticmethod
    async def locations(db: AsyncSession, company_id: int) -> UserLocations:
        regions = await db.execute(
            select(User.region)
            .where(User.company_id == company_id, User.region.is_not(None))
            .distinct()
            .order_by(User.region)
        )
        areas = await db.execute(
            select(User.area)
            .where(User.company_id == company_id, User.area.is_not(None))
            .distinct()
            .order_by(User.area)
        )
        return UserLocations(
            regions=[r for r in regions.scalars().all() if r],
            areas=[a for a in areas.scalars().all() if a],
        )

    @staticmethod
    async def roles(db: AsyncSession, company_id: int) -> UserRoles:
        result = await db.execute(
            select(User.role)
            .where(User.company_id == company_id)
            .distinct()
            .order_by(User.role)
        )
        return UserRoles(roles=[r for r in result.scalars().all() if r])
