"""
services/hierarchy_service.py
-----------------------------
Reporting-line and role changes inside one company.

A mapping change rewrites three things in one transaction:
  1. detach: every current direct report of the user loses its manager
  2. attach: every id in manages_ids reports to the user
  3. rebind: the user reports to reports_to_id (or nobody)

Afterwards the user's direct reports are exactly set(manages_ids) and the
user's manager is exactly reports_to_id, whatever the previous state was, so
applying the same change twice is a no-op the second time.

All checks run before the first UPDATE. The company's reporting edges are
read with SELECT ... FOR UPDATE so two concurrent changes in one company
serialise; the later commit wins.
"""

from typing import Iterable, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dealerdesk.core.errors import Forbidden, NotFound, ValidationError
from dealerdesk.core.logging import get_logger
from dealerdesk.core.permissions import (
    MAPPING_ROLES,
    ROLE_EDITOR_ROLES,
    Role,
    can_assign_role,
)
from dealerdesk.db.session import Database
from dealerdesk.models.user import User
from dealerdesk.schemas.hierarchy import HierarchyResult, HierarchyUpdate
from dealerdesk.schemas.user import CurrentUser, RoleChange, RoleChangeResult

logger = get_logger(__name__)


def plan_reporting_lines(
    edges: Mapping[int, Optional[int]],
    user_id: int,
    reports_to_id: Optional[int],
    manages_ids: Iterable[int],
) -> dict[int, Optional[int]]:
    """Return a copy of `edges` (user id → manager id) with the change applied."""
    planned = dict(edges)
    for member_id, manager_id in edges.items():
        if manager_id == user_id:
            planned[member_id] = None
    for member_id in manages_ids:
        planned[member_id] = user_id
    planned[user_id] = reports_to_id
    return planned


def find_cycle(edges: Mapping[int, Optional[int]], start: int) -> Optional[list[int]]:
    """
    The users forming the first loop reached by following manager links
    upward from `start`, or None when the chain ends.
    """
    path = [start]
    position = {start: 0}
    current = edges.get(start)
    while current is not None:
        if current in position:
            return path[position[current]:]
        position[current] = len(path)
        path.append(current)
        current = edges.get(current)
    return None


def creates_cycle(edges: Mapping[int, Optional[int]], start: int) -> bool:
    """
    True when following manager links upward from `start` leads back to `start`.

    Any cycle introduced by a mapping change passes through the changed user,
    so walking up from that user is enough. A loop further up that does not
    include `start` is pre-existing and does not count.
    """
    cycle = find_cycle(edges, start)
    return cycle is not None and start in cycle


class HierarchyService:

    @staticmethod
    async def apply(
        database: Database,
        actor: CurrentUser,
        change: HierarchyUpdate,
    ) -> HierarchyResult:
        """
        Rewrite the reporting lines of change.user_id.

        Raises:
            Forbidden: the actor's role may not remap users, or the proposed
                manager's role does not outrank the user's role.
            ValidationError: self-reference, the change would close a cycle, or
                the chain above the user already contains one.
            NotFound: the user, the proposed manager or one of manages_ids is
                not in the actor's company.
            InfrastructureError: the transaction failed and was rolled back.
        """
        if actor.role_enum not in MAPPING_ROLES:
            raise Forbidden("Your role cannot change reporting lines")

        user_id = change.user_id
        manages = set(change.manages_ids)
        if change.reports_to_id == user_id or user_id in manages:
            raise ValidationError("Self-mapping forbidden")

        async def work(session: AsyncSession) -> None:
            result = await session.execute(
                select(User.id, User.role, User.reports_to_id)
                .where(User.company_id == actor.company_id)
                .with_for_update()
            )
            roles: dict[int, str] = {}
            edges: dict[int, Optional[int]] = {}
            for row in result:
                roles[row.id] = row.role
                edges[row.id] = row.reports_to_id

            if user_id not in roles:
                raise NotFound(f"User {user_id} not found")

            missing = sorted(manages - set(roles))
            if missing:
                raise NotFound(f"Users not found: {missing}")

            if change.reports_to_id is not None:
                manager_role = roles.get(change.reports_to_id)
                if manager_role is None:
                    raise NotFound(f"Manager {change.reports_to_id} not found")
                if not can_assign_role(manager_role, roles[user_id]):
                    raise Forbidden(
                        f"A {manager_role} cannot manage a {roles[user_id]}"
                    )

            planned = plan_reporting_lines(edges, user_id, change.reports_to_id, manages)
            cycle = find_cycle(planned, user_id)
            if cycle is not None:
                if user_id in cycle:
                    raise ValidationError("Mapping would create a reporting cycle")
                raise ValidationError(
                    f"Reporting chain above user {user_id} already loops "
                    f"through users {sorted(cycle)}"
                )

            scoped = User.company_id == actor.company_id
            await session.execute(
                update(User)
                .where(scoped, User.reports_to_id == user_id)
                .values(reports_to_id=None)
                .execution_options(synchronize_session=False)
            )
            if manages:
                await session.execute(
                    update(User)
                    .where(scoped, User.id.in_(sorted(manages)))
                    .values(reports_to_id=user_id)
                    .execution_options(synchronize_session=False)
                )
            await session.execute(
                update(User)
                .where(scoped, User.id == user_id)
                .values(reports_to_id=change.reports_to_id)
                .execution_options(synchronize_session=False)
            )

        await database.unit_of_work(work)

        logger.info(
            "Reporting lines updated",
            actor_id=actor.id,
            company_id=actor.company_id,
            user_id=user_id,
            reports_to_id=change.reports_to_id,
            manages_ids=sorted(manages),
        )
        return HierarchyResult(
            user_id=user_id,
            reports_to_id=change.reports_to_id,
            manages_ids=sorted(manages),
        )

    @staticmethod
    async def change_role(
        database: Database,
        actor: CurrentUser,
        change: RoleChange,
    ) -> RoleChangeResult:
        """
        Give a user of the actor's company a new role.
        The actor must strictly outrank the role being handed out.
        """
        if actor.role_enum not in ROLE_EDITOR_ROLES:
            raise Forbidden("Your role cannot change roles")

        new_role = Role.parse(change.new_role)
        if new_role is Role.unknown:
            raise ValidationError("Invalid role")
        if not can_assign_role(actor.role_enum, new_role):
            raise Forbidden("Forbidden: You cannot assign this role")

        async def work(session: AsyncSession) -> None:
            result = await session.execute(
                update(User)
                .where(User.id == change.user_id, User.company_id == actor.company_id)
                .values(role=new_role.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(f"User {change.user_id} not found")

        await database.unit_of_work(work)

        logger.info(
            "Role updated",
            actor_id=actor.id,
            company_id=actor.company_id,
            user_id=change.user_id,
            role=new_role.value,
        )
        return RoleChangeResult(
            message="Role updated successfully",
            user_id=change.user_id,
            role=new_role.value,
        )
