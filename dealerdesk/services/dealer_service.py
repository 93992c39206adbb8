"""
services/dealer_service.py
--------------------------
Dealer discovery and dealer-to-salesperson mapping.

Critical security invariant:
  A dealer is visible to a company when its owner belongs to that company,
  or when it has no owner at all (orphan). Every query below goes through
  _visible_to(company_id).
"""

from typing import Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dealerdesk.core.errors import Forbidden, NotFound
from dealerdesk.core.logging import get_logger
from dealerdesk.core.permissions import MAPPING_ROLES
from dealerdesk.db.session import Database
from dealerdesk.models.dealer import Dealer
from dealerdesk.models.user import User
from dealerdesk.schemas.dealer import (
    DealerLocations,
    DealerMappingRead,
    DealerMappingResult,
    DealerMappingUpdate,
    DealerRead,
    DealerTypes,
)
from dealerdesk.schemas.user import CurrentUser

logger = get_logger(__name__)


def _visible_to(company_id: int):
    return or_(User.company_id == company_id, Dealer.user_id.is_(None))


def _clean(values) -> list[str]:
    """Drop nulls and blank strings, keep first-seen order."""
    return [v for v in values if v and v.strip()]


async def _ensure_user_in_company(db: AsyncSession, user_id: int, company_id: int) -> None:
    result = await db.execute(
        select(User.id).where(User.id == user_id, User.company_id == company_id)
    )
    if result.scalar_one_or_none() is None:
        raise NotFound(f"User {user_id} not found")


class DealerService:

    @staticmethod
    async def locations(db: AsyncSession, company_id: int) -> DealerLocations:
        """Distinct regions and areas of company dealers plus orphan dealers."""
        regions = await db.execute(
            select(Dealer.region)
            .outerjoin(User, Dealer.user_id == User.id)
            .where(_visible_to(company_id))
            .distinct()
            .order_by(Dealer.region)
        )
        areas = await db.execute(
            select(Dealer.area)
            .outerjoin(User, Dealer.user_id == User.id)
            .where(_visible_to(company_id))
            .distinct()
            .order_by(Dealer.area)
        )
        return DealerLocations(
            regions=_clean(regions.scalars().all()),
            areas=_clean(areas.scalars().all()),
        )

    @staticmethod
    async def types(db: AsyncSession, company_id: int) -> DealerTypes:
        """Distinct types of dealers owned by the company's users (orphans excluded)."""
        result = await db.execute(
            select(Dealer.type)
            .join(User, Dealer.user_id == User.id)
            .where(User.company_id == company_id)
            .distinct()
            .order_by(Dealer.type)
        )
        return DealerTypes(type=_clean(result.scalars().all()))

    @staticmethod
    async def mapping(
        db: AsyncSession,
        actor: CurrentUser,
        user_id: int,
        area: Optional[str] = None,
        region: Optional[str] = None,
    ) -> DealerMappingRead:
        """Dealers the actor may hand out, and the ones `user_id` currently owns."""
        if actor.role_enum not in MAPPING_ROLES:
            raise Forbidden()
        await _ensure_user_in_company(db, user_id, actor.company_id)

        conditions = [_visible_to(actor.company_id)]
        if area:
            conditions.append(Dealer.area == area)
        if region:
            conditions.append(Dealer.region == region)

        dealers = await db.execute(
            select(Dealer)
            .outerjoin(User, Dealer.user_id == User.id)
            .where(and_(*conditions))
            .order_by(Dealer.name)
        )
        assigned = await db.execute(
            select(Dealer.id).where(Dealer.user_id == user_id).order_by(Dealer.id)
        )
        return DealerMappingRead(
            dealers=[DealerRead.model_validate(d) for d in dealers.scalars().all()],
            assigned_dealer_ids=list(assigned.scalars().all()),
        )

    @staticmethod
    async def replace_dealer_mapping(
        database: Database,
        actor: CurrentUser,
        change: DealerMappingUpdate,
    ) -> DealerMappingResult:
        """
        Make change.dealer_ids the complete set of dealers owned by
        change.user_id, in one transaction.
        """
        if actor.role_enum not in MAPPING_ROLES:
            raise Forbidden("Your role cannot change dealer mappings")

        dealer_ids = set(change.dealer_ids)

        async def work(session: AsyncSession) -> bool:
            await _ensure_user_in_company(session, change.user_id, actor.company_id)

            owners: dict[str, Optional[int]] = {}
            if dealer_ids:
                result = await session.execute(
                    select(Dealer.id, Dealer.user_id)
                    .outerjoin(User, Dealer.user_id == User.id)
                    .where(Dealer.id.in_(sorted(dealer_ids)), _visible_to(actor.company_id))
                    .with_for_update(of=Dealer)
                )
                owners = {row.id: row.user_id for row in result}
                missing = sorted(dealer_ids - set(owners))
                if missing:
                    raise NotFound(f"Dealers not found: {missing}")

            current = await session.execute(
                select(Dealer.id).where(Dealer.user_id == change.user_id)
            )
            released = set(current.scalars().all()) - dealer_ids
            adopted = any(owner is None for owner in owners.values())

            await session.execute(
                update(Dealer)
                .where(Dealer.user_id == change.user_id)
                .values(user_id=None)
                .execution_options(synchronize_session=False)
            )
            if dealer_ids:
                await session.execute(
                    update(Dealer)
                    .where(Dealer.id.in_(sorted(dealer_ids)))
                    .values(user_id=change.user_id)
                    .execution_options(synchronize_session=False)
                )
            return bool(released) or adopted

        orphans_changed = await database.unit_of_work(work)

        logger.info(
            "Dealer mapping updated",
            actor_id=actor.id,
            company_id=actor.company_id,
            user_id=change.user_id,
            dealer_count=len(dealer_ids),
            orphans_changed=orphans_changed,
        )
        return DealerMappingResult(
            user_id=change.user_id,
            dealer_ids=sorted(dealer_ids),
            orphans_changed=orphans_changed,
        )
