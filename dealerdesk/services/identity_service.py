"""
services/identity_service.py
----------------------------
Maps an identity-provider subject onto the local, tenant-scoped User.

Every authenticated operation starts here. The resolved company_id is the
only tenant scope the rest of the service layer ever uses.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dealerdesk.core.errors import InfrastructureError, NotFound, Unauthorized
from dealerdesk.core.logging import get_logger
from dealerdesk.models.user import User
from dealerdesk.schemas.user import CurrentUser

logger = get_logger(__name__)


class IdentityService:

    @staticmethod
    async def resolve(db: AsyncSession, subject: Optional[str]) -> CurrentUser:
        """
        Look up the single User whose external_identity_id equals `subject`.

        Raises:
            Unauthorized: `subject` is missing or empty (anonymous caller).
                The store is not queried.
            NotFound: the subject has no local record yet.
            InfrastructureError: the store could not be queried.
        """
        if not subject:
            raise Unauthorized()

        try:
            result = await db.execute(
                select(
                    User.id,
                    User.role,
                    User.company_id,
                    User.first_name,
                    User.last_name,
                    User.email,
                )
                .where(User.external_identity_id == subject)
                .limit(1)
            )
            row = result.one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Identity lookup failed", error=str(exc))
            raise InfrastructureError("Could not resolve current user") from exc

        if row is None:
            logger.warning("Authenticated subject has no local user", subject=subject)
            raise NotFound("User not found")

        return CurrentUser.model_validate(dict(row._mapping))
