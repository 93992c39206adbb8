"""
api/routes/dealers.py
---------------------
Dealer management endpoints.

GET  /dealers/locations  — Distinct regions / areas (company + orphan dealers), cached.
GET  /dealers/types      — Distinct dealer types of the company, cached.
GET  /dealers/mapping    — Dealers assignable to a user and the user's current ones.
POST /dealers/mapping    — Replace the set of dealers a user owns. Clears the
                           shared orphan-dealer tag when orphans change.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dealerdesk.core.config import settings
from dealerdesk.db.session import Database, get_database, get_db
from dealerdesk.dependencies import get_current_user, require_capability
from dealerdesk.schemas.dealer import (
    DealerLocations,
    DealerMappingRead,
    DealerMappingResult,
    DealerMappingUpdate,
    DealerTypes,
)
from dealerdesk.schemas.user import CurrentUser
from dealerdesk.services.cache_service import ORPHAN_DEALERS_TAG, cached, compute_cache_tag
from dealerdesk.services.dealer_service import DealerService

router = APIRouter(prefix="/dealers", tags=["Dealers"])

CACHE_PREFIX = "dealers"


@router.get(
    "/locations",
    response_model=DealerLocations,
    summary="Distinct dealer regions and areas",
)
async def dealer_locations(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[
        CurrentUser, Depends(require_capability("dealerManagement.listDealers"))
    ],
) -> DealerLocations:
    company_id = current_user.company_id
    tag = compute_cache_tag(CACHE_PREFIX, company_id, settings.GLOBAL_CACHE_PREFIXES)

    async def load() -> dict:
        return (await DealerService.locations(db, company_id)).model_dump()

    data = await cached(
        request.app.state.cache,
        [tag, ORPHAN_DEALERS_TAG],
        f"dealer-locations:{company_id}",
        load,
    )
    return DealerLocations.model_validate(data)


@router.get(
    "/types",
    response_model=DealerTypes,
    summary="Distinct dealer types",
)
async def dealer_types(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[
        CurrentUser, Depends(require_capability("dealerManagement.listDealers"))
    ],
) -> DealerTypes:
    company_id = current_user.company_id
    tag = compute_cache_tag(CACHE_PREFIX, company_id, settings.GLOBAL_CACHE_PREFIXES)

    async def load() -> dict:
        return (await DealerService.types(db, company_id)).model_dump()

    data = await cached(request.app.state.cache, tag, f"dealer-types:{company_id}", load)
    return DealerTypes.model_validate(data)


@router.get(
    "/mapping",
    response_model=DealerMappingRead,
    summary="Dealers assignable to a user",
)
async def dealer_mapping(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    user_id: int = Query(..., ge=1),
    area: Optional[str] = Query(default=None),
    region: Optional[str] = Query(default=None),
) -> DealerMappingRead:
    return await DealerService.mapping(db, current_user, user_id, area=area, region=region)


@router.post(
    "/mapping",
    response_model=DealerMappingResult,
    summary="Replace the dealers owned by a user",
)
async def edit_dealer_mapping(
    request: Request,
    body: DealerMappingUpdate,
    database: Annotated[Database, Depends(get_database)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> DealerMappingResult:
    result = await DealerService.replace_dealer_mapping(database, current_user, body)
    cache = request.app.state.cache
    if cache is not None:
        await cache.invalidate(
            compute_cache_tag(CACHE_PREFIX, current_user.company_id, settings.GLOBAL_CACHE_PREFIXES)
        )
        if result.orphans_changed:
            # Every tenant sees orphan dealers in its location filters
            await cache.invalidate(ORPHAN_DEALERS_TAG)
    return result
