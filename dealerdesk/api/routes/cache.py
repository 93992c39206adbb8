"""
api/routes/cache.py
-------------------
POST /cache/refresh — Clear cached data for a resource prefix.

The tenant suffix comes from the authenticated caller; the body only names
the prefix. Always answers 200 with success true/false: a cache outage must
not break the page that asked for the refresh.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from dealerdesk.core.config import settings
from dealerdesk.dependencies import get_current_user
from dealerdesk.schemas.cache import CacheRefreshRequest, CacheRefreshResult
from dealerdesk.schemas.user import CurrentUser
from dealerdesk.services.cache_service import CacheService

router = APIRouter(prefix="/cache", tags=["Cache"])


@router.post(
    "/refresh",
    response_model=CacheRefreshResult,
    summary="Invalidate cached data for the current company",
)
async def refresh_cache(
    request: Request,
    body: CacheRefreshRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CacheRefreshResult:
    return await CacheService.refresh_company_cache(
        request.app.state.cache,
        current_user,
        body.prefix,
        settings.GLOBAL_CACHE_PREFIXES,
    )
