"""
schemas/cache.py
----------------
Cache refresh request/response.

company_id is deliberately absent from the request: the tenant suffix is
always taken from the authenticated caller.
"""

from pydantic import BaseModel, Field


class CacheRefreshRequest(BaseModel):
    prefix: str = Field(
        ...,
        min_length=1,
        max_length=100,
        examples=["dealers"],
        description="Logical resource prefix, e.g. 'dealers', 'mason-pc'",
    )


class CacheRefreshResult(BaseModel):
    success: bool
    tag: str
    message: str
