"""
schemas/hierarchy.py
--------------------
Request/response models for reporting-line changes.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class HierarchyUpdate(BaseModel):
    user_id: int = Field(..., description="User whose reporting lines change")
    reports_to_id: Optional[int] = Field(
        ..., description="New manager, or null to leave the user unassigned"
    )
    manages_ids: list[int] = Field(
        default_factory=list,
        description="Complete list of the user's direct reports after the change",
    )

    @field_validator("manages_ids")
    @classmethod
    def dedupe(cls, v: list[int]) -> list[int]:
        return sorted(set(v))


class HierarchyResult(BaseModel):
    message: str = "Mapping updated"
    user_id: int
    reports_to_id: Optional[int]
    manages_ids: list[int]
