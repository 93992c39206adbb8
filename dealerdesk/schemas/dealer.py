"""
schemas/dealer.py
-----------------
Pydantic models for dealer discovery and dealer-to-salesperson mapping.
"""

from pydantic import BaseModel, Field, field_validator


class DealerRead(BaseModel):
    id: str
    name: str
    area: str
    region: str

    model_config = {"from_attributes": True}


class DealerLocations(BaseModel):
    regions: list[str]
    areas: list[str]


class DealerTypes(BaseModel):
    type: list[str]


class DealerMappingRead(BaseModel):
    dealers: list[DealerRead]
    assigned_dealer_ids: list[str]


class DealerMappingUpdate(BaseModel):
    user_id: int
    dealer_ids: list[str] = Field(default_factory=list)

    @field_validator("dealer_ids")
    @classmethod
    def dedupe(cls, v: list[str]) -> list[str]:
        return sorted(set(v))


class DealerMappingResult(BaseModel):
    message: str = "Dealer mapping updated"
    user_id: int
    dealer_ids: list[str]
    # True when a dealer became or stopped being an orphan; not serialised
    orphans_changed: bool = Field(default=False, exclude=True)
