"""
schemas/user.py
---------------
Pydantic models for the caller projection, team views and role changes.

Naming convention:
  CurrentUser      → minimal projection of the resolved caller
  TeamMember       → one row of the team overview
  RoleChange       → inbound request body
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from dealerdesk.core.permissions import Role


class CurrentUser(BaseModel):
    """The caller, as resolved from the identity provider subject."""
    id: int
    role: str
    company_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str

    model_config = {"from_attributes": True}

    @property
    def role_enum(self) -> Role:
        return Role.parse(self.role)


class PermissionsRead(BaseModel):
    role: str
    capabilities: list[str]


class ReportSummary(BaseModel):
    id: int
    name: str
    role: str


class TeamMember(BaseModel):
    id: int
    name: str
    email: str
    role: str
    status: str
    region: Optional[str] = None
    area: Optional[str] = None
    managed_by: str
    managed_by_id: Optional[int] = None
    manages: str
    manages_ids: list[int]
    manages_reports: list[ReportSummary]


class UserLocations(BaseModel):
    regions: list[str]
    areas: list[str]


class UserRoles(BaseModel):
    roles: list[str]


class RoleChange(BaseModel):
    user_id: int
    new_role: str = Field(..., examples=["manager"])

    @field_validator("new_role")
    @classmethod
    def known_role(cls, v: str) -> str:
        role = Role.parse(v)
        if role is Role.unknown:
            raise ValueError("Invalid role")
        return role.value


class RoleChangeResult(BaseModel):
    message: str
    user_id: int
    role: str
