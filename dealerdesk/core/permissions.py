"""
core/permissions.py
-------------------
Role model: rank ordering, capability table and route allow-lists.

Role design:
  - Roles form a strict chain; index 0 in ROLE_HIERARCHY is the top.
  - Role.unknown is the landing spot for any string we do not recognise.
    It has no rank (never assigns, never gets assigned) and only the
    junior-executive capability set.
  - CAPABILITIES must cover every Role member; a missing entry fails at import.

Everything here is pure and stateless.
"""

from enum import Enum as PyEnum
from typing import Optional, Union


class Role(str, PyEnum):
    president = "president"
    senior_general_manager = "senior-general-manager"
    general_manager = "general-manager"
    regional_sales_manager = "regional-sales-manager"
    area_sales_manager = "area-sales-manager"
    assistant_sales_manager = "assistant-sales-manager"
    senior_manager = "senior-manager"
    manager = "manager"
    assistant_manager = "assistant-manager"
    senior_executive = "senior-executive"
    executive = "executive"
    junior_executive = "junior-executive"
    unknown = "unknown"

    @classmethod
    def parse(cls, value: Optional[Union[str, "Role"]]) -> "Role":
        if isinstance(value, Role):
            return value
        if not value:
            return cls.unknown
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.unknown


# Highest rank first.
ROLE_HIERARCHY: tuple[Role, ...] = tuple(r for r in Role if r is not Role.unknown)

_RANK: dict[Role, int] = {
    role: len(ROLE_HIERARCHY) - index for index, role in enumerate(ROLE_HIERARCHY)
}


def rank(role: Union[str, Role, None]) -> Optional[int]:
    """Numeric rank of a role (larger outranks smaller), None when unknown."""
    return _RANK.get(Role.parse(role))


def can_assign_role(acting: Union[str, Role, None], target: Union[str, Role, None]) -> bool:
    """
    True only when `acting` strictly outranks `target`.
    Unknown roles on either side deny.
    """
    acting_rank = rank(acting)
    target_rank = rank(target)
    if acting_rank is None or target_rank is None:
        return False
    return acting_rank > target_rank


# ── Capabilities ─────────────────────────────────────────────────────────────

_FIELD_CAPABILITIES = frozenset({
    "dealerManagement.addAndListDealers",
    "dealerManagement.listDealers",
    "technicalSites.listSites",
    "reports.dailyVisitReports",
    "reports.technicalVisitReports",
})

_SENIOR_FIELD_CAPABILITIES = _FIELD_CAPABILITIES | {
    "reports.salesOrders",
    "reports.competitionReports",
    "scoresAndRatings.dealerScores",
    "masonpcSide.masonpc",
    "masonpcSide.tsoMeetings",
    "usersAndTeam.teamOverview",
}

_MANAGER_CAPABILITIES = _SENIOR_FIELD_CAPABILITIES | {
    "usersAndTeam.userManagement",
    "dealerManagement.verifyDealers",
    "dealerManagement.listVerifiedDealers",
    "scoresAndRatings.salesmanRatings",
    "salesmanGeotracking.slmGeotracking",
    "salesmanGeotracking.salesmanLiveLocation",
    "reports.dvrVpjp",
    "reports.tvrVpjp",
    "reports.salesVdvr",
    "masonpcSide.schemesOffers",
    "masonpcSide.masonOnSchemes",
    "masonpcSide.masonOnMeetings",
    "masonpcSide.bagsLift",
    "masonpcSide.pointsLedger",
    "masonpcSide.rewardsRedemption",
}

_SALES_MANAGER_CAPABILITIES = _MANAGER_CAPABILITIES | {
    "dealerManagement.dealerBrandMapping",
    "logisticsIO.records",
}

ALL_CAPABILITIES: frozenset[str] = frozenset(_SALES_MANAGER_CAPABILITIES)

CAPABILITIES: dict[Role, frozenset[str]] = {
    Role.president: ALL_CAPABILITIES,
    Role.senior_general_manager: ALL_CAPABILITIES,
    Role.general_manager: ALL_CAPABILITIES,
    Role.regional_sales_manager: frozenset(_SALES_MANAGER_CAPABILITIES),
    Role.area_sales_manager: frozenset(_SALES_MANAGER_CAPABILITIES),
    Role.assistant_sales_manager: frozenset(_SALES_MANAGER_CAPABILITIES),
    Role.senior_manager: frozenset(_MANAGER_CAPABILITIES),
    Role.manager: frozenset(_MANAGER_CAPABILITIES),
    Role.assistant_manager: frozenset(_MANAGER_CAPABILITIES),
    Role.senior_executive: frozenset(_SENIOR_FIELD_CAPABILITIES),
    Role.executive: frozenset(_FIELD_CAPABILITIES),
    Role.junior_executive: frozenset(_FIELD_CAPABILITIES),
}
CAPABILITIES[Role.unknown] = CAPABILITIES[Role.junior_executive]

_missing = set(Role) - set(CAPABILITIES)
if _missing:
    raise RuntimeError(f"Roles without a capability set: {sorted(r.value for r in _missing)}")


def permissions_for(role: Union[str, Role, None]) -> frozenset[str]:
    return CAPABILITIES[Role.parse(role)]


def has_permission(role: Union[str, Role, None], capability: str) -> bool:
    return capability in permissions_for(role)


# ── Route allow-lists ────────────────────────────────────────────────────────

# May rewrite reporting lines and dealer ownership.
MAPPING_ROLES: frozenset[Role] = frozenset(ROLE_HIERARCHY[: ROLE_HIERARCHY.index(Role.assistant_manager) + 1])

# May view the team overview.
TEAM_VIEW_ROLES: frozenset[Role] = MAPPING_ROLES | {Role.senior_executive}

# May change another user's role (still bounded by can_assign_role).
ROLE_EDITOR_ROLES: frozenset[Role] = MAPPING_ROLES | {Role.senior_executive, Role.executive}
