"""Tests for dealer discovery and dealer mapping."""

import pytest
from sqlalchemy import select

from dealerdesk.core.errors import Forbidden, NotFound
from dealerdesk.models.dealer import Dealer
from dealerdesk.schemas.dealer import DealerMappingUpdate
from dealerdesk.services.dealer_service import DealerService
from dealerdesk.services.user_service import UserService

from conftest import current_user


async def owners(database) -> dict[str, int | None]:
    async with database.session() as s:
        result = await s.execute(select(Dealer.id, Dealer.user_id).order_by(Dealer.id))
        return {row.id: row.user_id for row in result}


class TestDealerLocations:

    @pytest.mark.asyncio
    async def test_includes_orphans_and_excludes_other_tenants(self, dealers, session):
        locations = await DealerService.locations(session, 7)

        assert locations.regions == ["East", "North", "South"]
        assert locations.areas == ["Durgapur", "Howrah", "Siliguri"]

    @pytest.mark.asyncio
    async def test_other_tenant_sees_own_dealers_plus_orphans(self, dealers, session):
        locations = await DealerService.locations(session, 8)

        assert locations.regions == ["South", "West"]
        assert "Pune" in locations.areas
        assert "Howrah" not in locations.areas

    @pytest.mark.asyncio
    async def test_types_exclude_orphans(self, dealers, session):
        types = await DealerService.types(session, 7)

        assert types.type == ["Dealer", "Sub Dealer"]


class TestDealerMapping:

    @pytest.mark.asyncio
    async def test_mapping_lists_visible_dealers_and_assigned_ids(self, dealers, session):
        result = await DealerService.mapping(session, current_user(), user_id=2)

        assert {d.id for d in result.dealers} == {"d-1", "d-2", "d-3", "d-5"}
        assert result.assigned_dealer_ids == ["d-1"]

    @pytest.mark.asyncio
    async def test_mapping_filters_by_area_and_region(self, dealers, session):
        result = await DealerService.mapping(session, current_user(), user_id=2, region="East")

        assert [d.id for d in result.dealers] == ["d-2"]

    @pytest.mark.asyncio
    async def test_mapping_requires_mapping_role(self, dealers, session):
        with pytest.raises(Forbidden):
            await DealerService.mapping(session, current_user(role="executive"), user_id=2)

    @pytest.mark.asyncio
    async def test_replace_mapping(self, dealers):
        result = await DealerService.replace_dealer_mapping(
            dealers, current_user(), DealerMappingUpdate(user_id=2, dealer_ids=["d-3", "d-2", "d-3"])
        )

        assert result.dealer_ids == ["d-2", "d-3"]
        assert result.orphans_changed is True
        assert await owners(dealers) == {
            "d-1": None, "d-2": 2, "d-3": 2, "d-4": 20, "d-5": None,
        }

    @pytest.mark.asyncio
    async def test_moving_dealers_between_colleagues_leaves_orphans_alone(self, dealers):
        result = await DealerService.replace_dealer_mapping(
            dealers, current_user(), DealerMappingUpdate(user_id=2, dealer_ids=["d-1", "d-2"])
        )

        assert result.orphans_changed is False
        assert (await owners(dealers))["d-2"] == 2

    @pytest.mark.asyncio
    async def test_releasing_a_dealer_makes_it_an_orphan(self, dealers):
        result = await DealerService.replace_dealer_mapping(
            dealers, current_user(), DealerMappingUpdate(user_id=3, dealer_ids=[])
        )

        assert result.orphans_changed is True
        assert (await owners(dealers))["d-2"] is None

    @pytest.mark.asyncio
    async def test_other_tenants_dealer_is_not_found_and_nothing_changes(self, dealers):
        before = await owners(dealers)

        with pytest.raises(NotFound):
            await DealerService.replace_dealer_mapping(
                dealers, current_user(), DealerMappingUpdate(user_id=2, dealer_ids=["d-3", "d-4"])
            )

        assert await owners(dealers) == before

    @pytest.mark.asyncio
    async def test_user_of_other_tenant_is_not_found(self, dealers):
        with pytest.raises(NotFound):
            await DealerService.replace_dealer_mapping(
                dealers, current_user(), DealerMappingUpdate(user_id=20, dealer_ids=[])
            )


class TestUserFilters:

    @pytest.mark.asyncio
    async def test_user_locations_are_company_scoped(self, team, session):
        locations = await UserService.locations(session, 7)

        assert locations.regions == ["East", "North"]
        assert locations.areas == ["Howrah", "Kolkata"]

    @pytest.mark.asyncio
    async def test_user_roles(self, team, session):
        roles = await UserService.roles(session, 7)

        assert roles.roles == [
            "assistant-manager", "executive", "general-manager", "manager", "senior-manager",
        ]

    @pytest.mark.asyncio
    async def test_team_overview(self, team, session):
        members = await UserService.team_overview(session, current_user())
        by_id = {m.id: m for m in members}

        assert set(by_id) == {1, 2, 3, 4, 5, 6, 10}
        assert by_id[1].manages_ids == [2, 3]
        assert by_id[1].manages == "First2 Last2, First3 Last3"
        assert by_id[1].managed_by == "none"
        assert by_id[2].managed_by == "First1 Last1"
        assert by_id[2].managed_by_id == 1
        assert by_id[5].manages == "None"

    @pytest.mark.asyncio
    async def test_team_overview_role_filter(self, team, session):
        members = await UserService.team_overview(session, current_user(), role="executive")
        assert {m.id for m in members} == {2, 3, 5}

        everyone = await UserService.team_overview(session, current_user(), role="all")
        assert len(everyone) == 7

    @pytest.mark.asyncio
    async def test_team_overview_forbidden_for_executives(self, team, session):
        with pytest.raises(Forbidden):
            await UserService.team_overview(session, current_user(role="executive"))
