"""Tests for the role ranking and capability table."""

import itertools

import pytest

from dealerdesk.core.permissions import (
    CAPABILITIES,
    MAPPING_ROLES,
    ROLE_EDITOR_ROLES,
    ROLE_HIERARCHY,
    TEAM_VIEW_ROLES,
    Role,
    can_assign_role,
    has_permission,
    permissions_for,
    rank,
)

KNOWN = [r.value for r in ROLE_HIERARCHY]


class TestRoleParsing:

    def test_known_values_round_trip(self):
        for value in KNOWN:
            assert Role.parse(value).value == value

    def test_parse_normalises_case_and_whitespace(self):
        assert Role.parse("  Senior-Manager ") is Role.senior_manager

    @pytest.mark.parametrize("value", [None, "", "admin", "ceo", "manager2"])
    def test_unrecognised_values_become_unknown(self, value):
        assert Role.parse(value) is Role.unknown

    def test_unknown_has_no_rank(self):
        assert rank(Role.unknown) is None
        assert rank("superuser") is None

    def test_president_is_top_and_junior_executive_bottom(self):
        assert ROLE_HIERARCHY[0] is Role.president
        assert ROLE_HIERARCHY[-1] is Role.junior_executive
        assert rank("president") == len(ROLE_HIERARCHY)
        assert rank("junior-executive") == 1


class TestCanAssignRole:

    def test_matches_rank_table_for_every_pair(self):
        for a, b in itertools.product(KNOWN, KNOWN):
            assert can_assign_role(a, b) == (KNOWN.index(a) < KNOWN.index(b))

    def test_irreflexive(self):
        for role in KNOWN:
            assert can_assign_role(role, role) is False

    def test_asymmetric(self):
        for a, b in itertools.product(KNOWN, KNOWN):
            assert not (can_assign_role(a, b) and can_assign_role(b, a))

    def test_total_over_distinct_roles(self):
        for a, b in itertools.combinations(KNOWN, 2):
            assert can_assign_role(a, b) != can_assign_role(b, a)

    def test_transitive(self):
        for a, b, c in itertools.permutations(KNOWN, 3):
            if can_assign_role(a, b) and can_assign_role(b, c):
                assert can_assign_role(a, c)

    @pytest.mark.parametrize("other", KNOWN)
    def test_unknown_roles_deny_both_ways(self, other):
        assert can_assign_role("nonsense", other) is False
        assert can_assign_role(other, "nonsense") is False
        assert can_assign_role(None, other) is False
        assert can_assign_role(Role.unknown, Role.unknown) is False

    def test_accepts_enum_members(self):
        assert can_assign_role(Role.senior_manager, Role.manager) is True
        assert can_assign_role(Role.manager, Role.senior_manager) is False

    def test_deterministic(self):
        results = {can_assign_role("general-manager", "manager") for _ in range(50)}
        assert results == {True}


class TestCapabilities:

    def test_every_role_has_a_capability_set(self):
        assert set(CAPABILITIES) == set(Role)

    def test_unknown_role_falls_back_to_lowest_privilege(self):
        assert permissions_for("intern") == CAPABILITIES[Role.junior_executive]
        assert has_permission("intern", "technicalSites.listSites") is True
        assert has_permission("intern", "scoresAndRatings.salesmanRatings") is False

    def test_president_has_everything(self):
        assert has_permission("president", "logisticsIO.records")
        assert has_permission("president", "scoresAndRatings.salesmanRatings")

    def test_capabilities_never_shrink_up_the_hierarchy(self):
        for higher, lower in zip(ROLE_HIERARCHY, ROLE_HIERARCHY[1:]):
            assert CAPABILITIES[lower] <= CAPABILITIES[higher]

    def test_salesman_ratings_gated_to_managers(self):
        assert has_permission("manager", "scoresAndRatings.salesmanRatings")
        assert not has_permission("senior-executive", "scoresAndRatings.salesmanRatings")

    def test_unknown_capability_is_denied(self):
        assert has_permission("president", "does.notExist") is False


class TestAllowLists:

    def test_mapping_roles_stop_at_assistant_manager(self):
        assert Role.assistant_manager in MAPPING_ROLES
        assert Role.senior_executive not in MAPPING_ROLES
        assert Role.unknown not in MAPPING_ROLES
        assert len(MAPPING_ROLES) == 9

    def test_team_view_adds_senior_executive(self):
        assert TEAM_VIEW_ROLES - MAPPING_ROLES == {Role.senior_executive}

    def test_role_editors_include_executives(self):
        assert {Role.senior_executive, Role.executive} <= ROLE_EDITOR_ROLES
        assert Role.junior_executive not in ROLE_EDITOR_ROLES
