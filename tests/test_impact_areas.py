"""
Tests for the impact area taxonomy.
"""
from app.models.enums import OrganisationType
from app.models.impact_areas import (
    IMPACT_AREAS,
    MAX_IMPACT_AREAS,
    areas_for,
    get_impact_area,
    is_valid_impact_area_id,
    toggle_impact_area,
)


class TestTaxonomy:
    def test_thirteen_unique_areas(self):
        ids = [area.id for area in IMPACT_AREAS]
        assert len(ids) == 13
        assert len(set(ids)) == 13

    def test_lookup(self):
        assert is_valid_impact_area_id("environment_climate")
        assert not is_valid_impact_area_id("space_travel")
        assert get_impact_area("environment_climate").label == "Environment & Climate"
        assert get_impact_area("space_travel") is None

    def test_areas_for_organisation_type(self):
        cause_ids = [area.id for area in areas_for(OrganisationType.CAUSE)]
        club_ids = [area.id for area in areas_for(OrganisationType.CLUB)]

        assert "personal_life_events" in cause_ids
        assert "arts_culture_heritage" not in cause_ids
        assert "personal_life_events" not in club_ids
        assert club_ids[0] == "community_inclusion"


class TestToggle:
    """Test area selection cardinality."""

    def test_select_and_deselect(self):
        selected = toggle_impact_area([], "children_youth")
        assert selected == ["children_youth"]
        assert toggle_impact_area(selected, "children_youth") == []

    def test_fourth_area_is_a_no_op(self):
        """
        INVARIANT: Selecting a fourth area when three are selected leaves the selection unchanged.
        """
        selected = ["children_youth", "education_learning", "poverty_basic_needs"]
        assert len(selected) == MAX_IMPACT_AREAS

        assert toggle_impact_area(selected, "environment_climate") == selected

    def test_deselect_works_at_the_limit(self):
        selected = ["children_youth", "education_learning", "poverty_basic_needs"]

        assert toggle_impact_area(selected, "education_learning") == ["children_youth", "poverty_basic_needs"]
