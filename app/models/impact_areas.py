"""
Fixed taxonomy of impact areas.

An impact update is tagged with between one and MAX_IMPACT_AREAS of these ids.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from app.models.enums import OrganisationType

MAX_IMPACT_AREAS = 3

_ALL = (
    OrganisationType.CLUB,
    OrganisationType.SCHOOL,
    OrganisationType.CHARITY,
    OrganisationType.CAUSE,
)
_NO_CAUSE = (OrganisationType.CLUB, OrganisationType.SCHOOL, OrganisationType.CHARITY)


@dataclass(frozen=True)
class ImpactArea:
    id: str
    label: str
    description: str
    sdg_goals: Tuple[int, ...]
    organisation_types: Tuple[OrganisationType, ...]
    sort_order: int


IMPACT_AREAS: Tuple[ImpactArea, ...] = (
    ImpactArea(
        "community_inclusion",
        "Community & Inclusion",
        "Local community supports, inclusion, access, and belonging.",
        (10, 11), _ALL, 10,
    ),
    ImpactArea(
        "children_youth",
        "Children & Youth",
        "Youth development, kids programmes, family supports.",
        (3, 4), _ALL, 20,
    ),
    ImpactArea(
        "education_learning",
        "Education & Learning",
        "Learning resources, training, school supports, educational trips.",
        (4,), _ALL, 30,
    ),
    ImpactArea(
        "sport_health_wellbeing",
        "Sport, Health & Wellbeing",
        "Sport participation, mental health, wellbeing, disability sport.",
        (3,), _ALL, 40,
    ),
    ImpactArea(
        "health_medical_support",
        "Health & Medical Support",
        "Medical support, treatment-related costs, patient/family support.",
        (3,), _ALL, 50,
    ),
    ImpactArea(
        "poverty_basic_needs",
        "Poverty & Basic Needs",
        "Food, clothing, shelter, fuel poverty, essential supports.",
        (1, 2), _ALL, 60,
    ),
    ImpactArea(
        "emergency_crisis_response",
        "Emergency & Crisis Response",
        "Urgent appeals, crisis response, emergency supports.",
        (1, 3), _ALL, 70,
    ),
    ImpactArea(
        "environment_climate",
        "Environment & Climate",
        "Clean-ups, biodiversity, tree planting, climate action.",
        (13, 15), _ALL, 80,
    ),
    ImpactArea(
        "volunteering_civic_action",
        "Volunteering & Civic Action",
        "Volunteer-led initiatives and civic participation.",
        (16, 17), _NO_CAUSE, 90,
    ),
    ImpactArea(
        "arts_culture_heritage",
        "Arts, Culture & Heritage",
        "Arts programmes, culture, music/drama, heritage projects.",
        (11,), _NO_CAUSE, 100,
    ),
    ImpactArea(
        "equality_diversity_rights",
        "Equality, Diversity & Rights",
        "Equality and inclusion initiatives, disability supports, advocacy.",
        (5, 10), _NO_CAUSE, 110,
    ),
    ImpactArea(
        "international_aid_development",
        "International Aid & Development",
        "Overseas aid, development projects, global partnerships.",
        (1, 2, 17), _ALL, 120,
    ),
    ImpactArea(
        "personal_life_events",
        "Personal Causes & Life Events",
        "Peer-to-peer fundraising for personal situations and life events.",
        (3,), (OrganisationType.CAUSE,), 130,
    ),
)

IMPACT_AREA_MAP: Dict[str, ImpactArea] = {area.id: area for area in IMPACT_AREAS}


def is_valid_impact_area_id(area_id: str) -> bool:
    return area_id in IMPACT_AREA_MAP


def get_impact_area(area_id: str) -> Optional[ImpactArea]:
    return IMPACT_AREA_MAP.get(area_id)


def areas_for(organisation_type: OrganisationType) -> List[ImpactArea]:
    """Impact areas applicable to an organisation type, in display order."""
    return sorted(
        (area for area in IMPACT_AREAS if organisation_type in area.organisation_types),
        key=lambda area: area.sort_order,
    )


def toggle_impact_area(selected: Sequence[str], area_id: str) -> List[str]:
    """
    Toggle an impact area in a selection.

    Deselects the area if already selected. Selecting beyond MAX_IMPACT_AREAS
    leaves the selection unchanged.
    """
    current = list(selected)
    if area_id in current:
        return [a for a in current if a != area_id]
    if len(current) >= MAX_IMPACT_AREAS:
        return current
    return current + [area_id]
