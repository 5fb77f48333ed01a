"""
Rules that decide whether impact data is acceptable and whether a record may move on.

All functions here are pure: they take records already loaded by the caller
and never touch the database or the network.
"""
from typing import Iterable, List, Optional, Tuple, Union

from app.api.schemas import (
    FinalDecision,
    ImpactUpdateChange,
    ImpactUpdateCreate,
    ImpactUpdateRecord,
    PublishDecision,
)
from app.models.enums import ImpactStatus
from app.models.impact_areas import MAX_IMPACT_AREAS, is_valid_impact_area_id
from app.services.scoring import (
    SCORED_STATUSES,
    has_financial_proof,
    spent_money,
    valid_metric_count,
    validate_aggregate_proof,
)


def validate_impact_data(
    data: Union[ImpactUpdateCreate, ImpactUpdateChange],
    creating: bool = True,
) -> List[str]:
    """
    Check a create or update payload. Returns a list of errors, empty when valid.

    On create every required field is checked. On update only the fields
    that were set are checked.
    """
    errors = []
    provided = data.model_fields_set if not creating else None

    def given(field: str) -> bool:
        return creating or (field in provided and getattr(data, field) is not None)

    if creating:
        if not data.event_id and not data.campaign_id:
            errors.append("Either event_id or campaign_id must be provided")
        if data.impact_date is None:
            errors.append("Impact date is required")

    if given("title") and not (data.title or "").strip():
        errors.append("Title is required")
    if given("description") and not (data.description or "").strip():
        errors.append("Description is required")

    if given("impact_area_ids"):
        area_ids = data.impact_area_ids or []
        if not area_ids:
            errors.append("At least one impact area is required")
        elif len(area_ids) > MAX_IMPACT_AREAS:
            errors.append(f"Maximum {MAX_IMPACT_AREAS} impact areas allowed")
        repeated = sorted({a for a in area_ids if area_ids.count(a) > 1})
        if repeated:
            errors.append(f"Duplicate impact area(s): {', '.join(repeated)}")
        unknown = [a for a in area_ids if not is_valid_impact_area_id(a)]
        if unknown:
            errors.append(f"Unknown impact area(s): {', '.join(unknown)}")

    if given("metrics"):
        metrics = data.metrics or []
        if not metrics:
            errors.append("At least one metric is required")
        for index, metric in enumerate(metrics, start=1):
            if not metric.milestone.strip():
                errors.append(f"Metric {index}: Milestone description is required")
            if metric.value <= 0:
                errors.append(f"Metric {index}: Value must be greater than 0")

    if given("amount_spent") and data.amount_spent is not None and data.amount_spent < 0:
        errors.append("Amount spent cannot be negative")

    if given("proof"):
        proof = data.proof
        if not proof.media:
            errors.append("At least one photo or video is required")
        for index, media in enumerate(proof.media, start=1):
            if not media.url.strip():
                errors.append(f"Media {index}: URL is required")
        for index, quote in enumerate(proof.quotes, start=1):
            if not quote.text.strip():
                errors.append(f"Quote {index}: Text is required")

    return errors


def publish_blockers(update: ImpactUpdateRecord) -> List[str]:
    """Every unmet publish requirement of a record, in the order they are reported."""
    blockers = []
    if update.is_final:
        blockers.append("This impact update is final and can no longer change")
    elif update.status != ImpactStatus.DRAFT:
        blockers.append("Only draft impact updates can be published")
    if not update.title.strip():
        blockers.append("Title is required")
    if not update.description.strip():
        blockers.append("Description is required")
    if not update.impact_area_ids:
        blockers.append("At least one impact area is required")
    if valid_metric_count(update) == 0:
        blockers.append("At least one impact metric with a value greater than 0 is required")
    if not update.proof.media:
        blockers.append("At least one media item (photo or video) is required")
    if spent_money(update) and not has_financial_proof(update):
        blockers.append("A receipt or invoice is required when money was spent")
    return blockers


def can_publish(update: ImpactUpdateRecord) -> PublishDecision:
    """Decide whether a draft may be published. The reason names the first unmet requirement."""
    blockers = publish_blockers(update)
    if blockers:
        return PublishDecision(can_publish=False, reason=blockers[0])
    return PublishDecision(can_publish=True)


def entity_of(update: ImpactUpdateRecord) -> Tuple[str, Optional[str]]:
    """The event an update reports on, or its campaign for campaign-level updates."""
    if update.event_id:
        return "event", update.event_id
    return "campaign", update.campaign_id


def can_mark_final(
    update: ImpactUpdateRecord,
    siblings: Iterable[ImpactUpdateRecord] = (),
) -> FinalDecision:
    """
    Decide whether a published update may be irreversibly marked final.

    Siblings are the other updates of the same event (or campaign). At most
    one update per event may be final, and the published updates of the
    event must together carry enough proof.
    """
    if update.is_final:
        return FinalDecision(allowed=False, reason="This impact update is already marked as final")
    if update.status != ImpactStatus.PUBLISHED:
        return FinalDecision(allowed=False, reason="Only published updates can be marked as final")

    entity = entity_of(update)
    group = {s.id: s for s in siblings if entity_of(s) == entity}
    group[update.id] = update

    if any(s.is_final for s in group.values()):
        return FinalDecision(
            allowed=False,
            reason=f"This {entity[0]} already has a final impact update marked",
        )

    validation = validate_aggregate_proof(s for s in group.values() if s.status in SCORED_STATUSES)
    if not validation.meets_requirements:
        return FinalDecision(
            allowed=False,
            reason=f"Requirements not met. Missing: {', '.join(validation.missing_elements)}",
            validation=validation,
        )
    return FinalDecision(allowed=True, validation=validation)
