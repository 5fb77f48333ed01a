"""Rollups of impact updates for one event or campaign."""
import math
from typing import Dict, List, Sequence

from app.api.schemas import ImpactLocation, ImpactSummary, ImpactUpdateRecord
from app.services.scoring import has_financial_proof, spent_money

# Weights of the proof completeness components
MEDIA_WEIGHT = 40
FINANCIAL_WEIGHT = 30
TESTIMONIAL_WEIGHT = 30


def proof_completeness(updates: Sequence[ImpactUpdateRecord]) -> int:
    """
    Percentage (0-100) of encouraged evidence present across an entity's updates.

    - media: share of updates with at least one photo or video
    - financial: share of money-spending updates with a receipt or invoice
      (left out entirely when nothing was spent)
    - testimonials: whether any update carries a quote

    The result is floored, so 100 means every component is complete.
    """
    if not updates:
        return 0

    earned = MEDIA_WEIGHT * sum(1 for u in updates if u.proof.media) / len(updates)
    possible = MEDIA_WEIGHT

    spending = [u for u in updates if spent_money(u)]
    if spending:
        earned += FINANCIAL_WEIGHT * sum(1 for u in spending if has_financial_proof(u)) / len(spending)
        possible += FINANCIAL_WEIGHT

    if any(u.proof.quotes for u in updates):
        earned += TESTIMONIAL_WEIGHT
    possible += TESTIMONIAL_WEIGHT

    return math.floor(100 * earned / possible)


def summarize(entity_type: str, entity_id: str, updates: Sequence[ImpactUpdateRecord]) -> ImpactSummary:
    """Aggregate metrics, spend, areas and locations of an entity's updates."""
    metrics: Dict[str, float] = {}
    area_ids: List[str] = []
    locations: List[ImpactLocation] = []
    total_spent = 0.0

    for update in updates:
        # Metrics are summed by milestone name
        for metric in update.metrics:
            metrics[metric.milestone] = metrics.get(metric.milestone, 0) + metric.value
        for area_id in update.impact_area_ids:
            if area_id not in area_ids:
                area_ids.append(area_id)
        if update.location:
            locations.append(update.location)
        if update.amount_spent:
            total_spent += update.amount_spent

    return ImpactSummary(
        entity_type=entity_type,
        entity_id=entity_id,
        total_updates=len(updates),
        total_amount_spent=round(total_spent, 2),
        aggregated_metrics=metrics,
        impact_area_ids=area_ids,
        locations=locations,
        latest_update=max((u.impact_date for u in updates), default=None),
        proof_completeness=proof_completeness(updates),
    )
