"""
Reputation scoring for impact updates.

Points per proof element (each component capped):
- Media: 15 per item, at most 4 counted (60)
- Metrics with a value > 0: 20 each, at most 4 counted (80)
- Financial: 40 if any receipt, 40 if any invoice (80)
- Testimonials: 10 per quote, at most 5 counted (50)

Only published and verified updates count towards a club's score.
"""
from typing import Iterable, List

from app.api.schemas import (
    AggregateProofValidation,
    ImpactUpdateRecord,
    ProofValidation,
    ReputationScore,
    ScoreBreakdown,
    ScoreCounts,
)
from app.models.enums import ImpactStatus

SCORED_STATUSES = frozenset({ImpactStatus.PUBLISHED, ImpactStatus.VERIFIED})

MEDIA_POINTS = 15
MEDIA_CAP = 4
METRIC_POINTS = 20
METRIC_CAP = 4
RECEIPT_POINTS = 40
INVOICE_POINTS = 40
TESTIMONIAL_POINTS = 10
TESTIMONIAL_CAP = 5

MAX_SCORE = (
    MEDIA_POINTS * MEDIA_CAP
    + METRIC_POINTS * METRIC_CAP
    + RECEIPT_POINTS
    + INVOICE_POINTS
    + TESTIMONIAL_POINTS * TESTIMONIAL_CAP
)

# Minimum score considered meaningful (also required to mark an event final)
MEANINGFUL_SCORE = 80

# Media items required across an event's updates before it can be closed
MIN_FINAL_MEDIA = 3

RATING_BANDS = (
    (200, "Exceptional"),
    (150, "Excellent"),
    (100, "Great"),
    (MEANINGFUL_SCORE, "Good"),
)
BASE_RATING = "Developing"


def valid_metric_count(update: ImpactUpdateRecord) -> int:
    return sum(1 for metric in update.metrics if metric.value > 0)


def spent_money(update: ImpactUpdateRecord) -> bool:
    return bool(update.amount_spent and update.amount_spent > 0)


def has_financial_proof(update: ImpactUpdateRecord) -> bool:
    return bool(update.proof.receipts or update.proof.invoices)


def score_breakdown(
    media: int,
    metrics: int,
    quotes: int,
    has_receipts: bool,
    has_invoices: bool,
) -> ScoreBreakdown:
    financial = 0
    if has_receipts:
        financial += RECEIPT_POINTS
    if has_invoices:
        financial += INVOICE_POINTS

    return ScoreBreakdown(
        media_points=min(media, MEDIA_CAP) * MEDIA_POINTS,
        metrics_points=min(metrics, METRIC_CAP) * METRIC_POINTS,
        financial_points=financial,
        testimonial_points=min(quotes, TESTIMONIAL_CAP) * TESTIMONIAL_POINTS,
    )


def total_points(breakdown: ScoreBreakdown) -> int:
    return (
        breakdown.media_points
        + breakdown.metrics_points
        + breakdown.financial_points
        + breakdown.testimonial_points
    )


def rating_for(score: int) -> str:
    """Display rating for a score."""
    for threshold, label in RATING_BANDS:
        if score >= threshold:
            return label
    return BASE_RATING


def _count(updates: Iterable[ImpactUpdateRecord]) -> ScoreCounts:
    counts = ScoreCounts()
    for update in updates:
        counts.media += len(update.proof.media)
        counts.testimonials += len(update.proof.quotes)
        counts.metrics += valid_metric_count(update)
        if update.proof.receipts:
            counts.has_receipts = True
        if update.proof.invoices:
            counts.has_invoices = True
    return counts


def scored_updates(updates: Iterable[ImpactUpdateRecord]) -> List[ImpactUpdateRecord]:
    return [u for u in updates if u.status in SCORED_STATUSES]


def calculate_aggregate_score(updates: Iterable[ImpactUpdateRecord]) -> ReputationScore:
    """
    Reputation score of a club from all of its impact updates (any status).

    Drafts and flagged updates are ignored. The result does not depend on
    the order of the input.
    """
    counts = _count(scored_updates(updates))
    breakdown = score_breakdown(
        counts.media,
        counts.metrics,
        counts.testimonials,
        counts.has_receipts,
        counts.has_invoices,
    )
    score = total_points(breakdown)
    return ReputationScore(score=score, breakdown=breakdown, counts=counts, rating=rating_for(score))


def validate_proof(update: ImpactUpdateRecord) -> ProofValidation:
    """Score a single update's proof and list what is still missing."""
    proof = update.proof
    media_count = len(proof.media)
    metrics_count = valid_metric_count(update)
    missing = []

    if media_count < MIN_FINAL_MEDIA:
        missing.append(
            f"Need {MIN_FINAL_MEDIA - media_count} more photo(s)/video(s) "
            f"(minimum {MIN_FINAL_MEDIA} required)"
        )
    if metrics_count < 1:
        missing.append("At least 1 impact metric with value > 0 required")
    if spent_money(update) and not has_financial_proof(update):
        missing.append("At least one receipt or invoice required when money spent")

    breakdown = score_breakdown(
        media_count,
        metrics_count,
        len(proof.quotes),
        bool(proof.receipts),
        bool(proof.invoices),
    )
    return ProofValidation(
        has_receipts=bool(proof.receipts),
        has_invoices=bool(proof.invoices),
        has_quotes=bool(proof.quotes),
        has_media=media_count > 0,
        media_count=media_count,
        metrics_count=metrics_count,
        testimonials_count=len(proof.quotes),
        financial_proof_count=int(bool(proof.receipts)) + int(bool(proof.invoices)),
        score=total_points(breakdown),
        missing_elements=missing,
    )


def validate_aggregate_proof(updates: Iterable[ImpactUpdateRecord]) -> AggregateProofValidation:
    """
    Proof check across every update of one event or campaign.

    Requirements for closing reporting:
    - at least MIN_FINAL_MEDIA media items in total
    - at least one metric with value > 0
    - a receipt or invoice somewhere if any update spent money
    - an aggregate score of at least MEANINGFUL_SCORE
    """
    updates = list(updates)
    counts = _count(updates)
    any_money_spent = any(spent_money(u) for u in updates)
    missing = []

    if counts.media < MIN_FINAL_MEDIA:
        missing.append(
            f"Need {MIN_FINAL_MEDIA - counts.media} more photo(s)/video(s) "
            f"(currently have {counts.media}, minimum {MIN_FINAL_MEDIA} required)"
        )
    if counts.metrics < 1:
        missing.append("At least 1 impact metric with value > 0 required")
    if any_money_spent and not (counts.has_receipts or counts.has_invoices):
        missing.append("At least one receipt or invoice required as money was spent")

    score = total_points(score_breakdown(
        counts.media,
        counts.metrics,
        counts.testimonials,
        counts.has_receipts,
        counts.has_invoices,
    ))
    if not missing and score < MEANINGFUL_SCORE:
        missing.append(f"Aggregate proof score {score} is below the minimum of {MEANINGFUL_SCORE}")

    return AggregateProofValidation(
        total_media=counts.media,
        total_metrics=counts.metrics,
        total_quotes=counts.testimonials,
        has_receipts=counts.has_receipts,
        has_invoices=counts.has_invoices,
        any_money_spent=any_money_spent,
        score=score,
        missing_elements=missing,
        meets_requirements=not missing,
    )
