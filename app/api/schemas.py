"""Pydantic schemas for request/response validation."""
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from app.models.enums import (
    EventStatus,
    ImpactProgress,
    ImpactStatus,
    MediaType,
    MetricType,
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Stored timestamps are naive UTC
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Impact building blocks
class ImpactMetric(BaseModel):
    id: str = Field(default_factory=_new_id)
    type: MetricType = MetricType.CUSTOM
    milestone: str = ""  # "Families fed", "Volunteer hours"
    value: float = Field(0, allow_inf_nan=False)
    unit: Optional[str] = None


class ImpactQuote(BaseModel):
    id: str = Field(default_factory=_new_id)
    text: str = ""
    attribution: Optional[str] = None  # "Sarah, volunteer coordinator"
    role: Optional[str] = None  # "Beneficiary", "Volunteer", "Parent"


class ImpactMedia(BaseModel):
    id: str = Field(default_factory=_new_id)
    type: MediaType = MediaType.IMAGE
    url: str = ""
    caption: Optional[str] = None


class ImpactLocation(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    place_name: Optional[str] = None


class ImpactProof(BaseModel):
    receipts: List[str] = []
    invoices: List[str] = []
    quotes: List[ImpactQuote] = []
    media: List[ImpactMedia] = []


# ImpactUpdate schemas
class ImpactUpdateCreate(BaseModel):
    event_id: Optional[str] = None
    campaign_id: Optional[str] = None
    impact_area_ids: List[str] = []
    title: str = ""
    description: str = ""
    impact_date: Optional[datetime] = None
    metrics: List[ImpactMetric] = []
    amount_spent: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    location: Optional[ImpactLocation] = None
    proof: ImpactProof = Field(default_factory=ImpactProof)

    @field_validator("impact_date")
    @classmethod
    def impact_date_as_utc(cls, value):
        return _naive_utc(value)


class ImpactUpdateChange(BaseModel):
    """Partial update of a draft. Only fields that are set are applied."""
    title: Optional[str] = None
    description: Optional[str] = None
    impact_date: Optional[datetime] = None
    metrics: Optional[List[ImpactMetric]] = None
    amount_spent: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    location: Optional[ImpactLocation] = None
    proof: Optional[ImpactProof] = None
    impact_area_ids: Optional[List[str]] = None

    @field_validator("impact_date")
    @classmethod
    def impact_date_as_utc(cls, value):
        return _naive_utc(value)


class ImpactUpdateRecord(BaseModel):
    """A stored impact update, as returned by the API and consumed by the scoring rules."""
    id: str
    club_id: str
    event_id: Optional[str] = None
    campaign_id: Optional[str] = None
    impact_area_ids: List[str] = []
    title: str
    description: str
    impact_date: datetime
    metrics: List[ImpactMetric] = []
    amount_spent: Optional[float] = None
    currency: str = "EUR"
    location: Optional[ImpactLocation] = None
    proof: ImpactProof = Field(default_factory=ImpactProof)
    status: ImpactStatus
    verification_notes: Optional[str] = None
    is_final: bool = False
    created_by: str
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ImpactListResponse(BaseModel):
    impacts: List[ImpactUpdateRecord]
    total: int


class ImpactMutationResponse(BaseModel):
    message: str
    impact: ImpactUpdateRecord


class MessageResponse(BaseModel):
    message: str


class ModerationRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


# Scoring schemas
class ScoreBreakdown(BaseModel):
    media_points: int = 0
    metrics_points: int = 0
    financial_points: int = 0
    testimonial_points: int = 0


class ScoreCounts(BaseModel):
    media: int = 0
    metrics: int = 0
    testimonials: int = 0
    has_receipts: bool = False
    has_invoices: bool = False


class ReputationScore(BaseModel):
    score: int
    breakdown: ScoreBreakdown
    counts: ScoreCounts
    rating: str


class ProofValidation(BaseModel):
    """Proof check of a single impact update."""
    has_receipts: bool
    has_invoices: bool
    has_quotes: bool
    has_media: bool
    media_count: int
    metrics_count: int
    testimonials_count: int
    financial_proof_count: int
    score: int
    missing_elements: List[str] = []


class AggregateProofValidation(BaseModel):
    """Proof check across all scored updates of one event or campaign."""
    total_media: int
    total_metrics: int
    total_quotes: int
    has_receipts: bool
    has_invoices: bool
    any_money_spent: bool
    score: int
    missing_elements: List[str] = []
    meets_requirements: bool


class PublishDecision(BaseModel):
    can_publish: bool
    reason: Optional[str] = None


class PublishValidation(PublishDecision):
    proof_validation: ProofValidation


class FinalDecision(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    validation: Optional[AggregateProofValidation] = None


class ImpactSummary(BaseModel):
    entity_type: str  # "event" or "campaign"
    entity_id: str
    total_updates: int
    total_amount_spent: float
    aggregated_metrics: Dict[str, float]  # milestone -> total value
    impact_area_ids: List[str]
    locations: List[ImpactLocation]
    latest_update: Optional[datetime] = None
    proof_completeness: int  # 0-100


class ImpactSummaryResponse(BaseModel):
    summary: ImpactSummary


# Trust schemas
class TrustStatus(BaseModel):
    can_create_campaign: bool
    can_create_event: bool
    outstanding_impact_reports: int
    overdue_days: int
    reason: Optional[str] = None


class OutstandingReport(BaseModel):
    id: str
    title: str
    event_date: datetime
    campaign_id: Optional[str] = None

    class Config:
        from_attributes = True


class TrustStatusResponse(BaseModel):
    trust_status: TrustStatus
    outstanding_reports: List[OutstandingReport]


# Event / campaign schemas
class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    event_date: datetime
    campaign_id: Optional[str] = None
    status: EventStatus = EventStatus.DRAFT

    @field_validator("event_date")
    @classmethod
    def event_date_as_utc(cls, value):
        return _naive_utc(value)


class EventResponse(BaseModel):
    id: str
    club_id: str
    campaign_id: Optional[str]
    title: str
    event_date: datetime
    status: EventStatus
    impact_status: ImpactProgress
    created_at: datetime

    class Config:
        from_attributes = True


class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    impact_area_ids: List[str] = []


class CampaignResponse(BaseModel):
    id: str
    club_id: str
    name: str
    impact_area_ids: List[str]
    impact_status: ImpactProgress
    created_at: datetime

    class Config:
        from_attributes = True


# Error response
class RefusalResponse(BaseModel):
    """Response when an action is refused."""
    message: str
    reasons: List[str] = []
