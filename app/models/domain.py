"""Domain models - impact updates and the events/campaigns they report on."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Float, Boolean, DateTime, ForeignKey, Enum as SQLEnum, JSON
from app.database import Base
from app.models.enums import EventStatus, ImpactProgress, ImpactStatus


def _new_id() -> str:
    return str(uuid.uuid4())


class Campaign(Base):
    """A fundraising campaign. Impact updates may attach directly or through its events."""
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=_new_id)
    club_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    impact_area_ids = Column(JSON, nullable=False, default=list)
    impact_status = Column(SQLEnum(ImpactProgress), nullable=False, default=ImpactProgress.PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Event(Base):
    """
    A fundraising event.

    Ended events with impact_status pending or in_progress count as outstanding
    impact reports for the trust gate.
    """
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_new_id)
    club_id = Column(String, nullable=False, index=True)
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=True)
    title = Column(String, nullable=False)
    event_date = Column(DateTime, nullable=False)
    status = Column(SQLEnum(EventStatus), nullable=False, default=EventStatus.DRAFT)
    impact_status = Column(SQLEnum(ImpactProgress), nullable=False, default=ImpactProgress.PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class ImpactUpdate(Base):
    """
    A report of real-world impact tied to an event and/or a campaign.

    Invariants enforced in the service layer:
    - Created as draft; only drafts are editable or deletable
    - 1-3 impact areas, at least one metric with value > 0, at least one media item
    - is_final is set once, only from published, and never unset
    """
    __tablename__ = "impact_updates"

    id = Column(String(36), primary_key=True, default=_new_id)
    club_id = Column(String, nullable=False, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=True, index=True)
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=True, index=True)

    impact_area_ids = Column(JSON, nullable=False, default=list)

    title = Column(String, nullable=False)
    description = Column(String, nullable=False)
    impact_date = Column(DateTime, nullable=False)

    # Lists/objects stored as JSON: [{id, type, milestone, value, unit}]
    metrics = Column(JSON, nullable=False, default=list)
    amount_spent = Column(Float, nullable=True)
    currency = Column(String(3), nullable=False, default="EUR")
    location = Column(JSON, nullable=True)
    # {receipts: [url], invoices: [url], quotes: [...], media: [...]}
    proof = Column(JSON, nullable=False, default=dict)

    status = Column(SQLEnum(ImpactStatus), nullable=False, default=ImpactStatus.DRAFT)
    verification_notes = Column(String, nullable=True)
    is_final = Column(Boolean, nullable=False, default=False)

    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    published_at = Column(DateTime, nullable=True)
    verified_at = Column(DateTime, nullable=True)
    finalized_at = Column(DateTime, nullable=True)
