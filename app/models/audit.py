"""
Internal audit logging model - NOT a user-facing domain object.

Provides an append-only trail of impact lifecycle actions and refusals.
It is not exposed in user-facing APIs.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON
from app.database import Base


class AuditEvent(Base):
    """
    Immutable audit event.

    Invariants:
    - Once written, never edited or deleted
    - Records every lifecycle action and every refusal
    """
    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    event_type = Column(String, nullable=False, index=True)  # e.g., "impact_published"
    entity_type = Column(String, nullable=False)  # e.g., "ImpactUpdate", "Event"
    entity_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)  # Nullable for system events
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    payload_json = Column(JSON, nullable=True)


class AuditEventType:
    """Enumeration of audit event types."""
    # Impact lifecycle
    IMPACT_CREATED = "impact_created"
    IMPACT_UPDATED = "impact_updated"
    IMPACT_DELETED = "impact_deleted"
    IMPACT_PUBLISHED = "impact_published"
    IMPACT_VERIFIED = "impact_verified"
    IMPACT_FLAGGED = "impact_flagged"
    IMPACT_MARKED_FINAL = "impact_marked_final"

    # Refusal events
    IMPACT_REFUSED = "impact_refused"
    CREATION_REFUSED_TRUST = "creation_refused_trust"

    # Gated creation
    EVENT_CREATED = "event_created"
    CAMPAIGN_CREATED = "campaign_created"
