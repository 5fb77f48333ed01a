"""
Trust gate: blocks new events and campaigns while a club owes impact reports.

An outstanding report is an ended event, inside the trust window, whose
impact reporting is still pending or in progress.
"""
from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
from app.api.schemas import TrustStatus
from app.config import TRUST_MAX_OUTSTANDING, TRUST_MAX_OVERDUE_DAYS, TRUST_WINDOW_DAYS
from app.log import get_logger
from app.models.audit import AuditEvent, AuditEventType
from app.models.domain import Event
from app.models.enums import EventStatus, ImpactProgress
from app.services.state_machine import RefusalError

logger = get_logger("services.trust")


class TrustBlockedError(RefusalError):
    """Raised when the trust gate blocks creating an event or campaign."""
    def __init__(self, status: TrustStatus):
        self.status = status
        super().__init__(status.reason or "Outstanding impact reports", [status.reason] if status.reason else [])


def evaluate_trust(
    event_dates: Iterable[datetime],
    now: datetime,
    max_outstanding: int = TRUST_MAX_OUTSTANDING,
    max_overdue_days: int = TRUST_MAX_OVERDUE_DAYS,
) -> TrustStatus:
    """
    Trust status from the dates of a club's outstanding events.

    Blocks when more than max_outstanding reports are owed or the oldest is
    more than max_overdue_days old.
    """
    dates = list(event_dates)
    outstanding = len(dates)
    overdue_days = max(((now - d).days for d in dates), default=0)
    overdue_days = max(overdue_days, 0)

    blocked = outstanding > max_outstanding or overdue_days > max_overdue_days
    reason = None
    if blocked:
        reason = (
            f"{outstanding} event(s) need complete impact reports. "
            f"Most overdue by {overdue_days} days."
        )
    return TrustStatus(
        can_create_campaign=not blocked,
        can_create_event=not blocked,
        outstanding_impact_reports=outstanding,
        overdue_days=overdue_days,
        reason=reason,
    )


class TrustGate:
    """Computes a club's trust status from its events."""

    def __init__(self, db: Session, window_days: int = TRUST_WINDOW_DAYS):
        self.db = db
        self.window_days = window_days

    def outstanding_reports(self, club_id: str, now: Optional[datetime] = None) -> List[Event]:
        now = now or datetime.utcnow()
        since = now - timedelta(days=self.window_days)
        return self.db.query(Event).filter(
            Event.club_id == club_id,
            Event.status == EventStatus.ENDED,
            Event.impact_status.in_([ImpactProgress.PENDING, ImpactProgress.IN_PROGRESS]),
            Event.event_date >= since,
        ).order_by(Event.event_date.asc()).all()

    def check(self, club_id: str, now: Optional[datetime] = None) -> TrustStatus:
        now = now or datetime.utcnow()
        events = self.outstanding_reports(club_id, now)
        return evaluate_trust((e.event_date for e in events), now)

    def assert_can_create(self, club_id: str, user_id: str, kind: str) -> TrustStatus:
        """Refuse creating an event or campaign while the club is blocked."""
        status = self.check(club_id)
        allowed = status.can_create_event if kind == "event" else status.can_create_campaign
        if allowed:
            return status

        self.db.add(AuditEvent(
            event_type=AuditEventType.CREATION_REFUSED_TRUST,
            entity_type="Club",
            entity_id=club_id,
            user_id=user_id,
            payload_json={
                "kind": kind,
                "outstanding_impact_reports": status.outstanding_impact_reports,
                "overdue_days": status.overdue_days,
            },
        ))
        self.db.commit()

        logger.info(
            "creation_blocked_by_trust_gate",
            club_id=club_id,
            kind=kind,
            outstanding=status.outstanding_impact_reports,
            overdue_days=status.overdue_days,
        )
        raise TrustBlockedError(status)
