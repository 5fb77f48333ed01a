"""
State machine that enforces the impact reporting rules.

All impact update mutations MUST go through here. Each request is checked
against the lifecycle transition table before anything is written.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from app.api.schemas import (
    FinalDecision,
    ImpactProof,
    ImpactUpdateChange,
    ImpactUpdateCreate,
    ImpactUpdateRecord,
)
from app.config import DEFAULT_CURRENCY
from app.log import get_logger
from app.models.audit import AuditEvent, AuditEventType
from app.models.domain import Campaign, Event, ImpactUpdate
from app.models.enums import ImpactAction, ImpactProgress, ImpactStatus
from app.services.lifecycle import check_transition
from app.services.validators import can_mark_final, validate_impact_data

logger = get_logger("services.state_machine")

EDITABLE_FIELDS = (
    "title",
    "description",
    "impact_date",
    "metrics",
    "amount_spent",
    "currency",
    "location",
    "proof",
    "impact_area_ids",
)


class RefusalError(Exception):
    """
    Raised when an action is refused by the system.
    This is NOT an error - it's the system working correctly.
    """
    def __init__(self, message: str, reasons: List[str] = None):
        self.message = message
        self.reasons = reasons or []
        super().__init__(self.message)


class PermissionDeniedError(Exception):
    """Raised when the caller is not allowed to act on a record."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


def _clean_metrics(metrics) -> list:
    return [
        {
            "id": m.id,
            "type": m.type.value,
            "milestone": m.milestone.strip(),
            "value": m.value,
            "unit": m.unit.strip() if m.unit else None,
        }
        for m in metrics
        if m.milestone.strip() and m.value > 0
    ]


def _clean_proof(proof: ImpactProof) -> dict:
    """Drop blank URLs and empty quotes."""
    return {
        "receipts": [url.strip() for url in proof.receipts if url.strip()],
        "invoices": [url.strip() for url in proof.invoices if url.strip()],
        "quotes": [q.model_dump(mode="json") for q in proof.quotes if q.text.strip()],
        "media": [m.model_dump(mode="json") for m in proof.media if m.url.strip()],
    }


def _clean_area_ids(area_ids) -> list:
    return [a.strip() for a in area_ids if a and a.strip()]


class ImpactStateMachine:
    """Enforces lifecycle transitions and business rules for impact updates."""

    def __init__(self, db: Session):
        self.db = db

    # ---- Reads ----
    def to_record(self, impact: ImpactUpdate) -> ImpactUpdateRecord:
        return ImpactUpdateRecord.model_validate(impact)

    def siblings_of(self, impact: ImpactUpdate) -> List[ImpactUpdate]:
        """Other updates of the same event (or campaign, for campaign-level updates)."""
        query = self.db.query(ImpactUpdate).filter(
            ImpactUpdate.club_id == impact.club_id,
            ImpactUpdate.id != impact.id,
        )
        if impact.event_id:
            query = query.filter(ImpactUpdate.event_id == impact.event_id)
        else:
            query = query.filter(
                ImpactUpdate.campaign_id == impact.campaign_id,
                ImpactUpdate.event_id.is_(None),
            )
        return query.all()

    def has_final_update(self, club_id: str, event_id: Optional[str], campaign_id: Optional[str]) -> bool:
        query = self.db.query(ImpactUpdate).filter(
            ImpactUpdate.club_id == club_id,
            ImpactUpdate.is_final.is_(True),
        )
        if event_id:
            query = query.filter(ImpactUpdate.event_id == event_id)
        else:
            query = query.filter(
                ImpactUpdate.campaign_id == campaign_id,
                ImpactUpdate.event_id.is_(None),
            )
        return query.first() is not None

    def can_mark_final(self, impact: ImpactUpdate) -> FinalDecision:
        siblings = [self.to_record(s) for s in self.siblings_of(impact)]
        return can_mark_final(self.to_record(impact), siblings)

    # ---- Mutations ----
    def create_impact(self, club_id: str, user_id: str, data: ImpactUpdateCreate) -> ImpactUpdate:
        """
        Create an impact update in draft.

        Refusal invariants:
        - The payload must pass validation (areas, metrics, media, dates)
        - No update can be added to an event that already has a final update
        """
        errors = validate_impact_data(data, creating=True)
        if errors:
            self._refuse(
                "create", "ImpactUpdate", data.event_id or data.campaign_id or "new", user_id,
                "Impact update is not valid", errors,
            )

        if self.has_final_update(club_id, data.event_id, data.campaign_id):
            self._refuse(
                "create", "ImpactUpdate", data.event_id or data.campaign_id, user_id,
                "Impact reporting for this event is final. No further updates can be added.",
            )

        impact = ImpactUpdate(
            club_id=club_id,
            event_id=data.event_id,
            campaign_id=data.campaign_id,
            impact_area_ids=_clean_area_ids(data.impact_area_ids),
            title=data.title.strip(),
            description=data.description.strip(),
            impact_date=data.impact_date,
            metrics=_clean_metrics(data.metrics),
            amount_spent=data.amount_spent,
            currency=(data.currency or DEFAULT_CURRENCY).upper(),
            location=data.location.model_dump() if data.location else None,
            proof=_clean_proof(data.proof),
            status=ImpactStatus.DRAFT,
            is_final=False,
            created_by=user_id,
        )
        self.db.add(impact)
        self.db.flush()

        self._audit(AuditEventType.IMPACT_CREATED, impact, user_id, {
            "event_id": impact.event_id,
            "campaign_id": impact.campaign_id,
        })
        self.db.commit()
        self.db.refresh(impact)

        logger.info("impact_created", impact_id=impact.id, club_id=club_id, event_id=impact.event_id)
        return impact

    def update_impact(self, impact: ImpactUpdate, user_id: str, data: ImpactUpdateChange) -> ImpactUpdate:
        """Apply a partial update. Only drafts can be edited, only by their creator."""
        self._assert_transition(impact, ImpactAction.EDIT, user_id)
        self._assert_creator(impact, user_id, "edit")

        changes = {
            field: getattr(data, field)
            for field in EDITABLE_FIELDS
            if field in data.model_fields_set and getattr(data, field) is not None
        }
        if not changes:
            self._refuse("edit", "ImpactUpdate", impact.id, user_id, "No valid fields to update")

        errors = validate_impact_data(data, creating=False)
        if errors:
            self._refuse("edit", "ImpactUpdate", impact.id, user_id, "Impact update is not valid", errors)

        for field, value in changes.items():
            if field == "metrics":
                value = _clean_metrics(value)
            elif field == "proof":
                value = _clean_proof(value)
            elif field == "location":
                value = value.model_dump()
            elif field == "impact_area_ids":
                value = _clean_area_ids(value)
            elif field in ("title", "description"):
                value = value.strip()
            elif field == "currency":
                value = value.upper()
            setattr(impact, field, value)
        impact.updated_at = datetime.utcnow()

        self._audit(AuditEventType.IMPACT_UPDATED, impact, user_id, {"fields": sorted(changes)})
        self.db.commit()
        self.db.refresh(impact)
        return impact

    def delete_impact(self, impact: ImpactUpdate, user_id: str) -> None:
        """Delete a draft. Published updates are never physically deleted."""
        self._assert_transition(impact, ImpactAction.DELETE, user_id)
        self._assert_creator(impact, user_id, "delete")

        self._audit(AuditEventType.IMPACT_DELETED, impact, user_id, {"title": impact.title})
        self.db.delete(impact)
        self.db.commit()

        logger.info("impact_deleted", impact_id=impact.id, user_id=user_id)

    def publish_impact(self, impact: ImpactUpdate, user_id: str) -> ImpactUpdate:
        """
        Publish a draft.

        Side effect: the parent event/campaign moves from pending to in_progress.
        """
        self._assert_transition(impact, ImpactAction.PUBLISH, user_id)
        self._assert_creator(impact, user_id, "publish")

        now = datetime.utcnow()
        impact.status = ImpactStatus.PUBLISHED
        impact.published_at = now
        impact.updated_at = now
        self._advance_parents(impact, ImpactProgress.IN_PROGRESS)

        self._audit(AuditEventType.IMPACT_PUBLISHED, impact, user_id, {"event_id": impact.event_id})
        self.db.commit()
        self.db.refresh(impact)

        logger.info("impact_published", impact_id=impact.id, event_id=impact.event_id)
        return impact

    def mark_final(self, impact: ImpactUpdate, user_id: str) -> ImpactUpdate:
        """
        Irreversibly mark a published update as final.

        Finalization invariants:
        - Only published updates, at most one final update per event
        - Aggregate proof of the event must meet requirements
        - Side effect: the parent event/campaign impact status becomes complete
        """
        siblings = [self.to_record(s) for s in self.siblings_of(impact)]
        self._assert_transition(impact, ImpactAction.MARK_FINAL, user_id, siblings)
        self._assert_creator(impact, user_id, "mark final")

        now = datetime.utcnow()
        impact.is_final = True
        impact.finalized_at = now
        impact.updated_at = now
        self._advance_parents(impact, ImpactProgress.COMPLETE)

        self._audit(AuditEventType.IMPACT_MARKED_FINAL, impact, user_id, {
            "event_id": impact.event_id,
            "campaign_id": impact.campaign_id,
        })
        self.db.commit()
        self.db.refresh(impact)

        logger.info("impact_marked_final", impact_id=impact.id, event_id=impact.event_id)
        return impact

    def verify_impact(self, impact: ImpactUpdate, moderator_id: str, notes: Optional[str] = None) -> ImpactUpdate:
        """Moderator action: published -> verified."""
        self._assert_transition(impact, ImpactAction.VERIFY, moderator_id)

        now = datetime.utcnow()
        impact.status = ImpactStatus.VERIFIED
        impact.verified_at = now
        impact.updated_at = now
        if notes:
            impact.verification_notes = notes

        self._audit(AuditEventType.IMPACT_VERIFIED, impact, moderator_id, {"notes": notes})
        self.db.commit()
        self.db.refresh(impact)
        return impact

    def flag_impact(self, impact: ImpactUpdate, moderator_id: str, notes: Optional[str] = None) -> ImpactUpdate:
        """Moderator action: published/verified -> flagged."""
        self._assert_transition(impact, ImpactAction.FLAG, moderator_id)

        impact.status = ImpactStatus.FLAGGED
        impact.updated_at = datetime.utcnow()
        if notes:
            impact.verification_notes = notes

        self._audit(AuditEventType.IMPACT_FLAGGED, impact, moderator_id, {"notes": notes})
        self.db.commit()
        self.db.refresh(impact)

        logger.warning("impact_flagged", impact_id=impact.id, moderator_id=moderator_id)
        return impact

    # ---- Helpers ----
    def _assert_transition(self, impact: ImpactUpdate, action: ImpactAction, user_id: str, siblings=()) -> None:
        check = check_transition(self.to_record(impact), action, siblings)
        if not check.allowed:
            self._refuse(action.value, "ImpactUpdate", impact.id, user_id, check.reason, [check.reason], {
                "status": impact.status.value,
                "is_final": impact.is_final,
            })

    def _assert_creator(self, impact: ImpactUpdate, user_id: str, verb: str) -> None:
        if impact.created_by != user_id:
            raise PermissionDeniedError(f"Only the creator can {verb} this impact update")

    def _advance_parents(self, impact: ImpactUpdate, progress: ImpactProgress) -> None:
        """Move the parent event/campaign impact status forward, never backward."""
        order = [ImpactProgress.PENDING, ImpactProgress.IN_PROGRESS, ImpactProgress.COMPLETE]
        parents = []
        if impact.event_id:
            parents.append(self.db.get(Event, impact.event_id))
        if impact.campaign_id:
            parents.append(self.db.get(Campaign, impact.campaign_id))
        for parent in parents:
            if parent is not None and order.index(parent.impact_status) < order.index(progress):
                parent.impact_status = progress

    def _audit(self, event_type: str, impact: ImpactUpdate, user_id: Optional[str], payload: dict) -> None:
        self.db.add(AuditEvent(
            event_type=event_type,
            entity_type="ImpactUpdate",
            entity_id=str(impact.id),
            user_id=user_id,
            payload_json=payload,
        ))

    def _refuse(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        user_id: Optional[str],
        message: str,
        reasons: List[str] = None,
        extra: dict = None,
    ) -> None:
        """Record the refusal in the audit log, then raise it."""
        payload = {"action": action, "message": message, "reasons": reasons or []}
        payload.update(extra or {})
        self.db.add(AuditEvent(
            event_type=AuditEventType.IMPACT_REFUSED,
            entity_type=entity_type,
            entity_id=str(entity_id),
            user_id=user_id,
            payload_json=payload,
        ))
        self.db.commit()

        logger.info("impact_action_refused", action=action, entity_id=entity_id, reason=message)
        raise RefusalError(message, reasons)
