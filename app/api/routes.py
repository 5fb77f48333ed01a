"""API routes for impact reporting."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.api.deps import Actor, get_actor, require_admin, require_manager
from app.models.domain import Campaign, Event, ImpactUpdate
from app.models.enums import ImpactStatus
from app.models.audit import AuditEvent, AuditEventType
from app.services.scoring import SCORED_STATUSES, calculate_aggregate_score, validate_proof
from app.services.state_machine import ImpactStateMachine, PermissionDeniedError, RefusalError
from app.services.summary import summarize
from app.services.trust import TrustBlockedError, TrustGate
from app.services.validators import can_publish
from app.api.schemas import (
    CampaignCreate,
    CampaignResponse,
    EventCreate,
    EventResponse,
    FinalDecision,
    ImpactListResponse,
    ImpactMutationResponse,
    ImpactSummaryResponse,
    ImpactUpdateChange,
    ImpactUpdateCreate,
    ImpactUpdateRecord,
    MessageResponse,
    ModerationRequest,
    OutstandingReport,
    PublishValidation,
    RefusalResponse,
    ReputationScore,
    TrustStatusResponse,
)

router = APIRouter()

REFUSAL_RESPONSES = {
    400: {"model": RefusalResponse, "description": "Refusal - rule not met"},
    403: {"description": "Caller may not perform this action"},
    404: {"description": "Impact update not found"},
}


def _refusal(e: RefusalError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": e.message, "reasons": e.reasons}
    )


def _forbidden(e: PermissionDeniedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)


def _get_impact(db: Session, impact_id: str, actor: Actor) -> ImpactUpdate:
    impact = db.query(ImpactUpdate).filter(
        ImpactUpdate.id == impact_id,
        ImpactUpdate.club_id == actor.club_id
    ).first()
    if not impact:
        raise HTTPException(status_code=404, detail="Impact update not found")
    return impact


def _list(db: Session, club_id: str, status_filter: Optional[ImpactStatus] = None, **filters) -> List[ImpactUpdate]:
    query = db.query(ImpactUpdate).filter(ImpactUpdate.club_id == club_id)
    if status_filter:
        query = query.filter(ImpactUpdate.status == status_filter)
    for field, value in filters.items():
        if value:
            query = query.filter(getattr(ImpactUpdate, field) == value)
    return query.order_by(ImpactUpdate.impact_date.desc(), ImpactUpdate.created_at.desc()).all()


def _listing(impacts: List[ImpactUpdate]) -> dict:
    return {"impacts": impacts, "total": len(impacts)}


def _summary(db: Session, actor: Actor, entity_type: str, entity_id: str) -> dict:
    sm = ImpactStateMachine(db)
    impacts = _list(db, actor.club_id, **{f"{entity_type}_id": entity_id})
    records = [sm.to_record(i) for i in impacts if i.status in SCORED_STATUSES]
    return {"summary": summarize(entity_type, entity_id, records)}


def _check_club(club_id: str, actor: Actor) -> None:
    if club_id != actor.club_id:
        raise HTTPException(status_code=403, detail="Access denied")


# Impact update endpoints
@router.post("/impact", response_model=ImpactMutationResponse, status_code=status.HTTP_201_CREATED, responses=REFUSAL_RESPONSES)
def create_impact(data: ImpactUpdateCreate, actor: Actor = Depends(require_manager), db: Session = Depends(get_db)):
    """
    Create an impact update. Always starts as draft.

    WILL REFUSE if the payload is invalid or the event's impact reporting is final.
    """
    if data.event_id and not db.query(Event).filter(Event.id == data.event_id, Event.club_id == actor.club_id).first():
        raise HTTPException(status_code=404, detail="Event not found")
    if data.campaign_id and not db.query(Campaign).filter(
        Campaign.id == data.campaign_id, Campaign.club_id == actor.club_id
    ).first():
        raise HTTPException(status_code=404, detail="Campaign not found")

    sm = ImpactStateMachine(db)
    try:
        impact = sm.create_impact(actor.club_id, actor.user_id, data)
    except RefusalError as e:
        raise _refusal(e)
    return {"message": "Impact update created successfully", "impact": impact}


@router.get("/events/{event_id}/impact", response_model=ImpactListResponse)
def list_event_impact(event_id: str, status: Optional[ImpactStatus] = None, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """List impact updates for an event, newest impact first."""
    return _listing(_list(db, actor.club_id, status, event_id=event_id))


@router.get("/events/{event_id}/impact/summary", response_model=ImpactSummaryResponse)
def event_impact_summary(event_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Aggregate the published and verified impact of an event."""
    return _summary(db, actor, "event", event_id)


@router.get("/campaigns/{campaign_id}/impact", response_model=ImpactListResponse)
def list_campaign_impact(campaign_id: str, status: Optional[ImpactStatus] = None, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return _listing(_list(db, actor.club_id, status, campaign_id=campaign_id))


@router.get("/campaigns/{campaign_id}/impact/summary", response_model=ImpactSummaryResponse)
def campaign_impact_summary(campaign_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return _summary(db, actor, "campaign", campaign_id)


@router.get("/clubs/{club_id}/impact", response_model=ImpactListResponse)
def list_club_impact(
    club_id: str,
    status: Optional[ImpactStatus] = None,
    event_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    _check_club(club_id, actor)
    return _listing(_list(db, club_id, status, event_id=event_id, campaign_id=campaign_id))


@router.get("/clubs/{club_id}/impact/score", response_model=ReputationScore)
def club_impact_score(club_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Reputation score across all of the club's published and verified updates."""
    _check_club(club_id, actor)
    sm = ImpactStateMachine(db)
    return calculate_aggregate_score(sm.to_record(i) for i in _list(db, club_id))


@router.get("/clubs/{club_id}/impact/trust", response_model=TrustStatusResponse)
def club_trust_status(club_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Whether the club may create new events and campaigns, and which reports it owes."""
    _check_club(club_id, actor)
    gate = TrustGate(db)
    return {
        "trust_status": gate.check(club_id),
        "outstanding_reports": [OutstandingReport.model_validate(e) for e in gate.outstanding_reports(club_id)],
    }


@router.get("/impact/{impact_id}", response_model=ImpactUpdateRecord)
def get_impact(impact_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return _get_impact(db, impact_id, actor)


@router.put("/impact/{impact_id}", response_model=ImpactMutationResponse, responses=REFUSAL_RESPONSES)
def update_impact(impact_id: str, data: ImpactUpdateChange, actor: Actor = Depends(require_manager), db: Session = Depends(get_db)):
    """Edit a draft. WILL REFUSE for anything that is not a draft."""
    impact = _get_impact(db, impact_id, actor)
    sm = ImpactStateMachine(db)
    try:
        impact = sm.update_impact(impact, actor.user_id, data)
    except RefusalError as e:
        raise _refusal(e)
    except PermissionDeniedError as e:
        raise _forbidden(e)
    return {"message": "Impact update updated successfully", "impact": impact}


@router.delete("/impact/{impact_id}", response_model=MessageResponse, responses=REFUSAL_RESPONSES)
def delete_impact(impact_id: str, actor: Actor = Depends(require_manager), db: Session = Depends(get_db)):
    """Delete a draft. Published updates are never deleted."""
    impact = _get_impact(db, impact_id, actor)
    sm = ImpactStateMachine(db)
    try:
        sm.delete_impact(impact, actor.user_id)
    except RefusalError as e:
        raise _refusal(e)
    except PermissionDeniedError as e:
        raise _forbidden(e)
    return {"message": "Impact update deleted successfully"}


@router.patch("/impact/{impact_id}/publish", response_model=ImpactMutationResponse, responses=REFUSAL_RESPONSES)
def publish_impact(impact_id: str, actor: Actor = Depends(require_manager), db: Session = Depends(get_db)):
    """
    Publish a draft.

    WILL REFUSE if:
    - The update is not a draft
    - Title/description, impact areas, a metric > 0 or media are missing
    - Money was spent without a receipt or invoice
    """
    impact = _get_impact(db, impact_id, actor)
    sm = ImpactStateMachine(db)
    try:
        impact = sm.publish_impact(impact, actor.user_id)
    except RefusalError as e:
        raise _refusal(e)
    except PermissionDeniedError as e:
        raise _forbidden(e)
    return {"message": "Impact update published successfully", "impact": impact}


@router.get("/impact/{impact_id}/validation", response_model=PublishValidation)
def validate_impact(impact_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """Check whether an update can be published, with a breakdown of its proof."""
    record = ImpactStateMachine(db).to_record(_get_impact(db, impact_id, actor))
    decision = can_publish(record)
    return PublishValidation(
        can_publish=decision.can_publish,
        reason=decision.reason,
        proof_validation=validate_proof(record)
    )


@router.get("/impact/{impact_id}/can-mark-final", response_model=FinalDecision)
def can_mark_final(impact_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return ImpactStateMachine(db).can_mark_final(_get_impact(db, impact_id, actor))


@router.patch("/impact/{impact_id}/mark-final", response_model=ImpactMutationResponse, responses=REFUSAL_RESPONSES)
def mark_final(impact_id: str, actor: Actor = Depends(require_manager), db: Session = Depends(get_db)):
    """Irreversibly close impact reporting for the update's event."""
    impact = _get_impact(db, impact_id, actor)
    sm = ImpactStateMachine(db)
    try:
        impact = sm.mark_final(impact, actor.user_id)
    except RefusalError as e:
        raise _refusal(e)
    except PermissionDeniedError as e:
        raise _forbidden(e)
    return {"message": "Impact update marked as final successfully", "impact": impact}


# Moderation endpoints
@router.patch("/impact/{impact_id}/verify", response_model=ImpactMutationResponse, responses=REFUSAL_RESPONSES)
def verify_impact(impact_id: str, data: ModerationRequest, actor: Actor = Depends(require_admin), db: Session = Depends(get_db)):
    impact = _get_impact(db, impact_id, actor)
    try:
        impact = ImpactStateMachine(db).verify_impact(impact, actor.user_id, data.notes)
    except RefusalError as e:
        raise _refusal(e)
    return {"message": "Impact update verified", "impact": impact}


@router.patch("/impact/{impact_id}/flag", response_model=ImpactMutationResponse, responses=REFUSAL_RESPONSES)
def flag_impact(impact_id: str, data: ModerationRequest, actor: Actor = Depends(require_admin), db: Session = Depends(get_db)):
    impact = _get_impact(db, impact_id, actor)
    try:
        impact = ImpactStateMachine(db).flag_impact(impact, actor.user_id, data.notes)
    except RefusalError as e:
        raise _refusal(e)
    return {"message": "Impact update flagged", "impact": impact}


# Trust-gated creation
def _blocked(e: TrustBlockedError, what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "message": e.status.reason,
            "error": f"Cannot create {what}",
            "outstanding": e.status.outstanding_impact_reports,
            "overdue_days": e.status.overdue_days,
            "requires_trust_fix": True
        }
    )


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(data: EventCreate, actor: Actor = Depends(require_manager), db: Session = Depends(get_db)):
    """Create an event. Refused while the club owes impact reports."""
    try:
        TrustGate(db).assert_can_create(actor.club_id, actor.user_id, "event")
    except TrustBlockedError as e:
        raise _blocked(e, "event")

    event = Event(
        club_id=actor.club_id,
        campaign_id=data.campaign_id,
        title=data.title.strip(),
        event_date=data.event_date,
        status=data.status
    )
    db.add(event)
    db.flush()
    db.add(AuditEvent(
        event_type=AuditEventType.EVENT_CREATED,
        entity_type="Event",
        entity_id=event.id,
        user_id=actor.user_id,
        payload_json={"campaign_id": data.campaign_id}
    ))
    db.commit()
    db.refresh(event)
    return event


@router.post("/campaigns", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
def create_campaign(data: CampaignCreate, actor: Actor = Depends(require_manager), db: Session = Depends(get_db)):
    """Create a campaign. Refused while the club owes impact reports."""
    try:
        TrustGate(db).assert_can_create(actor.club_id, actor.user_id, "campaign")
    except TrustBlockedError as e:
        raise _blocked(e, "campaign")

    campaign = Campaign(
        club_id=actor.club_id,
        name=data.name.strip(),
        impact_area_ids=data.impact_area_ids
    )
    db.add(campaign)
    db.flush()
    db.add(AuditEvent(
        event_type=AuditEventType.CAMPAIGN_CREATED,
        entity_type="Campaign",
        entity_id=campaign.id,
        user_id=actor.user_id,
        payload_json={"name": campaign.name}
    ))
    db.commit()
    db.refresh(campaign)
    return campaign
