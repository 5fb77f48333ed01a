"""
Lifecycle transition table for impact updates.

One row per allowed (from, action) pair. Both action enablement for clients
and request validation in the service read this table, so the two cannot
drift apart.

    draft --publish--> published --verify--> verified
                           |                    |
                           +------flag----------+--> flagged
    published --mark_final--> published (is_final, terminal)
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from app.api.schemas import ImpactUpdateRecord
from app.models.enums import ImpactAction, ImpactStatus
from app.services.validators import can_mark_final, can_publish

Guard = Callable[[ImpactUpdateRecord, Sequence[ImpactUpdateRecord]], Optional[str]]


def _publish_guard(update: ImpactUpdateRecord, siblings: Sequence[ImpactUpdateRecord]) -> Optional[str]:
    return can_publish(update).reason


def _final_guard(update: ImpactUpdateRecord, siblings: Sequence[ImpactUpdateRecord]) -> Optional[str]:
    return can_mark_final(update, siblings).reason


@dataclass(frozen=True)
class Transition:
    from_state: ImpactStatus
    action: ImpactAction
    to_state: ImpactStatus
    guard: Optional[Guard] = None


TRANSITIONS: Tuple[Transition, ...] = (
    Transition(ImpactStatus.DRAFT, ImpactAction.EDIT, ImpactStatus.DRAFT),
    Transition(ImpactStatus.DRAFT, ImpactAction.DELETE, ImpactStatus.DRAFT),
    Transition(ImpactStatus.DRAFT, ImpactAction.PUBLISH, ImpactStatus.PUBLISHED, _publish_guard),
    Transition(ImpactStatus.PUBLISHED, ImpactAction.VERIFY, ImpactStatus.VERIFIED),
    Transition(ImpactStatus.PUBLISHED, ImpactAction.FLAG, ImpactStatus.FLAGGED),
    Transition(ImpactStatus.VERIFIED, ImpactAction.FLAG, ImpactStatus.FLAGGED),
    Transition(ImpactStatus.PUBLISHED, ImpactAction.MARK_FINAL, ImpactStatus.PUBLISHED, _final_guard),
)

# Refusal wording when the table has no row for the current status
_STATUS_REFUSALS = {
    ImpactAction.EDIT: "Only draft impact updates can be edited",
    ImpactAction.DELETE: "Only draft impact updates can be deleted",
    ImpactAction.PUBLISH: "Only draft impact updates can be published",
    ImpactAction.VERIFY: "Only published impact updates can be verified",
    ImpactAction.FLAG: "Only published or verified impact updates can be flagged",
    ImpactAction.MARK_FINAL: "Only published updates can be marked as final",
}

FINAL_REFUSAL = "This impact update is final and can no longer change"


@dataclass
class TransitionCheck:
    allowed: bool
    action: ImpactAction
    from_state: ImpactStatus
    to_state: Optional[ImpactStatus] = None
    reason: Optional[str] = None
    guard_failed: bool = False


def find_transition(status: ImpactStatus, action: ImpactAction) -> Optional[Transition]:
    for transition in TRANSITIONS:
        if transition.from_state == status and transition.action == action:
            return transition
    return None


def check_transition(
    update: ImpactUpdateRecord,
    action: ImpactAction,
    siblings: Sequence[ImpactUpdateRecord] = (),
    evaluate_guard: bool = True,
) -> TransitionCheck:
    """
    Check whether an action may be applied to an update.

    With evaluate_guard=False only the status rules are checked; callers that
    lack sibling records use this and leave the guard to the service.
    """
    if update.is_final:
        return TransitionCheck(False, action, update.status, reason=FINAL_REFUSAL)

    transition = find_transition(update.status, action)
    if transition is None:
        return TransitionCheck(False, action, update.status, reason=_STATUS_REFUSALS[action])

    if evaluate_guard and transition.guard is not None:
        reason = transition.guard(update, siblings)
        if reason:
            return TransitionCheck(
                False, action, update.status, transition.to_state, reason=reason, guard_failed=True
            )

    return TransitionCheck(True, action, update.status, transition.to_state)


def allowed_actions(
    update: ImpactUpdateRecord,
    siblings: Sequence[ImpactUpdateRecord] = (),
) -> List[ImpactAction]:
    """Actions currently available on an update, e.g. to decide which buttons to show."""
    return [action for action in ImpactAction if check_transition(update, action, siblings).allowed]
