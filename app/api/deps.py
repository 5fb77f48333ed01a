"""Request identity and role checks."""
from dataclasses import dataclass
from fastapi import Depends, Header, HTTPException, status
from app.models.enums import UserRole


@dataclass(frozen=True)
class Actor:
    user_id: str
    club_id: str
    role: UserRole

    @property
    def can_manage_impact(self) -> bool:
        return self.role in (UserRole.HOST, UserRole.ADMIN)


def get_actor(
    x_user_id: str = Header(...),
    x_club_id: str = Header(...),
    x_user_role: str = Header(UserRole.MEMBER.value),
) -> Actor:
    """Caller identity, set by the authenticating proxy in front of the service."""
    try:
        role = UserRole(x_user_role)
    except ValueError:
        role = UserRole.MEMBER
    return Actor(user_id=x_user_id, club_id=x_club_id, role=role)


def require_manager(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.can_manage_impact:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only host and admin users can manage impact updates"
        )
    return actor


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admin users can moderate impact updates"
        )
    return actor
