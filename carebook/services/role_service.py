from typing import Iterable, Optional, Set
import logging

from sqlalchemy.orm import Session

from ..core.security import UserRole
from ..models.user import UserRoleAssignment
from ..schemas.auth import EffectiveRole, SessionPhase, SessionSnapshot

logger = logging.getLogger(__name__)

ROLE_PRECEDENCE = (UserRole.ADMIN, UserRole.DOCTOR, UserRole.PATIENT)


def pick_effective_role(roles: Iterable[UserRole]) -> EffectiveRole:
    """Highest-precedence role out of any number of role rows."""
    held = set(roles)
    for role in ROLE_PRECEDENCE:
        if role in held:
            return EffectiveRole(role.value)
    return EffectiveRole.NONE


def dashboard_role(role: EffectiveRole) -> EffectiveRole:
    """Un-roled principals land on the patient dashboard."""
    return EffectiveRole.PATIENT if role == EffectiveRole.NONE else role


class RoleResolver:
    def __init__(self, db: Session):
        self.db = db

    def roles_for(self, user_id: int) -> Set[UserRole]:
        rows = self.db.query(UserRoleAssignment.role).filter(
            UserRoleAssignment.user_id == user_id
        ).all()
        return {row[0] for row in rows}

    def resolve(self, user_id: int) -> EffectiveRole:
        return pick_effective_role(self.roles_for(user_id))

    def assign_role(self, user_id: int, role: UserRole) -> UserRoleAssignment:
        """Insert a role row and commit. Store errors propagate to the caller."""
        assignment = UserRoleAssignment(user_id=user_id, role=role)
        self.db.add(assignment)
        self.db.commit()
        return assignment


class SessionTracker:
    """Two-phase session initialisation: resolve the session, then the role.

    Every step hands back a fresh frozen snapshot; nothing is mutated in place.
    """

    def __init__(self):
        self.snapshot = SessionSnapshot()

    def begin(self) -> SessionSnapshot:
        self.snapshot = SessionSnapshot(phase=SessionPhase.AUTHENTICATING)
        return self.snapshot

    def session_missing(self) -> SessionSnapshot:
        self.snapshot = SessionSnapshot(phase=SessionPhase.UNAUTHENTICATED)
        return self.snapshot

    def role_resolved(self, user_id: int, email: Optional[str], role: EffectiveRole) -> SessionSnapshot:
        if self.snapshot.phase != SessionPhase.AUTHENTICATING:
            raise RuntimeError(f"Cannot resolve role from phase {self.snapshot.phase.value}")

        if role == EffectiveRole.NONE:
            phase = SessionPhase.AUTHENTICATED_NO_ROLE
        else:
            phase = SessionPhase.AUTHENTICATED_WITH_ROLE

        self.snapshot = SessionSnapshot(phase=phase, user_id=user_id, email=email, role=role)
        return self.snapshot
