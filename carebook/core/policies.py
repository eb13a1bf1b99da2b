"""
Access rules for every protected row.

These play the part of the data store's row-level security: repositories
call into them before reading or writing, and nothing else decides who may
touch what.
"""
from typing import FrozenSet, Optional
from pydantic import BaseModel, ConfigDict

from .exceptions import AuthorizationError
from .security import UserRole


class Principal(BaseModel):
    """The authenticated caller as seen by the access rules."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    roles: FrozenSet[UserRole] = frozenset()
    doctor_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return UserRole.ADMIN in self.roles


class AccessPolicy:
    """Authorization verdicts; each ``ensure_*`` raises AuthorizationError."""

    def __init__(self, principal: Principal):
        self.principal = principal

    # Appointments
    def ensure_can_create_appointment(self, patient_id: int) -> None:
        if self.principal.id != patient_id:
            raise AuthorizationError("Appointments can only be booked for yourself")

    def ensure_can_list_for_patient(self, patient_id: int) -> None:
        if not (self.principal.is_admin or self.principal.id == patient_id):
            raise AuthorizationError("Not allowed to view these appointments")

    def ensure_can_list_for_doctor(self, doctor_id: int) -> None:
        if self.principal.is_admin:
            return
        if self.principal.doctor_id is None or self.principal.doctor_id != doctor_id:
            raise AuthorizationError("Not allowed to view these appointments")

    def ensure_can_list_all(self) -> None:
        if not self.principal.is_admin:
            raise AuthorizationError("Admin access required")

    def can_view_appointment(self, appointment) -> bool:
        return (
            self.principal.is_admin
            or appointment.patient_id == self.principal.id
            or self._is_assigned_doctor(appointment)
        )

    def ensure_can_set_status(self, appointment, new_status: str) -> None:
        if new_status in ("confirmed", "rejected"):
            if not self._is_assigned_doctor(appointment):
                raise AuthorizationError(
                    "Only the assigned doctor can accept or reject this appointment"
                )
        elif new_status == "cancelled":
            if appointment.patient_id != self.principal.id:
                raise AuthorizationError(
                    "Only the patient who booked this appointment can cancel it"
                )

    # Departments and doctors
    def ensure_can_manage_departments(self) -> None:
        if not self.principal.is_admin:
            raise AuthorizationError("Admin access required")

    def ensure_can_manage_doctors(self) -> None:
        if not self.principal.is_admin:
            raise AuthorizationError("Admin access required")

    def _is_assigned_doctor(self, appointment) -> bool:
        return (
            self.principal.doctor_id is not None
            and appointment.doctor_id == self.principal.doctor_id
        )
