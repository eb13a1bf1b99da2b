from enum import Enum
from typing import Dict, Optional, Tuple
import logging

from ..core.exceptions import StateError
from ..models.appointment import AppointmentStatus
from ..repositories.appointment_repository import AppointmentRepository
from ..schemas.appointment import AppointmentRead

logger = logging.getLogger(__name__)

# Offered to patients at booking time; availability is not checked
TIME_SLOTS = (
    "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
)


class AppointmentEvent(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"


TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentEvent], AppointmentStatus] = {
    (AppointmentStatus.PENDING, AppointmentEvent.ACCEPT): AppointmentStatus.CONFIRMED,
    (AppointmentStatus.PENDING, AppointmentEvent.REJECT): AppointmentStatus.REJECTED,
    (AppointmentStatus.PENDING, AppointmentEvent.CANCEL): AppointmentStatus.CANCELLED,
    (AppointmentStatus.CONFIRMED, AppointmentEvent.CANCEL): AppointmentStatus.CANCELLED,
}

EVENT_TARGETS = {
    AppointmentEvent.ACCEPT: AppointmentStatus.CONFIRMED,
    AppointmentEvent.REJECT: AppointmentStatus.REJECTED,
    AppointmentEvent.CANCEL: AppointmentStatus.CANCELLED,
}


class AppointmentLifecycle:
    """Applies the appointment state machine on top of the repository."""

    def __init__(self, repository: AppointmentRepository):
        self.repository = repository

    def book(
        self,
        doctor_id: int,
        appointment_date,
        appointment_time: str,
        notes: Optional[str] = None,
    ) -> AppointmentRead:
        return self.repository.create_appointment(
            patient_id=self.repository.principal.id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            notes=notes,
        )

    def accept(self, appointment_id: int) -> AppointmentRead:
        return self.apply(appointment_id, AppointmentEvent.ACCEPT)

    def reject(self, appointment_id: int) -> AppointmentRead:
        return self.apply(appointment_id, AppointmentEvent.REJECT)

    def cancel(self, appointment_id: int) -> AppointmentRead:
        return self.apply(appointment_id, AppointmentEvent.CANCEL)

    def apply(self, appointment_id: int, event: AppointmentEvent) -> AppointmentRead:
        """Run ``event`` against an appointment and return its fresh state.

        The actor is checked before the transition table. Re-sending the
        event that produced the current status is a no-op.
        """
        row = self.repository.load_row(appointment_id)
        target = EVENT_TARGETS[event]
        self.repository.policy.ensure_can_set_status(row, target.value)

        current = AppointmentStatus(row.status)
        if current == target:
            return self.repository.get_appointment(appointment_id)

        if (current, event) not in TRANSITIONS:
            raise StateError(
                f"Cannot {event.value} an appointment that is {current.value}"
            )

        self.repository.update_status(appointment_id, target)
        logger.info(f"Appointment {appointment_id}: {current.value} -> {target.value} ({event.value})")
        return self.repository.get_appointment(appointment_id)
