"""Appointment reads and writes, scoped to the calling principal."""
from datetime import date
from typing import List, Optional, Union
import logging

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    AuthorizationError, InternalError, NotFoundError, ValidationError, describe_validation_error
)
from ..core.policies import AccessPolicy, Principal
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..schemas.appointment import AppointmentCreate, AppointmentRead

logger = logging.getLogger(__name__)

SETTABLE_STATUSES = {
    AppointmentStatus.CONFIRMED.value,
    AppointmentStatus.REJECTED.value,
    AppointmentStatus.CANCELLED.value,
}


class AppointmentRepository:
    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal
        self.policy = AccessPolicy(principal)

    def create_appointment(
        self,
        patient_id: int,
        doctor_id: int,
        appointment_date: Union[str, date],
        appointment_time: str,
        notes: Optional[str] = None,
    ) -> AppointmentRead:
        try:
            data = AppointmentCreate(
                doctor_id=doctor_id,
                appointment_date=appointment_date,
                appointment_time=appointment_time,
                notes=notes,
            )
        except SchemaValidationError as e:
            raise ValidationError(describe_validation_error(e))

        self.policy.ensure_can_create_appointment(patient_id)

        if not self.db.query(Doctor.id).filter(Doctor.id == data.doctor_id).first():
            raise ValidationError("Doctor not found")

        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=data.doctor_id,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            notes=data.notes,
            status=AppointmentStatus.PENDING,
        )
        self.db.add(appointment)
        self._commit("create appointment")
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} booked by patient {patient_id}")
        return self._to_record(appointment)

    def get_appointment(self, appointment_id: int) -> AppointmentRead:
        appointment = self.load_row(appointment_id)
        if not self.policy.can_view_appointment(appointment):
            raise AuthorizationError("Not allowed to view this appointment")
        return self._to_record(appointment)

    def list_appointments_for_patient(self, patient_id: int) -> List[AppointmentRead]:
        self.policy.ensure_can_list_for_patient(patient_id)
        rows = (
            self.db.query(Appointment)
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .all()
        )
        return [self._to_record(row) for row in rows]

    def list_appointments_for_doctor(self, doctor_id: int) -> List[AppointmentRead]:
        self.policy.ensure_can_list_for_doctor(doctor_id)
        rows = (
            self.db.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .all()
        )
        return [self._to_record(row) for row in rows]

    def list_all_appointments(self) -> List[AppointmentRead]:
        self.policy.ensure_can_list_all()
        rows = (
            self.db.query(Appointment)
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .all()
        )
        return [self._to_record(row) for row in rows]

    def update_status(self, appointment_id: int, new_status: Union[str, AppointmentStatus]) -> None:
        """Write a new status; reapplying the current status changes nothing."""
        value = new_status.value if isinstance(new_status, AppointmentStatus) else new_status
        if value not in SETTABLE_STATUSES:
            raise ValidationError(f"Invalid status: {value}")

        appointment = self.load_row(appointment_id)
        self.policy.ensure_can_set_status(appointment, value)

        if appointment.status.value == value:
            return

        appointment.status = AppointmentStatus(value)
        self._commit("update appointment status")
        logger.info(f"Appointment {appointment_id} status set to {value}")

    def load_row(self, appointment_id: int) -> Appointment:
        """Unscoped fetch of the ORM row; the caller applies the policy."""
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {str(e)}")
            raise InternalError(f"Failed to {action}")

    @staticmethod
    def _to_record(row: Appointment) -> AppointmentRead:
        try:
            return AppointmentRead.model_validate(row)
        except SchemaValidationError as e:
            logger.error(f"Malformed appointment row {row.id}: {str(e)}")
            raise InternalError("Malformed appointment record")
