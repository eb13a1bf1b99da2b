from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError
from ..core.policies import AccessPolicy, Principal
from ..models.doctor import Doctor
from ..schemas.doctor import DoctorRead

logger = logging.getLogger(__name__)


class DoctorRepository:
    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.policy = AccessPolicy(principal)

    def list_doctors(self, department_id: Optional[int] = None) -> List[DoctorRead]:
        """Doctors newest first, optionally restricted to one department."""
        query = self.db.query(Doctor)
        if department_id is not None:
            query = query.filter(Doctor.department_id == department_id)
        rows = query.order_by(Doctor.created_at.desc(), Doctor.id.desc()).all()
        return [DoctorRead.model_validate(row) for row in rows]

    def delete_doctor(self, doctor_id: int) -> None:
        """Remove a doctor record; their appointments stay with no doctor attached."""
        self.policy.ensure_can_manage_doctors()
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise NotFoundError("Doctor not found")

        self.db.delete(doctor)
        self.db.commit()
        logger.info(f"Doctor {doctor_id} deleted")
