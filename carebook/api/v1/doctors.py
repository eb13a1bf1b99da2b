from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ...api.deps import get_assembler, get_current_principal
from ...core.database import get_db
from ...core.policies import Principal
from ...repositories.doctor_repository import DoctorRepository
from ...schemas.appointment import EnrichedDoctor
from ...services.enrichment import AppointmentAssembler

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("", response_model=List[EnrichedDoctor])
def list_doctors(
    department_id: Optional[int] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """Doctors with name and department, newest first.

    Pass ``department_id`` to fill the booking picker for one department.
    """
    doctors = DoctorRepository(db, principal).list_doctors(department_id)
    return assembler.assemble_doctors(doctors)


@router.delete("/{doctor_id}")
def delete_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Delete a doctor record (admin only)."""
    DoctorRepository(db, principal).delete_doctor(doctor_id)
    return {"message": "Doctor deleted successfully"}
