from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...api.deps import get_assembler, get_current_principal
from ...core.database import get_db
from ...core.policies import Principal
from ...repositories.appointment_repository import AppointmentRepository
from ...repositories.department_repository import DepartmentRepository
from ...repositories.doctor_repository import DoctorRepository
from ...schemas.auth import EffectiveRole
from ...schemas.dashboard import DashboardView
from ...services.enrichment import AppointmentAssembler
from ...services.role_service import dashboard_role, pick_effective_role

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardView)
def get_dashboard(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """Role-specific landing view; callers without a role see the patient view."""
    role = dashboard_role(pick_effective_role(principal.roles))
    appointments = AppointmentRepository(db, principal)

    if role == EffectiveRole.ADMIN:
        doctors = DoctorRepository(db, principal).list_doctors()
        return DashboardView(
            role=role,
            appointments=assembler.assemble(appointments.list_all_appointments(), include_patient=True),
            departments=DepartmentRepository(db, principal).list_departments(),
            doctors=assembler.assemble_doctors(doctors),
        )

    if role == EffectiveRole.DOCTOR:
        assigned = []
        if principal.doctor_id is not None:
            assigned = appointments.list_appointments_for_doctor(principal.doctor_id)
        return DashboardView(
            role=role,
            appointments=assembler.assemble(assigned, include_patient=True),
        )

    return DashboardView(
        role=role,
        appointments=assembler.assemble(appointments.list_appointments_for_patient(principal.id)),
    )
