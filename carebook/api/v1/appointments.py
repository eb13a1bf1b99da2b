from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...api.deps import get_assembler, get_current_principal
from ...core.database import get_db
from ...core.policies import Principal
from ...repositories.appointment_repository import AppointmentRepository
from ...schemas.appointment import BookingRequest, EnrichedAppointment
from ...services.appointment_service import TIME_SLOTS, AppointmentLifecycle
from ...services.enrichment import AppointmentAssembler

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def _lifecycle(db: Session, principal: Principal) -> AppointmentLifecycle:
    return AppointmentLifecycle(AppointmentRepository(db, principal))


@router.get("/time-slots", response_model=List[str])
def list_time_slots():
    """Fixed booking slots, 30 minutes apart, morning and afternoon shifts."""
    return list(TIME_SLOTS)


@router.post("", response_model=EnrichedAppointment, status_code=status.HTTP_201_CREATED)
def book_appointment(
    booking: BookingRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """Book an appointment for the calling patient; it starts as pending."""
    appointment = _lifecycle(db, principal).book(
        doctor_id=booking.doctor_id,
        appointment_date=booking.appointment_date,
        appointment_time=booking.appointment_time,
        notes=booking.notes,
    )
    return assembler.assemble([appointment])[0]


@router.get("/me", response_model=List[EnrichedAppointment])
def list_my_appointments(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """The caller's own bookings, earliest first."""
    appointments = AppointmentRepository(db, principal).list_appointments_for_patient(principal.id)
    return assembler.assemble(appointments)


@router.get("/assigned", response_model=List[EnrichedAppointment])
def list_assigned_appointments(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """Requests assigned to the calling doctor, with patient contact details."""
    if principal.doctor_id is None:
        return []
    appointments = AppointmentRepository(db, principal).list_appointments_for_doctor(principal.doctor_id)
    return assembler.assemble(appointments, include_patient=True)


@router.get("", response_model=List[EnrichedAppointment])
def list_all_appointments(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """Every appointment, latest first (admin only)."""
    appointments = AppointmentRepository(db, principal).list_all_appointments()
    return assembler.assemble(appointments, include_patient=True)


@router.get("/{appointment_id}", response_model=EnrichedAppointment)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    appointment = AppointmentRepository(db, principal).get_appointment(appointment_id)
    return assembler.assemble([appointment], include_patient=True)[0]


@router.post("/{appointment_id}/accept", response_model=EnrichedAppointment)
def accept_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """Confirm a pending request (assigned doctor only)."""
    appointment = _lifecycle(db, principal).accept(appointment_id)
    return assembler.assemble([appointment], include_patient=True)[0]


@router.post("/{appointment_id}/reject", response_model=EnrichedAppointment)
def reject_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """Reject a pending request (assigned doctor only)."""
    appointment = _lifecycle(db, principal).reject(appointment_id)
    return assembler.assemble([appointment], include_patient=True)[0]


@router.post("/{appointment_id}/cancel", response_model=EnrichedAppointment)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assembler: AppointmentAssembler = Depends(get_assembler)
):
    """Cancel a pending or confirmed booking (owning patient only)."""
    appointment = _lifecycle(db, principal).cancel(appointment_id)
    return assembler.assemble([appointment])[0]
