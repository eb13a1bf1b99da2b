from datetime import date, datetime
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from ..models.appointment import AppointmentStatus

UNKNOWN_DOCTOR = "Unknown Doctor"
UNKNOWN_DEPARTMENT = "Unknown Department"
UNKNOWN_PATIENT = "Unknown Patient"

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
TIME_PATTERN = re.compile(r"([01][0-9]|2[0-3]):[0-5][0-9]")


class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_date: date
    appointment_time: str
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("appointment_date", mode="before")
    @classmethod
    def calendar_date(cls, v):
        if isinstance(v, date):
            return v
        if not isinstance(v, str) or not DATE_PATTERN.fullmatch(v):
            raise ValueError("Invalid date format, expected YYYY-MM-DD")
        try:
            return date.fromisoformat(v)
        except ValueError:
            raise ValueError("Invalid calendar date")

    @field_validator("appointment_time")
    @classmethod
    def wall_clock_time(cls, v: str) -> str:
        if not TIME_PATTERN.fullmatch(v):
            raise ValueError("Invalid time format, expected HH:MM")
        return v

    @field_validator("notes", mode="after")
    @classmethod
    def empty_notes(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class BookingRequest(BaseModel):
    """Raw booking form; checked by the repository on insert."""

    doctor_id: int
    appointment_date: str
    appointment_time: str
    notes: Optional[str] = None


class AppointmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: Optional[int] = None
    appointment_date: date
    appointment_time: str
    notes: Optional[str] = None
    status: AppointmentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("appointment_time")
    @classmethod
    def stored_time(cls, v: str) -> str:
        if not TIME_PATTERN.fullmatch(v):
            raise ValueError("Malformed appointment time")
        return v


class PersonSummary(BaseModel):
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class DepartmentRef(BaseModel):
    name: str


class EnrichedDoctor(BaseModel):
    id: int
    user_id: Optional[int] = None
    department_id: Optional[int] = None
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    experience_years: Optional[int] = None
    created_at: Optional[datetime] = None
    user: PersonSummary = PersonSummary(full_name=UNKNOWN_DOCTOR)
    department: DepartmentRef = DepartmentRef(name=UNKNOWN_DEPARTMENT)


class EnrichedAppointment(AppointmentRead):
    doctor: Optional[EnrichedDoctor] = None
    patient: Optional[PersonSummary] = None

    @computed_field
    @property
    def doctor_name(self) -> str:
        return self.doctor.user.full_name if self.doctor else UNKNOWN_DOCTOR

    @computed_field
    @property
    def department_name(self) -> str:
        return self.doctor.department.name if self.doctor else UNKNOWN_DEPARTMENT
