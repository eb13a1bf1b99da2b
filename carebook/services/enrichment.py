"""
Stitches doctor, department and profile records onto appointments.

Only the appointment list itself is authoritative. Every secondary lookup is
allowed to fail or come back short; the affected fields then fall back to
placeholder names and the appointment is still returned.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Sequence
import logging

from sqlalchemy.orm import Session

from ..models.department import Department
from ..models.doctor import Doctor
from ..models.user import Profile
from ..schemas.appointment import (
    UNKNOWN_DEPARTMENT, UNKNOWN_DOCTOR, UNKNOWN_PATIENT,
    AppointmentRead, DepartmentRef, EnrichedAppointment, EnrichedDoctor, PersonSummary,
)
from ..schemas.doctor import DoctorRead

logger = logging.getLogger(__name__)


def _distinct(values: Iterable) -> List:
    return [v for v in dict.fromkeys(values) if v is not None]


class SqlRecordSource:
    """Secondary record lookups, each on its own short-lived session."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def fetch_doctors(self, ids: Sequence[int]) -> List[DoctorRead]:
        db = self.session_factory()
        try:
            rows = db.query(Doctor).filter(Doctor.id.in_(ids)).all()
            return [DoctorRead.model_validate(row) for row in rows]
        finally:
            db.close()

    def fetch_departments(self, ids: Sequence[int]) -> Dict[int, str]:
        db = self.session_factory()
        try:
            rows = db.query(Department.id, Department.name).filter(Department.id.in_(ids)).all()
            return {row.id: row.name for row in rows}
        finally:
            db.close()

    def fetch_profiles(self, ids: Sequence[int]) -> Dict[int, PersonSummary]:
        db = self.session_factory()
        try:
            rows = db.query(Profile).filter(Profile.id.in_(ids)).all()
            return {
                row.id: PersonSummary(full_name=row.full_name, email=row.email, phone=row.phone)
                for row in rows
            }
        finally:
            db.close()


class AppointmentAssembler:
    def __init__(self, source, max_workers: int = 2):
        self.source = source
        self.max_workers = max_workers

    def assemble(
        self,
        appointments: Sequence[AppointmentRead],
        include_patient: bool = False,
    ) -> List[EnrichedAppointment]:
        """Attach the enriched doctor (and optionally patient) to each appointment.

        Order of ``appointments`` is preserved. Appointments whose doctor is
        missing get ``doctor=None``.
        """
        if not appointments:
            return []

        doctor_ids = _distinct(a.doctor_id for a in appointments)
        doctors = self._soft(
            "doctors", self.source.fetch_doctors, doctor_ids, default=[]
        ) if doctor_ids else []

        patient_ids = _distinct(a.patient_id for a in appointments) if include_patient else []
        departments, profiles = self._fetch_related(doctors, patient_ids)
        doctor_map = {d.id: self._enrich_doctor(d, departments, profiles) for d in doctors}

        enriched = []
        for appointment in appointments:
            patient = None
            if include_patient:
                patient = profiles.get(appointment.patient_id) or PersonSummary(full_name=UNKNOWN_PATIENT)
            enriched.append(EnrichedAppointment(
                **appointment.model_dump(),
                doctor=doctor_map.get(appointment.doctor_id),
                patient=patient,
            ))
        return enriched

    def assemble_doctors(self, doctors: Sequence[DoctorRead]) -> List[EnrichedDoctor]:
        departments, profiles = self._fetch_related(doctors, [])
        return [self._enrich_doctor(d, departments, profiles) for d in doctors]

    def _fetch_related(self, doctors, extra_profile_ids):
        """Department names and profiles, looked up concurrently."""
        department_ids = _distinct(d.department_id for d in doctors)
        profile_ids = _distinct([d.user_id for d in doctors] + list(extra_profile_ids))

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            departments_future = pool.submit(
                self._soft, "departments", self.source.fetch_departments, department_ids, {}
            ) if department_ids else None
            profiles_future = pool.submit(
                self._soft, "profiles", self.source.fetch_profiles, profile_ids, {}
            ) if profile_ids else None

            departments = departments_future.result() if departments_future else {}
            profiles = profiles_future.result() if profiles_future else {}

        return departments or {}, profiles or {}

    @staticmethod
    def _enrich_doctor(doctor, departments, profiles) -> EnrichedDoctor:
        profile = profiles.get(doctor.user_id)
        return EnrichedDoctor(
            **doctor.model_dump(),
            user=PersonSummary(
                full_name=profile.full_name if profile else UNKNOWN_DOCTOR,
                email=profile.email if profile else None,
                phone=profile.phone if profile else None,
            ),
            department=DepartmentRef(name=departments.get(doctor.department_id) or UNKNOWN_DEPARTMENT),
        )

    @staticmethod
    def _soft(label: str, fetch, ids, default):
        try:
            return fetch(ids)
        except Exception as e:
            logger.warning(f"Lookup of {label} for enrichment failed: {str(e)}")
            return default
