from .appointment_repository import AppointmentRepository
from .department_repository import DepartmentRepository
from .doctor_repository import DoctorRepository

__all__ = ["AppointmentRepository", "DepartmentRepository", "DoctorRepository"]
