from .user import User, Profile, UserRoleAssignment, RefreshToken
from .department import Department
from .doctor import Doctor
from .appointment import Appointment, AppointmentStatus

__all__ = [
    "User",
    "Profile",
    "UserRoleAssignment",
    "RefreshToken",
    "Department",
    "Doctor",
    "Appointment",
    "AppointmentStatus",
]
