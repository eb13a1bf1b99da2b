from typing import List, Optional

from pydantic import BaseModel

from .appointment import EnrichedAppointment, EnrichedDoctor
from .auth import EffectiveRole
from .department import DepartmentRead


class DashboardView(BaseModel):
    role: EffectiveRole
    appointments: List[EnrichedAppointment] = []
    departments: Optional[List[DepartmentRead]] = None
    doctors: Optional[List[EnrichedDoctor]] = None
