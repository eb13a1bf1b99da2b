from typing import List
import logging

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError, ValidationError
from ..core.policies import AccessPolicy, Principal
from ..models.department import Department
from ..models.doctor import Doctor
from ..schemas.department import DepartmentCreate, DepartmentRead, DepartmentUpdate

logger = logging.getLogger(__name__)


class DepartmentRepository:
    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.policy = AccessPolicy(principal)

    def list_departments(self) -> List[DepartmentRead]:
        rows = self.db.query(Department).order_by(Department.name.asc()).all()
        return [DepartmentRead.model_validate(row) for row in rows]

    def get_department(self, department_id: int) -> DepartmentRead:
        return DepartmentRead.model_validate(self._get_row(department_id))

    def create_department(self, data: DepartmentCreate) -> DepartmentRead:
        self.policy.ensure_can_manage_departments()
        self._ensure_unique_name(data.name)

        department = Department(name=data.name, description=data.description or "")
        self.db.add(department)
        self.db.commit()
        self.db.refresh(department)

        logger.info(f"Department {department.id} created: {department.name}")
        return DepartmentRead.model_validate(department)

    def update_department(self, department_id: int, data: DepartmentUpdate) -> DepartmentRead:
        self.policy.ensure_can_manage_departments()
        department = self._get_row(department_id)
        self._ensure_unique_name(data.name, exclude_id=department_id)

        department.name = data.name
        department.description = data.description or ""
        self.db.commit()
        self.db.refresh(department)

        return DepartmentRead.model_validate(department)

    def delete_department(self, department_id: int) -> None:
        self.policy.ensure_can_manage_departments()
        department = self._get_row(department_id)

        assigned = self.db.query(Doctor.id).filter(Doctor.department_id == department_id).count()
        if assigned:
            raise ValidationError("Department still has doctors assigned")

        self.db.delete(department)
        self.db.commit()
        logger.info(f"Department {department_id} deleted")

    def _get_row(self, department_id: int) -> Department:
        department = self.db.query(Department).filter(Department.id == department_id).first()
        if not department:
            raise NotFoundError("Department not found")
        return department

    def _ensure_unique_name(self, name: str, exclude_id: int = None) -> None:
        query = self.db.query(Department.id).filter(Department.name == name)
        if exclude_id is not None:
            query = query.filter(Department.id != exclude_id)
        if query.first():
            raise ValidationError("A department with this name already exists")
