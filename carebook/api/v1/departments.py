from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...api.deps import get_current_principal
from ...core.database import get_db
from ...core.policies import Principal
from ...repositories.department_repository import DepartmentRepository
from ...schemas.department import DepartmentCreate, DepartmentRead, DepartmentUpdate

router = APIRouter(prefix="/departments", tags=["Departments"])


@router.get("", response_model=List[DepartmentRead])
async def list_departments(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """All departments ordered by name."""
    return DepartmentRepository(db, principal).list_departments()


@router.get("/{department_id}", response_model=DepartmentRead)
async def get_department(
    department_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return DepartmentRepository(db, principal).get_department(department_id)


@router.post("", response_model=DepartmentRead, status_code=status.HTTP_201_CREATED)
async def create_department(
    data: DepartmentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Create a department (admin only)."""
    return DepartmentRepository(db, principal).create_department(data)


@router.put("/{department_id}", response_model=DepartmentRead)
async def update_department(
    department_id: int,
    data: DepartmentUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Update a department (admin only)."""
    return DepartmentRepository(db, principal).update_department(department_id, data)


@router.delete("/{department_id}")
async def delete_department(
    department_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Delete a department with no doctors assigned (admin only)."""
    DepartmentRepository(db, principal).delete_department(department_id)
    return {"message": "Department deleted successfully"}
