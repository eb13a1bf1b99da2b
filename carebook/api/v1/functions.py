from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.orm import Session
from typing import Any, Optional

from ...core.database import get_db
from ...schemas.doctor import ProvisionResponse
from ...services.provisioning_service import DoctorProvisioningService

router = APIRouter(prefix="/functions", tags=["Functions"])


@router.post("/create-doctor", response_model=ProvisionResponse)
async def create_doctor(
    payload: Any = Body(None),
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """Create a doctor's login, role and doctor record in one call (admin only).

    Authentication, authorization and payload checks happen in that order
    inside the service, so the body is accepted untyped here.
    """
    return DoctorProvisioningService(db).provision(authorization, payload)
