"""
Privileged creation of doctor accounts.

Runs with full database rights, so the caller is authenticated and checked
for the admin role here rather than trusted from the client. The identity,
role row and doctor record are committed one at a time; when a later step
fails the identity is deleted again (its role rows go with it).
"""
from typing import Any, Optional
import logging

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    AuthenticationError, AuthorizationError, InternalError, ValidationError,
    describe_validation_error,
)
from ..core.security import UserRole, extract_bearer_token, verify_token
from ..models.department import Department
from ..models.doctor import Doctor
from ..models.user import User
from ..schemas.doctor import DoctorProvisionRequest, ProvisionedUser, ProvisionResponse
from .auth_service import AuthService
from .role_service import RoleResolver

logger = logging.getLogger(__name__)


class DoctorProvisioningService:
    def __init__(self, db: Session):
        self.db = db
        self.auth = AuthService(db)
        self.roles = RoleResolver(db)

    def provision(self, authorization: Optional[str], payload: Any) -> ProvisionResponse:
        caller = self.authenticate(authorization)
        self.authorize(caller)
        request = self.validate(payload)

        logger.info(f"Creating doctor account for: {request.email}")
        user = self.auth.create_identity(
            email=request.email,
            password=request.password,
            full_name=request.full_name,
            email_confirmed=True,
        )
        logger.info(f"User created: {user.id}")

        try:
            self.roles.assign_role(user.id, UserRole.DOCTOR)
        except SQLAlchemyError as e:
            logger.error(f"Error assigning role: {str(e)}")
            self._compensate(user.id)
            raise InternalError("Failed to assign role")

        try:
            self.create_doctor_record(user.id, request)
        except SQLAlchemyError as e:
            logger.error(f"Error creating doctor profile: {str(e)}")
            self._compensate(user.id)
            raise InternalError("Failed to create doctor profile")

        logger.info("Doctor created successfully")
        return ProvisionResponse(
            success=True,
            user=ProvisionedUser(
                id=user.id,
                email=user.email,
                full_name=request.full_name,
                email_confirmed=bool(user.email_confirmed),
                created_at=user.created_at,
            ),
        )

    def authenticate(self, authorization: Optional[str]) -> User:
        token = extract_bearer_token(authorization)
        if not token:
            logger.info("No authorization header")
            raise AuthenticationError("Unauthorized")

        payload = verify_token(token)
        if not payload or payload.token_type != "access" or payload.user_id is None:
            logger.info("Invalid bearer token")
            raise AuthenticationError("Unauthorized")

        user = self.db.query(User).filter(User.id == payload.user_id).first()
        if not user or not user.is_active:
            raise AuthenticationError("Unauthorized")
        return user

    def authorize(self, caller: User) -> None:
        if UserRole.ADMIN not in self.roles.roles_for(caller.id):
            logger.info(f"Not an admin: {caller.id}")
            raise AuthorizationError("Forbidden: Admin access required")

    def validate(self, payload: Any) -> DoctorProvisionRequest:
        if not isinstance(payload, dict):
            raise ValidationError("Missing required fields")
        try:
            request = DoctorProvisionRequest.model_validate(payload)
        except SchemaValidationError as e:
            raise ValidationError(describe_validation_error(e))

        if not self.db.query(Department.id).filter(Department.id == request.department_id).first():
            raise ValidationError("departmentId: Department not found")
        return request

    def create_doctor_record(self, user_id: int, request: DoctorProvisionRequest) -> Doctor:
        doctor = Doctor(
            user_id=user_id,
            department_id=request.department_id,
            specialization=request.specialization,
            qualification=request.qualification,
            experience_years=request.experience_years,
        )
        self.db.add(doctor)
        self.db.commit()
        return doctor

    def _compensate(self, user_id: int) -> None:
        self.db.rollback()
        try:
            self.auth.delete_identity(user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Cleanup of identity {user_id} failed: {str(e)}")
