from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .auth import validate_password_strength


class DoctorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    department_id: int
    specialization: str
    qualification: str
    experience_years: int
    created_at: Optional[datetime] = None


class DoctorProvisionRequest(BaseModel):
    """Body accepted by the create-doctor function (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(max_length=255)
    password: str
    full_name: str = Field(alias="fullName", min_length=1, max_length=100)
    department_id: int = Field(alias="departmentId")
    specialization: str = Field(min_length=1, max_length=100)
    qualification: str = Field(min_length=1, max_length=200)
    experience_years: int = Field(alias="experienceYears", ge=0, le=70)

    @field_validator("full_name", "specialization", "qualification", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def password_policy(cls, v: str) -> str:
        return validate_password_strength(v)


class ProvisionedUser(BaseModel):
    id: int
    email: str
    full_name: str
    email_confirmed: bool
    created_at: Optional[datetime] = None


class ProvisionResponse(BaseModel):
    success: bool = True
    user: ProvisionedUser
