from datetime import datetime
from enum import Enum
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..core.security import UserRole

PASSWORD_MIN_LENGTH = 12


def validate_password_strength(password: str) -> str:
    """Apply the account password policy, raising ValueError on the first miss."""
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        raise ValueError("Password must contain at least one number")
    if not re.search(r"[^A-Za-z0-9]", password):
        raise ValueError("Password must contain at least one special character")
    return password


class UserRegister(BaseModel):
    email: EmailStr = Field(max_length=255)
    password: str
    full_name: str = Field(min_length=1, max_length=100)

    @field_validator("full_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def password_policy(cls, v: str) -> str:
        return validate_password_strength(v)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: Optional[str] = None
    email_confirmed: bool = False
    roles: List[UserRole] = []
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.profile.full_name if user.profile else None,
            email_confirmed=bool(user.email_confirmed),
            roles=sorted({r.role for r in user.roles}, key=lambda r: r.value),
            created_at=user.created_at,
        )


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class EffectiveRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"
    NONE = "none"


class SessionPhase(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED_NO_ROLE = "authenticated_no_role"
    AUTHENTICATED_WITH_ROLE = "authenticated_with_role"


class SessionSnapshot(BaseModel):
    """Immutable view of the caller's session at one initialisation phase."""

    model_config = ConfigDict(frozen=True)

    phase: SessionPhase = SessionPhase.UNAUTHENTICATED
    user_id: Optional[int] = None
    email: Optional[str] = None
    role: Optional[EffectiveRole] = None
