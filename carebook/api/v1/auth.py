from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...api.deps import (
    get_current_user, get_optional_token, rate_limit_check
)
from ...core.security import TokenPayload
from ...models.user import User
from ...services.auth_service import AuthService
from ...services.role_service import RoleResolver, SessionTracker
from ...schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse,
    RefreshTokenRequest, SessionSnapshot
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new patient account."""
    auth_service = AuthService(db)
    user = auth_service.register_user(user_data)
    return UserResponse.from_user(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate user and return access tokens."""
    auth_service = AuthService(db)
    return auth_service.authenticate_user(login_data)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Refresh access token using refresh token."""
    auth_service = AuthService(db)
    return auth_service.refresh_access_token(refresh_data.refresh_token)


@router.post("/logout")
async def logout(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Logout user by revoking refresh token."""
    auth_service = AuthService(db)
    success = auth_service.logout_user(refresh_data.refresh_token)

    return {"message": "Successfully logged out" if success else "Logout completed"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return UserResponse.from_user(current_user)


@router.get("/session", response_model=SessionSnapshot)
async def get_session(
    token_payload: Optional[TokenPayload] = Depends(get_optional_token),
    db: Session = Depends(get_db)
):
    """Resolve the session first, then the effective role."""
    tracker = SessionTracker()
    tracker.begin()

    user = None
    if token_payload and token_payload.user_id is not None:
        user = db.query(User).filter(User.id == token_payload.user_id).first()

    if not user or not user.is_active:
        return tracker.session_missing()

    role = RoleResolver(db).resolve(user.id)
    return tracker.role_resolved(user.id, user.email, role)
