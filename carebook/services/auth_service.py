from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timedelta
from typing import Optional
import logging

from ..models.user import User, Profile, UserRoleAssignment, RefreshToken
from ..core.exceptions import AuthenticationError, InternalError, ValidationError
from ..core.security import (
    verify_password, get_password_hash, create_token_pair,
    verify_token, hash_token, UserRole
)
from ..schemas.auth import UserLogin, UserRegister, TokenResponse, UserResponse

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def create_identity(
        self,
        email: str,
        password: str,
        full_name: str,
        email_confirmed: bool = False,
    ) -> User:
        """Create a login identity and its profile, committed on return."""
        existing_user = self.db.query(User).filter(User.email == email).first()
        if existing_user:
            raise ValidationError("A user with this email address has already been registered")

        user = User(
            email=email,
            password_hash=get_password_hash(password),
            is_active=True,
            email_confirmed=email_confirmed,
        )
        user.profile = Profile(full_name=full_name, email=email)

        self.db.add(user)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create identity for {email}: {str(e)}")
            raise InternalError("Failed to create user")
        self.db.refresh(user)

        return user

    def delete_identity(self, user_id: int) -> None:
        """Delete an identity together with its profile, roles and tokens."""
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            return
        self.db.delete(user)
        self.db.commit()

    def register_user(self, user_data: UserRegister) -> User:
        """Self-service sign-up; new accounts always get the patient role."""
        user = self.create_identity(
            email=user_data.email,
            password=user_data.password,
            full_name=user_data.full_name,
        )

        self._grant_role(user, UserRole.PATIENT)

        logger.info(f"Registered patient account {user.id}")
        return user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user or not verify_password(login_data.password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        user.last_login = datetime.utcnow()

        tokens = create_token_pair(user.id, user.email)
        self._store_refresh_token(user.id, tokens.refresh_token)

        self.db.commit()
        self.db.refresh(user)

        return TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
            user=UserResponse.from_user(user)
        )

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Refresh access token using refresh token."""
        token_payload = verify_token(refresh_token)
        if not token_payload or token_payload.token_type != "refresh":
            raise AuthenticationError("Invalid refresh token")

        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.is_revoked == False,  # noqa: E712
            RefreshToken.expires_at > datetime.utcnow()
        ).first()

        if not stored_token:
            raise AuthenticationError("Invalid or expired refresh token")

        user = self.db.query(User).filter(
            User.id == token_payload.user_id
        ).first()

        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        new_tokens = create_token_pair(user.id, user.email)

        stored_token.is_revoked = True
        self._store_refresh_token(user.id, new_tokens.refresh_token)

        self.db.commit()

        return TokenResponse(
            access_token=new_tokens.access_token,
            refresh_token=new_tokens.refresh_token,
            token_type=new_tokens.token_type,
            expires_in=new_tokens.expires_in,
            user=UserResponse.from_user(user)
        )

    def logout_user(self, refresh_token: str) -> bool:
        """Logout user by revoking refresh token."""
        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token)
        ).first()

        if not stored_token:
            return False

        stored_token.is_revoked = True
        self.db.commit()
        return True

    def ensure_admin(self, email: str, password: str, full_name: str) -> Optional[User]:
        """Create the bootstrap admin account unless the email is taken."""
        if self.db.query(User).filter(User.email == email).first():
            return None

        user = self.create_identity(email, password, full_name, email_confirmed=True)
        self._grant_role(user, UserRole.ADMIN)

        logger.info(f"Seeded admin account {email}")
        return user

    def _grant_role(self, user: User, role: UserRole) -> None:
        """Commit a role row for a fresh identity; the identity is removed if that fails."""
        self.db.add(UserRoleAssignment(user_id=user.id, role=role))
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to assign role {role.value} to user {user.id}: {str(e)}")
            self.delete_identity(user.id)
            raise InternalError("Failed to assign role")
        self.db.refresh(user)

    def _store_refresh_token(self, user_id: int, refresh_token: str):
        """Store refresh token in database."""
        token_payload = verify_token(refresh_token)
        if token_payload and token_payload.exp:
            expires_at = datetime.utcfromtimestamp(token_payload.exp)
        else:
            expires_at = datetime.utcnow() + timedelta(days=7)

        # One live refresh token per user
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).update({"is_revoked": True})

        self.db.add(RefreshToken(
            user_id=user_id,
            token_hash=hash_token(refresh_token),
            expires_at=expires_at
        ))
