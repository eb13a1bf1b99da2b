from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Callable, Optional
import logging

from ..core.config import settings
from ..core.database import get_db, get_redis, get_session_factory
from ..core.exceptions import AuthenticationError, RateLimitError
from ..core.policies import Principal
from ..core.security import security, verify_token, TokenPayload
from ..models.doctor import Doctor
from ..models.user import User
from ..services.enrichment import AppointmentAssembler, SqlRecordSource
from ..services.role_service import RoleResolver

logger = logging.getLogger(__name__)


async def get_current_user_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    if credentials is None:
        raise AuthenticationError("Unauthorized")

    token_payload = verify_token(credentials.credentials)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload


async def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if token_payload.user_id is None:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == token_payload.user_id).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


async def get_current_principal(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Principal:
    """The caller with role rows and doctor record resolved server-side."""
    roles = RoleResolver(db).roles_for(current_user.id)
    doctor = db.query(Doctor.id).filter(Doctor.user_id == current_user.id).first()

    return Principal(
        id=current_user.id,
        email=current_user.email,
        roles=frozenset(roles),
        doctor_id=doctor[0] if doctor else None,
    )


async def get_optional_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenPayload]:
    """Token payload when a valid access token is sent, None otherwise."""
    if credentials is None:
        return None
    token_payload = verify_token(credentials.credentials)
    if not token_payload or token_payload.token_type != "access":
        return None
    return token_payload


def get_assembler(
    session_factory: Callable[[], Session] = Depends(get_session_factory)
) -> AppointmentAssembler:
    return AppointmentAssembler(SqlRecordSource(session_factory))


# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client=Depends(get_redis)
) -> None:
    """Basic rate limiting for authentication endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{request.url.path}:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, 3600, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_PER_HOUR:
            logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
            raise RateLimitError()
        redis_client.incr(key)
