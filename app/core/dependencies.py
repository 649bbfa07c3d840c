from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.database import get_session
from app.core.exceptions import AuthenticationError, NotFoundError
from app.core.jwt_auth import jwt_manager
from app.clubs.crud.users import get_user_by_id
from app.clubs.models.users import User
from app.clubs.services.membership_service import MembershipService
from app.clubs.services.notification_service import EmailNotifier, Notifier

security = HTTPBearer(
    scheme_name="JWT",
    description="Access token issued by the identity service",
    auto_error=False,
)


async def _user_from_token(db: AsyncSession, token: str) -> User:
    user_id = jwt_manager.get_user_id(token)

    try:
        return await get_user_by_id(db, user_id)
    except NotFoundError:
        raise AuthenticationError("User of this token no longer exists")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Caller identified by the bearer token, 401 without one"""
    if credentials is None or not credentials.credentials.strip():
        raise AuthenticationError("Authentication token is required")

    return await _user_from_token(db, credentials.credentials)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None"""
    if credentials is None or not credentials.credentials.strip():
        return None

    return await _user_from_token(db, credentials.credentials)


def get_notifier(request: Request) -> Notifier:
    notifier = getattr(request.app.state, "notifier", None)
    return notifier if notifier is not None else EmailNotifier()


def get_clock(request: Request) -> Clock:
    clock = getattr(request.app.state, "clock", None)
    return clock if clock is not None else system_clock


def get_membership_service(
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
) -> MembershipService:
    return MembershipService(db, notifier, clock)
