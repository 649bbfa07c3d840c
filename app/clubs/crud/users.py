from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.exceptions import NotFoundError, ValidationError
from app.clubs.models.users import User


@db_operation
async def get_user_by_id(session: AsyncSession, user_id: int) -> User:
    """Get user by ID"""
    if not user_id or user_id <= 0:
        raise ValidationError("User ID must be positive")

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise NotFoundError("User", str(user_id))

    return user

