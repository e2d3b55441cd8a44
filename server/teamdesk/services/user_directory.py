from typing import List, Sequence
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.exceptions import NotFoundError
from teamdesk.models.user import User, UserRole, UserStatus


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    """Resolve a user id to its directory record."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return user


async def lock_user(db: AsyncSession, user_id: UUID) -> User:
    """
    Load a user row with FOR UPDATE.

    Holding this lock until commit serialises leave writes for one subject, so
    two concurrent applications cannot both pass the overlap and balance checks.
    """
    result = await db.execute(
        select(User).where(User.id == user_id).with_for_update()
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return user


async def list_users_by_roles(db: AsyncSession, roles: Sequence[UserRole]) -> List[User]:
    """Active users currently holding any of the given roles."""
    result = await db.execute(
        select(User).where(
            User.role.in_(list(roles)),
            User.status == UserStatus.ACTIVE,
        )
    )
    return list(result.scalars().all())
