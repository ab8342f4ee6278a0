"""SQLAlchemy implementation of UserDirectory

Reads users from the shared `users` table owned by the profile service.
"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.services.user_directory import UserDirectory
from src.domain.user import User


class SqlAlchemyUserDirectory(UserDirectory):
    """Read-only user lookups backed by the relational store"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
