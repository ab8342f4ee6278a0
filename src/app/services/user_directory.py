"""User Directory Interface

Read-only lookup of registered users. The points core uses it for existence
checks and for the seed balance of users without ledger history.
"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.user import User


class UserDirectory(ABC):
    """Service interface for resolving users by id"""

    @abstractmethod
    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Retrieve a user by id

        Args:
            user_id: User identifier

        Returns:
            User if found, None otherwise
        """
        pass
