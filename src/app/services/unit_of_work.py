"""Unit of Work Interface

Transaction boundary shared by the repositories of a single request.
"""

from abc import ABC, abstractmethod


class UnitOfWork(ABC):
    """
    Abstract unit of work

    Leaving the context without committing rolls back pending changes.
    """

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    @abstractmethod
    async def commit(self):
        """
        Commit pending changes

        Raises:
            StorageError: If the underlying store rejects the commit
        """
        pass

    @abstractmethod
    async def rollback(self):
        """Discard pending changes"""
        pass
