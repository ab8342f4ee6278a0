"""Get Balance Use Case

Retrieves a user's current point balance from the ledger.
"""

from libs.result import Result, Return, Error
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.services.user_directory import UserDirectory
from .dtos import BalanceResponseDTO


class GetBalance:
    """
    Get Balance Use Case

    The balance is the balance_after of the user's latest ledger entry,
    or the seed balance when the user has no history yet.
    """

    def __init__(self, ledger_repo: LedgerEntryRepository, user_directory: UserDirectory):
        self.ledger_repo = ledger_repo
        self.user_directory = user_directory

    async def execute(self, user_id: int) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Args:
            user_id: User identifier

        Returns:
            Result[BalanceResponseDTO]: Success with balance data or error

        Errors:
            USER_NOT_FOUND: User does not exist
        """
        user = await self.user_directory.get_user_by_id(user_id)

        if not user:
            return Return.err(
                Error(
                    code="USER_NOT_FOUND",
                    message=f"User {user_id} not found",
                )
            )

        latest = await self.ledger_repo.latest_entry(user_id)

        if latest is None:
            return Return.ok(
                BalanceResponseDTO(user_id=user_id, balance=user.points, last_updated=None)
            )

        return Return.ok(
            BalanceResponseDTO(
                user_id=user_id,
                balance=latest.balance_after,
                last_updated=latest.created_at,
            )
        )
