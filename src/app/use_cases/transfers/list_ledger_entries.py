"""
List Ledger Entries Use Case

Audit trail of a user's balance changes, newest first.
"""
from libs.result import Result, Return, Error
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.services.user_directory import UserDirectory
from src.domain.transfer import MAX_PAGE_SIZE, MIN_PAGE_SIZE
from .dtos import LedgerEntryDTO, ListLedgerEntriesResponseDTO


class ListLedgerEntries:
    def __init__(self, ledger_repo: LedgerEntryRepository, user_directory: UserDirectory):
        self.ledger_repo = ledger_repo
        self.user_directory = user_directory

    async def execute(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> Result[ListLedgerEntriesResponseDTO]:
        if not MIN_PAGE_SIZE <= limit <= MAX_PAGE_SIZE:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message=f"limit must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}",
                )
            )
        if offset < 0:
            return Return.err(Error(code="VALIDATION_ERROR", message="offset must be >= 0"))

        user = await self.user_directory.get_user_by_id(user_id)
        if user is None:
            return Return.err(Error(code="USER_NOT_FOUND", message=f"User {user_id} not found"))

        entries = await self.ledger_repo.list_by_user(user_id, limit=limit, offset=offset)

        return Return.ok(
            ListLedgerEntriesResponseDTO(
                data=[LedgerEntryDTO.from_entity(e) for e in entries],
                limit=limit,
                offset=offset,
            )
        )
