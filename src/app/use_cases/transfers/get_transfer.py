"""Get Transfer Use Case

Retrieves a transfer by its idempotency key.
"""

from libs.result import Result, Return, Error
from src.app.repositories.transfer_repository import TransferRepository
from .dtos import TransferResponseDTO


class GetTransfer:
    """
    Get Transfer Use Case

    Read-only lookup of a single transfer, in whatever state it is.
    """

    def __init__(self, transfer_repo: TransferRepository):
        self.transfer_repo = transfer_repo

    async def execute(self, idempotency_key: str) -> Result[TransferResponseDTO]:
        """
        Execute get transfer operation

        Args:
            idempotency_key: Transfer idempotency key

        Returns:
            Result[TransferResponseDTO]: Transfer data or error

        Errors:
            VALIDATION_ERROR: Empty key
            TRANSFER_NOT_FOUND: No transfer with this key
        """
        if not idempotency_key or not idempotency_key.strip():
            return Return.err(
                Error(code="VALIDATION_ERROR", message="idempotency key is required")
            )

        transfer = await self.transfer_repo.get_by_idempotency_key(idempotency_key)

        if not transfer:
            return Return.err(
                Error(
                    code="TRANSFER_NOT_FOUND",
                    message="Transfer not found",
                    reason=f"idempotency_key={idempotency_key}",
                )
            )

        return Return.ok(TransferResponseDTO.from_entity(transfer))
