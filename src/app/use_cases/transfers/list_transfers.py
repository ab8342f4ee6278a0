"""
List Transfers Use Case

Retrieves the transfers a user sent or received, newest first, paginated.
"""
from libs.result import Result, Return, Error
from src.app.repositories.transfer_repository import TransferRepository
from src.app.services.user_directory import UserDirectory
from src.domain.errors import ValidationError
from src.domain.transfer import validate_pagination
from .dtos import ListTransfersResponseDTO, TransferResponseDTO


class ListTransfers:
    """
    Use case: View transfer history of a user

    Pagination is 1-based; page_size is bounded to [1, 200].
    total counts every matching transfer, not only the returned page.
    """

    def __init__(self, transfer_repo: TransferRepository, user_directory: UserDirectory):
        self.transfer_repo = transfer_repo
        self.user_directory = user_directory

    async def execute(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> Result[ListTransfersResponseDTO]:
        """
        List transfers involving a user

        Args:
            user_id: User identifier
            page: 1-based page number (default 1)
            page_size: Transfers per page (default 20, max 200)

        Returns:
            Result[ListTransfersResponseDTO]: Paginated transfer list

        Errors:
            VALIDATION_ERROR: Invalid user id or pagination bounds
            USER_NOT_FOUND: User does not exist
        """
        if user_id is None or user_id <= 0:
            return Return.err(Error(code="VALIDATION_ERROR", message="invalid user ID"))

        try:
            validate_pagination(page, page_size)
        except ValidationError as e:
            return Return.err(Error(code="VALIDATION_ERROR", message=str(e)))

        user = await self.user_directory.get_user_by_id(user_id)
        if user is None:
            return Return.err(
                Error(code="USER_NOT_FOUND", message="user not found", reason=f"user_id={user_id}")
            )

        transfers, total = await self.transfer_repo.list_by_user(
            user_id=user_id,
            page=page,
            page_size=page_size,
        )

        return Return.ok(
            ListTransfersResponseDTO(
                data=[TransferResponseDTO.from_entity(t) for t in transfers],
                page=page,
                page_size=page_size,
                total=total,
            )
        )
