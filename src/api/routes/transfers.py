"""Transfer API Routes

FastAPI routes for point transfers between users.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.api.error import ClientError
from src.api.schemas.transfer_request import CreateTransferRequestSchema
from src.api.schemas.transfer_response import TransferEnvelopeSchema
from src.app.use_cases.transfers.dtos import CreateTransferCommandDTO, ListTransfersResponseDTO
from src.app.use_cases.transfers.create_transfer import CreateTransfer
from src.app.use_cases.transfers.get_transfer import GetTransfer
from src.app.use_cases.transfers.list_transfers import ListTransfers
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.repositories.transfer_repository import SqlAlchemyTransferRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.user_directory import SqlAlchemyUserDirectory
from src.depends import get_session

router = APIRouter(prefix="/transfers", tags=["Transfers"])


def _error_example(code: str, message: str) -> dict:
    return {"application/json": {"example": {"error": {"code": code, "message": message}}}}


@router.post(
    "",
    response_model=TransferEnvelopeSchema,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {
            "description": "Validation error",
            "content": _error_example("VALIDATION_ERROR", "amount must be greater than 0"),
        },
        404: {
            "description": "Sender or receiver not found",
            "content": _error_example("USER_NOT_FOUND", "receiver user not found"),
        },
        409: {
            "description": "Insufficient points",
            "content": _error_example(
                "INSUFFICIENT_POINTS", "Insufficient points. Required: 500, Available: 100"
            ),
        },
        422: {
            "description": "Sender and receiver are the same user",
            "content": _error_example("SAME_USER", "cannot transfer to yourself"),
        },
    }
)
async def create_transfer(
    request: CreateTransferRequestSchema,
    response: Response,
    session: AsyncSession = Depends(get_session)
):
    """
    Transfer points from one user to another.

    The transfer is recorded before any balance moves. A transfer that loses
    a race for the sender's balance is still returned (201) with
    `status=failed` and a `failReason`.

    **Request body:**
    - `fromUserId` (required): Sender user ID
    - `toUserId` (required): Receiver user ID (must differ from sender)
    - `amount` (required): Points to transfer (integer > 0)
    - `note` (optional): Free text, max 512 characters

    **Returns:**
    - 201: Transfer recorded; `Idempotency-Key` header carries its key
    - 400: Invalid request parameters
    - 404: Sender or receiver not found
    - 409: Insufficient points (no transfer recorded)
    - 422: Sender and receiver are the same user
    """
    # Create UnitOfWork and repositories
    uow = SqlAlchemyUnitOfWork(session)
    user_directory = SqlAlchemyUserDirectory(session)
    transfer_repo = SqlAlchemyTransferRepository(session)
    ledger_repo = SqlAlchemyLedgerEntryRepository(session, user_directory)

    command = CreateTransferCommandDTO(
        from_user_id=request.from_user_id,
        to_user_id=request.to_user_id,
        amount=request.amount,
        note=request.note,
    )

    use_case = CreateTransfer(
        uow,
        transfer_repo,
        ledger_repo,
        user_directory,
        max_attempts=ApplicationConfig.TRANSFER_MAX_ATTEMPTS,
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError.from_error(result.error)

    response.headers["Idempotency-Key"] = result.value.idempotency_key
    return TransferEnvelopeSchema(transfer=result.value)


@router.get(
    "/{idem_key}",
    response_model=TransferEnvelopeSchema,
    status_code=status.HTTP_200_OK,
    responses={
        404: {
            "description": "Transfer not found",
            "content": _error_example("TRANSFER_NOT_FOUND", "Transfer not found"),
        }
    }
)
async def get_transfer(
    idem_key: str,
    session: AsyncSession = Depends(get_session)
):
    """
    Fetch a single transfer by its idempotency key.

    **Returns:**
    - 200: Transfer found
    - 404: No transfer with this key
    """
    transfer_repo = SqlAlchemyTransferRepository(session)

    use_case = GetTransfer(transfer_repo)
    result = await use_case.execute(idem_key)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return TransferEnvelopeSchema(transfer=result.value)


@router.get(
    "",
    response_model=ListTransfersResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Invalid pagination",
            "content": _error_example("VALIDATION_ERROR", "pageSize must be between 1 and 200"),
        },
        404: {
            "description": "User not found",
            "content": _error_example("USER_NOT_FOUND", "User not found"),
        },
    }
)
async def list_transfers(
    user_id: int = Query(..., alias="userId", description="User whose transfers to list"),
    page: int = Query(1, description="1-based page number"),
    page_size: Optional[int] = Query(None, alias="pageSize", description="Page size (1-200)"),
    session: AsyncSession = Depends(get_session)
):
    """
    List transfers where the user is sender or receiver, newest first.

    **Query parameters:**
    - `userId` (required): User ID
    - `page` (optional): Page number, default 1
    - `pageSize` (optional): Items per page, 1-200

    **Returns:**
    - 200: `{data, page, pageSize, total}`
    - 400: Invalid pagination
    - 404: User not found
    """
    user_directory = SqlAlchemyUserDirectory(session)
    transfer_repo = SqlAlchemyTransferRepository(session)

    if page_size is None:
        page_size = ApplicationConfig.DEFAULT_PAGE_SIZE

    use_case = ListTransfers(transfer_repo, user_directory)
    result = await use_case.execute(user_id=user_id, page=page, page_size=page_size)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value
