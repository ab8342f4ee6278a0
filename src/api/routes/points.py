"""Points API Routes

Balance and ledger history lookups per user.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.error import ClientError
from src.app.use_cases.transfers.dtos import BalanceResponseDTO, ListLedgerEntriesResponseDTO
from src.app.use_cases.transfers.get_balance import GetBalance
from src.app.use_cases.transfers.list_ledger_entries import ListLedgerEntries
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.services.user_directory import SqlAlchemyUserDirectory
from src.depends import get_session

router = APIRouter(prefix="/users/{user_id}/points", tags=["Points"])


@router.get(
    "",
    response_model=BalanceResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {
            "description": "User not found",
            "content": {
                "application/json": {
                    "example": {"error": {"code": "USER_NOT_FOUND", "message": "User not found"}}
                }
            }
        }
    }
)
async def get_balance(
    user_id: int,
    session: AsyncSession = Depends(get_session)
):
    """
    Get a user's current point balance.

    The balance is the `balance_after` of the user's latest ledger entry,
    or their seed balance when they have no ledger history.
    """
    user_directory = SqlAlchemyUserDirectory(session)
    ledger_repo = SqlAlchemyLedgerEntryRepository(session, user_directory)

    use_case = GetBalance(ledger_repo, user_directory)
    result = await use_case.execute(user_id)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value


@router.get(
    "/ledger",
    response_model=ListLedgerEntriesResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def list_ledger_entries(
    user_id: int,
    limit: int = Query(20, description="Max entries to return (1-200)"),
    offset: int = Query(0, description="Entries to skip"),
    session: AsyncSession = Depends(get_session)
):
    """
    List a user's ledger entries, newest first.

    **Returns:**
    - 200: `{data, limit, offset}`
    - 400: Invalid limit or offset
    - 404: User not found
    """
    user_directory = SqlAlchemyUserDirectory(session)
    ledger_repo = SqlAlchemyLedgerEntryRepository(session, user_directory)

    use_case = ListLedgerEntries(ledger_repo, user_directory)
    result = await use_case.execute(user_id, limit=limit, offset=offset)

    if result.is_err():
        raise ClientError.from_error(result.error)

    return result.value
