"""Data Transfer Objects for Transfer Use Cases

Pydantic models for command inputs and response outputs. Response DTOs
serialize with the camelCase names used on the wire (idemKey, fromUserId,
...) and accept snake_case names when built inside the application.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field
from src.domain.ledger_entry import LedgerEntry
from src.domain.transfer import Transfer, TransferStatus


class CreateTransferCommandDTO(BaseModel):
    """
    Command DTO for creating a transfer

    Used as input to CreateTransfer use case. Business validation
    (positive amount, distinct users, note length) happens in the use case.
    """

    from_user_id: int = Field(
        ...,
        description="Sender user ID"
    )

    to_user_id: int = Field(
        ...,
        description="Receiver user ID"
    )

    amount: int = Field(
        ...,
        description="Points to transfer (must be > 0)"
    )

    note: Optional[str] = Field(
        default=None,
        description="Optional note (max 512 characters)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "from_user_id": 1,
                "to_user_id": 2,
                "amount": 500,
                "note": "dinner split"
            }
        }


class TransferResponseDTO(BaseModel):
    """
    Response DTO for a transfer

    Returned by CreateTransfer, GetTransfer and ListTransfers.
    """

    transfer_id: int = Field(
        ...,
        alias="transferId",
        description="Transfer ID"
    )

    idempotency_key: str = Field(
        ...,
        alias="idemKey",
        description="Idempotency key identifying the transfer"
    )

    from_user_id: int = Field(
        ...,
        alias="fromUserId",
        description="Sender user ID"
    )

    to_user_id: int = Field(
        ...,
        alias="toUserId",
        description="Receiver user ID"
    )

    amount: int = Field(
        ...,
        description="Points transferred"
    )

    status: str = Field(
        ...,
        description="Transfer status (pending, completed, failed, ...)"
    )

    note: Optional[str] = Field(
        default=None,
        description="Optional note"
    )

    created_at: datetime = Field(
        ...,
        alias="createdAt",
        description="Creation timestamp"
    )

    updated_at: datetime = Field(
        ...,
        alias="updatedAt",
        description="Last status change timestamp"
    )

    completed_at: Optional[datetime] = Field(
        default=None,
        alias="completedAt",
        description="Completion timestamp"
    )

    fail_reason: Optional[str] = Field(
        default=None,
        alias="failReason",
        description="Failure cause"
    )

    @classmethod
    def from_entity(cls, transfer: Transfer) -> "TransferResponseDTO":
        return cls(
            transfer_id=transfer.id,
            idempotency_key=transfer.idempotency_key,
            from_user_id=transfer.from_user_id,
            to_user_id=transfer.to_user_id,
            amount=transfer.amount,
            status=TransferStatus(transfer.status).value,
            note=transfer.note,
            created_at=transfer.created_at,
            updated_at=transfer.updated_at,
            completed_at=transfer.completed_at,
            fail_reason=transfer.fail_reason,
        )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "transferId": 1,
                "idemKey": "5f1c7a2e-3b8d-4c1e-9f0a-2d6b8e4c1a7f",
                "fromUserId": 1,
                "toUserId": 2,
                "amount": 500,
                "status": "completed",
                "note": "dinner split",
                "createdAt": "2024-01-01T00:00:00Z",
                "updatedAt": "2024-01-01T00:00:01Z",
                "completedAt": "2024-01-01T00:00:01Z",
                "failReason": None
            }
        }


class ListTransfersResponseDTO(BaseModel):
    """Paginated transfer list returned by ListTransfers"""

    data: List[TransferResponseDTO] = Field(
        ...,
        description="Transfers on the requested page, newest first"
    )

    page: int = Field(..., description="1-based page number")

    page_size: int = Field(..., alias="pageSize", description="Page size")

    total: int = Field(..., description="Total matching transfers")

    class Config:
        populate_by_name = True


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for get balance operation

    Returned by GetBalance use case.
    """

    user_id: int = Field(
        ...,
        alias="userId",
        description="User identifier"
    )

    balance: int = Field(
        ...,
        description="Current point balance"
    )

    last_updated: Optional[datetime] = Field(
        default=None,
        alias="lastUpdated",
        description="Timestamp of the latest ledger entry (None without history)"
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "userId": 1,
                "balance": 1000,
                "lastUpdated": "2024-01-01T00:00:00Z"
            }
        }


class LedgerEntryDTO(BaseModel):
    """Single ledger entry in audit listings"""

    id: int
    user_id: int = Field(..., alias="userId")
    version: int
    change: int
    balance_after: int = Field(..., alias="balanceAfter")
    event_type: str = Field(..., alias="eventType")
    transfer_id: Optional[int] = Field(default=None, alias="transferId")
    reference: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_entity(cls, entry: LedgerEntry) -> "LedgerEntryDTO":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            version=entry.version,
            change=entry.change,
            balance_after=entry.balance_after,
            event_type=entry.event_type.value if hasattr(entry.event_type, "value") else entry.event_type,
            transfer_id=entry.transfer_id,
            reference=entry.reference,
            metadata=entry.metadata_dict() or None,
            created_at=entry.created_at,
        )

    class Config:
        populate_by_name = True


class ListLedgerEntriesResponseDTO(BaseModel):
    """Ledger history page returned by ListLedgerEntries"""

    data: List[LedgerEntryDTO]
    limit: int
    offset: int


class LedgerDiscrepancyDTO(BaseModel):
    """
    A single reconciliation finding

    kind is one of: version_gap, chain_break, negative_balance,
    unbalanced_transfer, orphan_entries
    """

    kind: str = Field(..., description="Discrepancy category")
    user_id: Optional[int] = Field(default=None, description="Affected user")
    transfer_id: Optional[int] = Field(default=None, description="Affected transfer")
    ledger_entry_id: Optional[int] = Field(default=None, description="Offending entry")
    detail: str = Field(..., description="Human-readable description")


class ReconciliationResultDTO(BaseModel):
    """Result of a ledger reconciliation run"""

    users_checked: int
    transfers_checked: int
    discrepancies_found: int
    discrepancies: List[LedgerDiscrepancyDTO]
    reconciliation_time: datetime
    execution_time_ms: int


class ResolvePendingResultDTO(BaseModel):
    """Result of a pending-transfer resolution run"""

    transfers_checked: int
    completed: List[str] = Field(default_factory=list, description="Keys moved to completed")
    failed: List[str] = Field(default_factory=list, description="Keys moved to failed")
    skipped: List[str] = Field(default_factory=list, description="Keys needing manual review")
