"""Transfer Domain Entity

One row per transfer attempt between two users. A transfer is created once
in PENDING and moved to a terminal state by the transfer orchestrator; it is
never deleted.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, String
from src.domain.base import BaseModel
from src.domain.errors import SameUserError, ValidationError

NOTE_MAX_LENGTH = 512
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 200


class TransferStatus(str, Enum):
    """Transfer lifecycle states"""
    PENDING = "pending"
    PROCESSING = "processing"  # Reserved, never produced
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"    # Reserved, never produced
    REVERSED = "reversed"      # Reserved, never produced


# Only the transitions listed here exist. Reserved states have no entry.
ALLOWED_TRANSITIONS = {
    TransferStatus.PENDING: frozenset({TransferStatus.COMPLETED, TransferStatus.FAILED}),
}

TERMINAL_STATUSES = frozenset({TransferStatus.COMPLETED, TransferStatus.FAILED})


def can_transition(current: TransferStatus, target: TransferStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(TransferStatus(current), frozenset())


def validate_transfer_request(
    from_user_id: int, to_user_id: int, amount: int, note: Optional[str] = None
) -> None:
    """
    Validate the shape of a transfer request

    Raises:
        ValidationError: invalid ids, non-positive amount or note too long
        SameUserError: sender and receiver are the same user
    """
    if from_user_id is None or from_user_id <= 0:
        raise ValidationError("invalid sender user ID")
    if to_user_id is None or to_user_id <= 0:
        raise ValidationError("invalid receiver user ID")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("amount must be an integer number of points")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")
    if from_user_id == to_user_id:
        raise SameUserError("cannot transfer to yourself")
    if note is not None and len(note) > NOTE_MAX_LENGTH:
        raise ValidationError(f"note too long (max {NOTE_MAX_LENGTH} characters)")


def validate_pagination(page: int, page_size: int) -> None:
    """Raises ValidationError unless page >= 1 and page_size is within bounds"""
    if page is None or page < 1:
        raise ValidationError("page must be >= 1")
    if page_size is None or not MIN_PAGE_SIZE <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError(
            f"page_size must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}"
        )


class Transfer(BaseModel, table=True):
    """
    Transfer - Point movement request between two users

    Domain Rules:
    - idempotency_key is unique and generated by the store
    - from_user_id and to_user_id must differ
    - amount is a positive integer
    - completed_at is set if and only if status is COMPLETED
    - fail_reason is set if and only if status is FAILED
    - Status transitions: pending -> completed | failed
    """

    __tablename__ = "transfers"
    __table_args__ = (
        CheckConstraint('amount > 0', name='transfer_amount_positive'),
        CheckConstraint('from_user_id <> to_user_id', name='transfer_distinct_users'),
        Index('ix_transfers_from_user_id', 'from_user_id'),
        Index('ix_transfers_to_user_id', 'to_user_id'),
        Index('ix_transfers_created_at', 'created_at'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        description="Unique transfer identifier (auto-increment)"
    )

    idempotency_key: str = Field(
        unique=True,
        index=True,
        description="Unique key identifying the transfer request"
    )

    from_user_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("users.id"), nullable=False),
        description="Sender user ID"
    )

    to_user_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("users.id"), nullable=False),
        description="Receiver user ID"
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Points to move (must be > 0)"
    )

    status: TransferStatus = Field(
        default=TransferStatus.PENDING,
        description="Lifecycle status (pending, completed, failed, ...)"
    )

    note: Optional[str] = Field(
        default=None,
        sa_column=Column(String(NOTE_MAX_LENGTH), nullable=True),
        description="Optional free text note (max 512 characters)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Transfer creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last status change timestamp"
    )

    completed_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp when the transfer completed"
    )

    fail_reason: Optional[str] = Field(
        default=None,
        sa_column=Column(String(512), nullable=True),
        description="Failure cause (set only for failed transfers)"
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "idempotency_key": "5f1c7a2e-3b8d-4c1e-9f0a-2d6b8e4c1a7f",
                "from_user_id": 1,
                "to_user_id": 2,
                "amount": 500,
                "status": "completed",
                "note": "dinner split",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:01Z",
                "completed_at": "2024-01-01T00:00:01Z",
                "fail_reason": None
            }
        }
