"""Ledger Entry Domain Entity

Immutable append-only record of every balance change. A user's balance is
the balance_after of their latest entry; there is no mutable balance column.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from src.domain.base import BaseModel


class LedgerEventType(str, Enum):
    """Balance-changing event types"""
    TRANSFER_OUT = "transfer_out"  # Debit of a transfer sender
    TRANSFER_IN = "transfer_in"    # Credit of a transfer receiver
    ADJUST = "adjust"              # Manual admin adjustment
    EARN = "earn"                  # Points earned
    REDEEM = "redeem"              # Points redeemed


class LedgerEntry(BaseModel, table=True):
    """
    Ledger Entry - One balance change for one user

    Domain Rules:
    - Entries are immutable (append-only)
    - version is a per-user sequence starting at 1; (user_id, version) is
      unique so two writers cannot both extend the same balance
    - balance_after of version N equals balance_after of version N-1 plus change
    - transfer_out/transfer_in entries reference their transfer
    """

    __tablename__ = "point_ledger"
    __table_args__ = (
        UniqueConstraint('user_id', 'version', name='uq_point_ledger_user_version'),
        CheckConstraint('version >= 1', name='point_ledger_version_positive'),
        Index('ix_point_ledger_user_created_at', 'user_id', 'created_at'),
        Index('ix_point_ledger_transfer_id', 'transfer_id'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        description="Unique entry identifier (increasing in creation order)"
    )

    user_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("users.id"), nullable=False),
        description="Owner of the balance"
    )

    version: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Per-user sequence number"
    )

    change: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Signed point delta (negative for debit)"
    )

    balance_after: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="User balance right after this change"
    )

    event_type: LedgerEventType = Field(
        description="Type of event (transfer_out, transfer_in, adjust, earn, redeem)"
    )

    transfer_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, ForeignKey("transfers.id"), nullable=True),
        description="Originating transfer, if any"
    )

    reference: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Free-form audit reference (e.g. transfer idempotency key)"
    )

    metadata_json: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="JSON metadata for audit trail"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Entry timestamp (immutable)"
    )

    def metadata_dict(self) -> Dict[str, Any]:
        if not self.metadata_json:
            return {}
        return json.loads(self.metadata_json)

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "user_id": 1,
                "version": 1,
                "change": -500,
                "balance_after": 1000,
                "event_type": "transfer_out",
                "transfer_id": 1,
                "reference": "5f1c7a2e-3b8d-4c1e-9f0a-2d6b8e4c1a7f",
                "metadata_json": "{\"transfer_id\": 1, \"note\": \"dinner split\"}",
                "created_at": "2024-01-01T00:00:00Z"
            }
        }


def transfer_entries_problem(
    entries: list, from_user_id: int, to_user_id: int, amount: int
) -> Optional[str]:
    """
    Check the conservation invariant for the entries of one transfer

    Returns:
        None if entries are exactly one transfer_out of -amount on the sender
        and one transfer_in of +amount on the receiver, else a description
    """
    if len(entries) != 2:
        return f"expected 2 ledger entries, found {len(entries)}"

    outs = [e for e in entries if e.event_type == LedgerEventType.TRANSFER_OUT]
    ins = [e for e in entries if e.event_type == LedgerEventType.TRANSFER_IN]
    if len(outs) != 1 or len(ins) != 1:
        return "expected one transfer_out and one transfer_in entry"

    debit, credit = outs[0], ins[0]
    if debit.user_id != from_user_id or debit.change != -amount:
        return f"transfer_out should be {-amount} on user {from_user_id}"
    if credit.user_id != to_user_id or credit.change != amount:
        return f"transfer_in should be {amount} on user {to_user_id}"
    if debit.change + credit.change != 0:
        return "debit and credit do not sum to zero"
    return None
