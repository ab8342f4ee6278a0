from .base import BaseModel, generate_uuid
from .user import User
from .transfer import Transfer, TransferStatus
from .ledger_entry import LedgerEntry, LedgerEventType

__all__ = [
    "BaseModel",
    "generate_uuid",
    "User",
    "Transfer",
    "TransferStatus",
    "LedgerEntry",
    "LedgerEventType",
]
