from .transfer_repository import TransferRepository
from .ledger_entry_repository import LedgerEntryRepository

__all__ = [
    "TransferRepository",
    "LedgerEntryRepository",
]
