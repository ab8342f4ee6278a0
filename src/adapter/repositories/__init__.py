from .transfer_repository import SqlAlchemyTransferRepository
from .ledger_entry_repository import SqlAlchemyLedgerEntryRepository

__all__ = [
    "SqlAlchemyTransferRepository",
    "SqlAlchemyLedgerEntryRepository",
]
