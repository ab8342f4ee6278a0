"""Transfer and point ledger use cases"""
from .create_transfer import CreateTransfer
from .get_transfer import GetTransfer
from .list_transfers import ListTransfers
from .get_balance import GetBalance
from .list_ledger_entries import ListLedgerEntries
from .reconcile_ledger import ReconcileLedger
from .resolve_pending_transfers import ResolvePendingTransfers
from .dtos import (
    CreateTransferCommandDTO,
    TransferResponseDTO,
    ListTransfersResponseDTO,
    BalanceResponseDTO,
    LedgerEntryDTO,
    ListLedgerEntriesResponseDTO,
    LedgerDiscrepancyDTO,
    ReconciliationResultDTO,
    ResolvePendingResultDTO,
)

__all__ = [
    "CreateTransfer",
    "GetTransfer",
    "ListTransfers",
    "GetBalance",
    "ListLedgerEntries",
    "ReconcileLedger",
    "ResolvePendingTransfers",
    "CreateTransferCommandDTO",
    "TransferResponseDTO",
    "ListTransfersResponseDTO",
    "BalanceResponseDTO",
    "LedgerEntryDTO",
    "ListLedgerEntriesResponseDTO",
    "LedgerDiscrepancyDTO",
    "ReconciliationResultDTO",
    "ResolvePendingResultDTO",
]
