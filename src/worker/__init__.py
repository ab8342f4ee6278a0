"""Background workers for the points service"""
from .ledger_reconciler import LedgerReconcilerWorker

__all__ = ["LedgerReconcilerWorker"]
