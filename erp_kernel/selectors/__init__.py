"""Read-only selectors for the ledger kernel."""

from erp_kernel.selectors.base import Page
from erp_kernel.selectors.inventory_selector import (
    InventorySelector,
    InventoryTransactionDTO,
    TransactionFilter,
)
from erp_kernel.selectors.journal_selector import (
    EntryFilter,
    JournalEntryDTO,
    JournalLineDTO,
    JournalSelector,
)
from erp_kernel.selectors.ledger_selector import (
    AccountBalance,
    LedgerSelector,
    TrialBalance,
    TrialBalanceRow,
)
from erp_kernel.selectors.stock_selector import (
    LevelVerification,
    StockLevel,
    StockLevelSelector,
)

__all__ = [
    "Page",
    "InventorySelector",
    "InventoryTransactionDTO",
    "TransactionFilter",
    "JournalSelector",
    "JournalEntryDTO",
    "JournalLineDTO",
    "EntryFilter",
    "LedgerSelector",
    "AccountBalance",
    "TrialBalance",
    "TrialBalanceRow",
    "StockLevelSelector",
    "StockLevel",
    "LevelVerification",
]
