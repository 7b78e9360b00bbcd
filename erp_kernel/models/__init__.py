"""ORM models for the ledger kernel."""

from erp_kernel.models.account import Account, AccountType
from erp_kernel.models.inventory import (
    InventoryTransaction,
    InventoryTransactionType,
    Item,
    ItemType,
    ValuationMethod,
    Warehouse,
)
from erp_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine

__all__ = [
    "Account",
    "AccountType",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "Item",
    "ItemType",
    "ValuationMethod",
    "Warehouse",
    "InventoryTransaction",
    "InventoryTransactionType",
]
