"""Write-side services for the ledger kernel."""

from erp_kernel.services.account_service import AccountInfo, AccountService
from erp_kernel.services.inventory_ledger import InventoryLedgerService, TransferResult
from erp_kernel.services.item_service import ItemInfo, ItemService
from erp_kernel.services.journal_service import JournalService
from erp_kernel.services.warehouse_service import WarehouseInfo, WarehouseService

__all__ = [
    "AccountInfo",
    "AccountService",
    "ItemInfo",
    "ItemService",
    "WarehouseInfo",
    "WarehouseService",
    "JournalService",
    "InventoryLedgerService",
    "TransferResult",
]
