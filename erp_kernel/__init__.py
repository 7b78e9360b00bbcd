"""
ERP Kernel - ledger core

Two append-mostly ledgers kept internally consistent:
- Double-entry accounting (chart of accounts, journal entries, journal lines)
- Inventory movements (items, warehouses, stock transactions)

Stock levels and account balances are always derived from history,
never stored as running counters.
"""

__version__ = "0.1.0"
