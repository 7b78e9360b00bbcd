"""
Signed-effect table for inventory transactions.

Responsibility:
    Maps every inventory transaction type to +1 (stock in) or -1 (stock out).
    The Stock Level Aggregator multiplies each row's quantity by this effect
    and sums; no other code decides the direction of a movement.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Every InventoryTransactionType has exactly one effect.
    - Quantities are stored positive; direction comes only from the type.
    - Every type has a counter type of opposite effect, used to cancel a
      recorded movement by appending rather than editing.
"""

from decimal import Decimal
from enum import Enum


class InventoryTransactionType(str, Enum):
    """Kinds of inventory movement."""

    RECEIVE_STOCK = "receive_stock"
    ISSUE_STOCK = "issue_stock"
    ADJUST_STOCK_IN = "adjust_stock_in"
    ADJUST_STOCK_OUT = "adjust_stock_out"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    PRODUCTION_OUTPUT = "production_output"
    PRODUCTION_CONSUME = "production_consume"
    SALES_RETURN = "sales_return"
    PURCHASE_RETURN = "purchase_return"


class AdjustmentDirection(str, Enum):
    """Direction of a manual stock adjustment."""

    IN = "in"
    OUT = "out"


SIGNED_EFFECT: dict[InventoryTransactionType, int] = {
    InventoryTransactionType.RECEIVE_STOCK: 1,
    InventoryTransactionType.ISSUE_STOCK: -1,
    InventoryTransactionType.ADJUST_STOCK_IN: 1,
    InventoryTransactionType.ADJUST_STOCK_OUT: -1,
    InventoryTransactionType.TRANSFER_IN: 1,
    InventoryTransactionType.TRANSFER_OUT: -1,
    InventoryTransactionType.PRODUCTION_OUTPUT: 1,
    InventoryTransactionType.PRODUCTION_CONSUME: -1,
    InventoryTransactionType.SALES_RETURN: 1,
    InventoryTransactionType.PURCHASE_RETURN: -1,
}

INBOUND_TYPES: frozenset[InventoryTransactionType] = frozenset(
    t for t, effect in SIGNED_EFFECT.items() if effect > 0
)
OUTBOUND_TYPES: frozenset[InventoryTransactionType] = frozenset(
    t for t, effect in SIGNED_EFFECT.items() if effect < 0
)

# Opposite-effect type used when cancelling a recorded movement
COUNTER_TYPE: dict[InventoryTransactionType, InventoryTransactionType] = {
    InventoryTransactionType.RECEIVE_STOCK: InventoryTransactionType.PURCHASE_RETURN,
    InventoryTransactionType.PURCHASE_RETURN: InventoryTransactionType.RECEIVE_STOCK,
    InventoryTransactionType.ISSUE_STOCK: InventoryTransactionType.SALES_RETURN,
    InventoryTransactionType.SALES_RETURN: InventoryTransactionType.ISSUE_STOCK,
    InventoryTransactionType.ADJUST_STOCK_IN: InventoryTransactionType.ADJUST_STOCK_OUT,
    InventoryTransactionType.ADJUST_STOCK_OUT: InventoryTransactionType.ADJUST_STOCK_IN,
    InventoryTransactionType.TRANSFER_IN: InventoryTransactionType.TRANSFER_OUT,
    InventoryTransactionType.TRANSFER_OUT: InventoryTransactionType.TRANSFER_IN,
    InventoryTransactionType.PRODUCTION_OUTPUT: InventoryTransactionType.PRODUCTION_CONSUME,
    InventoryTransactionType.PRODUCTION_CONSUME: InventoryTransactionType.PRODUCTION_OUTPUT,
}

ADJUSTMENT_TYPES: dict[AdjustmentDirection, InventoryTransactionType] = {
    AdjustmentDirection.IN: InventoryTransactionType.ADJUST_STOCK_IN,
    AdjustmentDirection.OUT: InventoryTransactionType.ADJUST_STOCK_OUT,
}


def signed_effect(transaction_type: InventoryTransactionType | str) -> int:
    """Return +1 or -1 for a transaction type."""
    return SIGNED_EFFECT[InventoryTransactionType(transaction_type)]


def signed_quantity(
    transaction_type: InventoryTransactionType | str,
    quantity: Decimal,
) -> Decimal:
    """Quantity with the sign of its movement applied."""
    return quantity * signed_effect(transaction_type)


def counter_type(transaction_type: InventoryTransactionType | str) -> InventoryTransactionType:
    """Return the opposite-effect type that cancels ``transaction_type``."""
    return COUNTER_TYPE[InventoryTransactionType(transaction_type)]


def fold_level(movements) -> Decimal:
    """
    Net quantity of an iterable of ``(transaction_type, quantity)`` pairs.

    Returns Decimal("0") for an empty history.
    """
    total = Decimal("0")
    for transaction_type, quantity in movements:
        total += signed_quantity(transaction_type, quantity)
    return total
