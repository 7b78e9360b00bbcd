"""
Module: erp_kernel.models.inventory
Responsibility: ORM persistence for the inventory catalog (items,
    warehouses) and the append-only inventory transaction ledger.
Architecture position: Kernel > Models.  May import from db/ and the pure
    signed-effect table in domain/stock_effect.py.

Invariants enforced:
    - sku and warehouse code are unique.
    - InventoryTransaction.quantity is strictly positive with 3 decimal
      places (CHECK quantity > 0); the transaction type alone carries the
      direction.
    - InventoryTransaction rows are never updated or deleted (ORM listeners
      in db/immutability.py).  Items and warehouses referenced by a
      transaction cannot be hard-deleted (ON DELETE RESTRICT).

Failure modes:
    - IntegrityError on a direct INSERT violating the CHECK constraints.
    - ImmutabilityViolationError on UPDATE/DELETE of a transaction row.

Audit relevance:
    Stock levels are never stored.  Every quantity a report shows is a fold
    over inventory_transactions, so this table is the complete stock history.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from erp_kernel.db.types import Money, Quantity, enum_column
from erp_kernel.domain.stock_effect import InventoryTransactionType


class ItemType(str, Enum):
    """Classification of an inventory item."""

    RAW_MATERIAL = "raw_material"
    FINISHED_GOOD = "finished_good"
    WIP = "wip"
    NON_INVENTORY = "non_inventory"

    @property
    def is_stocked(self) -> bool:
        """Non-inventory items (services, fees) never carry stock."""
        return self is not ItemType.NON_INVENTORY


class ValuationMethod(str, Enum):
    """Cost flow assumption used to value an item's stock."""

    FIFO = "fifo"
    LIFO = "lifo"
    WEIGHTED_AVERAGE = "weighted_average"
    STANDARD_COST = "standard_cost"


class Item(SoftDeleteMixin, TrackedBase):
    """
    Inventory item master record.

    Guarantees:
        - sku is unique and non-null.
        - unit_of_measure is required.
    """

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_item_sku"),
        Index("idx_item_type", "item_type"),
        Index("idx_item_active", "is_active"),
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit_of_measure: Mapped[str] = mapped_column(String(20), nullable=False)
    item_type: Mapped[ItemType] = mapped_column(enum_column(ItemType), nullable=False)

    purchase_price: Mapped[Money | None] = mapped_column(nullable=True)
    sales_price: Mapped[Money | None] = mapped_column(nullable=True)
    valuation_method: Mapped[ValuationMethod | None] = mapped_column(
        enum_column(ValuationMethod, length=30),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Item {self.sku}: {self.name}>"


class Warehouse(SoftDeleteMixin, TrackedBase):
    """Physical or logical stock location."""

    __tablename__ = "warehouses"

    __table_args__ = (
        UniqueConstraint("code", name="uq_warehouse_code"),
        Index("idx_warehouse_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Warehouse {self.code}: {self.name}>"


class InventoryTransaction(TrackedBase):
    """
    One immutable stock movement of an item at a warehouse.

    Contract:
        Inserted once, never updated or deleted.  Corrections are appended
        as counter-transactions whose reference_id names the original row.
    """

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_txn_quantity_positive"),
        Index("idx_inv_txn_item_warehouse", "item_id", "warehouse_id"),
        Index("idx_inv_txn_warehouse", "warehouse_id"),
        Index("idx_inv_txn_date", "transaction_date"),
        Index("idx_inv_txn_type", "transaction_type"),
        Index("idx_inv_txn_reference", "reference_id"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quantity: Mapped[Quantity] = mapped_column(nullable=False)

    transaction_type: Mapped[InventoryTransactionType] = mapped_column(
        enum_column(InventoryTransactionType, length=30),
        nullable=False,
    )

    # External cause (purchase, sale, adjustment) or the row being countered
    reference_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    transaction_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<InventoryTransaction {self.transaction_type.value} "
            f"{self.quantity} item={self.item_id} wh={self.warehouse_id}>"
        )
