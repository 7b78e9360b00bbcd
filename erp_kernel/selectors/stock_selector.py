"""
StockLevelSelector -- the Stock Level Aggregator.

Responsibility:
    Derives on-hand quantity per (item, warehouse) pair from the inventory
    transaction ledger.  Nothing stores a running counter: every level is
    the sum of signed_effect(type) * quantity over the pair's rows.

Architecture position:
    Kernel > Selectors.  The sign of each type comes from
    domain/stock_effect.py and nowhere else.

Invariants enforced:
    - get_level(i, w) == fold_level(all transactions of (i, w)).
    - A pair with no transactions has level 0; it is not an error.
    - A pair whose transactions net to 0 still appears in get_levels().

Audit relevance:
    verify_level() recomputes a level by folding the individual rows in
    Python and compares it with the SQL aggregate read in the same
    statement, proving the two agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from erp_kernel.db.types import round_quantity
from erp_kernel.domain.clock import as_utc
from erp_kernel.domain.stock_effect import INBOUND_TYPES, fold_level
from erp_kernel.logging_config import get_logger
from erp_kernel.models.inventory import InventoryTransaction, Item, Warehouse
from erp_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.stock")


@dataclass(frozen=True)
class StockLevel:
    """Net quantity of one item at one warehouse."""

    item_id: UUID
    warehouse_id: UUID
    quantity: Decimal
    as_of: datetime | None = None


@dataclass(frozen=True)
class LevelVerification:
    """Result of recomputing a level from individual transactions."""

    item_id: UUID
    warehouse_id: UUID
    aggregated: Decimal
    folded: Decimal
    transaction_count: int

    @property
    def matches(self) -> bool:
        return self.aggregated == self.folded


_SIGNED_QUANTITY = case(
    (
        InventoryTransaction.transaction_type.in_(list(INBOUND_TYPES)),
        InventoryTransaction.quantity,
    ),
    else_=-InventoryTransaction.quantity,
)


def _to_quantity(value) -> Decimal:
    if value is None:
        return round_quantity(Decimal("0"))
    return round_quantity(Decimal(str(value)))


class StockLevelSelector(BaseSelector):
    """Read-only stock level queries."""

    def get_level(
        self,
        item_id: UUID,
        warehouse_id: UUID,
        as_of: datetime | None = None,
    ) -> StockLevel:
        """
        Level of one (item, warehouse) pair.

        Args:
            as_of: Only count transactions dated at or before this instant.

        Returns:
            StockLevel with quantity 0 when the pair has no transactions.
        """
        stmt = select(func.sum(_SIGNED_QUANTITY)).where(
            InventoryTransaction.item_id == item_id,
            InventoryTransaction.warehouse_id == warehouse_id,
        )
        if as_of is not None:
            stmt = stmt.where(InventoryTransaction.transaction_date <= as_utc(as_of))

        quantity = _to_quantity(self.session.execute(stmt).scalar())
        return StockLevel(
            item_id=item_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            as_of=as_of,
        )

    def get_levels(
        self,
        item_id: UUID | None = None,
        warehouse_id: UUID | None = None,
        as_of: datetime | None = None,
    ) -> list[StockLevel]:
        """
        One level per (item, warehouse) pair present in the ledger.

        Pairs netting to zero are included.  Ordered by item SKU, then
        warehouse code.
        """
        stmt = (
            select(
                InventoryTransaction.item_id,
                InventoryTransaction.warehouse_id,
                func.sum(_SIGNED_QUANTITY),
            )
            .join(Item, Item.id == InventoryTransaction.item_id)
            .join(Warehouse, Warehouse.id == InventoryTransaction.warehouse_id)
            .group_by(
                InventoryTransaction.item_id,
                InventoryTransaction.warehouse_id,
                Item.sku,
                Warehouse.code,
            )
            .order_by(Item.sku, Warehouse.code)
        )
        if item_id is not None:
            stmt = stmt.where(InventoryTransaction.item_id == item_id)
        if warehouse_id is not None:
            stmt = stmt.where(InventoryTransaction.warehouse_id == warehouse_id)
        if as_of is not None:
            stmt = stmt.where(InventoryTransaction.transaction_date <= as_utc(as_of))

        return [
            StockLevel(
                item_id=row_item_id,
                warehouse_id=row_warehouse_id,
                quantity=_to_quantity(total),
                as_of=as_of,
            )
            for row_item_id, row_warehouse_id, total in self.session.execute(stmt)
        ]

    def verify_level(self, item_id: UUID, warehouse_id: UUID) -> LevelVerification:
        """
        Recompute a level by folding the pair's transactions and compare it
        with the SQL aggregate.

        The rows and the aggregate come from one statement (a window sum
        over the same rows), so a movement committed mid-check cannot make
        the two disagree.  A mismatch is logged at ERROR; it means the
        aggregate query and the signed-effect table disagree.
        """
        stmt = (
            select(
                InventoryTransaction.transaction_type,
                InventoryTransaction.quantity,
                func.sum(_SIGNED_QUANTITY).over().label("aggregated"),
            )
            .where(
                InventoryTransaction.item_id == item_id,
                InventoryTransaction.warehouse_id == warehouse_id,
            )
            .order_by(InventoryTransaction.transaction_date, InventoryTransaction.created_at)
        )
        rows = self.session.execute(stmt).all()
        movements = [(row.transaction_type, row.quantity) for row in rows]

        verification = LevelVerification(
            item_id=item_id,
            warehouse_id=warehouse_id,
            aggregated=_to_quantity(rows[0].aggregated if rows else None),
            folded=round_quantity(fold_level(movements)),
            transaction_count=len(movements),
        )
        if not verification.matches:
            logger.error(
                "stock_level_mismatch",
                extra={
                    "item_id": str(item_id),
                    "warehouse_id": str(warehouse_id),
                    "aggregated": verification.aggregated,
                    "folded": verification.folded,
                },
            )
        return verification
