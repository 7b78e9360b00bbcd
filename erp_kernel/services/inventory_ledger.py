"""
InventoryLedgerService -- the Inventory Transaction Ledger.

Responsibility:
    Appends immutable stock movements.  There is no update or delete path:
    a wrong movement is cancelled by appending its counter-transaction.

Architecture position:
    Kernel > Services.  Stock levels are never written here; the Stock
    Level Aggregator derives them from the rows this service appends.

Invariants enforced:
    - quantity > 0 at 3 decimal places; the type alone decides direction.
    - Item and warehouse are live and active at the moment of recording,
      and the item carries stock (not NON_INVENTORY).
    - Both legs of a transfer are flushed together and share one
      reference_id.

Failure modes:
    - ValidationError / InvalidReferenceError on bad input or unusable
      item or warehouse.
    - ConstraintError when negative stock is disallowed and an outbound
      movement would take the level below zero.
    - NotFoundError / ConstraintError from record_counter_transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import exists, select

from erp_kernel.domain.clock import as_utc
from erp_kernel.domain.stock_effect import (
    ADJUSTMENT_TYPES,
    AdjustmentDirection,
    InventoryTransactionType,
    counter_type,
    signed_quantity,
)
from erp_kernel.domain.validation import coerce_enum, optional_text, positive_quantity
from erp_kernel.exceptions import (
    ConstraintError,
    InvalidReferenceError,
    NotFoundError,
    ValidationError,
)
from erp_kernel.logging_config import LogContext, get_logger
from erp_kernel.models.inventory import InventoryTransaction, Item, Warehouse
from erp_kernel.selectors.inventory_selector import InventoryTransactionDTO, transaction_to_dto
from erp_kernel.selectors.stock_selector import StockLevelSelector
from erp_kernel.services.base import BaseService

logger = get_logger("services.inventory")


@dataclass(frozen=True)
class TransferResult:
    """The two legs of a warehouse transfer."""

    reference_id: UUID
    outbound: InventoryTransactionDTO
    inbound: InventoryTransactionDTO


class InventoryLedgerService(BaseService[InventoryTransaction]):
    """
    Append-only inventory ledger.

    Args:
        allow_negative_stock: When False, an outbound movement that would
            leave the pair below zero raises ConstraintError.  When True
            (the default) it is recorded and logged as a warning.
    """

    def __init__(self, session, clock=None, allow_negative_stock: bool = True):
        super().__init__(session, clock)
        self.allow_negative_stock = allow_negative_stock

    def _usable_item(self, item_id: UUID, require_active: bool = True) -> Item:
        item = self.session.get(Item, item_id)
        if item is None or item.is_deleted:
            raise InvalidReferenceError("Item", str(item_id), "item does not exist")
        if require_active and not item.is_active:
            raise InvalidReferenceError("Item", str(item_id), "item is inactive")
        if not item.item_type.is_stocked:
            raise InvalidReferenceError("Item", str(item_id), "non-inventory items carry no stock")
        return item

    def _usable_warehouse(self, warehouse_id: UUID, require_active: bool = True) -> Warehouse:
        warehouse = self.session.get(Warehouse, warehouse_id)
        if warehouse is None or warehouse.is_deleted:
            raise InvalidReferenceError("Warehouse", str(warehouse_id), "warehouse does not exist")
        if require_active and not warehouse.is_active:
            raise InvalidReferenceError("Warehouse", str(warehouse_id), "warehouse is inactive")
        return warehouse

    def _check_level(
        self,
        item_id: UUID,
        warehouse_id: UUID,
        transaction_type: InventoryTransactionType,
        quantity: Decimal,
    ) -> None:
        """Apply the negative-stock policy to an outbound movement."""
        delta = signed_quantity(transaction_type, quantity)
        if delta >= 0:
            return
        before = StockLevelSelector(self.session).get_level(item_id, warehouse_id).quantity
        after = before + delta
        if after >= 0:
            return
        if not self.allow_negative_stock:
            raise ConstraintError(
                "StockLevel",
                f"{item_id}/{warehouse_id}",
                f"insufficient stock: on hand {before}, requested {quantity}",
            )
        logger.warning(
            "stock_went_negative",
            extra={
                "item_id": str(item_id),
                "warehouse_id": str(warehouse_id),
                "transaction_type": transaction_type.value,
                "level_before": before,
                "level_after": after,
            },
        )

    def _build(
        self,
        item_id: UUID,
        warehouse_id: UUID,
        quantity,
        transaction_type: InventoryTransactionType | str,
        actor_id: UUID,
        reference_id: UUID | None,
        notes: str | None,
        transaction_date: datetime | None,
        require_active: bool = True,
    ) -> InventoryTransaction:
        quantity = positive_quantity(quantity)
        transaction_type = coerce_enum(InventoryTransactionType, transaction_type, "transaction_type")
        if item_id is None:
            raise ValidationError("item_id is required", field="item_id")
        if warehouse_id is None:
            raise ValidationError("warehouse_id is required", field="warehouse_id")
        self._usable_item(item_id, require_active)
        self._usable_warehouse(warehouse_id, require_active)

        return InventoryTransaction(
            item_id=item_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            transaction_type=transaction_type,
            reference_id=reference_id,
            notes=optional_text(notes, "notes"),
            transaction_date=as_utc(transaction_date) if transaction_date else self.clock.now(),
            created_by_id=actor_id,
        )

    def _log_recorded(self, txn: InventoryTransaction) -> None:
        logger.info(
            "inventory_transaction_recorded",
            extra={
                "transaction_id": str(txn.id),
                "item_id": str(txn.item_id),
                "warehouse_id": str(txn.warehouse_id),
                "transaction_type": txn.transaction_type.value,
                "quantity": txn.quantity,
                "reference_id": str(txn.reference_id) if txn.reference_id else None,
            },
        )

    def record_transaction(
        self,
        item_id: UUID,
        warehouse_id: UUID,
        quantity: Decimal | str | int,
        transaction_type: InventoryTransactionType | str,
        actor_id: UUID,
        reference_id: UUID | None = None,
        notes: str | None = None,
        transaction_date: datetime | None = None,
    ) -> InventoryTransactionDTO:
        """
        Append one stock movement.

        Args:
            quantity: Positive magnitude; rounded to 3 decimal places.
            transaction_type: Decides the sign of the movement.
            reference_id: Optional external cause (purchase, sale, ...).
            transaction_date: Defaults to the clock's current time.

        Raises:
            ValidationError: quantity <= 0, unknown type, or an unknown,
                inactive, deleted or non-inventory item/warehouse.
            ConstraintError: Negative stock is disallowed and the movement
                would go below zero.
        """
        with LogContext.bind(item_id=item_id, warehouse_id=warehouse_id):
            txn = self._build(
                item_id,
                warehouse_id,
                quantity,
                transaction_type,
                actor_id,
                reference_id,
                notes,
                transaction_date,
            )
            self._check_level(txn.item_id, txn.warehouse_id, txn.transaction_type, txn.quantity)
            self.session.add(txn)
            self.session.flush()
            self._log_recorded(txn)
            return transaction_to_dto(txn)

    def record_adjustment(
        self,
        item_id: UUID,
        warehouse_id: UUID,
        quantity: Decimal | str | int,
        direction: AdjustmentDirection | str,
        notes: str | None,
        actor_id: UUID,
        reference_id: UUID | None = None,
    ) -> InventoryTransactionDTO:
        """
        Manual stock adjustment.

        IN records ADJUST_STOCK_IN, OUT records ADJUST_STOCK_OUT, keeping
        adjustments distinguishable from receipts and issues.
        """
        direction = coerce_enum(AdjustmentDirection, direction, "direction")
        return self.record_transaction(
            item_id=item_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            transaction_type=ADJUSTMENT_TYPES[direction],
            actor_id=actor_id,
            reference_id=reference_id,
            notes=notes,
        )

    def record_transfer(
        self,
        item_id: UUID,
        from_warehouse_id: UUID,
        to_warehouse_id: UUID,
        quantity: Decimal | str | int,
        actor_id: UUID,
        notes: str | None = None,
        transaction_date: datetime | None = None,
    ) -> TransferResult:
        """
        Move stock between two warehouses.

        Appends TRANSFER_OUT at the source and TRANSFER_IN at the
        destination in a single flush; both rows carry the same
        reference_id.

        Raises:
            ValidationError: Same source and destination, or any
                record_transaction validation failure.
        """
        if from_warehouse_id == to_warehouse_id:
            raise ValidationError(
                "Source and destination warehouse must differ",
                field="to_warehouse_id",
            )
        reference_id = uuid4()
        when = as_utc(transaction_date) if transaction_date else self.clock.now()

        with LogContext.bind(item_id=item_id):
            outbound = self._build(
                item_id,
                from_warehouse_id,
                quantity,
                InventoryTransactionType.TRANSFER_OUT,
                actor_id,
                reference_id,
                notes,
                when,
            )
            inbound = self._build(
                item_id,
                to_warehouse_id,
                quantity,
                InventoryTransactionType.TRANSFER_IN,
                actor_id,
                reference_id,
                notes,
                when,
            )
            self._check_level(item_id, from_warehouse_id, outbound.transaction_type, outbound.quantity)
            self.session.add_all([outbound, inbound])
            self.session.flush()

            logger.info(
                "inventory_transfer_recorded",
                extra={
                    "item_id": str(item_id),
                    "from_warehouse_id": str(from_warehouse_id),
                    "to_warehouse_id": str(to_warehouse_id),
                    "quantity": outbound.quantity,
                    "reference_id": str(reference_id),
                },
            )
            return TransferResult(
                reference_id=reference_id,
                outbound=transaction_to_dto(outbound),
                inbound=transaction_to_dto(inbound),
            )

    def record_counter_transaction(
        self,
        transaction_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> InventoryTransactionDTO:
        """
        Cancel a recorded movement by appending its opposite.

        The new row has the counter type, the same item, warehouse and
        quantity, and reference_id pointing at the original.  Deactivated
        items and warehouses may still be corrected.

        Raises:
            NotFoundError: Unknown transaction.
            ConstraintError: The transaction has already been countered.
        """
        original = self.session.get(InventoryTransaction, transaction_id)
        if original is None:
            raise NotFoundError("InventoryTransaction", str(transaction_id))

        reverse_type = counter_type(original.transaction_type)
        already = self.session.execute(
            select(
                exists().where(
                    InventoryTransaction.reference_id == original.id,
                    InventoryTransaction.transaction_type == reverse_type,
                )
            )
        ).scalar()
        if already:
            raise ConstraintError(
                "InventoryTransaction",
                str(original.id),
                "transaction has already been countered",
            )

        with LogContext.bind(item_id=original.item_id, warehouse_id=original.warehouse_id):
            txn = self._build(
                original.item_id,
                original.warehouse_id,
                original.quantity,
                reverse_type,
                actor_id,
                original.id,
                notes or f"Counter of {original.id}",
                None,
                require_active=False,
            )
            self._check_level(txn.item_id, txn.warehouse_id, txn.transaction_type, txn.quantity)
            self.session.add(txn)
            self.session.flush()
            self._log_recorded(txn)
            return transaction_to_dto(txn)
