"""
InventorySelector -- read-only queries over the inventory transaction ledger.

Responsibility:
    GetTransaction and ListTransactions.  Rows come back as frozen DTOs; the
    ledger itself has no update path.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from erp_kernel.domain.clock import as_utc
from erp_kernel.domain.stock_effect import InventoryTransactionType, signed_quantity
from erp_kernel.domain.validation import coerce_enum
from erp_kernel.exceptions import NotFoundError, ValidationError
from erp_kernel.models.inventory import InventoryTransaction
from erp_kernel.selectors.base import DEFAULT_PAGE_SIZE, BaseSelector, Page, paginate


@dataclass(frozen=True)
class InventoryTransactionDTO:
    """Immutable view of one stock movement."""

    id: UUID
    item_id: UUID
    warehouse_id: UUID
    quantity: Decimal
    transaction_type: InventoryTransactionType
    transaction_date: datetime
    reference_id: UUID | None = None
    notes: str | None = None
    created_by_id: UUID | None = None

    @property
    def signed_quantity(self) -> Decimal:
        return signed_quantity(self.transaction_type, self.quantity)


@dataclass(frozen=True)
class TransactionFilter:
    """Filter for ListTransactions.  Set fields combine with AND."""

    item_id: UUID | None = None
    warehouse_id: UUID | None = None
    transaction_type: InventoryTransactionType | str | None = None
    reference_id: UUID | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


def transaction_to_dto(txn: InventoryTransaction) -> InventoryTransactionDTO:
    return InventoryTransactionDTO(
        id=txn.id,
        item_id=txn.item_id,
        warehouse_id=txn.warehouse_id,
        quantity=txn.quantity,
        transaction_type=txn.transaction_type,
        transaction_date=txn.transaction_date,
        reference_id=txn.reference_id,
        notes=txn.notes,
        created_by_id=txn.created_by_id,
    )


class InventorySelector(BaseSelector):
    """Read-only access to inventory transactions."""

    def get_transaction(self, transaction_id: UUID) -> InventoryTransactionDTO:
        """
        Raises:
            NotFoundError: No transaction has this id.
        """
        txn = self.session.get(InventoryTransaction, transaction_id)
        if txn is None:
            raise NotFoundError("InventoryTransaction", str(transaction_id))
        return transaction_to_dto(txn)

    def _filtered(self, f: TransactionFilter):
        if f.date_from and f.date_to and as_utc(f.date_from) > as_utc(f.date_to):
            raise ValidationError("date_from must not be after date_to", field="date_from")

        stmt = select(InventoryTransaction)
        if f.item_id is not None:
            stmt = stmt.where(InventoryTransaction.item_id == f.item_id)
        if f.warehouse_id is not None:
            stmt = stmt.where(InventoryTransaction.warehouse_id == f.warehouse_id)
        if f.transaction_type is not None:
            stmt = stmt.where(
                InventoryTransaction.transaction_type
                == coerce_enum(InventoryTransactionType, f.transaction_type, "transaction_type")
            )
        if f.reference_id is not None:
            stmt = stmt.where(InventoryTransaction.reference_id == f.reference_id)
        if f.date_from is not None:
            stmt = stmt.where(InventoryTransaction.transaction_date >= as_utc(f.date_from))
        if f.date_to is not None:
            stmt = stmt.where(InventoryTransaction.transaction_date <= as_utc(f.date_to))
        return stmt

    def list_transactions(
        self,
        filter: TransactionFilter | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[InventoryTransactionDTO]:
        """
        List transactions, newest transaction_date first.

        Raises:
            ValidationError: Bad paging, bad type, or date_from > date_to.
        """
        stmt = self._filtered(filter or TransactionFilter()).order_by(
            InventoryTransaction.transaction_date.desc(),
            InventoryTransaction.created_at.desc(),
            InventoryTransaction.id,
        )
        rows, total = paginate(self.session, stmt, page, limit)
        return Page(
            items=tuple(transaction_to_dto(t) for t in rows),
            total=total,
            page=page,
            limit=limit,
        )
