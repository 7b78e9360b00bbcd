"""
Service layer for the Item Registry.

Manages the inventory catalog.  Items are deactivated or soft-deleted,
never erased, once the transaction ledger references them.  Returns
ItemInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError

from erp_kernel.domain.validation import (
    coerce_enum,
    optional_price,
    optional_text,
    require_text,
)
from erp_kernel.exceptions import (
    ConstraintError,
    DuplicateCodeError,
    NotFoundError,
    ReferencedEntityError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.inventory import InventoryTransaction, Item, ItemType, ValuationMethod
from erp_kernel.selectors.base import DEFAULT_PAGE_SIZE, Page, paginate
from erp_kernel.selectors.stock_selector import StockLevelSelector
from erp_kernel.services.base import BaseService

logger = get_logger("services.item")

_UNSET: object = object()


@dataclass(frozen=True)
class ItemInfo:
    """Immutable DTO for item data."""

    id: UUID
    sku: str
    name: str
    description: str | None
    unit_of_measure: str
    item_type: ItemType
    purchase_price: Decimal | None
    sales_price: Decimal | None
    valuation_method: ValuationMethod | None
    is_active: bool

    @property
    def is_stocked(self) -> bool:
        return self.item_type.is_stocked


class ItemService(BaseService[Item]):
    """
    Service for managing inventory items.

    Contract:
        SKUs are unique, including those of soft-deleted items.  An item
        with transaction history cannot become NON_INVENTORY and cannot be
        deleted.
    """

    def _to_dto(self, item: Item) -> ItemInfo:
        return ItemInfo(
            id=item.id,
            sku=item.sku,
            name=item.name,
            description=item.description,
            unit_of_measure=item.unit_of_measure,
            item_type=item.item_type,
            purchase_price=item.purchase_price,
            sales_price=item.sales_price,
            valuation_method=item.valuation_method,
            is_active=item.is_active,
        )

    def _has_transactions(self, item_id: UUID) -> bool:
        return self.session.execute(
            select(exists().where(InventoryTransaction.item_id == item_id))
        ).scalar()

    def get_item(self, item_id: UUID) -> ItemInfo:
        """
        Get item by ID.

        Raises:
            NotFoundError: If the item doesn't exist or is soft-deleted.
        """
        return self._to_dto(self._load_live(Item, item_id))

    def get_item_by_sku(self, sku: str) -> ItemInfo:
        """
        Get item by SKU.

        Raises:
            NotFoundError: If no live item has this SKU.
        """
        item = self.session.execute(
            select(Item).where(Item.sku == sku, Item.deleted_at.is_(None))
        ).scalar_one_or_none()
        if item is None:
            raise NotFoundError("Item", sku)
        return self._to_dto(item)

    def list_items(
        self,
        name: str | None = None,
        item_type: ItemType | str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[ItemInfo]:
        """List live items ordered by SKU."""
        stmt = select(Item).where(Item.deleted_at.is_(None))
        if name:
            stmt = stmt.where(Item.name.ilike(f"%{name}%"))
        if item_type is not None:
            stmt = stmt.where(Item.item_type == coerce_enum(ItemType, item_type, "item_type"))
        if is_active is not None:
            stmt = stmt.where(Item.is_active == is_active)
        stmt = stmt.order_by(Item.sku)

        rows, total = paginate(self.session, stmt, page, limit)
        return Page(items=tuple(self._to_dto(i) for i in rows), total=total, page=page, limit=limit)

    def create_item(
        self,
        sku: str,
        name: str,
        unit_of_measure: str,
        item_type: ItemType | str,
        actor_id: UUID,
        description: str | None = None,
        purchase_price: Decimal | str | None = None,
        sales_price: Decimal | str | None = None,
        valuation_method: ValuationMethod | str | None = None,
    ) -> ItemInfo:
        """
        Create a new item.

        Args:
            sku: Unique stock keeping unit.
            name: Display name.
            unit_of_measure: e.g. "pcs", "kg".
            item_type: RAW_MATERIAL, FINISHED_GOOD, WIP or NON_INVENTORY.
            actor_id: UUID of the user/actor creating the item.
            description: Optional long description.
            purchase_price: Optional non-negative purchase price.
            sales_price: Optional non-negative sales price.
            valuation_method: Optional FIFO, LIFO, WEIGHTED_AVERAGE or STANDARD_COST.

        Raises:
            ValidationError: Missing/oversized fields, bad enum, negative price.
            DuplicateCodeError: The SKU is already taken.
        """
        sku = require_text(sku, "sku", 50)
        item = Item(
            sku=sku,
            name=require_text(name, "name", 100),
            unit_of_measure=require_text(unit_of_measure, "unit_of_measure", 20),
            item_type=coerce_enum(ItemType, item_type, "item_type"),
            description=optional_text(description, "description"),
            purchase_price=optional_price(purchase_price, "purchase_price"),
            sales_price=optional_price(sales_price, "sales_price"),
            valuation_method=(
                coerce_enum(ValuationMethod, valuation_method, "valuation_method")
                if valuation_method is not None
                else None
            ),
            is_active=True,
            created_by_id=actor_id,
        )

        if self.session.execute(select(exists().where(Item.sku == sku))).scalar():
            raise DuplicateCodeError("Item", "sku", sku)

        self.session.add(item)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateCodeError("Item", "sku", sku) from exc

        logger.info(
            "item_created",
            extra={"item_id": str(item.id), "sku": sku, "item_type": item.item_type.value},
        )
        return self._to_dto(item)

    def update_item(
        self,
        item_id: UUID,
        actor_id: UUID,
        name: str | None = None,
        unit_of_measure: str | None = None,
        item_type: ItemType | str | None = None,
        description: str | None | object = _UNSET,
        purchase_price: Decimal | str | None | object = _UNSET,
        sales_price: Decimal | str | None | object = _UNSET,
        valuation_method: ValuationMethod | str | None | object = _UNSET,
    ) -> ItemInfo:
        """
        Update item details.  The SKU cannot be changed.

        Optional fields accept None to clear them; omit them to leave them
        unchanged.

        Raises:
            ConstraintError: The item would become NON_INVENTORY while it
                has transaction history.
        """
        item = self._load_live(Item, item_id)

        if name is not None:
            item.name = require_text(name, "name", 100)
        if unit_of_measure is not None:
            item.unit_of_measure = require_text(unit_of_measure, "unit_of_measure", 20)
        if item_type is not None:
            new_type = coerce_enum(ItemType, item_type, "item_type")
            if not new_type.is_stocked and item.item_type.is_stocked and self._has_transactions(item.id):
                raise ConstraintError(
                    "Item",
                    str(item.id),
                    "an item with stock history cannot become non-inventory",
                )
            item.item_type = new_type
        if description is not _UNSET:
            item.description = optional_text(description, "description")
        if purchase_price is not _UNSET:
            item.purchase_price = optional_price(purchase_price, "purchase_price")
        if sales_price is not _UNSET:
            item.sales_price = optional_price(sales_price, "sales_price")
        if valuation_method is not _UNSET:
            item.valuation_method = (
                coerce_enum(ValuationMethod, valuation_method, "valuation_method")
                if valuation_method is not None
                else None
            )

        item.updated_by_id = actor_id
        self.session.flush()

        logger.info("item_updated", extra={"item_id": str(item.id)})
        return self._to_dto(item)

    def deactivate_item(self, item_id: UUID, actor_id: UUID) -> ItemInfo:
        """
        Deactivate an item so no new transactions may reference it.

        Remaining stock does not block deactivation; it is logged as a
        warning so someone can clear it.
        """
        item = self._load_live(Item, item_id)

        remaining = [
            level for level in StockLevelSelector(self.session).get_levels(item_id=item.id)
            if level.quantity != 0
        ]
        if remaining:
            logger.warning(
                "item_deactivated_with_stock",
                extra={
                    "item_id": str(item.id),
                    "sku": item.sku,
                    "warehouses": [str(level.warehouse_id) for level in remaining],
                },
            )

        item.is_active = False
        item.updated_by_id = actor_id
        self.session.flush()

        logger.info("item_deactivated", extra={"item_id": str(item.id)})
        return self._to_dto(item)

    def reactivate_item(self, item_id: UUID, actor_id: UUID) -> ItemInfo:
        """Reactivate a deactivated item."""
        item = self._load_live(Item, item_id)
        item.is_active = True
        item.updated_by_id = actor_id
        self.session.flush()
        logger.info("item_reactivated", extra={"item_id": str(item.id)})
        return self._to_dto(item)

    def delete_item(self, item_id: UUID, actor_id: UUID) -> None:
        """
        Soft-delete an item with no transaction history.

        Raises:
            ReferencedEntityError: Inventory transactions reference the item.
        """
        item = self._load_live(Item, item_id)
        if self._has_transactions(item.id):
            raise ReferencedEntityError(
                "Item",
                str(item.id),
                "inventory transactions reference this item; deactivate it instead",
            )
        item.is_active = False
        item.deleted_at = self.clock.now()
        item.updated_by_id = actor_id
        self.session.flush()
        logger.info("item_deleted", extra={"item_id": str(item.id)})
