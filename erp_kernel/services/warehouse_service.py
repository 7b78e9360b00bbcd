"""
Service layer for the Warehouse Registry.

Returns WarehouseInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError

from erp_kernel.domain.validation import optional_text, require_text
from erp_kernel.exceptions import DuplicateCodeError, NotFoundError, ReferencedEntityError
from erp_kernel.logging_config import get_logger
from erp_kernel.models.inventory import InventoryTransaction, Warehouse
from erp_kernel.selectors.base import DEFAULT_PAGE_SIZE, Page, paginate
from erp_kernel.selectors.stock_selector import StockLevelSelector
from erp_kernel.services.base import BaseService

logger = get_logger("services.warehouse")

_UNSET: object = object()


@dataclass(frozen=True)
class WarehouseInfo:
    """Immutable DTO for warehouse data."""

    id: UUID
    code: str
    name: str
    location: str | None
    is_active: bool


class WarehouseService(BaseService[Warehouse]):
    """Service for managing warehouses."""

    def _to_dto(self, warehouse: Warehouse) -> WarehouseInfo:
        return WarehouseInfo(
            id=warehouse.id,
            code=warehouse.code,
            name=warehouse.name,
            location=warehouse.location,
            is_active=warehouse.is_active,
        )

    def get_warehouse(self, warehouse_id: UUID) -> WarehouseInfo:
        """
        Get warehouse by ID.

        Raises:
            NotFoundError: If the warehouse doesn't exist or is soft-deleted.
        """
        return self._to_dto(self._load_live(Warehouse, warehouse_id))

    def get_warehouse_by_code(self, code: str) -> WarehouseInfo:
        warehouse = self.session.execute(
            select(Warehouse).where(Warehouse.code == code, Warehouse.deleted_at.is_(None))
        ).scalar_one_or_none()
        if warehouse is None:
            raise NotFoundError("Warehouse", code)
        return self._to_dto(warehouse)

    def list_warehouses(
        self,
        name: str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[WarehouseInfo]:
        """List live warehouses ordered by code."""
        stmt = select(Warehouse).where(Warehouse.deleted_at.is_(None))
        if name:
            stmt = stmt.where(Warehouse.name.ilike(f"%{name}%"))
        if is_active is not None:
            stmt = stmt.where(Warehouse.is_active == is_active)
        stmt = stmt.order_by(Warehouse.code)

        rows, total = paginate(self.session, stmt, page, limit)
        return Page(items=tuple(self._to_dto(w) for w in rows), total=total, page=page, limit=limit)

    def create_warehouse(
        self,
        code: str,
        name: str,
        actor_id: UUID,
        location: str | None = None,
    ) -> WarehouseInfo:
        """
        Create a new warehouse.

        Raises:
            ValidationError: Missing or oversized fields.
            DuplicateCodeError: The code is already taken.
        """
        code = require_text(code, "code", 20)
        warehouse = Warehouse(
            code=code,
            name=require_text(name, "name", 100),
            location=optional_text(location, "location", 255),
            is_active=True,
            created_by_id=actor_id,
        )

        if self.session.execute(select(exists().where(Warehouse.code == code))).scalar():
            raise DuplicateCodeError("Warehouse", "code", code)

        self.session.add(warehouse)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateCodeError("Warehouse", "code", code) from exc

        logger.info("warehouse_created", extra={"warehouse_id": str(warehouse.id), "code": code})
        return self._to_dto(warehouse)

    def update_warehouse(
        self,
        warehouse_id: UUID,
        actor_id: UUID,
        name: str | None = None,
        location: str | None | object = _UNSET,
    ) -> WarehouseInfo:
        """Update warehouse details.  The code cannot be changed."""
        warehouse = self._load_live(Warehouse, warehouse_id)
        if name is not None:
            warehouse.name = require_text(name, "name", 100)
        if location is not _UNSET:
            warehouse.location = optional_text(location, "location", 255)
        warehouse.updated_by_id = actor_id
        self.session.flush()

        logger.info("warehouse_updated", extra={"warehouse_id": str(warehouse.id)})
        return self._to_dto(warehouse)

    def deactivate_warehouse(self, warehouse_id: UUID, actor_id: UUID) -> WarehouseInfo:
        """
        Deactivate a warehouse so no new transactions may reference it.

        Remaining stock is logged as a warning, not refused.
        """
        warehouse = self._load_live(Warehouse, warehouse_id)

        remaining = [
            level
            for level in StockLevelSelector(self.session).get_levels(warehouse_id=warehouse.id)
            if level.quantity != 0
        ]
        if remaining:
            logger.warning(
                "warehouse_deactivated_with_stock",
                extra={
                    "warehouse_id": str(warehouse.id),
                    "code": warehouse.code,
                    "items": [str(level.item_id) for level in remaining],
                },
            )

        warehouse.is_active = False
        warehouse.updated_by_id = actor_id
        self.session.flush()

        logger.info("warehouse_deactivated", extra={"warehouse_id": str(warehouse.id)})
        return self._to_dto(warehouse)

    def reactivate_warehouse(self, warehouse_id: UUID, actor_id: UUID) -> WarehouseInfo:
        warehouse = self._load_live(Warehouse, warehouse_id)
        warehouse.is_active = True
        warehouse.updated_by_id = actor_id
        self.session.flush()
        logger.info("warehouse_reactivated", extra={"warehouse_id": str(warehouse.id)})
        return self._to_dto(warehouse)

    def delete_warehouse(self, warehouse_id: UUID, actor_id: UUID) -> None:
        """
        Soft-delete a warehouse with no transaction history.

        Raises:
            ReferencedEntityError: Inventory transactions reference the warehouse.
        """
        warehouse = self._load_live(Warehouse, warehouse_id)
        referenced = self.session.execute(
            select(exists().where(InventoryTransaction.warehouse_id == warehouse.id))
        ).scalar()
        if referenced:
            raise ReferencedEntityError(
                "Warehouse",
                str(warehouse.id),
                "inventory transactions reference this warehouse; deactivate it instead",
            )
        warehouse.is_active = False
        warehouse.deleted_at = self.clock.now()
        warehouse.updated_by_id = actor_id
        self.session.flush()
        logger.info("warehouse_deleted", extra={"warehouse_id": str(warehouse.id)})
