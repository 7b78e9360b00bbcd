"""Tests for the Item Registry service."""

from decimal import Decimal
from uuid import uuid4

import pytest

from erp_kernel.exceptions import (
    ConstraintError,
    DuplicateCodeError,
    NotFoundError,
    ReferencedEntityError,
    ValidationError,
)
from erp_kernel.models.inventory import ItemType, ValuationMethod


class TestCreateItem:
    def test_create_item(self, item_service, test_actor_id):
        info = item_service.create_item(
            sku="BOLT-10",
            name="Bolt M10",
            unit_of_measure="pcs",
            item_type="raw_material",
            actor_id=test_actor_id,
            purchase_price="0.125",
            sales_price=Decimal("0.40"),
            valuation_method="FIFO",
        )
        assert info.sku == "BOLT-10"
        assert info.item_type is ItemType.RAW_MATERIAL
        assert info.purchase_price == Decimal("0.13")
        assert info.sales_price == Decimal("0.40")
        assert info.valuation_method is ValuationMethod.FIFO
        assert info.is_active
        assert info.is_stocked

    def test_non_inventory_is_not_stocked(self, item_service, test_actor_id):
        info = item_service.create_item("SVC-1", "Installation", "hr", ItemType.NON_INVENTORY, test_actor_id)
        assert not info.is_stocked

    def test_duplicate_sku(self, item_service, test_actor_id):
        item_service.create_item("BOLT-10", "Bolt", "pcs", "raw_material", test_actor_id)
        with pytest.raises(DuplicateCodeError):
            item_service.create_item("BOLT-10", "Other bolt", "pcs", "raw_material", test_actor_id)

    def test_negative_price(self, item_service, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            item_service.create_item(
                "BOLT-10", "Bolt", "pcs", "raw_material", test_actor_id, sales_price="-1"
            )
        assert exc_info.value.field == "sales_price"

    def test_unknown_item_type(self, item_service, test_actor_id):
        with pytest.raises(ValidationError):
            item_service.create_item("BOLT-10", "Bolt", "pcs", "consumable", test_actor_id)

    def test_missing_unit(self, item_service, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            item_service.create_item("BOLT-10", "Bolt", "  ", "raw_material", test_actor_id)
        assert exc_info.value.field == "unit_of_measure"


class TestItemLookup:
    def test_get_by_sku(self, item_service, item):
        assert item_service.get_item_by_sku("WIDGET-1").id == item.id
        assert item_service.get_item(item.id).name == "Widget"

    def test_unknown(self, item_service):
        with pytest.raises(NotFoundError):
            item_service.get_item(uuid4())
        with pytest.raises(NotFoundError):
            item_service.get_item_by_sku("NOPE")

    def test_list_orders_by_sku_and_filters(self, item_service, create_item):
        create_item("C-1", "Crate", item_type=ItemType.FINISHED_GOOD)
        create_item("A-1", "Axle")
        create_item("B-1", "Bearing", is_active=False)

        assert [i.sku for i in item_service.list_items().items] == ["A-1", "B-1", "C-1"]
        assert [i.sku for i in item_service.list_items(is_active=True).items] == ["A-1", "C-1"]
        assert [i.sku for i in item_service.list_items(item_type="finished_good").items] == ["C-1"]
        assert [i.sku for i in item_service.list_items(name="bear").items] == ["B-1"]


class TestUpdateItem:
    def test_update_fields(self, item_service, item, test_actor_id):
        info = item_service.update_item(
            item.id,
            test_actor_id,
            name="Blue Widget",
            description="Painted",
            sales_price="12.50",
        )
        assert info.name == "Blue Widget"
        assert info.description == "Painted"
        assert info.sales_price == Decimal("12.50")
        assert info.sku == "WIDGET-1"

    def test_clear_optional_field(self, item_service, item, test_actor_id):
        item_service.update_item(item.id, test_actor_id, sales_price="5.00")
        assert item_service.update_item(item.id, test_actor_id, sales_price=None).sales_price is None

    def test_become_non_inventory_without_history(self, item_service, item, test_actor_id):
        info = item_service.update_item(item.id, test_actor_id, item_type=ItemType.NON_INVENTORY)
        assert info.item_type is ItemType.NON_INVENTORY

    def test_become_non_inventory_with_history(
        self, item_service, inventory_service, item, warehouse, test_actor_id
    ):
        inventory_service.record_transaction(item.id, warehouse.id, "5", "receive_stock", test_actor_id)
        with pytest.raises(ConstraintError):
            item_service.update_item(item.id, test_actor_id, item_type=ItemType.NON_INVENTORY)

    def test_switch_between_stocked_types_with_history(
        self, item_service, inventory_service, item, warehouse, test_actor_id
    ):
        inventory_service.record_transaction(item.id, warehouse.id, "5", "receive_stock", test_actor_id)
        info = item_service.update_item(item.id, test_actor_id, item_type=ItemType.WIP)
        assert info.item_type is ItemType.WIP


class TestDeactivateAndDeleteItem:
    def test_deactivate_with_stock_logs_warning(
        self, item_service, inventory_service, item, warehouse, test_actor_id, captured_logs
    ):
        inventory_service.record_transaction(item.id, warehouse.id, "3", "receive_stock", test_actor_id)
        info = item_service.deactivate_item(item.id, test_actor_id)
        assert not info.is_active

        warnings = [r for r in captured_logs() if r["message"] == "item_deactivated_with_stock"]
        assert len(warnings) == 1
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["warehouses"] == [str(warehouse.id)]

    def test_deactivate_without_stock_is_quiet(self, item_service, item, test_actor_id, captured_logs):
        item_service.deactivate_item(item.id, test_actor_id)
        assert not [r for r in captured_logs() if r["level"] == "WARNING"]

    def test_reactivate(self, item_service, item, test_actor_id):
        item_service.deactivate_item(item.id, test_actor_id)
        assert item_service.reactivate_item(item.id, test_actor_id).is_active

    def test_delete_without_history(self, item_service, item, test_actor_id):
        item_service.delete_item(item.id, test_actor_id)
        with pytest.raises(NotFoundError):
            item_service.get_item(item.id)
        with pytest.raises(DuplicateCodeError):
            item_service.create_item("WIDGET-1", "Widget again", "pcs", "raw_material", test_actor_id)

    def test_delete_with_history(self, item_service, inventory_service, item, warehouse, test_actor_id):
        inventory_service.record_transaction(item.id, warehouse.id, "1", "receive_stock", test_actor_id)
        with pytest.raises(ReferencedEntityError):
            item_service.delete_item(item.id, test_actor_id)
