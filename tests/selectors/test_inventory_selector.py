"""Tests for GetTransaction / ListTransactions."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from erp_kernel.domain.stock_effect import InventoryTransactionType
from erp_kernel.exceptions import NotFoundError, ValidationError
from erp_kernel.selectors import TransactionFilter

T = InventoryTransactionType


def _at(day):
    return datetime(2024, 5, day, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def movements(inventory_service, item, warehouse, create_item, test_actor_id):
    bolt = create_item("BOLT-1", "Bolt")
    first = inventory_service.record_transaction(
        item.id, warehouse.id, "10", T.RECEIVE_STOCK, test_actor_id, transaction_date=_at(1)
    )
    second = inventory_service.record_transaction(
        item.id, warehouse.id, "3", T.ISSUE_STOCK, test_actor_id, transaction_date=_at(2)
    )
    third = inventory_service.record_transaction(
        bolt.id, warehouse.id, "50", T.RECEIVE_STOCK, test_actor_id, transaction_date=_at(3)
    )
    return first, second, third, bolt


def test_get_transaction(inventory_selector, movements):
    first = movements[0]
    fetched = inventory_selector.get_transaction(first.id)
    assert fetched.id == first.id
    assert fetched.transaction_type is T.RECEIVE_STOCK


def test_get_unknown(inventory_selector):
    with pytest.raises(NotFoundError):
        inventory_selector.get_transaction(uuid4())


def test_list_newest_first(inventory_selector, movements):
    first, second, third, _ = movements
    page = inventory_selector.list_transactions()
    assert [t.id for t in page.items] == [third.id, second.id, first.id]


def test_filter_by_item_and_type(inventory_selector, movements, item):
    first, second, _, _ = movements
    by_item = inventory_selector.list_transactions(TransactionFilter(item_id=item.id))
    assert [t.id for t in by_item.items] == [second.id, first.id]

    receipts = inventory_selector.list_transactions(
        TransactionFilter(item_id=item.id, transaction_type="receive_stock")
    )
    assert [t.id for t in receipts.items] == [first.id]


def test_filter_by_date_range(inventory_selector, movements):
    _, second, third, _ = movements
    page = inventory_selector.list_transactions(TransactionFilter(date_from=_at(2), date_to=_at(3)))
    assert [t.id for t in page.items] == [third.id, second.id]


def test_inverted_date_range(inventory_selector):
    with pytest.raises(ValidationError):
        inventory_selector.list_transactions(TransactionFilter(date_from=_at(3), date_to=_at(1)))


def test_filter_by_reference(inventory_selector, inventory_service, item, warehouse, create_warehouse, test_actor_id):
    annex = create_warehouse()
    inventory_service.record_transaction(item.id, warehouse.id, "5", T.RECEIVE_STOCK, test_actor_id)
    transfer = inventory_service.record_transfer(item.id, warehouse.id, annex.id, "2", test_actor_id)
    page = inventory_selector.list_transactions(TransactionFilter(reference_id=transfer.reference_id))
    assert {t.transaction_type for t in page.items} == {T.TRANSFER_OUT, T.TRANSFER_IN}


def test_paging(inventory_selector, movements):
    first = movements[0]
    page = inventory_selector.list_transactions(page=3, limit=1)
    assert [t.id for t in page.items] == [first.id]
    assert page.total == 3
    assert not page.has_next
