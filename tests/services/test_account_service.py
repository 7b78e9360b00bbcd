"""
Tests for the Account Registry service.

Covers creation, hierarchy rules, deactivation and history protection.
"""

from uuid import uuid4

import pytest

from erp_kernel.exceptions import (
    AccountHierarchyCycleError,
    ConstraintError,
    DuplicateCodeError,
    InvalidReferenceError,
    NotFoundError,
    ReferencedEntityError,
    ValidationError,
)
from erp_kernel.models.account import AccountType


class TestCreateAccount:
    def test_create_account(self, account_service, test_actor_id):
        info = account_service.create_account(
            code="1000",
            name="Cash",
            account_type="asset",
            actor_id=test_actor_id,
        )
        assert info.code == "1000"
        assert info.account_type is AccountType.ASSET
        assert info.is_active
        assert info.parent_id is None
        assert info.is_debit_normal

    def test_strips_whitespace(self, account_service, test_actor_id):
        info = account_service.create_account(" 2000 ", " Payables ", AccountType.LIABILITY, test_actor_id)
        assert info.code == "2000"
        assert info.name == "Payables"
        assert not info.is_debit_normal

    def test_duplicate_code(self, account_service, test_actor_id):
        account_service.create_account("1000", "Cash", "asset", test_actor_id)
        with pytest.raises(DuplicateCodeError) as exc_info:
            account_service.create_account("1000", "Other", "asset", test_actor_id)
        assert exc_info.value.code == "DUPLICATE_CODE"
        assert exc_info.value.field == "code"

    def test_unknown_type(self, account_service, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            account_service.create_account("1000", "Cash", "goodwill", test_actor_id)
        assert exc_info.value.field == "account_type"

    @pytest.mark.parametrize("code, name", [("", "Cash"), ("1000", ""), ("x" * 21, "Cash")])
    def test_required_fields(self, account_service, test_actor_id, code, name):
        with pytest.raises(ValidationError):
            account_service.create_account(code, name, "asset", test_actor_id)

    def test_with_parent(self, account_service, test_actor_id):
        parent = account_service.create_account("1000", "Current Assets", "asset", test_actor_id)
        child = account_service.create_account(
            "1010", "Petty Cash", "asset", test_actor_id, parent_id=parent.id
        )
        assert child.parent_id == parent.id
        assert [c.id for c in account_service.get_children(parent.id)] == [child.id]

    def test_unknown_parent(self, account_service, test_actor_id):
        with pytest.raises(NotFoundError):
            account_service.create_account("1010", "Petty Cash", "asset", test_actor_id, parent_id=uuid4())

    def test_inactive_parent(self, account_service, create_account, test_actor_id):
        parent = create_account(is_active=False)
        with pytest.raises(InvalidReferenceError):
            account_service.create_account("1010", "Petty Cash", "asset", test_actor_id, parent_id=parent.id)


class TestLookup:
    def test_get_by_id_and_code(self, account_service, standard_accounts):
        cash = standard_accounts["cash"]
        assert account_service.get_account(cash.id).code == "1000"
        assert account_service.get_account_by_code("1000").id == cash.id

    def test_get_unknown(self, account_service):
        with pytest.raises(NotFoundError):
            account_service.get_account(uuid4())
        with pytest.raises(NotFoundError):
            account_service.get_account_by_code("9999")

    def test_list_filters_and_orders_by_code(self, account_service, standard_accounts):
        page = account_service.list_accounts()
        assert [a.code for a in page.items] == ["1000", "1100", "2000", "3000", "4000", "5000"]
        assert page.total == 6

        assets = account_service.list_accounts(account_type="ASSET")
        assert [a.code for a in assets.items] == ["1000", "1100"]

        by_name = account_service.list_accounts(name="revenue")
        assert [a.code for a in by_name.items] == ["4000"]

    def test_list_paging(self, account_service, standard_accounts):
        page = account_service.list_accounts(page=2, limit=4)
        assert [a.code for a in page.items] == ["4000", "5000"]
        assert page.total == 6
        assert page.pages == 2
        assert not page.has_next

    def test_list_rejects_bad_paging(self, account_service):
        with pytest.raises(ValidationError):
            account_service.list_accounts(page=0)
        with pytest.raises(ValidationError):
            account_service.list_accounts(limit=1000)


class TestUpdateAccount:
    def test_rename(self, account_service, standard_accounts, test_actor_id):
        info = account_service.update_account(standard_accounts["cash"].id, test_actor_id, name="Cash on Hand")
        assert info.name == "Cash on Hand"

    def test_reparent_to_descendant_is_rejected(self, account_service, test_actor_id):
        root = account_service.create_account("1000", "Assets", "asset", test_actor_id)
        mid = account_service.create_account("1100", "Current", "asset", test_actor_id, parent_id=root.id)
        leaf = account_service.create_account("1110", "Bank", "asset", test_actor_id, parent_id=mid.id)

        with pytest.raises(AccountHierarchyCycleError):
            account_service.update_account(root.id, test_actor_id, parent_id=leaf.id)
        with pytest.raises(AccountHierarchyCycleError):
            account_service.update_account(mid.id, test_actor_id, parent_id=mid.id)

    def test_move_to_root(self, account_service, test_actor_id):
        root = account_service.create_account("1000", "Assets", "asset", test_actor_id)
        child = account_service.create_account("1100", "Current", "asset", test_actor_id, parent_id=root.id)
        moved = account_service.update_account(child.id, test_actor_id, parent_id=None)
        assert moved.parent_id is None

    def test_omitted_parent_is_unchanged(self, account_service, test_actor_id):
        root = account_service.create_account("1000", "Assets", "asset", test_actor_id)
        child = account_service.create_account("1100", "Current", "asset", test_actor_id, parent_id=root.id)
        updated = account_service.update_account(child.id, test_actor_id, name="Current Assets")
        assert updated.parent_id == root.id

    def test_type_change_allowed_without_history(self, account_service, standard_accounts, test_actor_id):
        info = account_service.update_account(
            standard_accounts["receivable"].id, test_actor_id, account_type=AccountType.EXPENSE
        )
        assert info.account_type is AccountType.EXPENSE

    def test_type_change_blocked_by_history(
        self, account_service, make_draft, standard_accounts, test_actor_id
    ):
        make_draft()
        with pytest.raises(ConstraintError):
            account_service.update_account(
                standard_accounts["cash"].id, test_actor_id, account_type=AccountType.EXPENSE
            )


class TestDeactivateAndDelete:
    def test_deactivate_and_reactivate(self, account_service, standard_accounts, test_actor_id):
        cash_id = standard_accounts["cash"].id
        assert not account_service.deactivate_account(cash_id, test_actor_id).is_active
        assert account_service.reactivate_account(cash_id, test_actor_id).is_active

    def test_deactivate_with_active_children(self, account_service, create_account, test_actor_id):
        parent = create_account()
        create_account(parent_id=parent.id)
        with pytest.raises(ConstraintError):
            account_service.deactivate_account(parent.id, test_actor_id)

    def test_deactivate_after_children(self, account_service, create_account, test_actor_id):
        parent = create_account()
        child = create_account(parent_id=parent.id)
        account_service.deactivate_account(child.id, test_actor_id)
        assert not account_service.deactivate_account(parent.id, test_actor_id).is_active

    def test_delete_unreferenced(self, account_service, standard_accounts, test_actor_id):
        expense_id = standard_accounts["expense"].id
        account_service.delete_account(expense_id, test_actor_id)
        with pytest.raises(NotFoundError):
            account_service.get_account(expense_id)
        assert "5000" not in [a.code for a in account_service.list_accounts().items]

    def test_deleted_code_stays_reserved(self, account_service, standard_accounts, test_actor_id):
        account_service.delete_account(standard_accounts["expense"].id, test_actor_id)
        with pytest.raises(DuplicateCodeError):
            account_service.create_account("5000", "New Expense", "expense", test_actor_id)

    def test_delete_referenced(self, account_service, make_draft, standard_accounts, test_actor_id):
        make_draft()
        with pytest.raises(ReferencedEntityError):
            account_service.delete_account(standard_accounts["cash"].id, test_actor_id)

    def test_delete_with_children(self, account_service, create_account, test_actor_id):
        parent = create_account()
        create_account(parent_id=parent.id)
        with pytest.raises(ConstraintError):
            account_service.delete_account(parent.id, test_actor_id)


class TestAccountLogging:
    def test_creation_is_logged(self, account_service, test_actor_id, captured_logs):
        info = account_service.create_account("1000", "Cash", "asset", test_actor_id)
        records = [r for r in captured_logs() if r["message"] == "account_created"]
        assert len(records) == 1
        assert records[0]["account_id"] == str(info.id)
        assert records[0]["account_type"] == "asset"
