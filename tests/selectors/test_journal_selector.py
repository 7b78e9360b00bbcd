"""Tests for GetEntry / ListEntries."""

from datetime import date
from uuid import uuid4

import pytest

from erp_kernel.domain.dtos import LineSpec
from erp_kernel.domain.journal_state import JournalEntryStatus
from erp_kernel.exceptions import NotFoundError, ValidationError
from erp_kernel.selectors import EntryFilter


@pytest.fixture
def three_entries(make_draft, journal_service, test_actor_id, standard_accounts):
    """A posted sale, a draft expense, and a voided sale on distinct dates."""
    sale = make_draft(entry_date=date(2024, 1, 10), description="January sale", reference="INV-100")
    journal_service.post_entry(sale.id, test_actor_id)

    expense = make_draft(
        entry_date=date(2024, 2, 5),
        description="Office rent",
        reference="BILL-7",
        lines=[
            LineSpec.debit(standard_accounts["expense"].id, "500.00"),
            LineSpec.credit(standard_accounts["payable"].id, "500.00"),
        ],
    )

    voided = make_draft(entry_date=date(2024, 3, 1), description="March sale", reference="INV-101")
    journal_service.post_entry(voided.id, test_actor_id)
    journal_service.void_entry(voided.id, test_actor_id, reason="Wrong customer")
    return sale, expense, voided


class TestGetEntry:
    def test_returns_lines_in_order(self, journal_selector, make_draft, standard_accounts):
        draft = make_draft(
            lines=[
                LineSpec.debit(standard_accounts["cash"].id, "60.00", description="first"),
                LineSpec.debit(standard_accounts["receivable"].id, "40.00"),
                LineSpec.credit(standard_accounts["revenue"].id, "100.00"),
            ]
        )
        entry = journal_selector.get_entry(draft.id)
        assert [ln.line_number for ln in entry.lines] == [1, 2, 3]
        assert entry.lines[0].description == "first"
        assert entry.is_balanced

    def test_unknown(self, journal_selector):
        with pytest.raises(NotFoundError) as exc_info:
            journal_selector.get_entry(uuid4())
        assert exc_info.value.entity_type == "JournalEntry"


class TestListEntries:
    def test_newest_first(self, journal_selector, three_entries):
        sale, expense, voided = three_entries
        page = journal_selector.list_entries()
        assert [e.id for e in page.items] == [voided.id, expense.id, sale.id]
        assert page.total == 3

    def test_filter_by_status(self, journal_selector, three_entries):
        sale, expense, voided = three_entries
        posted = journal_selector.list_entries(EntryFilter(status=JournalEntryStatus.POSTED))
        assert [e.id for e in posted.items] == [sale.id]
        drafts = journal_selector.list_entries(EntryFilter(status="draft"))
        assert [e.id for e in drafts.items] == [expense.id]
        voids = journal_selector.list_entries(EntryFilter(status="VOIDED"))
        assert voids.items[0].void_reason == "Wrong customer"

    def test_filter_by_text(self, journal_selector, three_entries):
        sale, _, voided = three_entries
        by_description = journal_selector.list_entries(EntryFilter(description="SALE"))
        assert {e.id for e in by_description.items} == {sale.id, voided.id}
        by_reference = journal_selector.list_entries(EntryFilter(reference="inv-100"))
        assert [e.id for e in by_reference.items] == [sale.id]

    def test_filter_by_date_range(self, journal_selector, three_entries):
        _, expense, voided = three_entries
        page = journal_selector.list_entries(
            EntryFilter(date_from=date(2024, 2, 1), date_to=date(2024, 3, 1))
        )
        assert [e.id for e in page.items] == [voided.id, expense.id]

    def test_inverted_date_range(self, journal_selector):
        with pytest.raises(ValidationError):
            journal_selector.list_entries(EntryFilter(date_from=date(2024, 2, 1), date_to=date(2024, 1, 1)))

    def test_filter_by_account(self, journal_selector, three_entries, standard_accounts):
        _, expense, _ = three_entries
        page = journal_selector.list_entries(EntryFilter(account_id=standard_accounts["payable"].id))
        assert [e.id for e in page.items] == [expense.id]

    def test_paging(self, journal_selector, three_entries):
        sale, _, _ = three_entries
        page = journal_selector.list_entries(page=2, limit=2)
        assert [e.id for e in page.items] == [sale.id]
        assert page.total == 3
        assert page.pages == 2

    def test_deleted_drafts_hidden(self, journal_selector, journal_service, three_entries, test_actor_id):
        _, expense, _ = three_entries
        journal_service.delete_draft_entry(expense.id, test_actor_id)
        assert expense.id not in [e.id for e in journal_selector.list_entries().items]

    def test_unknown_status(self, journal_selector):
        with pytest.raises(ValidationError):
            journal_selector.list_entries(EntryFilter(status="archived"))
