"""
JournalSelector -- read-only queries over journal entries and their lines.

Responsibility:
    GetEntry and ListEntries.  Converts ORM rows into frozen DTOs so no
    caller can mutate a journal entry through a read result.

Architecture position:
    Kernel > Selectors.  JournalService reuses ``entry_to_dto`` for its
    return values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from erp_kernel.domain.balance import CurrencyTotals, currency_totals
from erp_kernel.domain.journal_state import JournalEntryStatus
from erp_kernel.domain.validation import coerce_enum
from erp_kernel.exceptions import NotFoundError, ValidationError
from erp_kernel.models.journal import JournalEntry, JournalLine
from erp_kernel.selectors.base import DEFAULT_PAGE_SIZE, BaseSelector, Page, paginate


@dataclass(frozen=True)
class JournalLineDTO:
    """Immutable line of a journal entry."""

    id: UUID
    line_number: int
    account_id: UUID
    amount: Decimal
    currency: str
    is_debit: bool
    description: str | None = None

    @property
    def signed_amount(self) -> Decimal:
        """Positive for debits, negative for credits."""
        return self.amount if self.is_debit else -self.amount


@dataclass(frozen=True)
class JournalEntryDTO:
    """Immutable journal entry with its lines in line_number order."""

    id: UUID
    entry_date: date
    description: str | None
    reference: str | None
    status: JournalEntryStatus
    version: int
    lines: tuple[JournalLineDTO, ...]
    created_by_id: UUID | None = None
    created_at: datetime | None = None
    posted_at: datetime | None = None
    posted_by_id: UUID | None = None
    voided_at: datetime | None = None
    voided_by_id: UUID | None = None
    void_reason: str | None = None

    @property
    def totals(self) -> list[CurrencyTotals]:
        return currency_totals(self.lines)

    @property
    def is_balanced(self) -> bool:
        return all(t.is_balanced for t in self.totals)


@dataclass(frozen=True)
class EntryFilter:
    """
    Filter for ListEntries.  Every field is optional; set fields combine
    with AND.
    """

    status: JournalEntryStatus | str | None = None
    description: str | None = None
    reference: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    account_id: UUID | None = None


def line_to_dto(line: JournalLine) -> JournalLineDTO:
    return JournalLineDTO(
        id=line.id,
        line_number=line.line_number,
        account_id=line.account_id,
        amount=line.amount,
        currency=line.currency,
        is_debit=line.is_debit,
        description=line.description,
    )


def entry_to_dto(entry: JournalEntry) -> JournalEntryDTO:
    return JournalEntryDTO(
        id=entry.id,
        entry_date=entry.entry_date,
        description=entry.description,
        reference=entry.reference,
        status=entry.status,
        version=entry.version,
        lines=tuple(
            line_to_dto(line)
            for line in sorted(entry.lines, key=lambda ln: ln.line_number)
        ),
        created_by_id=entry.created_by_id,
        created_at=entry.created_at,
        posted_at=entry.posted_at,
        posted_by_id=entry.posted_by_id,
        voided_at=entry.voided_at,
        voided_by_id=entry.voided_by_id,
        void_reason=entry.void_reason,
    )


class JournalSelector(BaseSelector):
    """Read-only access to journal entries."""

    def get_entry(self, entry_id: UUID) -> JournalEntryDTO:
        """
        Get a journal entry with its lines.

        Raises:
            NotFoundError: Unknown or soft-deleted entry.
        """
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None or entry.is_deleted:
            raise NotFoundError("JournalEntry", str(entry_id))
        return entry_to_dto(entry)

    def list_entries(
        self,
        filter: EntryFilter | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[JournalEntryDTO]:
        """
        List live journal entries, newest entry_date first.

        Ties on entry_date are broken by creation time, newest first, then
        by id so paging is stable.

        Raises:
            ValidationError: Bad paging, bad status, or date_from > date_to.
        """
        f = filter or EntryFilter()
        if f.date_from and f.date_to and f.date_from > f.date_to:
            raise ValidationError("date_from must not be after date_to", field="date_from")

        stmt = select(JournalEntry).where(JournalEntry.deleted_at.is_(None))
        if f.status is not None:
            stmt = stmt.where(
                JournalEntry.status == coerce_enum(JournalEntryStatus, f.status, "status")
            )
        if f.description:
            stmt = stmt.where(JournalEntry.description.ilike(f"%{f.description}%"))
        if f.reference:
            stmt = stmt.where(JournalEntry.reference.ilike(f"%{f.reference}%"))
        if f.date_from:
            stmt = stmt.where(JournalEntry.entry_date >= f.date_from)
        if f.date_to:
            stmt = stmt.where(JournalEntry.entry_date <= f.date_to)
        if f.account_id:
            stmt = stmt.where(
                JournalEntry.id.in_(
                    select(JournalLine.journal_entry_id).where(
                        JournalLine.account_id == f.account_id
                    )
                )
            )
        stmt = stmt.order_by(
            JournalEntry.entry_date.desc(),
            JournalEntry.created_at.desc(),
            JournalEntry.id,
        )

        rows, total = paginate(self.session, stmt, page, limit)
        return Page(
            items=tuple(entry_to_dto(e) for e in rows),
            total=total,
            page=page,
            limit=limit,
        )
