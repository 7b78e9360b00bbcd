"""
Module: erp_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    source of financial truth in this system.
Architecture position: Kernel > Models.  May import from db/ and the pure
    lifecycle enum in domain/journal_state.py.

Invariants enforced:
    - Amounts are stored positive (CHECK amount > 0); is_debit alone decides
      the side.
    - version is SQLAlchemy's version_id_col: every UPDATE of an entry row
      is conditional on the version the session loaded, so a concurrent
      writer that got there first makes the UPDATE match zero rows.
    - Posted and voided entries and their lines are immutable (ORM listeners
      in db/immutability.py).

Failure modes:
    - StaleDataError (mapped to ConcurrentModificationError by the service)
      when the versioned UPDATE loses a race.
    - ImmutabilityViolationError on UPDATE/DELETE of a posted entry's lines.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    Voiding changes status only; every line stays in place.
"""

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from erp_kernel.db.types import Currency, Money, enum_column
from erp_kernel.domain.journal_state import JournalEntryStatus

if TYPE_CHECKING:
    from erp_kernel.models.account import Account


class JournalEntry(SoftDeleteMixin, TrackedBase):
    """
    Journal entry header -- the atomic unit of double-entry accounting.

    Contract:
        Created DRAFT.  Lines may change only while DRAFT.  Posting requires
        balance per currency; voiding is reachable only from POSTED.

    Non-goals:
        - This model does NOT enforce balance; JournalService.post_entry does.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_status", "status"),
        Index("idx_journal_reference", "reference"),
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Free-text external reference (invoice number, voucher id, ...)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[JournalEntryStatus] = mapped_column(
        enum_column(JournalEntryStatus, length=10),
        default=JournalEntryStatus.DRAFT,
        nullable=False,
    )

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    voided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    voided_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    void_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_number",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} status={self.status.value}>"


class JournalLine(TrackedBase):
    """
    Individual debit or credit line within a journal entry.

    Contract:
        Each line belongs to exactly one JournalEntry, references exactly one
        Account, and records a positive amount; is_debit=True means debit.
        Lines are immutable once the parent entry leaves DRAFT.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_journal_line_amount_positive"),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
        Index("idx_line_account_currency", "account_id", "currency"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Position within the entry, from 1
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    amount: Mapped[Money] = mapped_column(nullable=False)

    currency: Mapped[Currency] = mapped_column(nullable=False)

    is_debit: Mapped[bool] = mapped_column(Boolean, nullable=False)

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        side = "DR" if self.is_debit else "CR"
        return f"<JournalLine {side} {self.amount} {self.currency}>"
