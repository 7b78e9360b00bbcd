"""
JournalService -- the Journal Engine.

Responsibility:
    Owns the journal entry lifecycle: create and edit DRAFT entries, post
    them once they balance, void posted ones.  Every write is a single
    flush inside the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell over the pure rules in
    domain/dtos.py (line validation), domain/balance.py (balance
    invariant) and domain/journal_state.py (lifecycle).

Invariants enforced:
    - A POSTED entry balances per currency; an unbalanced entry stays DRAFT.
    - Lines change only while DRAFT.
    - DRAFT -> POSTED -> VOIDED, nothing else.
    - Every line references an account that is live and active, checked at
      draft time and again at posting time.
    - Concurrent writers on one entry are serialized by a row lock and the
      ORM version counter; the loser gets ConcurrentModificationError and
      nothing is applied twice.

Failure modes:
    - ValidationError / InvalidReferenceError: bad lines or unusable accounts.
    - NotFoundError: unknown or soft-deleted entry.
    - InvalidStateError: operation not allowed from the current status.
    - UnbalancedEntryError: posting an entry whose debits != credits.
    - ConcurrentModificationError: expected_version mismatch or lost race.

Audit relevance:
    Posted entries are never edited.  Voiding leaves every line in place and
    records who voided the entry, when, and why.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from erp_kernel.db.types import validate_currency
from erp_kernel.domain.balance import ensure_balanced
from erp_kernel.domain.dtos import LineSpec, NormalizedLine, validate_line_specs
from erp_kernel.domain.journal_state import (
    JournalEntryStatus,
    ensure_editable,
    ensure_transition,
)
from erp_kernel.domain.validation import optional_text
from erp_kernel.exceptions import (
    ConcurrentModificationError,
    InvalidReferenceError,
    UnbalancedEntryError,
    ValidationError,
)
from erp_kernel.logging_config import LogContext, get_logger
from erp_kernel.models.account import Account
from erp_kernel.models.journal import JournalEntry, JournalLine
from erp_kernel.selectors.journal_selector import JournalEntryDTO, entry_to_dto
from erp_kernel.services.base import BaseService

logger = get_logger("services.journal")


class JournalService(BaseService[JournalEntry]):
    """
    Journal Engine.

    Contract:
        Accepts a Session owned by the caller, flushes, never commits.
        Returns JournalEntryDTO snapshots.

    Usage:
        service = JournalService(session, clock, default_currency="USD")
        draft = service.create_draft_entry(
            entry_date=date(2024, 1, 31),
            description="Office supplies",
            reference="INV-1001",
            lines=[
                LineSpec.debit(expense_id, "120.00"),
                LineSpec.credit(cash_id, "120.00"),
            ],
            actor_id=user_id,
        )
        posted = service.post_entry(draft.id, actor_id=user_id)
    """

    def __init__(self, session, clock=None, default_currency: str = "USD"):
        super().__init__(session, clock)
        self.default_currency = validate_currency(default_currency)

    # -- helpers ------------------------------------------------------------

    def _check_accounts_usable(self, account_ids: Sequence[UUID]) -> None:
        """
        Every referenced account must exist, be active and not soft-deleted.

        Raises:
            InvalidReferenceError: For the first unusable account.
        """
        wanted = set(account_ids)
        found = {
            a.id: a
            for a in self.session.execute(
                select(Account).where(Account.id.in_(wanted))
            ).scalars()
        }
        for account_id in account_ids:
            account = found.get(account_id)
            if account is None or account.is_deleted:
                raise InvalidReferenceError("Account", str(account_id), "account does not exist")
            if not account.is_active:
                raise InvalidReferenceError("Account", str(account_id), "account is inactive")

    def _normalize(self, lines: Sequence[LineSpec]) -> list[NormalizedLine]:
        normalized = validate_line_specs(lines, self.default_currency)
        self._check_accounts_usable([line.account_id for line in normalized])
        return normalized

    @staticmethod
    def _build_lines(normalized: list[NormalizedLine], actor_id: UUID) -> list[JournalLine]:
        return [
            JournalLine(
                line_number=line.line_number,
                account_id=line.account_id,
                amount=line.amount,
                currency=line.currency,
                is_debit=line.is_debit,
                description=optional_text(line.description, "description", 255),
                created_by_id=actor_id,
            )
            for line in normalized
        ]

    def _lock_entry(self, entry_id: UUID, expected_version: int | None) -> JournalEntry:
        """
        Load an entry under a row lock and check the caller's version.

        Raises:
            NotFoundError: Unknown or soft-deleted entry.
            ConcurrentModificationError: expected_version differs.
        """
        entry = self._load_live(JournalEntry, entry_id, for_update=True)
        if expected_version is not None and entry.version != expected_version:
            logger.warning(
                "journal_entry_version_conflict",
                extra={
                    "entry_id": str(entry_id),
                    "expected_version": expected_version,
                    "actual_version": entry.version,
                },
            )
            raise ConcurrentModificationError(
                "JournalEntry",
                str(entry_id),
                expected_version=expected_version,
                actual_version=entry.version,
            )
        return entry

    def _flush_versioned(self, entry: JournalEntry, expected_version: int | None) -> None:
        """Flush, translating a lost optimistic-lock race."""
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "journal_entry_concurrent_update",
                extra={"entry_id": str(entry.id)},
            )
            raise ConcurrentModificationError(
                "JournalEntry",
                str(entry.id),
                expected_version=expected_version,
            ) from exc

    # -- operations ---------------------------------------------------------

    def create_draft_entry(
        self,
        entry_date: date,
        description: str | None,
        reference: str | None,
        lines: Sequence[LineSpec],
        actor_id: UUID,
    ) -> JournalEntryDTO:
        """
        Create a DRAFT journal entry with its lines.

        Balance is not required yet; it is enforced at posting.

        Raises:
            ValidationError: Fewer than two lines, a non-positive amount, an
                invalid currency, or an unknown/inactive/deleted account.
        """
        if not isinstance(entry_date, date):
            raise ValidationError("entry_date is required", field="entry_date")
        normalized = self._normalize(lines)

        entry = JournalEntry(
            entry_date=entry_date,
            description=optional_text(description, "description", 255),
            reference=optional_text(reference, "reference", 100),
            status=JournalEntryStatus.DRAFT,
            created_by_id=actor_id,
        )
        entry.lines = self._build_lines(normalized, actor_id)
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "journal_entry_created",
            extra={
                "entry_id": str(entry.id),
                "entry_date": entry.entry_date,
                "line_count": len(normalized),
            },
        )
        return entry_to_dto(entry)

    def update_draft_entry(
        self,
        entry_id: UUID,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        description: str | None = None,
        reference: str | None = None,
        entry_date: date | None = None,
        expected_version: int | None = None,
    ) -> JournalEntryDTO:
        """
        Replace the line set (and optionally header fields) of a DRAFT entry.

        The old lines are removed and the new ones inserted in the same
        flush, so readers see either the old set or the new one.

        Raises:
            InvalidStateError: The entry is POSTED or VOIDED.
            ConcurrentModificationError: expected_version differs or another
                writer got there first.
        """
        with LogContext.bind(entry_id=str(entry_id)):
            entry = self._lock_entry(entry_id, expected_version)
            ensure_editable(entry.id, entry.status, operation="update")
            normalized = self._normalize(lines)

            if description is not None:
                entry.description = optional_text(description, "description", 255)
            if reference is not None:
                entry.reference = optional_text(reference, "reference", 100)
            if entry_date is not None:
                entry.entry_date = entry_date

            entry.lines.clear()
            entry.lines.extend(self._build_lines(normalized, actor_id))
            entry.updated_by_id = actor_id
            # A line-only change leaves the header untouched; force the bump
            flag_modified(entry, "updated_by_id")
            self._flush_versioned(entry, expected_version)

            logger.info(
                "journal_entry_updated",
                extra={
                    "entry_id": str(entry.id),
                    "line_count": len(normalized),
                    "version": entry.version,
                },
            )
            return entry_to_dto(entry)

    def post_entry(
        self,
        entry_id: UUID,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> JournalEntryDTO:
        """
        Post a DRAFT entry.

        Locks the entry row, re-checks that every referenced account is
        still usable, verifies balance per currency, then moves the entry to
        POSTED.  On any failure the entry stays DRAFT.

        Raises:
            InvalidStateError: The entry is already POSTED or VOIDED.
            InvalidReferenceError: An account was deactivated or deleted
                after the draft was written.
            UnbalancedEntryError: Debits != credits for some currency.
            ConcurrentModificationError: Version mismatch or lost race.
        """
        with LogContext.bind(entry_id=str(entry_id), actor_id=str(actor_id)):
            entry = self._lock_entry(entry_id, expected_version)
            new_status = ensure_transition(entry.id, entry.status, JournalEntryStatus.POSTED)

            self._check_accounts_usable([line.account_id for line in entry.lines])
            try:
                totals = ensure_balanced(entry.lines)
            except UnbalancedEntryError as exc:
                logger.warning(
                    "journal_entry_unbalanced",
                    extra={
                        "entry_id": str(entry.id),
                        "currency": exc.currency,
                        "debits": exc.debits,
                        "credits": exc.credits,
                    },
                )
                raise

            entry.status = new_status
            entry.posted_at = self.clock.now()
            entry.posted_by_id = actor_id
            entry.updated_by_id = actor_id
            self._flush_versioned(entry, expected_version)

            logger.info(
                "journal_entry_posted",
                extra={
                    "entry_id": str(entry.id),
                    "version": entry.version,
                    "currencies": [t.currency for t in totals],
                    "line_count": len(entry.lines),
                },
            )
            return entry_to_dto(entry)

    def void_entry(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> JournalEntryDTO:
        """
        Void a POSTED entry.  Lines stay in place for audit.

        Raises:
            InvalidStateError: The entry is DRAFT or already VOIDED.
            ConcurrentModificationError: Version mismatch or lost race.
        """
        with LogContext.bind(entry_id=str(entry_id), actor_id=str(actor_id)):
            entry = self._lock_entry(entry_id, expected_version)
            entry.status = ensure_transition(entry.id, entry.status, JournalEntryStatus.VOIDED)
            entry.voided_at = self.clock.now()
            entry.voided_by_id = actor_id
            entry.void_reason = optional_text(reason, "reason", 255)
            entry.updated_by_id = actor_id
            self._flush_versioned(entry, expected_version)

            logger.info(
                "journal_entry_voided",
                extra={
                    "entry_id": str(entry.id),
                    "version": entry.version,
                    "reason": entry.void_reason,
                },
            )
            return entry_to_dto(entry)

    def delete_draft_entry(
        self,
        entry_id: UUID,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> None:
        """
        Soft-delete an abandoned DRAFT entry.

        Raises:
            InvalidStateError: The entry is POSTED or VOIDED.
        """
        entry = self._lock_entry(entry_id, expected_version)
        ensure_editable(entry.id, entry.status, operation="delete")
        entry.deleted_at = self.clock.now()
        entry.updated_by_id = actor_id
        self._flush_versioned(entry, expected_version)

        logger.info("journal_entry_deleted", extra={"entry_id": str(entry.id)})
