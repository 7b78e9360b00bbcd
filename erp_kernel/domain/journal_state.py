"""
Journal entry lifecycle -- explicit state plus guarded transitions.

Responsibility:
    Defines the JournalEntryStatus enumeration and the only transitions the
    kernel will perform on it.  Services call ``ensure_transition`` before
    touching an entry's status and ``ensure_editable`` before touching its
    lines, so illegal moves fail before any row is written.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - DRAFT -> POSTED -> VOIDED.  VOIDED is terminal.  DRAFT may stay DRAFT
      forever (abandoned) but never jumps to VOIDED, and nothing returns to
      DRAFT.
    - Lines are editable only while DRAFT.

Failure modes:
    - InvalidStateError for any transition not in ALLOWED_TRANSITIONS.
"""

from enum import Enum

from erp_kernel.exceptions import InvalidStateError


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry."""

    DRAFT = "draft"
    POSTED = "posted"
    VOIDED = "voided"


ALLOWED_TRANSITIONS: dict[JournalEntryStatus, frozenset[JournalEntryStatus]] = {
    JournalEntryStatus.DRAFT: frozenset({JournalEntryStatus.POSTED}),
    JournalEntryStatus.POSTED: frozenset({JournalEntryStatus.VOIDED}),
    JournalEntryStatus.VOIDED: frozenset(),
}

_OPERATION_FOR_TARGET = {
    JournalEntryStatus.POSTED: "post",
    JournalEntryStatus.VOIDED: "void",
    JournalEntryStatus.DRAFT: "reopen",
}


def can_transition(current: JournalEntryStatus, target: JournalEntryStatus) -> bool:
    """Return True iff ``current -> target`` is a legal lifecycle move."""
    return target in ALLOWED_TRANSITIONS[JournalEntryStatus(current)]


def ensure_transition(
    entry_id: object,
    current: JournalEntryStatus,
    target: JournalEntryStatus,
) -> JournalEntryStatus:
    """
    Guard a status change.

    Returns:
        The target status, so callers can write ``entry.status = ensure_transition(...)``.

    Raises:
        InvalidStateError: If the move is not in ALLOWED_TRANSITIONS.
    """
    current = JournalEntryStatus(current)
    target = JournalEntryStatus(target)
    if not can_transition(current, target):
        raise InvalidStateError(
            entity_type="JournalEntry",
            entity_id=str(entry_id),
            current_state=current.value,
            operation=_OPERATION_FOR_TARGET[target],
        )
    return target


def ensure_editable(
    entry_id: object,
    current: JournalEntryStatus,
    operation: str = "edit",
) -> None:
    """Raise InvalidStateError unless the entry is still a DRAFT."""
    current = JournalEntryStatus(current)
    if current is not JournalEntryStatus.DRAFT:
        raise InvalidStateError(
            entity_type="JournalEntry",
            entity_id=str(entry_id),
            current_state=current.value,
            operation=operation,
        )
