"""
Chart of accounts hierarchy -- cycle prevention over stored parent ids.

Responsibility:
    Walks the ancestor chain of a proposed parent using a ``parent_of``
    lookup (id -> parent id) supplied by the caller, so the check is a
    traversal over stored identifiers rather than live object references.

Architecture position:
    Kernel > Domain -- pure functional core.  The lookup callable is the only
    I/O seam; services pass a database-backed one, tests a dict.
"""

from typing import Callable, Iterator
from uuid import UUID

from erp_kernel.exceptions import AccountHierarchyCycleError


def iter_ancestors(
    start_id: UUID,
    parent_of: Callable[[UUID], UUID | None],
) -> Iterator[UUID]:
    """
    Yield ``start_id`` and then each ancestor up to the root.

    Stops early if stored data already contains a loop, so a corrupted
    chart cannot hang the walk.
    """
    seen: set[UUID] = set()
    current: UUID | None = start_id
    while current is not None and current not in seen:
        seen.add(current)
        yield current
        current = parent_of(current)


def ensure_no_cycle(
    account_id: UUID,
    proposed_parent_id: UUID | None,
    parent_of: Callable[[UUID], UUID | None],
) -> None:
    """
    Reject placing ``account_id`` under ``proposed_parent_id`` if that would
    make the account its own ancestor (including being its own parent).

    Raises:
        AccountHierarchyCycleError
    """
    if proposed_parent_id is None:
        return
    for ancestor in iter_ancestors(proposed_parent_id, parent_of):
        if ancestor == account_id:
            raise AccountHierarchyCycleError(
                account_id=str(account_id),
                parent_id=str(proposed_parent_id),
            )
