"""
Module: erp_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors, plus
    the pagination envelope shared by every list operation.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    Selectors NEVER create, modify or delete data.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(), delete(),
      commit() or flush().
    - DTO return convention: selectors return frozen dataclasses, not ORM rows.
    - Session ownership: the caller owns the session and its transaction, so
      every query made through one selector instance inside one transaction
      reads the same snapshot.

Audit relevance:
    Selectors derive every level and balance from ledger rows; there are NO
    stored balances or stock counters.
"""

from abc import ABC
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from erp_kernel.exceptions import ValidationError

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a list result."""

    items: tuple[T, ...]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def validate_paging(page: int, limit: int, max_limit: int = MAX_PAGE_SIZE) -> tuple[int, int]:
    """
    Check page/limit and return the SQL offset and limit.

    Raises:
        ValidationError: If page < 1 or limit is outside 1..max_limit.
    """
    if page < 1:
        raise ValidationError("page must be >= 1", field="page")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}", field="limit")
    return (page - 1) * limit, limit


def paginate(
    session: Session,
    stmt: Select,
    page: int,
    limit: int,
) -> tuple[Sequence, int]:
    """
    Run ``stmt`` for one page and count the full result.

    Returns:
        (rows for the page, total matching rows)
    """
    offset, limit = validate_paging(page, limit)
    total = session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()
    rows = session.execute(stmt.offset(offset).limit(limit)).scalars().all()
    return rows, total


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        """
        Initialize the selector.

        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session
