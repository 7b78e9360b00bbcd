"""
Module: erp_kernel.models.account
Responsibility: ORM persistence for the Chart of Accounts -- the target of
    every journal line.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - code is unique across the chart, including soft-deleted rows.
    - parent_id is a stored identifier, never a live object graph; the
      AccountService walks it to reject cycles.
    - An account referenced by any journal line is never hard-deleted
      (ON DELETE RESTRICT from journal_lines plus the flush guard in
      db/immutability.py).

Failure modes:
    - DuplicateCodeError when a second account claims an existing code.
    - ReferencedEntityError when deletion is attempted on a referenced account.

Audit relevance:
    Account rows define the structure of the general ledger.  Removal is
    deactivation or soft deletion; the row itself outlives its last use.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from erp_kernel.db.types import enum_column


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def is_debit_normal(self) -> bool:
        """Assets and expenses increase with debits; the rest with credits."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class Account(SoftDeleteMixin, TrackedBase):
    """
    Chart of Accounts entry -- a single node in the general ledger tree.

    Contract:
        Account.code is unique (uq_account_code).  Only active, non-deleted
        accounts may be referenced by new or posted journal lines.

    Non-goals:
        - This model does NOT prevent cycles; that is a service-level walk
          over parent_id values.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_active", "is_active"),
        Index("idx_account_parent", "parent_id"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(
        enum_column(AccountType),
        nullable=False,
    )

    # Parent account for the hierarchical chart (null = root)
    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_usable(self) -> bool:
        """True iff new journal lines may reference this account."""
        return self.is_active and not self.is_deleted
