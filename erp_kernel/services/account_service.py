"""
Service layer for the Account Registry (chart of accounts).

Responsibility:
    Create/Update/Get/List/Deactivate for accounts, plus soft deletion.
    Guards the hierarchy against cycles and the history against removal
    of accounts that journal lines reference.

Architecture position:
    Kernel > Services.  Returns AccountInfo DTOs, never ORM rows.

Invariants enforced:
    - Account codes are unique (DuplicateCodeError).
    - A parent exists, is active, and is never the account itself or one of
      its descendants (AccountHierarchyCycleError).
    - An account referenced by a journal line is never hard-deleted and its
      type never changes.
    - An account with active children cannot be deactivated.

Failure modes:
    - ValidationError on malformed input.
    - NotFoundError for unknown or soft-deleted accounts.
    - ConstraintError subclasses for history-protected changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError

from erp_kernel.domain.hierarchy import ensure_no_cycle
from erp_kernel.domain.validation import coerce_enum, require_text
from erp_kernel.exceptions import (
    ConstraintError,
    DuplicateCodeError,
    InvalidReferenceError,
    NotFoundError,
    ReferencedEntityError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.account import Account, AccountType
from erp_kernel.models.journal import JournalLine
from erp_kernel.selectors.base import DEFAULT_PAGE_SIZE, Page, paginate
from erp_kernel.services.base import BaseService

logger = get_logger("services.account")

_UNSET: object = object()


@dataclass(frozen=True)
class AccountInfo:
    """Immutable DTO for account data."""

    id: UUID
    code: str
    name: str
    account_type: AccountType
    parent_id: UUID | None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type.is_debit_normal


def _coerce_account_type(value: AccountType | str) -> AccountType:
    return coerce_enum(AccountType, value, "account_type")


class AccountService(BaseService[Account]):
    """
    Service for managing the chart of accounts.

    Contract:
        All public methods return AccountInfo DTOs.  Reads hide soft-deleted
        accounts; the code of a soft-deleted account stays reserved.
    """

    def _to_dto(self, account: Account) -> AccountInfo:
        return AccountInfo(
            id=account.id,
            code=account.code,
            name=account.name,
            account_type=account.account_type,
            parent_id=account.parent_id,
            is_active=account.is_active,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )

    def _parent_of(self, account_id: UUID) -> UUID | None:
        return self.session.execute(
            select(Account.parent_id).where(Account.id == account_id)
        ).scalar_one_or_none()

    def _is_referenced(self, account_id: UUID) -> bool:
        return self.session.execute(
            select(exists().where(JournalLine.account_id == account_id))
        ).scalar()

    def _check_parent(self, parent_id: UUID) -> Account:
        parent = self.session.get(Account, parent_id)
        if parent is None or parent.is_deleted:
            raise NotFoundError("Account", str(parent_id))
        if not parent.is_active:
            raise InvalidReferenceError("Account", str(parent_id), "parent account is inactive")
        return parent

    def _check_code_free(self, code: str) -> None:
        taken = self.session.execute(
            select(exists().where(Account.code == code))
        ).scalar()
        if taken:
            raise DuplicateCodeError("Account", "code", code)

    def get_account(self, account_id: UUID) -> AccountInfo:
        """
        Get account by ID.

        Raises:
            NotFoundError: If the account doesn't exist or is soft-deleted.
        """
        return self._to_dto(self._load_live(Account, account_id))

    def get_account_by_code(self, code: str) -> AccountInfo:
        """
        Get account by code.

        Raises:
            NotFoundError: If no live account has this code.
        """
        account = self.session.execute(
            select(Account).where(Account.code == code, Account.deleted_at.is_(None))
        ).scalar_one_or_none()
        if account is None:
            raise NotFoundError("Account", code)
        return self._to_dto(account)

    def list_accounts(
        self,
        name: str | None = None,
        account_type: AccountType | str | None = None,
        is_active: bool | None = None,
        parent_id: UUID | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page[AccountInfo]:
        """
        List live accounts ordered by code.

        Args:
            name: Case-insensitive substring match on the account name.
            account_type: Restrict to one account type.
            is_active: Restrict to active (True) or inactive (False) accounts.
            parent_id: Restrict to direct children of this account.
            page: 1-based page number.
            limit: Page size.
        """
        stmt = select(Account).where(Account.deleted_at.is_(None))
        if name:
            stmt = stmt.where(Account.name.ilike(f"%{name}%"))
        if account_type is not None:
            stmt = stmt.where(Account.account_type == _coerce_account_type(account_type))
        if is_active is not None:
            stmt = stmt.where(Account.is_active == is_active)
        if parent_id is not None:
            stmt = stmt.where(Account.parent_id == parent_id)
        stmt = stmt.order_by(Account.code)

        rows, total = paginate(self.session, stmt, page, limit)
        return Page(
            items=tuple(self._to_dto(a) for a in rows),
            total=total,
            page=page,
            limit=limit,
        )

    def get_children(self, account_id: UUID) -> list[AccountInfo]:
        """Direct, live children of an account ordered by code."""
        self._load_live(Account, account_id)
        rows = self.session.execute(
            select(Account)
            .where(Account.parent_id == account_id, Account.deleted_at.is_(None))
            .order_by(Account.code)
        ).scalars().all()
        return [self._to_dto(a) for a in rows]

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        parent_id: UUID | None = None,
    ) -> AccountInfo:
        """
        Create a new account.

        Args:
            code: Unique account code (e.g., "1000").
            name: Display name.
            account_type: ASSET, LIABILITY, EQUITY, REVENUE or EXPENSE.
            actor_id: UUID of the user/actor creating the account.
            parent_id: Optional parent account (must exist and be active).

        Returns:
            Created AccountInfo DTO.

        Raises:
            ValidationError: Missing/oversized fields or unknown type.
            DuplicateCodeError: The code is already taken.
            NotFoundError: The parent does not exist.
            InvalidReferenceError: The parent is inactive.
        """
        code = require_text(code, "code", 20)
        name = require_text(name, "name", 100)
        account_type = _coerce_account_type(account_type)

        self._check_code_free(code)
        if parent_id is not None:
            self._check_parent(parent_id)

        account = Account(
            code=code,
            name=name,
            account_type=account_type,
            parent_id=parent_id,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(account)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateCodeError("Account", "code", code) from exc

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "code": code,
                "account_type": account_type.value,
                "parent_id": str(parent_id) if parent_id else None,
            },
        )
        return self._to_dto(account)

    def update_account(
        self,
        account_id: UUID,
        actor_id: UUID,
        name: str | None = None,
        account_type: AccountType | str | None = None,
        parent_id: UUID | None | object = _UNSET,
    ) -> AccountInfo:
        """
        Update account details.

        The code cannot be changed.  Pass ``parent_id=None`` to move the
        account to the root; omit it to leave the parent unchanged.

        Raises:
            NotFoundError: Unknown account or parent.
            AccountHierarchyCycleError: The new parent is the account itself
                or one of its descendants.
            ConstraintError: The type would change on an account that
                journal lines already reference.
        """
        account = self._load_live(Account, account_id)

        if name is not None:
            account.name = require_text(name, "name", 100)

        if account_type is not None:
            new_type = _coerce_account_type(account_type)
            if new_type != account.account_type and self._is_referenced(account.id):
                raise ConstraintError(
                    "Account",
                    str(account.id),
                    "account type cannot change once journal lines reference the account",
                )
            account.account_type = new_type

        if parent_id is not _UNSET:
            if parent_id is not None:
                self._check_parent(parent_id)
                ensure_no_cycle(account.id, parent_id, self._parent_of)
            account.parent_id = parent_id

        account.updated_by_id = actor_id
        self.session.flush()

        logger.info("account_updated", extra={"account_id": str(account.id)})
        return self._to_dto(account)

    def deactivate_account(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        """
        Deactivate an account so no new or posted lines may use it.

        Raises:
            ConstraintError: The account still has active children.
        """
        account = self._load_live(Account, account_id)

        has_active_children = self.session.execute(
            select(
                exists().where(
                    Account.parent_id == account.id,
                    Account.is_active.is_(True),
                    Account.deleted_at.is_(None),
                )
            )
        ).scalar()
        if has_active_children:
            raise ConstraintError(
                "Account",
                str(account.id),
                "deactivate its child accounts first",
            )

        account.is_active = False
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info("account_deactivated", extra={"account_id": str(account.id)})
        return self._to_dto(account)

    def reactivate_account(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        """Reactivate a deactivated account.  Its parent must be active."""
        account = self._load_live(Account, account_id)
        if account.parent_id is not None:
            self._check_parent(account.parent_id)
        account.is_active = True
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info("account_reactivated", extra={"account_id": str(account.id)})
        return self._to_dto(account)

    def delete_account(self, account_id: UUID, actor_id: UUID) -> None:
        """
        Soft-delete an account that no journal line references.

        Raises:
            ReferencedEntityError: Journal lines reference the account.
            ConstraintError: The account still has live children.
        """
        account = self._load_live(Account, account_id)

        if self._is_referenced(account.id):
            raise ReferencedEntityError(
                "Account",
                str(account.id),
                "journal lines reference this account; deactivate it instead",
            )
        has_children = self.session.execute(
            select(
                exists().where(
                    Account.parent_id == account.id,
                    Account.deleted_at.is_(None),
                )
            )
        ).scalar()
        if has_children:
            raise ConstraintError("Account", str(account.id), "account has child accounts")

        account.is_active = False
        account.deleted_at = self.clock.now()
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info("account_deleted", extra={"account_id": str(account.id)})
