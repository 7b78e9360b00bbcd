"""
LedgerSelector -- account balances and the trial balance.

Responsibility:
    Aggregates POSTED journal lines per account and currency.  DRAFT and
    VOIDED entries never contribute; soft-deleted entries are always DRAFT
    and so never contribute either.

Architecture position:
    Kernel > Selectors.  Read-only; balances are derived on every call and
    never stored.

Invariants enforced:
    - Currencies are never netted against each other.
    - When every posted entry balances, the trial balance totals balance
      per currency.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from erp_kernel.db.types import round_money
from erp_kernel.domain.balance import CurrencyTotals
from erp_kernel.domain.journal_state import JournalEntryStatus
from erp_kernel.exceptions import NotFoundError
from erp_kernel.models.account import Account, AccountType
from erp_kernel.models.journal import JournalEntry, JournalLine
from erp_kernel.selectors.base import BaseSelector

_ZERO = round_money(Decimal("0"))


@dataclass(frozen=True)
class AccountBalance:
    """Posted activity of one account in one currency."""

    account_id: UUID
    account_code: str
    account_type: AccountType
    currency: str
    debit_total: Decimal
    credit_total: Decimal

    @property
    def balance(self) -> Decimal:
        """Net balance, positive on the account's normal side."""
        if self.account_type.is_debit_normal:
            return self.debit_total - self.credit_total
        return self.credit_total - self.debit_total


@dataclass(frozen=True)
class TrialBalanceRow:
    """
    One account/currency line of the trial balance.

    currency is None for an account listed only because zero balances were
    requested and it has no posted activity.
    """

    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    currency: str | None
    debit_total: Decimal
    credit_total: Decimal

    @property
    def net(self) -> Decimal:
        return self.debit_total - self.credit_total

    @property
    def debit_balance(self) -> Decimal:
        return self.net if self.net > 0 else _ZERO

    @property
    def credit_balance(self) -> Decimal:
        return -self.net if self.net < 0 else _ZERO


@dataclass(frozen=True)
class TrialBalance:
    as_of: date | None
    rows: tuple[TrialBalanceRow, ...]
    totals: tuple[CurrencyTotals, ...]

    @property
    def is_balanced(self) -> bool:
        return all(t.is_balanced for t in self.totals)


def _posted_activity(as_of: date | None):
    """Per account and currency debit/credit sums over posted entries."""
    debit_sum = func.sum(case((JournalLine.is_debit.is_(True), JournalLine.amount), else_=0))
    credit_sum = func.sum(case((JournalLine.is_debit.is_(False), JournalLine.amount), else_=0))
    stmt = (
        select(JournalLine.account_id, JournalLine.currency, debit_sum, credit_sum)
        .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
        .where(JournalEntry.status == JournalEntryStatus.POSTED)
        .group_by(JournalLine.account_id, JournalLine.currency)
    )
    if as_of is not None:
        stmt = stmt.where(JournalEntry.entry_date <= as_of)
    return stmt


def _money(value) -> Decimal:
    if value is None:
        return _ZERO
    return round_money(Decimal(str(value)))


class LedgerSelector(BaseSelector):
    """Balances derived from posted journal lines."""

    def account_balance(self, account_id: UUID, as_of: date | None = None) -> list[AccountBalance]:
        """
        Posted balance of one account, one AccountBalance per currency it
        has been posted in, sorted by currency.  Empty when the account has
        no posted activity.

        Raises:
            NotFoundError: Unknown or soft-deleted account.
        """
        account = self.session.get(Account, account_id)
        if account is None or account.is_deleted:
            raise NotFoundError("Account", str(account_id))

        stmt = _posted_activity(as_of).where(JournalLine.account_id == account_id)
        rows = sorted(self.session.execute(stmt).all(), key=lambda r: r[1])
        return [
            AccountBalance(
                account_id=account.id,
                account_code=account.code,
                account_type=account.account_type,
                currency=currency,
                debit_total=_money(debits),
                credit_total=_money(credits),
            )
            for _, currency, debits, credits in rows
        ]

    def trial_balance(
        self,
        as_of: date | None = None,
        include_zero_balances: bool = False,
    ) -> TrialBalance:
        """
        Trial balance over posted entries dated on or before ``as_of``.

        Args:
            as_of: Cut-off entry date; None means all history.
            include_zero_balances: Also list active accounts with no net
                balance, including those with no posted activity at all.
        """
        activity: dict[UUID, list[tuple[str, Decimal, Decimal]]] = {}
        for account_id, currency, debits, credits in self.session.execute(_posted_activity(as_of)):
            activity.setdefault(account_id, []).append((currency, _money(debits), _money(credits)))

        accounts = self.session.execute(select(Account).order_by(Account.code)).scalars().all()

        rows: list[TrialBalanceRow] = []
        for account in accounts:
            entries = sorted(activity.get(account.id, []))
            listed = False
            for currency, debits, credits in entries:
                if debits == credits and not include_zero_balances:
                    continue
                rows.append(
                    TrialBalanceRow(
                        account_id=account.id,
                        account_code=account.code,
                        account_name=account.name,
                        account_type=account.account_type,
                        currency=currency,
                        debit_total=debits,
                        credit_total=credits,
                    )
                )
                listed = True
            if (
                include_zero_balances
                and not listed
                and account.is_usable
            ):
                rows.append(
                    TrialBalanceRow(
                        account_id=account.id,
                        account_code=account.code,
                        account_name=account.name,
                        account_type=account.account_type,
                        currency=None,
                        debit_total=_ZERO,
                        credit_total=_ZERO,
                    )
                )

        debit_columns: dict[str, Decimal] = {}
        credit_columns: dict[str, Decimal] = {}
        for row in rows:
            if row.currency is None:
                continue
            debit_columns[row.currency] = debit_columns.get(row.currency, _ZERO) + row.debit_balance
            credit_columns[row.currency] = credit_columns.get(row.currency, _ZERO) + row.credit_balance

        totals = tuple(
            CurrencyTotals(currency=c, debits=debit_columns[c], credits=credit_columns[c])
            for c in sorted(debit_columns)
        )
        return TrialBalance(as_of=as_of, rows=tuple(rows), totals=totals)
