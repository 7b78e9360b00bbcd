"""
Balance invariant -- debits equal credits per currency.

Responsibility:
    Pure computation of per-currency debit/credit totals for any collection
    of line-like objects (anything with ``amount``, ``currency`` and
    ``is_debit``), and the guard the Journal Engine calls at posting.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - For a postable entry, for every currency present, sum(debits) ==
      sum(credits).  Currencies are never netted against each other.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from erp_kernel.exceptions import UnbalancedEntryError


class LineLike(Protocol):
    amount: Decimal
    currency: str
    is_debit: bool


@dataclass(frozen=True)
class CurrencyTotals:
    """Debit and credit totals for one currency."""

    currency: str
    debits: Decimal
    credits: Decimal

    @property
    def difference(self) -> Decimal:
        return self.debits - self.credits

    @property
    def is_balanced(self) -> bool:
        return self.debits == self.credits


def currency_totals(lines: Iterable[LineLike]) -> list[CurrencyTotals]:
    """Totals per currency, sorted by currency code."""
    debits: dict[str, Decimal] = {}
    credits: dict[str, Decimal] = {}
    for line in lines:
        debits.setdefault(line.currency, Decimal("0"))
        credits.setdefault(line.currency, Decimal("0"))
        if line.is_debit:
            debits[line.currency] += line.amount
        else:
            credits[line.currency] += line.amount
    return [
        CurrencyTotals(currency=c, debits=debits[c], credits=credits[c])
        for c in sorted(debits)
    ]


def is_balanced(lines: Iterable[LineLike]) -> bool:
    return all(t.is_balanced for t in currency_totals(lines))


def ensure_balanced(lines: Iterable[LineLike]) -> list[CurrencyTotals]:
    """
    Raise UnbalancedEntryError for the first unbalanced currency.

    Returns:
        The per-currency totals when every currency balances.
    """
    totals = currency_totals(lines)
    for t in totals:
        if not t.is_balanced:
            raise UnbalancedEntryError(
                debits=str(t.debits),
                credits=str(t.credits),
                currency=t.currency,
            )
    return totals
