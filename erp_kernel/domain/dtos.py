"""
DTOs -- Pure domain data transfer objects for ledger input.

Responsibility:
    Defines the immutable structures callers hand to the Journal Engine.
    Validation that needs no database (amount sign, minimum line count,
    currency code) lives here so it runs before any query.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - ValidationError from validate_line_specs() on malformed lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from uuid import UUID

from erp_kernel.db.types import (
    MONEY_INTEGER_DIGITS,
    InvalidCurrencyError,
    fits_integer_digits,
    round_money,
    to_decimal,
    validate_currency,
)
from erp_kernel.exceptions import ValidationError

MIN_LINES_PER_ENTRY = 2


@dataclass(frozen=True)
class LineSpec:
    """
    Specification for a journal line.

    Contract:
        amount is the unsigned magnitude; is_debit alone decides the side.
        currency may be None, in which case the engine applies its default.
    """

    account_id: UUID
    amount: Decimal
    is_debit: bool
    currency: str | None = None
    description: str | None = None

    @classmethod
    def debit(
        cls,
        account_id: UUID,
        amount: Decimal | str | int,
        currency: str | None = None,
        description: str | None = None,
    ) -> LineSpec:
        return cls(account_id, to_decimal(amount), True, currency, description)

    @classmethod
    def credit(
        cls,
        account_id: UUID,
        amount: Decimal | str | int,
        currency: str | None = None,
        description: str | None = None,
    ) -> LineSpec:
        return cls(account_id, to_decimal(amount), False, currency, description)


@dataclass(frozen=True)
class NormalizedLine:
    """A LineSpec after validation: rounded amount, resolved currency, position."""

    line_number: int
    account_id: UUID
    amount: Decimal
    currency: str
    is_debit: bool
    description: str | None = None


def validate_line_specs(
    lines: list[LineSpec] | tuple[LineSpec, ...],
    default_currency: str,
) -> list[NormalizedLine]:
    """
    Validate and normalize the line set of a draft entry.

    Preconditions:
        - ``default_currency`` is a valid ISO 4217 code.
    Postconditions:
        - At least two lines are returned, numbered from 1 in input order.
        - Every amount is > 0 and rounded to 2 decimal places.
        - Every currency is an upper-case ISO 4217 code.

    Raises:
        ValidationError: On fewer than two lines, a non-positive or
            non-numeric amount, a missing account, or an invalid currency.
    """
    if lines is None or len(lines) < MIN_LINES_PER_ENTRY:
        raise ValidationError(
            f"A journal entry needs at least {MIN_LINES_PER_ENTRY} lines",
            field="lines",
        )

    normalized: list[NormalizedLine] = []
    for index, line in enumerate(lines, start=1):
        if line.account_id is None:
            raise ValidationError(f"Line {index}: account_id is required", field="account_id")
        try:
            amount = to_decimal(line.amount)
        except (TypeError, InvalidOperation) as exc:
            raise ValidationError(f"Line {index}: amount is not a number", field="amount") from exc
        if not amount.is_finite() or amount <= 0:
            raise ValidationError(f"Line {index}: amount must be positive", field="amount")
        try:
            amount = round_money(amount)
        except InvalidOperation as exc:
            raise ValidationError(f"Line {index}: amount is out of range", field="amount") from exc
        if not fits_integer_digits(amount, MONEY_INTEGER_DIGITS):
            raise ValidationError(f"Line {index}: amount is out of range", field="amount")
        if amount <= 0:
            raise ValidationError(
                f"Line {index}: amount rounds to zero at 2 decimal places",
                field="amount",
            )
        try:
            currency = validate_currency(line.currency or default_currency)
        except InvalidCurrencyError as exc:
            raise ValidationError(f"Line {index}: {exc}", field="currency") from exc
        normalized.append(
            NormalizedLine(
                line_number=index,
                account_id=line.account_id,
                amount=amount,
                currency=currency,
                is_debit=bool(line.is_debit),
                description=line.description,
            )
        )
    return normalized
