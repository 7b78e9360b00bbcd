"""
Field validation helpers shared by the registries and ledgers.

Pure functions: each returns the cleaned value or raises ValidationError
naming the offending field.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TypeVar

from erp_kernel.db.types import (
    MONEY_INTEGER_DIGITS,
    QUANTITY_INTEGER_DIGITS,
    fits_integer_digits,
    round_money,
    round_quantity,
    to_decimal,
)
from erp_kernel.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_text(value: str | None, field: str, max_length: int) -> str:
    """Strip and length-check a required string."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    value = str(value).strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", field=field)
    return value


def optional_text(value: str | None, field: str, max_length: int | None = None) -> str | None:
    """Strip an optional string; blank becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", field=field)
    return value


def coerce_enum(enum_cls: type[E], value: E | str, field: str) -> E:
    """Accept an enum member or its value (case-insensitive)."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError as exc:
        allowed = ", ".join(m.name for m in enum_cls)
        raise ValidationError(
            f"Invalid {field}: {value!r} (expected one of {allowed})",
            field=field,
        ) from exc


def _decimal(value, field: str) -> Decimal:
    try:
        result = to_decimal(value)
    except (TypeError, InvalidOperation) as exc:
        raise ValidationError(f"{field} is not a number", field=field) from exc
    if not result.is_finite():
        raise ValidationError(f"{field} is not a number", field=field)
    return result


def _rounded(value, field: str, rounder, integer_digits: int) -> Decimal:
    try:
        result = rounder(_decimal(value, field))
    except InvalidOperation as exc:
        raise ValidationError(f"{field} is out of range", field=field) from exc
    if not fits_integer_digits(result, integer_digits):
        raise ValidationError(f"{field} is out of range", field=field)
    return result


def positive_quantity(value, field: str = "quantity") -> Decimal:
    """A strictly positive quantity rounded to 3 decimal places."""
    quantity = _rounded(value, field, round_quantity, QUANTITY_INTEGER_DIGITS)
    if quantity <= 0:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    return quantity


def optional_price(value, field: str) -> Decimal | None:
    """A non-negative money amount or None."""
    if value is None:
        return None
    price = _rounded(value, field, round_money, MONEY_INTEGER_DIGITS)
    if price < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return price
