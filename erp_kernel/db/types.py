"""
Module: erp_kernel.db.types
Responsibility: Annotated type aliases and utility functions for money and
    quantity columns.  Centralizes precision, rounding and currency validation
    so that every model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - ISO 4217 enforcement.  validate_currency() rejects any string that is
      not a recognized 3-character ISO 4217 currency code.
    - Fixed precision.  Journal amounts carry 2 decimal places, inventory
      quantities 3.  round_money() and round_quantity() are the only
      sanctioned rounding functions.
    - Range.  Money keeps 16 integer digits and quantities 15, matching
      the NUMERIC(18, 2) and NUMERIC(18, 3) columns; fits_integer_digits()
      is the check callers apply before a value reaches the database.
    - No floats anywhere in the kernel.

Failure modes:
    - InvalidCurrencyError on an invalid ISO 4217 code.
    - decimal.InvalidOperation on a non-numeric string passed to to_decimal().
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Enum as SAEnum, Numeric, String


# Journal line amount: NUMERIC(18, 2)
Money = Annotated[Decimal, Numeric(18, 2)]

# Inventory quantity: NUMERIC(18, 3)
Quantity = Annotated[Decimal, Numeric(18, 3)]

# ISO 4217 currency code (e.g., "USD", "EUR", "GBP")
Currency = Annotated[str, String(3)]


MONEY_DECIMAL_PLACES = 2
QUANTITY_DECIMAL_PLACES = 3

# Integer digits left in NUMERIC(18, 2) and NUMERIC(18, 3)
MONEY_INTEGER_DIGITS = 16
QUANTITY_INTEGER_DIGITS = 15

DEFAULT_ROUNDING = ROUND_HALF_UP


def fits_integer_digits(value: Decimal, digits: int) -> bool:
    """True if value has at most ``digits`` digits left of the decimal point."""
    return abs(value) < Decimal(10) ** digits


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce an amount or quantity to Decimal.

    Floats are refused: binary fractions cannot represent most decimal
    amounts exactly.

    Raises:
        TypeError: If value is a float or another unsupported type.
        decimal.InvalidOperation: If a string is not a number.
    """
    if isinstance(value, (bool, float)):
        raise TypeError(f"Refusing to convert {type(value).__name__} to Decimal")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str)):
        return Decimal(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def _quantize(value: Decimal, decimal_places: int, rounding: str) -> Decimal:
    quantize_str = "0." + "0" * decimal_places if decimal_places else "0"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the ledger's amount precision.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    return _quantize(value, decimal_places, rounding)


def round_quantity(
    value: Decimal,
    decimal_places: int = QUANTITY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round an inventory quantity to 3 decimal places."""
    return _quantize(value, decimal_places, rounding)


# ISO 4217 Currency Codes
ISO_4217_CURRENCIES: set[str] = {
    # Major currencies
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    # Other currencies (alphabetical)
    "AED", "AFN", "ALL", "AMD", "ANG", "AOA", "ARS", "AWG", "AZN",
    "BAM", "BBD", "BDT", "BGN", "BHD", "BIF", "BMD", "BND", "BOB", "BOV", "BRL", "BSD", "BTN", "BWP", "BYN", "BZD",
    "CDF", "CHE", "CHW", "CLF", "CLP", "CNY", "COP", "COU", "CRC", "CUC", "CUP", "CVE", "CZK",
    "DJF", "DKK", "DOP", "DZD",
    "EGP", "ERN", "ETB",
    "FJD", "FKP",
    "GEL", "GHS", "GIP", "GMD", "GNF", "GTQ", "GYD",
    "HKD", "HNL", "HRK", "HTG", "HUF",
    "IDR", "ILS", "INR", "IQD", "IRR", "ISK",
    "JMD", "JOD",
    "KES", "KGS", "KHR", "KMF", "KPW", "KRW", "KWD", "KYD", "KZT",
    "LAK", "LBP", "LKR", "LRD", "LSL", "LYD",
    "MAD", "MDL", "MGA", "MKD", "MMK", "MNT", "MOP", "MRU", "MUR", "MVR", "MWK", "MXN", "MXV", "MYR", "MZN",
    "NAD", "NGN", "NIO", "NOK", "NPR",
    "OMR",
    "PAB", "PEN", "PGK", "PHP", "PKR", "PLN", "PYG",
    "QAR",
    "RON", "RSD", "RUB", "RWF",
    "SAR", "SBD", "SCR", "SDG", "SEK", "SGD", "SHP", "SLE", "SLL", "SOS", "SRD", "SSP", "STN", "SVC", "SYP", "SZL",
    "THB", "TJS", "TMT", "TND", "TOP", "TRY", "TTD", "TWD", "TZS",
    "UAH", "UGX", "USN", "UYI", "UYU", "UYW", "UZS",
    "VED", "VES", "VND", "VUV",
    "WST",
    "XAF", "XAG", "XAU", "XBA", "XBB", "XBC", "XBD", "XCD", "XDR", "XOF", "XPD", "XPF", "XPT", "XSU", "XTS", "XUA", "XXX",
    "YER",
    "ZAR", "ZMW", "ZWL",
}


class InvalidCurrencyError(ValueError):
    """Raised when an invalid ISO 4217 currency code is provided."""

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


def validate_currency(currency: str) -> str:
    """
    Validate that a currency code is a valid ISO 4217 code.

    Returns:
        The validated currency code (uppercase, trimmed).

    Raises:
        InvalidCurrencyError: If the currency code is not valid.
    """
    if not currency or not isinstance(currency, str):
        raise InvalidCurrencyError(str(currency))

    normalized = currency.upper().strip()

    if len(normalized) != 3 or normalized not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)

    return normalized


def is_valid_currency(currency: str) -> bool:
    """Check if a currency code is a valid ISO 4217 code."""
    try:
        validate_currency(currency)
        return True
    except (InvalidCurrencyError, TypeError):
        return False


def enum_column(enum_cls, length: int = 20) -> SAEnum:
    """
    Column type storing a ``str`` Enum by its lowercase value.

    Stored as VARCHAR (no native database enum) and loaded back as the
    Enum member, so code can rely on ``.value`` after a round trip.
    """
    return SAEnum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
