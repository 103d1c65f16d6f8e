"""
Module: transfer_kernel.db.types
Responsibility: Annotated type aliases and helper functions for monetary
    columns and currency codes.  Centralizes precision, rounding and currency
    validation so that every model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for amounts.  ``parse_amount`` rejects float inputs that are
      not exactly representable and every non-finite or non-positive value.
    - Currency codes are 3-10 uppercase alphanumerics (fiat ISO codes and
      stablecoin tickers such as USDC).
    - Stored amounts are quantized by ``round_money`` (9 places, ROUND_HALF_UP).

Failure modes:
    - InvalidAmountError on a non-numeric, non-finite or non-positive amount.
    - InvalidCurrencyError on a malformed currency code.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

from transfer_kernel.exceptions import InvalidAmountError, InvalidCurrencyError

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

Currency = Annotated[str, String(10)]

MONEY_DECIMAL_PLACES = 9

_CURRENCY_PATTERN = re.compile(r"^[A-Z0-9]{3,10}$")


def parse_amount(value: Any) -> Decimal:
    """
    Convert caller input into a strictly positive Decimal amount.

    Strings and ints are parsed exactly.  Floats go through ``str()`` so
    ``10000.5`` becomes ``Decimal("10000.5")`` rather than its binary
    expansion.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value)
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, str)):
            amount = Decimal(str(value).strip())
        elif isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            raise InvalidAmountError(value)
    except InvalidOperation:
        raise InvalidAmountError(value) from None

    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(value)
    try:
        exact = amount == round_money(amount)
    except InvalidOperation:
        exact = False
    if not exact:
        raise InvalidAmountError(value)
    return amount


def round_money(amount: Decimal) -> Decimal:
    """Quantize to the storage precision."""
    return amount.quantize(Decimal(10) ** -MONEY_DECIMAL_PLACES, rounding=ROUND_HALF_UP)


def validate_currency(currency: Any) -> str:
    """Return the normalized currency code or raise InvalidCurrencyError."""
    if not isinstance(currency, str):
        raise InvalidCurrencyError(currency)
    code = currency.strip().upper()
    if not _CURRENCY_PATTERN.match(code):
        raise InvalidCurrencyError(currency)
    return code
