"""Conversion between human decimal amounts and integer base units.

All arithmetic uses ``decimal.Decimal`` so that ``1.1`` becomes exactly
``1100000000`` at 9 decimals and never ``1099999999``.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from peanutlink.errors import InvalidAmountError

AmountLike = Union[Decimal, int, float, str]


def parse_amount(amount: AmountLike) -> Decimal:
    """Turn an amount into a finite, positive Decimal.

    Floats are converted through ``str()`` so the shortest decimal
    representation is used rather than the binary expansion.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError(violations=["amount must be a number"])

    try:
        if isinstance(amount, Decimal):
            value = amount
        elif isinstance(amount, (int, float, str)):
            value = Decimal(str(amount).strip())
        else:
            raise InvalidAmountError(violations=["amount must be a number"])
    except InvalidOperation:
        raise InvalidAmountError(violations=[f"amount is not numeric: {amount!r}"])

    if not value.is_finite():
        raise InvalidAmountError(violations=["amount must be finite"])
    if value <= 0:
        raise InvalidAmountError(violations=["amount must be greater than zero"])
    return value


def to_base_units(amount: AmountLike, decimals: int) -> int:
    """Scale a positive decimal amount by ``10**decimals``.

    Args:
        amount: Human amount (e.g. ``Decimal("1.5")``)
        decimals: Token precision, non-negative

    Returns:
        Integer amount in base units

    Raises:
        InvalidAmountError: If the amount is not a positive number or has
            more fractional digits than the token precision allows
    """
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise ValueError(f"decimals must be a non-negative integer, got {decimals!r}")

    value = parse_amount(amount)

    # Enough precision to hold every digit of the scaled result
    _, digits, exponent = value.as_tuple()
    with localcontext() as ctx:
        ctx.prec = max(28, len(digits) + max(exponent, 0) + decimals + 2)
        scaled = value.scaleb(decimals)
        integral = scaled.to_integral_value()
        if scaled != integral:
            raise InvalidAmountError(
                violations=[f"amount has more than {decimals} decimal places"]
            )
        return int(integral)


def from_base_units(value: int, decimals: int) -> Decimal:
    """Inverse of :func:`to_base_units`."""
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise ValueError(f"decimals must be a non-negative integer, got {decimals!r}")

    digits = len(str(abs(int(value))))
    with localcontext() as ctx:
        ctx.prec = max(28, digits + decimals + 2)
        return Decimal(int(value)).scaleb(-decimals)
