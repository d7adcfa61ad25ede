"""Currency formatting for receipt amounts."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CURRENCY_SUFFIX = "so'm"
GROUP_SEPARATOR = " "


def format_currency(amount: Union[int, float, Decimal]) -> str:
    """Format an amount as whole currency units.

    The integer part is grouped by thousands with a space and the local
    currency suffix is appended: ``12500`` -> ``"12 500 so'm"``.
    Fractions are rounded half-up. The amount must be finite and
    non-negative; callers validate that upstream.
    """
    whole = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    grouped = f"{whole:,}".replace(",", GROUP_SEPARATOR)
    return f"{grouped} {CURRENCY_SUFFIX}"
