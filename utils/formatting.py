"""
Display formatting for rupee amounts and overdue notices.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union


def format_inr(amount: Union[int, float, str, Decimal]) -> str:
    """
    Format an amount with the rupee sign and Indian digit grouping.

    Example:
        >>> format_inr(Decimal("125000.5"))
        '₹1,25,000.50'
    """
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    integer_part, _, fraction = f"{abs(value):.2f}".partition(".")

    # Last three digits, then groups of two
    if len(integer_part) > 3:
        head, tail = integer_part[:-3], integer_part[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        integer_part = ",".join(groups + [tail])

    return f"{sign}₹{integer_part}.{fraction}"


def pluralize(count: int, singular: str, plural: str = "") -> str:
    """'1 overdue payment' / '2 overdue payments'"""
    if count == 1:
        return f"{count} {singular}"
    return f"{count} {plural or singular + 's'}"
