"""
Commission Engine
Standard commission per transaction kind and the agent markup cap
"""
from decimal import Decimal
from typing import Union

from agentledger.constants import COMMISSION_RATES, MAX_MARKUP_RATE

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Exact Decimal; floats go through str() so 0.1 stays 0.1"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def compute_standard_commission(amount: Number, kind: str) -> Decimal:
    """
    commission = amount x rate(kind)
    cashout 0.5%, deposit 0.3%, exact Decimal product (no rounding)
    """
    return to_decimal(amount) * COMMISSION_RATES[kind]


def max_markup(amount: Number) -> Decimal:
    return to_decimal(amount) * MAX_MARKUP_RATE


def validate_markup(markup: Number, amount: Number) -> bool:
    """True iff 0 <= markup <= 5% of amount (inclusive upper bound)"""
    markup = to_decimal(markup)
    return Decimal("0") <= markup <= max_markup(amount)
