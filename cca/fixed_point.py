"""
cca/fixed_point.py - Scaled integer arithmetic for the clearing auction.

All engine arithmetic is integer-only. Three scalings are in use:

- Q96 prices: currency per token multiplied by 2**96.
- ValueX7: a quantity multiplied by MPS (1e7), so that a per-mps rate can be
  carried without losing precision.
- ValueX7X7: a quantity multiplied by MPS twice. Running totals that are a
  product of an X7 rate and an mps count live in this scale.

The NewType wrappers make the scale visible at every call site; conversion
between scales only happens through the helpers below.
"""

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import NewType

# Issuance is expressed in milli-basis-points: 1e7 == 100%
MPS = 10_000_000

RESOLUTION = 96
Q96 = 1 << RESOLUTION

MAX_UINT256 = (1 << 256) - 1

# Forward pointer of the highest tick
MAX_TICK_PTR = MAX_UINT256

# Forward pointer of the latest checkpoint
MAX_BLOCK = (1 << 64) - 1

MAX_TOTAL_SUPPLY = 1 << 100
MAX_BID_PRICE = 1 << 203

ValueX7 = NewType("ValueX7", int)
ValueX7X7 = NewType("ValueX7X7", int)


class Rounding(Enum):
    """Rounding direction for mul_div."""

    DOWN = "down"
    UP = "up"


def mul_div(a: int, b: int, denominator: int, rounding: Rounding = Rounding.DOWN) -> int:
    """
    Compute a * b / denominator at full precision.

    Token amounts paid out are rounded DOWN and currency amounts charged are
    rounded UP, so the auction never over-delivers or under-collects.

    Args:
        a: First factor (non-negative)
        b: Second factor (non-negative)
        denominator: Divisor (must be positive)
        rounding: Direction applied to the truncated quotient

    Returns:
        The rounded quotient

    Raises:
        ZeroDivisionError: If denominator is zero
    """
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    quotient, remainder = divmod(a * b, denominator)
    if rounding is Rounding.UP and remainder:
        quotient += 1
    return quotient


def mul_div_up(a: int, b: int, denominator: int) -> int:
    return mul_div(a, b, denominator, Rounding.UP)


def div_up(a: int, b: int) -> int:
    return -(-a // b)


def saturating_sub(a: int, b: int) -> int:
    """Subtract b from a, flooring at zero instead of going negative."""
    return a - b if a > b else 0


def scale_up_x7(value: int) -> ValueX7:
    return ValueX7(value * MPS)


def scale_down_x7(value: ValueX7, rounding: Rounding = Rounding.DOWN) -> int:
    return mul_div(value, 1, MPS, rounding)


def scale_up_x7x7(value: ValueX7) -> ValueX7X7:
    return ValueX7X7(value * MPS)


def scale_down_x7x7(value: ValueX7X7, rounding: Rounding = Rounding.DOWN) -> int:
    """Convert an X7X7 value straight back to raw units."""
    return mul_div(value, 1, MPS * MPS, rounding)


def to_q96(price: int | float | str | Fraction) -> int:
    """
    Convert a human price (currency per token) to Q96.

    Floats are routed through their decimal string so 0.1 becomes exactly
    one tenth rather than its binary approximation.
    """
    if isinstance(price, float):
        price = str(price)
    value = Fraction(price)
    if value < 0:
        raise ValueError(f"price must be non-negative, got {price}")
    return (value.numerator * Q96) // value.denominator


def from_q96(price: int) -> float:
    """Convert a Q96 price to a float for display and reporting."""
    return float(Fraction(price, Q96))


@dataclass(frozen=True)
class Demand:
    """
    Demand carried by a bid, a tick or the book above the clearing price.

    Attributes:
        currency_demand_x7: Currency committed, normalised to the full schedule
        token_demand_x7: Tokens that currency buys at the owners' max prices
    """

    currency_demand_x7: ValueX7 = ValueX7(0)
    token_demand_x7: ValueX7 = ValueX7(0)

    @classmethod
    def at_price(cls, currency_demand_x7: ValueX7, max_price: int) -> "Demand":
        """Build the demand of currency committed at a single max price."""
        return cls(
            currency_demand_x7=currency_demand_x7,
            token_demand_x7=ValueX7(mul_div(currency_demand_x7, Q96, max_price)),
        )

    def __add__(self, other: "Demand") -> "Demand":
        return Demand(
            ValueX7(self.currency_demand_x7 + other.currency_demand_x7),
            ValueX7(self.token_demand_x7 + other.token_demand_x7),
        )

    def __sub__(self, other: "Demand") -> "Demand":
        return Demand(
            ValueX7(saturating_sub(self.currency_demand_x7, other.currency_demand_x7)),
            ValueX7(saturating_sub(self.token_demand_x7, other.token_demand_x7)),
        )

    def resolve(self, price: int) -> ValueX7:
        """Tokens (X7) this currency demand buys at `price`, rounded down."""
        return ValueX7(mul_div(self.currency_demand_x7, Q96, price))

    @property
    def is_zero(self) -> bool:
        return self.currency_demand_x7 == 0


ZERO_DEMAND = Demand()
