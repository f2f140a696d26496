"""Punishment-cost strategies.

A strategy maps `(ratio, punishment)` to the cost charged to the punisher.
Strategies are selected by `RatioType` when the agreement is created and are
pure functions on plain Python ints.

Only the fixed-multiplier `Dec` formula is defined. `NaN` and `Inf` are valid
configuration tags without a registered strategy: punishing under them is
rejected rather than priced.
"""

from __future__ import annotations

from typing import Callable

from .errors import InvalidParameter, UnsupportedRatioType
from .types import RatioType

RATIO_DECIMALS: int = 18
RATIO_SCALE: int = 10**RATIO_DECIMALS

CostFn = Callable[[int, int], int]


def dec_cost(ratio: int, punishment: int) -> int:
    """Fixed multiplier: ``punishment * ratio / 1e18`` (floor)."""
    return punishment * ratio // RATIO_SCALE


COST_STRATEGIES: dict[RatioType, CostFn] = {
    RatioType.Dec: dec_cost,
}


def supports(ratio_type: RatioType) -> bool:
    return ratio_type in COST_STRATEGIES


def get_cost(ratio: int, ratio_type: RatioType, punishment: int) -> int:
    """Cost of inflicting `punishment` under the given ratio.

    Raises:
        UnsupportedRatioType: No strategy registered for `ratio_type`.
        InvalidParameter: Negative ratio or punishment.
    """
    if ratio < 0:
        raise InvalidParameter("ratio must be non-negative")
    if punishment < 0:
        raise InvalidParameter("punishment must be non-negative")
    strategy = COST_STRATEGIES.get(ratio_type)
    if strategy is None:
        raise UnsupportedRatioType(f"no cost strategy for ratio type {RatioType(ratio_type).name}")
    return strategy(ratio, punishment)


def ratio_from_decimal(value: int | str) -> int:
    """Scale a human ratio ("2", "0.5") to 18-decimal fixed point.

    Integer arithmetic only; more than 18 fractional digits is an error.
    """
    text = str(value).strip()
    if not text or text.startswith("-"):
        raise InvalidParameter(f"ratio must be a non-negative decimal, got {value!r}")
    whole, _, frac = text.partition(".")
    if not (whole or frac) or not (whole or "0").isdigit() or (frac and not frac.isdigit()):
        raise InvalidParameter(f"ratio must be a non-negative decimal, got {value!r}")
    if len(frac) > RATIO_DECIMALS:
        raise InvalidParameter(f"ratio supports at most {RATIO_DECIMALS} decimals")
    return int(whole or "0") * RATIO_SCALE + int(frac.ljust(RATIO_DECIMALS, "0") or "0")
