"""Growth law resolution."""

import logging
from typing import Sequence, Union

from .financial_model import GrowthLaw

logger = logging.getLogger(__name__)


def resolve_growth(base: float,
                   elapsed: int,
                   law: Union[GrowthLaw, str],
                   rate: float,
                   seasonal_factors: Sequence[float] = ()) -> float:
    """
    Apply a growth law to a base value after `elapsed` periods.

    - linear:      base * max(0, 1 + rate * elapsed)
    - exponential: base * max(0, 1 + rate) ** elapsed
    - seasonal:    exponential value * seasonal_factors[elapsed % len(factors)],
                   plain exponential when no factors are given

    `elapsed` is period - 1, so period 1 always returns the base value.
    The growth multiplier never drops below zero, so a declining value
    bottoms out at zero instead of turning negative. Unrecognized laws are
    treated as linear.
    """
    if not rate or not elapsed:
        return base

    try:
        law = GrowthLaw(law)
    except ValueError:
        logger.warning("Unknown growth law %r, using linear", law)
        law = GrowthLaw.LINEAR

    if law is GrowthLaw.LINEAR:
        return base * max(0.0, 1 + rate * elapsed)

    multiplier = max(0.0, 1 + rate) ** elapsed
    if law is GrowthLaw.SEASONAL and seasonal_factors:
        multiplier *= max(0.0, seasonal_factors[elapsed % len(seasonal_factors)])
    return base * multiplier
