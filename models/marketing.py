"""Marketing budget allocation across forecast periods."""

import logging
from typing import Dict, Optional, Union

from .financial_model import AllocationMode, DistributionPolicy, MarketingConfig

logger = logging.getLogger(__name__)


def _coerce_policy(policy: Union[DistributionPolicy, str, None]) -> DistributionPolicy:
    if policy is None:
        return DistributionPolicy.SPREAD_EVENLY
    try:
        return DistributionPolicy(policy)
    except ValueError:
        logger.warning("Unknown distribution policy %r, spreading evenly", policy)
        return DistributionPolicy.SPREAD_EVENLY


def allocate_budget(budget: float,
                    policy: Union[DistributionPolicy, str, None],
                    spread_length: Optional[int],
                    duration: int,
                    period: int) -> float:
    """
    Amount of `budget` attributed to `period` (1-based).

    - upfront:      the whole budget at period 1
    - spreadEvenly: budget / duration every period
    - spreadCustom: budget / spread_length for periods 1..spread_length;
                    spread_length falls back to the duration when unset
    """
    policy = _coerce_policy(policy)

    if policy is DistributionPolicy.UPFRONT:
        return budget if period == 1 else 0.0

    if policy is DistributionPolicy.SPREAD_CUSTOM:
        length = spread_length if spread_length and spread_length > 0 else duration
        return budget / length if period <= length else 0.0

    return budget / duration if duration > 0 else 0.0


class MarketingAllocator:
    """Per-period marketing cost for one model's marketing configuration."""

    def __init__(self, config: MarketingConfig, duration: int):
        self.config = config
        self.duration = duration

    def channel_costs(self, period: int) -> Dict[str, float]:
        """Cost per channel id for a period (per-channel mode only)."""
        if self.config.mode is not AllocationMode.PER_CHANNEL:
            return {}
        costs = {}
        for channel in self.config.channels:
            amount = allocate_budget(channel.budget, channel.distribution,
                                     channel.spread_length, self.duration, period)
            costs[channel.id] = costs.get(channel.id, 0.0) + amount
        return costs

    def period_cost(self, period: int) -> float:
        mode = self.config.mode
        if mode is AllocationMode.PER_CHANNEL:
            return sum(self.channel_costs(period).values())
        if mode is AllocationMode.AGGREGATE:
            return allocate_budget(self.config.total_budget, self.config.distribution,
                                   self.config.spread_length, self.duration, period)
        return 0.0
