"""
Event Forecast Engine - Core Data Model

This module defines the normalized description of a forecast input and
its output records:
- Closed variant sets (duration unit, stream kinds, growth laws,
  marketing allocation modes, distribution policies, attendee roles)
- The FinancialModel and its revenue, cost, growth and marketing parts
- PeriodRecord, one row of a generated forecast

Models are frozen once built, and their role maps are read-only views.
Anything that needs a variant of a model (scenario deltas, default
resolution) builds a new one.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple


class ForecastError(Exception):
    """Base error for the forecast engine."""


class InvalidModelError(ForecastError, ValueError):
    """A model violates a contract that no default can patch."""


class DurationUnit(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def label(self) -> str:
        return "Week" if self is DurationUnit.WEEKLY else "Month"


class StreamKind(str, Enum):
    FIXED = "fixed"
    RECURRING = "recurring"
    VARIABLE = "variable"


class GrowthLaw(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    SEASONAL = "seasonal"


class AllocationMode(str, Enum):
    NONE = "none"
    AGGREGATE = "aggregate"
    PER_CHANNEL = "per_channel"


class DistributionPolicy(str, Enum):
    UPFRONT = "upfront"
    SPREAD_EVENLY = "spreadEvenly"
    SPREAD_CUSTOM = "spreadCustom"


class AttendeeRole(str, Enum):
    """Per-attendee revenue components."""
    TICKET = "ticket"
    FOOD_BEVERAGE = "food_beverage"
    MERCHANDISE = "merchandise"
    ONLINE = "online"
    MISC = "misc"


def _frozen_map(values: Optional[Mapping]) -> Mapping:
    """Read-only copy of a role map."""
    return MappingProxyType(dict(values or {}))


def _freeze(instance, **values):
    for name, value in values.items():
        object.__setattr__(instance, name, value)


@dataclass(frozen=True)
class RevenueStream:
    """A named revenue line. Streams tagged with a role are driven by attendance."""
    name: str
    value: float
    kind: StreamKind = StreamKind.RECURRING
    role: Optional[AttendeeRole] = None

    @property
    def per_attendee(self) -> bool:
        return self.role is not None


@dataclass(frozen=True)
class CostAttribution:
    """COGS-style cost: a percentage (0-100) of one attendee revenue component."""
    role: AttendeeRole
    percentage: float


@dataclass(frozen=True)
class CostCategory:
    """A named cost line."""
    name: str
    value: float
    kind: StreamKind = StreamKind.RECURRING
    attribution: Optional[CostAttribution] = None
    is_setup: bool = False  # One-time setup cost
    amortized: bool = False  # Setup cost spread evenly across the duration


@dataclass(frozen=True)
class GrowthConfig:
    """
    Growth configuration. All rates are decimals (0.10 == 10%).

    `rate` drives non-per-attendee revenue streams and variable costs.
    `attendance_rate` and `spend_rates` drive attendance and per-attendee
    spend independently; they share the overall `law`.
    """
    law: GrowthLaw = GrowthLaw.EXPONENTIAL
    rate: float = 0.0
    seasonal_factors: Tuple[float, ...] = ()
    attendance_rate: float = 0.0
    spend_rates: Mapping[AttendeeRole, float] = field(default_factory=dict)
    use_spend_growth: bool = False

    def __post_init__(self):
        _freeze(self, seasonal_factors=tuple(self.seasonal_factors),
                spend_rates=_frozen_map(self.spend_rates))

    def spend_rate(self, role: AttendeeRole) -> float:
        return self.spend_rates.get(role, 0.0)


@dataclass(frozen=True)
class EventCosts:
    """Cost behaviour of an attendance-driven model."""
    cogs_percentages: Mapping[AttendeeRole, float] = field(default_factory=dict)  # 0-100
    staff_count: Optional[float] = None
    staff_cost_per_person: Optional[float] = None
    management_cost: float = 0.0

    def __post_init__(self):
        _freeze(self, cogs_percentages=_frozen_map(self.cogs_percentages))

    def cogs_percentage(self, role: AttendeeRole) -> float:
        return self.cogs_percentages.get(role, 0.0)


@dataclass(frozen=True)
class EventMetadata:
    """Per-period behaviour of an attendance-driven model."""
    initial_attendance: Optional[float] = None
    per_attendee: Mapping[AttendeeRole, float] = field(default_factory=dict)
    costs: EventCosts = field(default_factory=EventCosts)

    def __post_init__(self):
        _freeze(self, per_attendee=_frozen_map(self.per_attendee))

    def spend(self, role: AttendeeRole) -> float:
        return self.per_attendee.get(role, 0.0)


@dataclass(frozen=True)
class MarketingChannel:
    id: str
    name: str
    budget: float  # Total budget over the whole model duration
    distribution: DistributionPolicy = DistributionPolicy.SPREAD_EVENLY
    spread_length: Optional[int] = None


@dataclass(frozen=True)
class MarketingConfig:
    mode: AllocationMode = AllocationMode.NONE
    channels: Tuple[MarketingChannel, ...] = ()
    total_budget: float = 0.0
    distribution: DistributionPolicy = DistributionPolicy.SPREAD_EVENLY
    spread_length: Optional[int] = None

    def __post_init__(self):
        _freeze(self, channels=tuple(self.channels))

    def planned_budget(self) -> float:
        """Total marketing spend the configuration commits to."""
        if self.mode is AllocationMode.PER_CHANNEL:
            return sum(channel.budget for channel in self.channels)
        if self.mode is AllocationMode.AGGREGATE:
            return self.total_budget
        return 0.0


@dataclass(frozen=True)
class FinancialModel:
    """
    A complete forecast input.

    `event` is set for attendance-driven models (recurring events); it is
    None for models made only of revenue streams and cost categories.
    """
    name: str
    duration: int
    duration_unit: DurationUnit = DurationUnit.WEEKLY
    revenue_streams: Tuple[RevenueStream, ...] = ()
    cost_categories: Tuple[CostCategory, ...] = ()
    growth: GrowthConfig = field(default_factory=GrowthConfig)
    event: Optional[EventMetadata] = None
    marketing: MarketingConfig = field(default_factory=MarketingConfig)
    id: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        _freeze(self, revenue_streams=tuple(self.revenue_streams),
                cost_categories=tuple(self.cost_categories))
        if isinstance(self.duration, bool) or not isinstance(self.duration, int):
            raise InvalidModelError(f"Duration must be an integer, got {self.duration!r}")
        if self.duration <= 0:
            raise InvalidModelError(f"Duration must be positive, got {self.duration}")

    @property
    def attendance_driven(self) -> bool:
        return self.event is not None

    def period_label(self, period: int) -> str:
        return f"{self.duration_unit.label} {period}"

    def last_modified(self) -> Optional[datetime]:
        return self.updated_at or self.created_at


@dataclass(frozen=True)
class PeriodRecord:
    """One period of a generated forecast. Money values are whole currency units."""
    period: int
    label: str
    revenue: int
    cost: int
    profit: int
    cumulative_revenue: int
    cumulative_cost: int
    cumulative_profit: int
    attendance: Optional[int] = None

    def as_dict(self) -> Dict:
        return {
            'period': self.period,
            'label': self.label,
            'revenue': self.revenue,
            'cost': self.cost,
            'profit': self.profit,
            'cumulative_revenue': self.cumulative_revenue,
            'cumulative_cost': self.cumulative_cost,
            'cumulative_profit': self.cumulative_profit,
            'attendance': self.attendance,
        }
