"""
Event Forecast Engine - Period Projection

Implements the period-by-period simulation:
- Attendance and per-attendee revenue
- Revenue streams grown by the model's growth law
- Attribution (COGS), category, staff, management and marketing costs
- The forecast time series with cumulative totals
- Forecast summary metrics and baseline/scenario comparison
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from .financial_model import (
    AttendeeRole,
    FinancialModel,
    PeriodRecord,
    StreamKind,
)
from .growth import resolve_growth
from .marketing import MarketingAllocator

logger = logging.getLogger(__name__)

FORECAST_COLUMNS = [
    'period', 'label', 'revenue', 'cost', 'profit',
    'cumulative_revenue', 'cumulative_cost', 'cumulative_profit', 'attendance',
]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ceil(value: float) -> int:
    # Drop float noise first so 1100.0000000000002 stays 1100
    return int(math.ceil(round(value, 6)))


@dataclass
class PeriodProjection:
    """Raw (unrounded) figures for one period."""
    period: int
    revenue: float
    cost: float
    attendance: Optional[int] = None
    revenue_breakdown: Dict[str, float] = field(default_factory=dict)
    cost_breakdown: Dict[str, float] = field(default_factory=dict)

    @property
    def profit(self) -> float:
        return self.revenue - self.cost


class RevenueCalculator:
    """Calculates attendance and revenue for a period."""

    def __init__(self, model: FinancialModel):
        self.model = model
        self.growth = model.growth

    def _grow(self, base: float, period: int, rate: float) -> float:
        return resolve_growth(base, period - 1, self.growth.law, rate,
                              self.growth.seasonal_factors)

    def calculate_attendance(self, period: int) -> Optional[int]:
        """Attendance for a period, None for models that are not attendance-driven."""
        event = self.model.event
        if event is None:
            return None
        if event.initial_attendance is None:
            return 0
        if period == 1:
            return _round_half_up(event.initial_attendance)
        return _round_half_up(
            self._grow(event.initial_attendance, period, self.growth.attendance_rate)
        )

    def calculate_spend(self, role: AttendeeRole, period: int) -> float:
        """Per-attendee spend for a role, grown when spend growth is enabled."""
        base = self.model.event.spend(role)
        if not self.growth.use_spend_growth:
            return base
        return self._grow(base, period, self.growth.spend_rate(role))

    def calculate_attendee_revenue(self, period: int, attendance: int) -> Dict[AttendeeRole, float]:
        """Revenue per attendee role: grown per-unit spend times attendance."""
        if self.model.event is None:
            return {}
        return {
            role: self.calculate_spend(role, period) * attendance
            for role in AttendeeRole
        }

    def calculate_stream_revenue(self, period: int) -> Dict[str, float]:
        """Revenue from streams not driven by attendance."""
        skip_roles = self.model.attendance_driven
        revenue = {}
        for stream in self.model.revenue_streams:
            if skip_roles and stream.per_attendee:
                continue
            value = self._grow(stream.value, period, self.growth.rate)
            revenue[stream.name] = revenue.get(stream.name, 0.0) + value
        return revenue


class CostCalculator:
    """Calculates the cost composition for a period."""

    def __init__(self, model: FinancialModel):
        self.model = model
        self.growth = model.growth
        self.marketing = MarketingAllocator(model.marketing, model.duration)

    def calculate_attributed_costs(self,
                                   attendee_revenue: Dict[AttendeeRole, float]) -> Dict[str, float]:
        """COGS-style costs: attributed revenue * percentage / 100."""
        costs = {}
        event = self.model.event
        if event is not None:
            for role, percentage in event.costs.cogs_percentages.items():
                if percentage:
                    costs[f"{role.value}_cogs"] = attendee_revenue.get(role, 0.0) * percentage / 100

        for category in self.model.cost_categories:
            attribution = category.attribution
            if attribution is None:
                continue
            amount = attendee_revenue.get(attribution.role, 0.0) * attribution.percentage / 100
            costs[category.name] = costs.get(category.name, 0.0) + amount
        return costs

    def calculate_category_costs(self, period: int) -> Dict[str, float]:
        """Fixed, recurring, setup and variable category costs."""
        duration = self.model.duration
        costs = {}
        for category in self.model.cost_categories:
            if category.attribution is not None:
                continue

            if category.is_setup:
                if category.amortized:
                    amount = category.value / duration
                else:
                    amount = category.value if period == 1 else 0.0
            elif category.kind is StreamKind.FIXED:
                amount = category.value if period == 1 else 0.0
            elif category.kind is StreamKind.VARIABLE:
                amount = resolve_growth(category.value, period - 1, self.growth.law,
                                        self.growth.rate, self.growth.seasonal_factors)
            else:
                amount = category.value

            costs[category.name] = costs.get(category.name, 0.0) + amount
        return costs

    def calculate_staff_cost(self) -> float:
        event = self.model.event
        if event is None:
            return 0.0
        staff_count = event.costs.staff_count
        cost_per_staff = event.costs.staff_cost_per_person
        if not staff_count or not cost_per_staff:
            return 0.0
        return staff_count * cost_per_staff

    def calculate_management_cost(self) -> float:
        event = self.model.event
        return event.costs.management_cost if event is not None else 0.0

    def calculate_marketing_cost(self, period: int) -> float:
        return self.marketing.period_cost(period)


class PeriodProjector:
    """Projects revenue, cost and attendance for single periods of a model."""

    def __init__(self, model: FinancialModel):
        self.model = model
        self.revenue_calc = RevenueCalculator(model)
        self.cost_calc = CostCalculator(model)

        if model.event is not None and model.event.initial_attendance is None:
            logger.warning("Model %r is attendance-driven but has no initial attendance; "
                           "attendee revenue will be zero", model.name)

    def project(self, period: int) -> PeriodProjection:
        attendance = self.revenue_calc.calculate_attendance(period)

        attendee_revenue = self.revenue_calc.calculate_attendee_revenue(period, attendance or 0)
        stream_revenue = self.revenue_calc.calculate_stream_revenue(period)

        revenue_breakdown = {role.value: amount for role, amount in attendee_revenue.items()}
        for name, amount in stream_revenue.items():
            revenue_breakdown[name] = revenue_breakdown.get(name, 0.0) + amount

        cost_breakdown = self.cost_calc.calculate_attributed_costs(attendee_revenue)
        for name, amount in self.cost_calc.calculate_category_costs(period).items():
            cost_breakdown[name] = cost_breakdown.get(name, 0.0) + amount

        staff_cost = self.cost_calc.calculate_staff_cost()
        if staff_cost:
            cost_breakdown['staff'] = staff_cost
        management_cost = self.cost_calc.calculate_management_cost()
        if management_cost:
            cost_breakdown['management'] = management_cost
        marketing_cost = self.cost_calc.calculate_marketing_cost(period)
        if marketing_cost:
            cost_breakdown['marketing'] = marketing_cost

        projection = PeriodProjection(
            period=period,
            revenue=sum(revenue_breakdown.values()),
            cost=sum(cost_breakdown.values()),
            attendance=attendance,
            revenue_breakdown=revenue_breakdown,
            cost_breakdown=cost_breakdown,
        )
        logger.debug("%s: attendance=%s revenue=%.2f cost=%.2f",
                     self.model.period_label(period), attendance,
                     projection.revenue, projection.cost)
        return projection


def generate_forecast(model: FinancialModel) -> List[PeriodRecord]:
    """
    Generate the forecast time series for a model, one record per period.

    Period revenue, cost and profit are rounded up to whole units before
    they are added to the running totals. Any failure while projecting is
    logged once and yields an empty list.
    """
    try:
        projector = PeriodProjector(model)
        records = []
        cumulative_revenue = 0
        cumulative_cost = 0
        cumulative_profit = 0

        for period in range(1, model.duration + 1):
            projection = projector.project(period)
            revenue = _ceil(projection.revenue)
            cost = _ceil(projection.cost)
            profit = _ceil(projection.profit)

            cumulative_revenue += revenue
            cumulative_cost += cost
            cumulative_profit += profit

            records.append(PeriodRecord(
                period=period,
                label=model.period_label(period),
                revenue=revenue,
                cost=cost,
                profit=profit,
                cumulative_revenue=cumulative_revenue,
                cumulative_cost=cumulative_cost,
                cumulative_profit=cumulative_profit,
                attendance=projection.attendance,
            ))
        return records
    except Exception:
        logger.exception("Forecast failed for model %r", getattr(model, 'name', None))
        return []


def forecast_frame(records: List[PeriodRecord]) -> pd.DataFrame:
    """Forecast records as a DataFrame, one row per period."""
    return pd.DataFrame([r.as_dict() for r in records], columns=FORECAST_COLUMNS)


@dataclass
class ForecastSummary:
    """Totals and averages over a forecast."""
    total_revenue: float = 0
    total_cost: float = 0
    total_profit: float = 0
    profit_margin: float = 0.0  # % of revenue
    break_even_period: Optional[int] = None
    break_even_label: str = 'N/A'
    average_revenue: float = 0.0
    average_cost: float = 0.0
    average_profit: float = 0.0
    periods: int = 0


def summarize_forecast(records: List[PeriodRecord]) -> ForecastSummary:
    """Summarize a forecast. An empty forecast summarizes to zeros."""
    if not records:
        return ForecastSummary()

    last = records[-1]
    periods = len(records)

    break_even = next((r for r in records if r.cumulative_profit >= 0), None)
    margin = (last.cumulative_profit / last.cumulative_revenue * 100) \
        if last.cumulative_revenue > 0 else 0.0

    return ForecastSummary(
        total_revenue=last.cumulative_revenue,
        total_cost=last.cumulative_cost,
        total_profit=last.cumulative_profit,
        profit_margin=margin,
        break_even_period=break_even.period if break_even else None,
        break_even_label=break_even.label if break_even else 'N/A',
        average_revenue=sum(r.revenue for r in records) / periods,
        average_cost=sum(r.cost for r in records) / periods,
        average_profit=sum(r.profit for r in records) / periods,
        periods=periods,
    )
