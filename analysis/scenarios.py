"""
Scenario Engine for the Event Forecast Model

Builds what-if variants of a baseline model and compares their forecasts:
- ScenarioParameterDeltas: relative changes to marketing, pricing,
  attendance growth and cost assumptions
- apply_scenario_deltas: builds a new model from a baseline plus deltas
- compare_forecasts: baseline-vs-scenario deltas of the summary metrics
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from models.financial_model import (
    AllocationMode,
    AttendeeRole,
    CostAttribution,
    FinancialModel,
)
from models.projection import ForecastSummary, generate_forecast, summarize_forecast

logger = logging.getLogger(__name__)

# Per-attendee components affected by the pricing delta
PRICED_ROLES = (AttendeeRole.TICKET, AttendeeRole.FOOD_BEVERAGE, AttendeeRole.MERCHANDISE)


def _delta(value: Any) -> float:
    """Coerce a delta to a finite float; anything malformed is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _scale(value: float, percent: float) -> float:
    # Cuts of 100% or more floor at zero
    return value * max(0.0, 1 + percent / 100)


@dataclass
class ScenarioParameterDeltas:
    """
    Relative changes applied to a baseline model. All values are percents.

    cogs_percent scales COGS percentages and staff cost per person;
    attendance_growth_percent is added to the attendance growth rate in
    percentage points.
    """
    marketing_spend_percent: float = 0.0
    marketing_spend_by_channel: Dict[str, float] = field(default_factory=dict)
    pricing_percent: float = 0.0
    attendance_growth_percent: float = 0.0
    cogs_percent: float = 0.0

    def __post_init__(self):
        self.marketing_spend_percent = _delta(self.marketing_spend_percent)
        self.pricing_percent = _delta(self.pricing_percent)
        self.attendance_growth_percent = _delta(self.attendance_growth_percent)
        self.cogs_percent = _delta(self.cogs_percent)
        channels = self.marketing_spend_by_channel
        if not isinstance(channels, Mapping):
            channels = {}
        self.marketing_spend_by_channel = {str(k): _delta(v) for k, v in channels.items()}

    @classmethod
    def from_record(cls, record: Optional[Mapping]) -> 'ScenarioParameterDeltas':
        """Read deltas stored with a scenario (camelCase keys)."""
        record = record if isinstance(record, Mapping) else {}
        return cls(
            marketing_spend_percent=record.get('marketingSpendPercent'),
            marketing_spend_by_channel=record.get('marketingSpendByChannel') or {},
            pricing_percent=record.get('pricingPercent'),
            attendance_growth_percent=record.get('attendanceGrowthPercent'),
            cogs_percent=record.get('cogsMultiplier'),
        )

    def to_record(self) -> Dict:
        return {
            'marketingSpendPercent': self.marketing_spend_percent,
            'marketingSpendByChannel': dict(self.marketing_spend_by_channel),
            'pricingPercent': self.pricing_percent,
            'attendanceGrowthPercent': self.attendance_growth_percent,
            'cogsMultiplier': self.cogs_percent,
        }

    @property
    def is_zero(self) -> bool:
        return not (self.marketing_spend_percent or self.pricing_percent
                    or self.attendance_growth_percent or self.cogs_percent
                    or any(self.marketing_spend_by_channel.values()))


def _apply_marketing(model: FinancialModel, deltas: ScenarioParameterDeltas) -> FinancialModel:
    marketing = model.marketing
    global_pct = deltas.marketing_spend_percent
    per_channel = {k: v for k, v in deltas.marketing_spend_by_channel.items() if v}
    if not global_pct and not per_channel:
        return model

    if marketing.mode is AllocationMode.PER_CHANNEL:
        channels = []
        for channel in marketing.channels:
            budget = channel.budget
            if global_pct:
                budget = _scale(budget, global_pct)
            if channel.id in per_channel:
                budget = _scale(budget, per_channel[channel.id])
            logger.debug("Channel %s budget %.2f -> %.2f", channel.name, channel.budget, budget)
            channels.append(replace(channel, budget=budget))
        marketing = replace(marketing, channels=tuple(channels))
    elif global_pct:
        total = _scale(marketing.total_budget, global_pct)
        logger.debug("Marketing budget %.2f -> %.2f", marketing.total_budget, total)
        marketing = replace(marketing, total_budget=total)

    return replace(model, marketing=marketing)


def _apply_pricing(model: FinancialModel, deltas: ScenarioParameterDeltas) -> FinancialModel:
    pct = deltas.pricing_percent
    if not pct:
        return model

    streams = tuple(replace(s, value=_scale(s.value, pct)) for s in model.revenue_streams)
    model = replace(model, revenue_streams=streams)

    if model.event is not None:
        per_attendee = dict(model.event.per_attendee)
        for role in PRICED_ROLES:
            if role in per_attendee:
                per_attendee[role] = _scale(per_attendee[role], pct)
        model = replace(model, event=replace(model.event, per_attendee=per_attendee))
    logger.debug("Pricing changed by %s%%", pct)
    return model


def _apply_attendance(model: FinancialModel, deltas: ScenarioParameterDeltas) -> FinancialModel:
    pct = deltas.attendance_growth_percent
    if not pct:
        return model
    if model.event is None:
        logger.debug("Attendance delta ignored: %r is not attendance-driven", model.name)
        return model

    growth = model.growth
    # Percentage points, added to the decimal rate
    rate = growth.attendance_rate + pct / 100
    logger.debug("Attendance growth %.4f -> %.4f", growth.attendance_rate, rate)
    growth = replace(growth, attendance_rate=rate, use_spend_growth=True)
    return replace(model, growth=growth)


def _apply_costs(model: FinancialModel, deltas: ScenarioParameterDeltas) -> FinancialModel:
    pct = deltas.cogs_percent
    if not pct:
        return model

    categories = []
    for category in model.cost_categories:
        if category.attribution is not None:
            attribution = CostAttribution(category.attribution.role,
                                          _scale(category.attribution.percentage, pct))
            category = replace(category, attribution=attribution)
        categories.append(category)
    model = replace(model, cost_categories=tuple(categories))

    if model.event is not None:
        costs = model.event.costs
        cogs = {role: _scale(p, pct) for role, p in costs.cogs_percentages.items()}
        staff_cost = costs.staff_cost_per_person
        if staff_cost is not None:
            staff_cost = _scale(staff_cost, pct)
        costs = replace(costs, cogs_percentages=cogs, staff_cost_per_person=staff_cost)
        model = replace(model, event=replace(model.event, costs=costs))
    logger.debug("Costs changed by %s%%", pct)
    return model


def apply_scenario_deltas(baseline: FinancialModel,
                          deltas: ScenarioParameterDeltas,
                          name: Optional[str] = None) -> FinancialModel:
    """
    Build a scenario model from a baseline and parameter deltas.

    Deltas are applied in a fixed order: marketing, pricing, attendance,
    costs. Zero deltas are skipped. Models are immutable, so the baseline
    is never modified and the result is always a new instance.
    """
    if not isinstance(deltas, ScenarioParameterDeltas):
        deltas = ScenarioParameterDeltas.from_record(deltas)

    model = replace(baseline)
    for step in (_apply_marketing, _apply_pricing, _apply_attendance, _apply_costs):
        model = step(model, deltas)

    if name is not None:
        model = replace(model, name=name)
    return model


@dataclass
class ScenarioComparison:
    """Scenario minus baseline for the summary metrics."""
    revenue_delta: float = 0.0
    revenue_delta_percent: float = 0.0
    costs_delta: float = 0.0
    costs_delta_percent: float = 0.0
    profit_delta: float = 0.0
    profit_delta_percent: float = 0.0
    margin_delta: float = 0.0  # percentage points
    break_even_delta: int = 0  # periods


def _percent_change(delta: float, base: float) -> float:
    return delta / base * 100 if base != 0 else 0.0


def compare_forecasts(baseline: ForecastSummary, scenario: ForecastSummary) -> ScenarioComparison:
    """
    Compare two forecast summaries.

    When only one side breaks even, the break-even delta is the negated
    scenario period (scenario breaks even, baseline never does) or the
    baseline period (baseline breaks even, scenario never does).
    """
    revenue_delta = scenario.total_revenue - baseline.total_revenue
    costs_delta = scenario.total_cost - baseline.total_cost
    profit_delta = scenario.total_profit - baseline.total_profit

    base_be = baseline.break_even_period
    scen_be = scenario.break_even_period
    if base_be is not None and scen_be is not None:
        break_even_delta = scen_be - base_be
    elif scen_be is not None:
        break_even_delta = -scen_be
    elif base_be is not None:
        break_even_delta = base_be
    else:
        break_even_delta = 0

    return ScenarioComparison(
        revenue_delta=revenue_delta,
        revenue_delta_percent=_percent_change(revenue_delta, baseline.total_revenue),
        costs_delta=costs_delta,
        costs_delta_percent=_percent_change(costs_delta, baseline.total_cost),
        profit_delta=profit_delta,
        profit_delta_percent=_percent_change(profit_delta, baseline.total_profit),
        margin_delta=scenario.profit_margin - baseline.profit_margin,
        break_even_delta=break_even_delta,
    )


def compare_models(baseline: FinancialModel, scenario: FinancialModel) -> ScenarioComparison:
    """Forecast both models and compare their summaries."""
    return compare_forecasts(summarize_forecast(generate_forecast(baseline)),
                             summarize_forecast(generate_forecast(scenario)))


def comparison_frame(baseline: FinancialModel, scenario: FinancialModel) -> pd.DataFrame:
    """Side-by-side per-period forecast of a baseline and a scenario."""
    base = {r.period: r for r in generate_forecast(baseline)}
    scen = {r.period: r for r in generate_forecast(scenario)}

    results = []
    for period in sorted(set(base) | set(scen)):
        b, s = base.get(period), scen.get(period)
        results.append({
            'period': period,
            'label': (b or s).label,
            'baseline_revenue': b.revenue if b else 0,
            'scenario_revenue': s.revenue if s else 0,
            'baseline_cost': b.cost if b else 0,
            'scenario_cost': s.cost if s else 0,
            'baseline_profit': b.profit if b else 0,
            'scenario_profit': s.profit if s else 0,
        })

    df = pd.DataFrame(results)
    if not df.empty:
        df['profit_delta'] = df['scenario_profit'] - df['baseline_profit']
    return df
