"""
Scenario Aggregation for the Event Forecast Model

Forecasts a set of models (a baseline and its scenario variants) and
summarizes them together:
- Per-scenario revenue, costs, profit and margin
- Primary scenario selection
- Min / max / average / median per metric across scenarios
- Variance classification, key differences and risk factors
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from models.financial_model import FinancialModel
from models.projection import generate_forecast, summarize_forecast

logger = logging.getLogger(__name__)

LOW = 'Low'
MEDIUM = 'Medium'
HIGH = 'High'
_VARIANCE_RANK = {LOW: 0, MEDIUM: 1, HIGH: 2}

LABEL_KEYWORDS = [
    ('Conservative', ('conserv', 'worst', 'low', 'minimum')),
    ('Optimistic', ('optimist', 'best', 'high', 'maximum')),
    ('Realistic', ('realist', 'base', 'likely', 'expected')),
]
CUSTOM_LABEL = 'Custom'
PRIMARY_LABEL = 'Realistic'


@dataclass
class AnalysisParameters:
    """Thresholds used when classifying a scenario set."""
    low_variance_pct: float = 20.0  # spread below this is Low
    medium_variance_pct: float = 50.0  # spread below this is Medium
    marketing_revenue_ratio: float = 0.5  # marketing above this share of revenue is a risk


@dataclass
class ScenarioMetrics:
    min: float = 0.0
    max: float = 0.0
    average: float = 0.0
    median: float = 0.0
    primary: float = 0.0


@dataclass
class ScenarioAssumptions:
    revenue_streams: int = 0
    cost_categories: int = 0
    growth_rate: float = 0.0
    marketing_budget: float = 0.0


@dataclass
class ScenarioSummary:
    model_id: Optional[str]
    name: str
    label: str
    revenue: float
    costs: float
    profit: float
    profit_margin: float
    assumptions: ScenarioAssumptions
    description: Optional[str] = None


@dataclass
class ScenarioAnalysis:
    """Result of aggregating a set of scenario models."""
    scenarios: List[ScenarioSummary] = field(default_factory=list)
    primary_index: Optional[int] = None
    aggregate_metrics: Dict[str, ScenarioMetrics] = field(default_factory=dict)
    variance: str = LOW
    variance_percent: float = 0.0
    key_differences: List[str] = field(default_factory=list)
    risk_factors: List[str] = field(default_factory=list)

    @property
    def has_multiple_models(self) -> bool:
        return len(self.scenarios) > 1

    @property
    def primary(self) -> Optional[ScenarioSummary]:
        if self.primary_index is None:
            return None
        return self.scenarios[self.primary_index]

    @property
    def primary_model_id(self) -> Optional[str]:
        primary = self.primary
        return primary.model_id if primary else None


def detect_scenario_label(name: str) -> str:
    """Conservative / Optimistic / Realistic from keywords in a scenario name."""
    lowered = (name or '').lower()
    for label, keywords in LABEL_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return label
    return CUSTOM_LABEL


def variance_level(min_value: float, max_value: float,
                   params: Optional[AnalysisParameters] = None) -> str:
    """
    Classify the spread between two bounds, relative to the smaller one.

    The bounds may come in either order. Equal values are Low. A range that
    touches or crosses zero (zero minimum, or a sign change) is High.
    """
    params = params or AnalysisParameters()
    min_value, max_value = sorted((min_value, max_value))
    if max_value == min_value:
        return LOW
    if min_value == 0 or min_value < 0 < max_value:
        return HIGH

    spread_pct = (max_value - min_value) / abs(min_value) * 100
    if spread_pct < params.low_variance_pct:
        return LOW
    if spread_pct < params.medium_variance_pct:
        return MEDIUM
    return HIGH


def _worst(*levels: str) -> str:
    return max(levels, key=_VARIANCE_RANK.__getitem__)


def _sort_time(model: FinancialModel) -> datetime:
    modified = model.last_modified()
    if modified is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if modified.tzinfo is None:
        return modified.replace(tzinfo=timezone.utc)
    return modified


def select_primary(models: Sequence[FinancialModel]) -> Optional[FinancialModel]:
    """
    The scenario to report as primary: the first one labelled Realistic,
    otherwise the most recently updated (the first one on ties).
    """
    if not models:
        return None
    for model in models:
        if detect_scenario_label(model.name) == PRIMARY_LABEL:
            return model
    latest = models[0]
    for model in models[1:]:
        if _sort_time(model) > _sort_time(latest):
            latest = model
    return latest


def scenario_metrics(values: Sequence[float], primary: float) -> ScenarioMetrics:
    if len(values) == 0:
        return ScenarioMetrics(primary=primary)
    arr = np.asarray(values, dtype=float)
    return ScenarioMetrics(
        min=float(arr.min()),
        max=float(arr.max()),
        average=float(arr.mean()),
        median=float(np.median(arr)),
        primary=primary,
    )


def _growth_rate(model: FinancialModel) -> float:
    if model.attendance_driven:
        return model.growth.attendance_rate
    return model.growth.rate


def summarize_scenario(model: FinancialModel) -> ScenarioSummary:
    summary = summarize_forecast(generate_forecast(model))
    margin = summary.total_profit / summary.total_revenue * 100 \
        if summary.total_revenue > 0 else 0.0
    return ScenarioSummary(
        model_id=model.id,
        name=model.name,
        description=model.description,
        label=detect_scenario_label(model.name),
        revenue=summary.total_revenue,
        costs=summary.total_cost,
        profit=summary.total_profit,
        profit_margin=round(margin, 2),
        assumptions=ScenarioAssumptions(
            revenue_streams=len(model.revenue_streams),
            cost_categories=len(model.cost_categories),
            growth_rate=_growth_rate(model),
            marketing_budget=model.marketing.planned_budget(),
        ),
    )


def identify_key_differences(scenarios: Sequence[ScenarioSummary],
                             params: Optional[AnalysisParameters] = None) -> List[str]:
    """Input dimensions whose spread across scenarios is not Low."""
    if len(scenarios) < 2:
        return []

    dimensions = [
        ('Revenue projections', [s.revenue for s in scenarios]),
        ('Cost assumptions', [s.costs for s in scenarios]),
        ('Growth models', [s.assumptions.growth_rate for s in scenarios]),
        ('Marketing spend', [s.assumptions.marketing_budget for s in scenarios]),
    ]
    return [
        name for name, values in dimensions
        if variance_level(min(values), max(values), params) != LOW
    ]


def identify_risk_factors(scenarios: Sequence[ScenarioSummary],
                          variance: str,
                          profit: ScenarioMetrics,
                          params: Optional[AnalysisParameters] = None) -> List[str]:
    params = params or AnalysisParameters()
    risks = []
    if variance == HIGH:
        risks.append('High variance between scenarios')
    if profit.min < 0:
        risks.append('Potential for losses in worst case')
    if any(s.assumptions.marketing_budget > s.revenue * params.marketing_revenue_ratio
           for s in scenarios):
        risks.append('High marketing spend relative to revenue')
    return risks


def aggregate_scenarios(models: Sequence[FinancialModel],
                        params: Optional[AnalysisParameters] = None) -> ScenarioAnalysis:
    """
    Forecast every model and summarize the set.

    An empty set yields an empty analysis with Low variance.
    """
    params = params or AnalysisParameters()
    models = list(models)
    if not models:
        return ScenarioAnalysis()

    scenarios = [summarize_scenario(model) for model in models]
    primary_model = select_primary(models)
    primary_index = next(i for i, m in enumerate(models) if m is primary_model)
    primary = scenarios[primary_index]

    metrics = {
        'revenue': scenario_metrics([s.revenue for s in scenarios], primary.revenue),
        'costs': scenario_metrics([s.costs for s in scenarios], primary.costs),
        'profit': scenario_metrics([s.profit for s in scenarios], primary.profit),
        'profit_margin': scenario_metrics([s.profit_margin for s in scenarios],
                                          primary.profit_margin),
    }

    revenue, profit = metrics['revenue'], metrics['profit']
    variance = _worst(
        variance_level(revenue.min, revenue.max, params),
        variance_level(profit.min, profit.max, params),
    )
    variance_percent = (revenue.max - revenue.min) / revenue.min * 100 \
        if revenue.min > 0 else 0.0

    analysis = ScenarioAnalysis(
        scenarios=scenarios,
        primary_index=primary_index,
        aggregate_metrics=metrics,
        variance=variance,
        variance_percent=round(variance_percent, 2),
        key_differences=identify_key_differences(scenarios, params),
        risk_factors=identify_risk_factors(scenarios, variance, profit, params),
    )
    logger.debug("Aggregated %d scenarios: variance=%s (%.2f%%)",
                 len(scenarios), variance, analysis.variance_percent)
    return analysis


def scenario_frame(analysis: ScenarioAnalysis) -> pd.DataFrame:
    """One row per scenario, primary flagged."""
    return pd.DataFrame([
        {
            'name': s.name,
            'label': s.label,
            'revenue': s.revenue,
            'costs': s.costs,
            'profit': s.profit,
            'profit_margin': s.profit_margin,
            'growth_rate': s.assumptions.growth_rate,
            'marketing_budget': s.assumptions.marketing_budget,
            'primary': i == analysis.primary_index,
        }
        for i, s in enumerate(analysis.scenarios)
    ])
