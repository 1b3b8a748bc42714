from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest
from hypothesis import given, strategies as st

from models.financial_model import (
    AllocationMode,
    CostCategory,
    FinancialModel,
    GrowthConfig,
    MarketingConfig,
    RevenueStream,
)
from analysis.aggregation import (
    AnalysisParameters,
    aggregate_scenarios,
    detect_scenario_label,
    identify_key_differences,
    scenario_frame,
    scenario_metrics,
    select_primary,
    summarize_scenario,
    variance_level,
)


def _model(name: str, revenue: float, cost: float, **kwargs) -> FinancialModel:
    return FinancialModel(
        name=name,
        duration=4,
        revenue_streams=(RevenueStream("Sales", revenue),),
        cost_categories=(CostCategory("Running", cost),),
        **kwargs,
    )


@pytest.mark.parametrize("name, label", [
    ("Conservative case", "Conservative"),
    ("Worst-case Q3", "Conservative"),
    ("Optimistic", "Optimistic"),
    ("Best guess", "Optimistic"),
    ("Realistic plan", "Realistic"),
    ("Base", "Realistic"),
    ("Expected attendance", "Realistic"),
    ("Summer series", "Custom"),
    ("", "Custom"),
])
def test_detect_scenario_label(name: str, label: str) -> None:
    assert detect_scenario_label(name) == label


@pytest.mark.parametrize("low, high, level", [
    (100, 100, "Low"),
    (100, 119, "Low"),
    (100, 120, "Medium"),
    (100, 149, "Medium"),
    (100, 150, "High"),
    (0, 10, "High"),
    (0, 0, "Low"),
    (150, 100, "High"),
    (119, 100, "Low"),
    (-1000, 1000, "High"),
    (1000, -1000, "High"),
    (-1000, -900, "Low"),
])
def test_variance_level_thresholds(low: float, high: float, level: str) -> None:
    assert variance_level(low, high) == level


def test_variance_level_custom_thresholds() -> None:
    params = AnalysisParameters(low_variance_pct=5.0, medium_variance_pct=10.0)
    assert variance_level(100, 108, params) == "Medium"
    assert variance_level(100, 111, params) == "High"


def test_scenario_metrics_stats() -> None:
    metrics = scenario_metrics([10.0, 40.0, 20.0, 30.0], primary=20.0)

    assert metrics.min == 10.0
    assert metrics.max == 40.0
    assert metrics.average == pytest.approx(25.0)
    assert metrics.median == pytest.approx(25.0)
    assert metrics.primary == 20.0
    assert scenario_metrics([], primary=5.0).max == 0.0


def test_primary_prefers_realistic() -> None:
    models = [_model("Optimistic", 100, 10), _model("Realistic", 100, 10), _model("Base", 100, 10)]
    assert select_primary(models) is models[1]


def test_primary_falls_back_to_latest_update() -> None:
    older = _model("Plan A", 100, 10, updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    newer = _model("Plan B", 100, 10, created_at=datetime(2024, 2, 1))
    undated = _model("Plan C", 100, 10)

    assert select_primary([older, newer, undated]) is newer
    assert select_primary([undated, _model("Plan D", 1, 1)]).name == "Plan C"
    assert select_primary([]) is None


@given(revenue=st.floats(min_value=1.0, max_value=1e5, allow_nan=False, allow_infinity=False),
       cost=st.floats(min_value=0.0, max_value=1e5, allow_nan=False, allow_infinity=False))
def test_identical_scenarios_have_low_variance(revenue: float, cost: float) -> None:
    analysis = aggregate_scenarios([_model("Copy 1", revenue, cost), _model("Copy 2", revenue, cost)])

    assert analysis.variance == "Low"
    assert analysis.variance_percent == 0
    assert analysis.key_differences == []


def test_aggregate_three_scenarios() -> None:
    models = [
        _model("Conservative", 1000, 900, id="c"),
        _model("Realistic", 1500, 950, id="r"),
        _model("Optimistic", 2500, 1000, id="o"),
    ]
    analysis = aggregate_scenarios(models)

    assert analysis.has_multiple_models
    assert analysis.primary_model_id == "r"
    assert [s.label for s in analysis.scenarios] == ["Conservative", "Realistic", "Optimistic"]

    revenue = analysis.aggregate_metrics["revenue"]
    assert (revenue.min, revenue.max, revenue.median, revenue.primary) == (4000, 10000, 6000, 6000)
    assert revenue.average == pytest.approx(20000 / 3)

    # Revenue spread (10000 - 4000) / 4000
    assert analysis.variance == "High"
    assert analysis.variance_percent == 150.0
    assert "Revenue projections" in analysis.key_differences
    assert "Cost assumptions" not in analysis.key_differences
    assert analysis.risk_factors == ["High variance between scenarios"]

    # (6000 - 3800) / 6000
    assert analysis.scenarios[1].profit_margin == pytest.approx(36.67)


def test_profit_sign_change_is_high_variance() -> None:
    # Same revenue, profits of -1000 and +1000 over four periods
    models = [_model("Loss", 1000, 1250), _model("Gain", 1000, 750)]
    analysis = aggregate_scenarios(models)

    profit = analysis.aggregate_metrics["profit"]
    assert (profit.min, profit.max) == (-1000, 1000)
    assert analysis.variance_percent == 0.0
    assert analysis.variance == "High"


def test_risk_factors_for_losses_and_marketing() -> None:
    heavy_marketing = MarketingConfig(mode=AllocationMode.AGGREGATE, total_budget=3000.0)
    models = [
        _model("Realistic", 1000, 200, marketing=heavy_marketing),
        _model("Conservative", 1000, 1500),
    ]
    analysis = aggregate_scenarios(models)

    assert "Potential for losses in worst case" in analysis.risk_factors
    assert "High marketing spend relative to revenue" in analysis.risk_factors
    assert "Marketing spend" in analysis.key_differences


def test_growth_difference_detected() -> None:
    slow = _model("Slow", 1000, 100, growth=GrowthConfig(rate=0.01))
    fast = _model("Fast", 1000, 100, growth=GrowthConfig(rate=0.10))

    differences = identify_key_differences([summarize_scenario(slow), summarize_scenario(fast)])
    assert "Growth models" in differences


def test_attendance_models_report_attendance_growth(event_model: FinancialModel) -> None:
    assert summarize_scenario(event_model).assumptions.growth_rate == pytest.approx(0.05)


def test_empty_set() -> None:
    analysis = aggregate_scenarios([])

    assert analysis.scenarios == []
    assert analysis.variance == "Low"
    assert analysis.variance_percent == 0.0
    assert analysis.primary is None
    assert not analysis.has_multiple_models


def test_single_scenario() -> None:
    analysis = aggregate_scenarios([_model("Only", 100, 50)])

    assert not analysis.has_multiple_models
    assert analysis.primary.name == "Only"
    assert analysis.key_differences == []


def test_scenario_frame_flags_primary() -> None:
    models = [_model("Optimistic", 200, 10), _model("Realistic", 100, 10)]
    df = scenario_frame(aggregate_scenarios(models))

    assert list(df["name"]) == ["Optimistic", "Realistic"]
    assert list(df["primary"]) == [False, True]


def test_aggregation_does_not_mutate_models(event_model: FinancialModel) -> None:
    variant = replace(event_model, name="Optimistic")
    before = [event_model, variant]
    aggregate_scenarios(before)

    assert before[0] == event_model
    assert before[1].name == "Optimistic"
