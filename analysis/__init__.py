"""Scenario analysis tools for the event forecast engine."""

from .scenarios import (
    ScenarioParameterDeltas,
    ScenarioComparison,
    apply_scenario_deltas,
    compare_forecasts,
    compare_models,
    comparison_frame
)
from .aggregation import (
    AnalysisParameters,
    ScenarioMetrics,
    ScenarioAssumptions,
    ScenarioSummary,
    ScenarioAnalysis,
    detect_scenario_label,
    variance_level,
    select_primary,
    aggregate_scenarios,
    scenario_frame
)

__all__ = [
    'ScenarioParameterDeltas',
    'ScenarioComparison',
    'apply_scenario_deltas',
    'compare_forecasts',
    'compare_models',
    'comparison_frame',
    'AnalysisParameters',
    'ScenarioMetrics',
    'ScenarioAssumptions',
    'ScenarioSummary',
    'ScenarioAnalysis',
    'detect_scenario_label',
    'variance_level',
    'select_primary',
    'aggregate_scenarios',
    'scenario_frame'
]
