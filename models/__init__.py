"""Financial models for the event forecast engine."""

from .financial_model import (
    ForecastError,
    InvalidModelError,
    DurationUnit,
    StreamKind,
    GrowthLaw,
    AllocationMode,
    DistributionPolicy,
    AttendeeRole,
    RevenueStream,
    CostAttribution,
    CostCategory,
    GrowthConfig,
    EventCosts,
    EventMetadata,
    MarketingChannel,
    MarketingConfig,
    FinancialModel,
    PeriodRecord
)
from .growth import resolve_growth
from .marketing import allocate_budget, MarketingAllocator
from .projection import (
    RevenueCalculator,
    CostCalculator,
    PeriodProjector,
    PeriodProjection,
    ForecastSummary,
    generate_forecast,
    forecast_frame,
    summarize_forecast
)
from .records import (
    SCHEMA_VERSION,
    ModelDefaults,
    ModelRecord,
    migrate_record,
    model_from_record,
    model_to_record
)

__all__ = [
    'ForecastError',
    'InvalidModelError',
    'DurationUnit',
    'StreamKind',
    'GrowthLaw',
    'AllocationMode',
    'DistributionPolicy',
    'AttendeeRole',
    'RevenueStream',
    'CostAttribution',
    'CostCategory',
    'GrowthConfig',
    'EventCosts',
    'EventMetadata',
    'MarketingChannel',
    'MarketingConfig',
    'FinancialModel',
    'PeriodRecord',
    'resolve_growth',
    'allocate_budget',
    'MarketingAllocator',
    'RevenueCalculator',
    'CostCalculator',
    'PeriodProjector',
    'PeriodProjection',
    'ForecastSummary',
    'generate_forecast',
    'forecast_frame',
    'summarize_forecast',
    'SCHEMA_VERSION',
    'ModelDefaults',
    'ModelRecord',
    'migrate_record',
    'model_from_record',
    'model_to_record'
]
