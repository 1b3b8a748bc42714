from __future__ import annotations

import pytest
from hypothesis import HealthCheck, settings

from models.financial_model import (
    AllocationMode,
    AttendeeRole,
    CostAttribution,
    CostCategory,
    DistributionPolicy,
    DurationUnit,
    EventCosts,
    EventMetadata,
    FinancialModel,
    GrowthConfig,
    GrowthLaw,
    MarketingChannel,
    MarketingConfig,
    RevenueStream,
    StreamKind,
)

settings.register_profile(
    "forecast_stable",
    suppress_health_check=[HealthCheck.too_slow],
    deadline=None,
)

settings.load_profile("forecast_stable")


@pytest.fixture
def ticket_model() -> FinancialModel:
    """100 attendees growing 10% a week, $10 tickets, 3 weeks, nothing else."""
    return FinancialModel(
        name="Ticket only",
        duration=3,
        growth=GrowthConfig(law=GrowthLaw.EXPONENTIAL, attendance_rate=0.10),
        event=EventMetadata(
            initial_attendance=100,
            per_attendee={AttendeeRole.TICKET: 10.0},
        ),
    )


@pytest.fixture
def event_model() -> FinancialModel:
    """A weekly event with every cost source configured."""
    return FinancialModel(
        name="Friday Trivia Night",
        id="trivia",
        duration=12,
        duration_unit=DurationUnit.WEEKLY,
        revenue_streams=(
            RevenueStream("Ticket Sales", 0.0, role=AttendeeRole.TICKET),
            RevenueStream("F&B Sales", 0.0, role=AttendeeRole.FOOD_BEVERAGE),
            RevenueStream("Sponsorship", 200.0),
        ),
        cost_categories=(
            CostCategory("Venue Hire", 300.0, kind=StreamKind.RECURRING),
            CostCategory("Setup Costs", 1200.0, kind=StreamKind.RECURRING,
                         is_setup=True, amortized=True),
            CostCategory("Sound System", 500.0, kind=StreamKind.FIXED),
        ),
        growth=GrowthConfig(
            law=GrowthLaw.EXPONENTIAL,
            attendance_rate=0.05,
            spend_rates={AttendeeRole.TICKET: 0.02, AttendeeRole.FOOD_BEVERAGE: 0.01},
            use_spend_growth=True,
        ),
        event=EventMetadata(
            initial_attendance=120,
            per_attendee={
                AttendeeRole.TICKET: 15.0,
                AttendeeRole.FOOD_BEVERAGE: 12.0,
                AttendeeRole.MERCHANDISE: 3.0,
            },
            costs=EventCosts(
                cogs_percentages={
                    AttendeeRole.FOOD_BEVERAGE: 30.0,
                    AttendeeRole.MERCHANDISE: 50.0,
                },
                staff_count=4,
                staff_cost_per_person=120.0,
                management_cost=150.0,
            ),
        ),
        marketing=MarketingConfig(
            mode=AllocationMode.PER_CHANNEL,
            channels=(
                MarketingChannel("social", "Social Media", 1200.0),
                MarketingChannel("print", "Flyers", 400.0,
                                 distribution=DistributionPolicy.UPFRONT),
                MarketingChannel("radio", "Local Radio", 900.0,
                                 distribution=DistributionPolicy.SPREAD_CUSTOM,
                                 spread_length=3),
            ),
        ),
    )


@pytest.fixture
def monthly_model() -> FinancialModel:
    """A stream-based model with no attendance metadata."""
    return FinancialModel(
        name="Consulting Retainers",
        duration=6,
        duration_unit=DurationUnit.MONTHLY,
        revenue_streams=(
            RevenueStream("Retainers", 5000.0),
            RevenueStream("Workshops", 1000.0, kind=StreamKind.VARIABLE),
        ),
        cost_categories=(
            CostCategory("Office", 2000.0),
            CostCategory("Equipment", 3000.0, kind=StreamKind.FIXED),
            CostCategory("Contractors", 1000.0, kind=StreamKind.VARIABLE),
        ),
        growth=GrowthConfig(law=GrowthLaw.LINEAR, rate=0.05),
        marketing=MarketingConfig(
            mode=AllocationMode.AGGREGATE,
            total_budget=600.0,
            distribution=DistributionPolicy.SPREAD_EVENLY,
        ),
    )


@pytest.fixture
def attribution_model() -> FinancialModel:
    """F&B revenue of $500 per period with a 30% COGS attribution category."""
    return FinancialModel(
        name="Bar",
        duration=2,
        cost_categories=(
            CostCategory("F&B COGS", 0.0, kind=StreamKind.VARIABLE,
                         attribution=CostAttribution(AttendeeRole.FOOD_BEVERAGE, 30.0)),
        ),
        event=EventMetadata(
            initial_attendance=50,
            per_attendee={AttendeeRole.FOOD_BEVERAGE: 10.0},
        ),
    )


@pytest.fixture
def v1_record() -> dict:
    """A model record in the legacy storage layout."""
    return {
        "id": "m-1",
        "name": "Saturday Market - Base Case",
        "createdAt": "2024-03-01T10:00:00Z",
        "updatedAt": "2024-03-05T12:30:00Z",
        "assumptions": {
            "revenue": [
                {"name": "Ticket Sales", "value": 0, "type": "recurring"},
                {"name": "F&B Sales", "value": 0, "type": "recurring"},
                {"name": "Merchandise Sales", "value": 0, "type": "recurring"},
            ],
            "costs": [
                {"name": "Setup Costs", "value": 1200, "type": "recurring"},
                {"name": "Venue", "value": 250, "type": "recurring"},
                {"name": "F&B COGS", "value": 0, "type": "variable"},
            ],
            "growthModel": {"type": "exponential", "rate": 0.05},
            "metadata": {
                "type": "WeeklyEvent",
                "weeks": 8,
                "initialWeeklyAttendance": 200,
                "perCustomer": {
                    "ticketPrice": 8,
                    "fbSpend": 6,
                    "merchandiseSpend": 2,
                },
                "growth": {
                    "attendanceGrowthRate": 5,
                    "useCustomerSpendGrowth": True,
                    "ticketPriceGrowth": 2,
                    "fbSpendGrowth": 1,
                },
                "costs": {
                    "fbCOGSPercent": 30,
                    "merchandiseCogsPercent": 50,
                    "staffCount": 3,
                    "staffCostPerPerson": 100,
                    "managementCosts": 50,
                },
            },
            "marketing": {
                "allocationMode": "channels",
                "channels": [
                    {"id": "ig", "name": "Instagram", "weeklyBudget": 800,
                     "distribution": "spreadEvenly"},
                    {"id": "fl", "name": "Flyers", "weeklyBudget": 200,
                     "distribution": "upfront"},
                ],
            },
        },
    }
