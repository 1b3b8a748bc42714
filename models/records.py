"""
Event Forecast Engine - Model Records

Converts stored model records (plain dicts, e.g. decoded JSON) into
FinancialModel instances and back. This is the only place where:
- older record layouts are migrated to the current schema version
- display names ("F&B Sales", "Setup Costs") resolve to canonical roles
- percentages are converted to decimals
- missing optional structures get their defaults

Record layouts:
  version 1  the legacy storage layout ("assumptions" wrapper,
             metadata.type == "WeeklyEvent", camelCase per-customer fields)
  version 2  the normalized layout written by model_to_record()

Version 2 records are validated by the pydantic models below. A field that
fails validation falls back to its default with a warning; only a record
that is not a mapping, or a non-positive duration, is rejected outright.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .financial_model import (
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
    InvalidModelError,
    MarketingChannel,
    MarketingConfig,
    RevenueStream,
    StreamKind,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2


@dataclass(frozen=True)
class ModelDefaults:
    """Defaults applied while reading records."""
    duration: int = 12
    duration_unit: DurationUnit = DurationUnit.WEEKLY
    growth_law: GrowthLaw = GrowthLaw.EXPONENTIAL
    unknown_growth_law: GrowthLaw = GrowthLaw.LINEAR
    distribution: DistributionPolicy = DistributionPolicy.SPREAD_EVENLY
    stream_kind: StreamKind = StreamKind.RECURRING


DEFAULTS = ModelDefaults()

# Display names used by the legacy storage layout
REVENUE_ROLE_NAMES = {
    'ticket sales': AttendeeRole.TICKET,
    'tickets': AttendeeRole.TICKET,
    'f&b sales': AttendeeRole.FOOD_BEVERAGE,
    'food & beverage': AttendeeRole.FOOD_BEVERAGE,
    'food and beverage': AttendeeRole.FOOD_BEVERAGE,
    'merchandise sales': AttendeeRole.MERCHANDISE,
    'merchandise': AttendeeRole.MERCHANDISE,
    'online sales': AttendeeRole.ONLINE,
    'miscellaneous revenue': AttendeeRole.MISC,
    'misc revenue': AttendeeRole.MISC,
}

COGS_ROLE_NAMES = {
    'f&b cogs': AttendeeRole.FOOD_BEVERAGE,
    'merchandise cogs': AttendeeRole.MERCHANDISE,
}

SETUP_COST_NAMES = {'setup costs', 'setup cost', 'setup'}

WEEKLY_EVENT_TYPES = {'WeeklyEvent', 'Weekly'}

V1_SPEND_FIELDS = {
    'ticketPrice': AttendeeRole.TICKET,
    'fbSpend': AttendeeRole.FOOD_BEVERAGE,
    'merchandiseSpend': AttendeeRole.MERCHANDISE,
    'onlineSpend': AttendeeRole.ONLINE,
    'miscSpend': AttendeeRole.MISC,
}

V1_SPEND_GROWTH_FIELDS = {
    'ticketPriceGrowth': AttendeeRole.TICKET,
    'fbSpendGrowth': AttendeeRole.FOOD_BEVERAGE,
    'merchandiseSpendGrowth': AttendeeRole.MERCHANDISE,
    'onlineSpendGrowth': AttendeeRole.ONLINE,
    'miscSpendGrowth': AttendeeRole.MISC,
}

V1_COGS_FIELDS = {
    'fbCOGSPercent': AttendeeRole.FOOD_BEVERAGE,
    'merchandiseCOGSPercent': AttendeeRole.MERCHANDISE,
    'merchandiseCogsPercent': AttendeeRole.MERCHANDISE,
}

V1_ALLOCATION_MODES = {
    'channels': AllocationMode.PER_CHANNEL.value,
    'highLevel': AllocationMode.AGGREGATE.value,
    'none': AllocationMode.NONE.value,
}


def _list(value: Any) -> List:
    return list(value) if isinstance(value, (list, tuple)) else []


def _dict(value: Any) -> Dict:
    return dict(value) if isinstance(value, Mapping) else {}


# --- Migration -------------------------------------------------------------

def record_version(record: Mapping) -> int:
    if 'schemaVersion' in record:
        try:
            return int(record.get('schemaVersion'))
        except (TypeError, ValueError):
            return SCHEMA_VERSION
    return 1 if 'assumptions' in record else SCHEMA_VERSION


def migrate_record(record: Mapping) -> Dict:
    """Bring a record of any known version to the current layout."""
    if not isinstance(record, Mapping):
        raise InvalidModelError(f"Model record must be a mapping, got {type(record).__name__}")

    version = record_version(record)
    if version > SCHEMA_VERSION:
        logger.warning("Record %r has schema version %s, newer than %s; reading as current",
                       record.get('name'), version, SCHEMA_VERSION)
    if version >= SCHEMA_VERSION:
        return dict(record)
    return _migrate_v1(record)


def _migrate_v1(record: Mapping) -> Dict:
    assumptions = _dict(record.get('assumptions'))
    metadata = _dict(assumptions.get('metadata'))
    is_event = metadata.get('type') in WEEKLY_EVENT_TYPES

    if is_event:
        unit = DurationUnit.WEEKLY.value
        length = metadata.get('weeks', DEFAULTS.duration)
    else:
        unit = DurationUnit.MONTHLY.value
        length = metadata.get('months', metadata.get('duration', DEFAULTS.duration))

    revenue = []
    for stream in _list(assumptions.get('revenue', assumptions.get('revenueStreams'))):
        stream = _dict(stream)
        name = str(stream.get('name') or 'Unnamed revenue')
        role = REVENUE_ROLE_NAMES.get(name.strip().lower()) if is_event else None
        revenue.append({
            'name': name,
            'value': stream.get('value'),
            'kind': stream.get('type'),
            'role': role.value if role else None,
        })

    cost_meta = _dict(metadata.get('costs'))
    cogs_percentages = {
        role.value: cost_meta[field_name]
        for field_name, role in V1_COGS_FIELDS.items()
        if field_name in cost_meta
    }

    costs = []
    for cost in _list(assumptions.get('costs')):
        cost = _dict(cost)
        name = str(cost.get('name') or 'Unnamed cost')
        key = name.strip().lower()
        if is_event and key in COGS_ROLE_NAMES:
            role = COGS_ROLE_NAMES[key].value
            # A COGS line without a metadata percentage has nothing to charge
            if role in cogs_percentages:
                costs.append({
                    'name': name,
                    'value': 0,
                    'kind': 'variable',
                    'attribution': {'role': role, 'percentage': cogs_percentages.pop(role)},
                })
            else:
                logger.debug("Skipping %r: no COGS percentage in metadata", name)
            continue
        is_setup = key in SETUP_COST_NAMES
        costs.append({
            'name': name,
            'value': cost.get('value'),
            'kind': cost.get('type'),
            'setup': is_setup,
            'amortized': is_setup and str(cost.get('type', '')).lower() == 'recurring',
        })

    growth_model = _dict(assumptions.get('growthModel'))
    event_growth = _dict(metadata.get('growth'))
    growth = {
        'law': growth_model.get('type', DEFAULTS.growth_law.value),
        'rate': growth_model.get('rate'),
        'seasonalFactors': growth_model.get('seasonalFactors'),
        'attendanceGrowthPercent': event_growth.get('attendanceGrowthRate'),
        'spendGrowthPercent': {
            role.value: event_growth[field_name]
            for field_name, role in V1_SPEND_GROWTH_FIELDS.items()
            if field_name in event_growth
        },
        'useSpendGrowth': bool(event_growth.get('useCustomerSpendGrowth', False)),
    }

    event = None
    if is_event:
        per_customer = _dict(metadata.get('perCustomer'))
        event = {
            'initialAttendance': metadata.get('initialWeeklyAttendance'),
            'perAttendee': {
                role.value: per_customer[field_name]
                for field_name, role in V1_SPEND_FIELDS.items()
                if field_name in per_customer
            },
            'costs': {
                'cogsPercentages': cogs_percentages,
                'staffCount': cost_meta.get('staffCount'),
                'staffCostPerPerson': cost_meta.get('staffCostPerPerson'),
                'managementCost': cost_meta.get('managementCosts'),
            },
        }

    marketing = _dict(assumptions.get('marketing'))
    mode = marketing.get('allocationMode', 'none')
    channels = []
    for index, channel in enumerate(_list(marketing.get('channels'))):
        channel = _dict(channel)
        channels.append({
            'id': str(channel.get('id', index)),
            'name': channel.get('name') or channel.get('channelType') or f"Channel {index + 1}",
            'budget': channel.get('weeklyBudget', channel.get('budget')),
            'distribution': channel.get('distribution'),
            'spreadLength': channel.get('spreadDuration'),
        })

    return {
        'schemaVersion': SCHEMA_VERSION,
        'id': record.get('id'),
        'name': record.get('name'),
        'description': record.get('description'),
        'createdAt': record.get('createdAt'),
        'updatedAt': record.get('updatedAt'),
        'duration': {'unit': unit, 'length': length},
        'revenue': revenue,
        'costs': costs,
        'growth': growth,
        'event': event,
        'marketing': {
            'mode': V1_ALLOCATION_MODES.get(mode, mode),
            'channels': channels,
            'totalBudget': marketing.get('totalBudget'),
            'distribution': marketing.get('budgetApplication'),
            'spreadLength': marketing.get('spreadDuration'),
        },
    }


# --- Validation ------------------------------------------------------------

class RecordModel(BaseModel):
    """Base for record sections: invalid fields degrade to their defaults."""
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    @field_validator('*', mode='wrap')
    @classmethod
    def default_on_error(cls, value, handler, info):
        default = cls.model_fields[info.field_name].get_default(call_default_factory=True)
        if value is None:
            return default
        try:
            return handler(value)
        except ValidationError:
            logger.warning("Invalid %s %r in %s record, using %r",
                           info.field_name, value, cls.__name__, default)
            return default


def _text(value: Any) -> Any:
    return str(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else value


def _known_roles(value: Any) -> Any:
    """Drop unknown attendee roles from a role map."""
    if not isinstance(value, Mapping):
        return value
    roles = {}
    for key, amount in value.items():
        try:
            roles[AttendeeRole(key)] = amount
        except ValueError:
            logger.warning("Unknown attendee role %r ignored", key)
    return roles


def _items(value: Any) -> Any:
    """Keep a record list's mapping entries; anything else becomes an empty entry."""
    if not isinstance(value, (list, tuple)):
        return value
    return [item if isinstance(item, Mapping) else {} for item in value]


class DurationRecord(RecordModel):
    unit: DurationUnit = Field(DEFAULTS.duration_unit, description="Period unit")
    length: int = Field(DEFAULTS.duration, description="Number of periods")


class RevenueRecord(RecordModel):
    name: Optional[str] = None
    value: float = 0.0
    kind: StreamKind = DEFAULTS.stream_kind
    role: Optional[AttendeeRole] = Field(None, description="Set for attendance-driven streams")

    @field_validator('name', mode='before')
    @classmethod
    def name_as_text(cls, value):
        return _text(value)

    def to_stream(self) -> RevenueStream:
        return RevenueStream(name=self.name or 'Unnamed revenue', value=self.value,
                             kind=self.kind, role=self.role)


class AttributionRecord(RecordModel):
    role: Optional[AttendeeRole] = None
    percentage: float = Field(0.0, description="Percent (0-100) of the role's revenue")


class CostRecord(RecordModel):
    name: Optional[str] = None
    value: float = 0.0
    kind: StreamKind = DEFAULTS.stream_kind
    setup: bool = False
    amortized: bool = False
    attribution: Optional[AttributionRecord] = None

    @field_validator('name', mode='before')
    @classmethod
    def name_as_text(cls, value):
        return _text(value)

    def to_category(self) -> CostCategory:
        attribution = None
        if self.attribution is not None and self.attribution.role is not None:
            attribution = CostAttribution(role=self.attribution.role,
                                          percentage=self.attribution.percentage)
        return CostCategory(name=self.name or 'Unnamed cost', value=self.value, kind=self.kind,
                            attribution=attribution, is_setup=self.setup,
                            amortized=self.amortized)


class GrowthRecord(RecordModel):
    law: GrowthLaw = DEFAULTS.growth_law
    rate: float = Field(0.0, description="Decimal rate for streams and variable costs")
    seasonal_factors: List[float] = Field(default_factory=list, alias='seasonalFactors')
    attendance_growth_percent: float = Field(0.0, alias='attendanceGrowthPercent')
    spend_growth_percent: Dict[AttendeeRole, float] = Field(default_factory=dict,
                                                            alias='spendGrowthPercent')
    use_spend_growth: bool = Field(False, alias='useSpendGrowth')

    @field_validator('spend_growth_percent', mode='before')
    @classmethod
    def known_roles_only(cls, value):
        return _known_roles(value)

    @field_validator('law', mode='before')
    @classmethod
    def resolve_law(cls, value):
        if value is None or value == '':
            return DEFAULTS.growth_law
        try:
            return GrowthLaw(value)
        except ValueError:
            logger.warning("Unknown growth law %r, using %s",
                           value, DEFAULTS.unknown_growth_law.value)
            return DEFAULTS.unknown_growth_law

    def to_config(self) -> GrowthConfig:
        return GrowthConfig(
            law=self.law,
            rate=self.rate,
            seasonal_factors=tuple(self.seasonal_factors),
            attendance_rate=self.attendance_growth_percent / 100,
            spend_rates={role: pct / 100 for role, pct in self.spend_growth_percent.items()},
            use_spend_growth=self.use_spend_growth,
        )


class EventCostsRecord(RecordModel):
    cogs_percentages: Dict[AttendeeRole, float] = Field(default_factory=dict,
                                                        alias='cogsPercentages')
    staff_count: Optional[float] = Field(None, alias='staffCount')
    staff_cost_per_person: Optional[float] = Field(None, alias='staffCostPerPerson')
    management_cost: float = Field(0.0, alias='managementCost')

    @field_validator('cogs_percentages', mode='before')
    @classmethod
    def known_roles_only(cls, value):
        return _known_roles(value)

    def to_costs(self) -> EventCosts:
        return EventCosts(
            cogs_percentages=self.cogs_percentages,
            staff_count=self.staff_count,
            staff_cost_per_person=self.staff_cost_per_person,
            management_cost=self.management_cost,
        )


class EventRecord(RecordModel):
    initial_attendance: Optional[float] = Field(None, alias='initialAttendance')
    per_attendee: Dict[AttendeeRole, float] = Field(default_factory=dict, alias='perAttendee')
    costs: EventCostsRecord = Field(default_factory=EventCostsRecord)

    @field_validator('per_attendee', mode='before')
    @classmethod
    def known_roles_only(cls, value):
        return _known_roles(value)

    def to_metadata(self) -> EventMetadata:
        return EventMetadata(initial_attendance=self.initial_attendance,
                             per_attendee=self.per_attendee,
                             costs=self.costs.to_costs())


class ChannelRecord(RecordModel):
    id: Optional[str] = None
    name: Optional[str] = None
    budget: float = Field(0.0, description="Total budget over the model duration")
    distribution: DistributionPolicy = DEFAULTS.distribution
    spread_length: Optional[int] = Field(None, alias='spreadLength')

    @field_validator('id', 'name', mode='before')
    @classmethod
    def ids_as_text(cls, value):
        return _text(value)

    def to_channel(self, index: int) -> MarketingChannel:
        return MarketingChannel(
            id=self.id if self.id is not None else str(index),
            name=self.name or f"Channel {index + 1}",
            budget=self.budget,
            distribution=self.distribution,
            spread_length=self.spread_length,
        )


class MarketingRecord(RecordModel):
    mode: AllocationMode = AllocationMode.NONE
    channels: List[ChannelRecord] = Field(default_factory=list)
    total_budget: float = Field(0.0, alias='totalBudget')
    distribution: DistributionPolicy = DEFAULTS.distribution
    spread_length: Optional[int] = Field(None, alias='spreadLength')

    @field_validator('channels', mode='before')
    @classmethod
    def channel_entries(cls, value):
        return _items(value)

    def to_config(self) -> MarketingConfig:
        return MarketingConfig(
            mode=self.mode,
            channels=tuple(ch.to_channel(i) for i, ch in enumerate(self.channels)),
            total_budget=self.total_budget,
            distribution=self.distribution,
            spread_length=self.spread_length,
        )


class ModelRecord(RecordModel):
    """A current-version model record."""
    schema_version: int = Field(SCHEMA_VERSION, alias='schemaVersion')
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias='createdAt')
    updated_at: Optional[datetime] = Field(None, alias='updatedAt')
    duration: DurationRecord = Field(default_factory=DurationRecord)
    revenue: List[RevenueRecord] = Field(default_factory=list)
    costs: List[CostRecord] = Field(default_factory=list)
    growth: GrowthRecord = Field(default_factory=GrowthRecord)
    event: Optional[EventRecord] = Field(None, description="Set for attendance-driven models")
    marketing: MarketingRecord = Field(default_factory=MarketingRecord)

    @field_validator('id', 'name', mode='before')
    @classmethod
    def ids_as_text(cls, value):
        return _text(value)
    @field_validator('revenue', 'costs', mode='before')
    @classmethod
    def record_entries(cls, value):
        return _items(value)

    def to_model(self) -> FinancialModel:
        return FinancialModel(
            name=self.name or 'Untitled model',
            duration=self.duration.length,
            duration_unit=self.duration.unit,
            revenue_streams=tuple(r.to_stream() for r in self.revenue),
            cost_categories=tuple(c.to_category() for c in self.costs),
            growth=self.growth.to_config(),
            event=self.event.to_metadata() if self.event is not None else None,
            marketing=self.marketing.to_config(),
            id=self.id,
            description=self.description,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def model_from_record(record: Mapping) -> FinancialModel:
    """
    Build a FinancialModel from a stored record of any supported version.

    Raises InvalidModelError when the record is not a mapping or declares a
    non-positive duration; everything else degrades to defaults.
    """
    data = migrate_record(record)
    try:
        parsed = ModelRecord.model_validate(data)
    except ValidationError as e:
        raise InvalidModelError(f"Invalid model record {data.get('name')!r}: {e}") from e
    return parsed.to_model()


def model_to_record(model: FinancialModel) -> Dict:
    """Write a model as a current-version record."""
    growth = model.growth
    event = None
    if model.event is not None:
        event = {
            'initialAttendance': model.event.initial_attendance,
            'perAttendee': {role.value: v for role, v in model.event.per_attendee.items()},
            'costs': {
                'cogsPercentages': {
                    role.value: v for role, v in model.event.costs.cogs_percentages.items()
                },
                'staffCount': model.event.costs.staff_count,
                'staffCostPerPerson': model.event.costs.staff_cost_per_person,
                'managementCost': model.event.costs.management_cost,
            },
        }

    return {
        'schemaVersion': SCHEMA_VERSION,
        'id': model.id,
        'name': model.name,
        'description': model.description,
        'createdAt': model.created_at.isoformat() if model.created_at else None,
        'updatedAt': model.updated_at.isoformat() if model.updated_at else None,
        'duration': {'unit': model.duration_unit.value, 'length': model.duration},
        'revenue': [
            {'name': s.name, 'value': s.value, 'kind': s.kind.value,
             'role': s.role.value if s.role else None}
            for s in model.revenue_streams
        ],
        'costs': [
            {'name': c.name, 'value': c.value, 'kind': c.kind.value,
             'setup': c.is_setup, 'amortized': c.amortized,
             'attribution': {'role': c.attribution.role.value,
                             'percentage': c.attribution.percentage}
             if c.attribution else None}
            for c in model.cost_categories
        ],
        'growth': {
            'law': growth.law.value,
            'rate': growth.rate,
            'seasonalFactors': list(growth.seasonal_factors),
            'attendanceGrowthPercent': growth.attendance_rate * 100,
            'spendGrowthPercent': {role.value: r * 100 for role, r in growth.spend_rates.items()},
            'useSpendGrowth': growth.use_spend_growth,
        },
        'event': event,
        'marketing': {
            'mode': model.marketing.mode.value,
            'channels': [
                {'id': ch.id, 'name': ch.name, 'budget': ch.budget,
                 'distribution': ch.distribution.value, 'spreadLength': ch.spread_length}
                for ch in model.marketing.channels
            ],
            'totalBudget': model.marketing.total_budget,
            'distribution': model.marketing.distribution.value,
            'spreadLength': model.marketing.spread_length,
        },
    }
