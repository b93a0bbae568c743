"""
Fee Calculations Module
Tiered advisory fee computation

Provides:
- Fee tier tables (ordered min/max/rate bands)
- Fee type strategies (marginal AUM-style vs single-bracket flat amounts)
- Tier resolution with minimum/maximum fee clamping
- Tier partition validation
- Display formatting for currency, percentages and basis points
"""

import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from errors import ValidationError


CENTS = Decimal('0.01')
BASIS_POINTS_PER_UNIT = Decimal('10000')


class FeeType(str, Enum):
    AUM = 'aum'
    FLAT = 'flat'
    HOURLY = 'hourly'
    PERFORMANCE = 'performance'
    SUBSCRIPTION = 'subscription'
    TRANSACTION = 'transaction'


class FeeFrequency(str, Enum):
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'
    SEMI_ANNUAL = 'semi_annual'
    ANNUAL = 'annual'


class BillingMethod(str, Enum):
    ADVANCE = 'advance'
    ARREARS = 'arrears'


class EntityType(str, Enum):
    HOUSEHOLD = 'household'
    ACCOUNT = 'account'
    PERSON = 'person'


# Rate is a decimal fraction applied to the portion of the amount inside each band
MARGINAL_FEE_TYPES = frozenset({FeeType.AUM, FeeType.PERFORMANCE})

FEE_TYPE_LABELS = {
    FeeType.AUM: 'Assets Under Management',
    FeeType.FLAT: 'Flat Fee',
    FeeType.HOURLY: 'Hourly Rate',
    FeeType.PERFORMANCE: 'Performance Fee',
    FeeType.SUBSCRIPTION: 'Subscription',
    FeeType.TRANSACTION: 'Transaction Fee',
}

FEE_FREQUENCY_LABELS = {
    FeeFrequency.MONTHLY: 'Monthly',
    FeeFrequency.QUARTERLY: 'Quarterly',
    FeeFrequency.SEMI_ANNUAL: 'Semi-Annual',
    FeeFrequency.ANNUAL: 'Annual',
}

PERIODS_PER_YEAR = {
    FeeFrequency.MONTHLY: 12,
    FeeFrequency.QUARTERLY: 4,
    FeeFrequency.SEMI_ANNUAL: 2,
    FeeFrequency.ANNUAL: 1,
}

# Stored column precision as (total digits, decimal places)
TIER_BOUND_PRECISION = (18, 2)
TIER_RATE_PRECISION = (18, 6)
BILLABLE_AMOUNT_PRECISION = (18, 2)
FEE_AMOUNT_PRECISION = (12, 2)
EFFECTIVE_RATE_PRECISION = (10, 2)


def to_decimal(value: Any, field_name: str = 'value') -> Decimal:
    """
    Convert a JSON number (or numeric string) to Decimal

    Args:
        value: Number to convert
        field_name: Field name used in the error message

    Returns:
        Decimal value

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if isinstance(value, Decimal):
        result = value
    else:
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError(f"{field_name} must be a finite number", field=field_name)
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field_name} must be a number", field=field_name)
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be a finite number", field=field_name)
    return result


def check_precision(value: Decimal, field_name: str, precision: Tuple[int, int],
                    index: Optional[int] = None) -> Decimal:
    """
    Reject a value that its column would round or overflow

    Args:
        value: Parsed amount
        field_name: Field name used in the error
        precision: (total digits, decimal places) of the column
        index: Tier index, when the value belongs to a tier

    Returns:
        The value, unchanged
    """
    digits, places = precision
    normalized = value.normalize()
    if normalized.as_tuple().exponent < -places:
        raise ValidationError(f"{field_name} allows at most {places} decimal places",
                              field=field_name, index=index)
    if normalized and normalized.adjusted() >= digits - places:
        raise ValidationError(f"{field_name} is too large (at most {digits - places} digits "
                              f"before the decimal point)", field=field_name, index=index)
    return value


def parse_fee_type(value: Any) -> FeeType:
    """Parse a fee type, accepting either case ('AUM' or 'aum')."""
    try:
        return FeeType(str(value).lower())
    except ValueError:
        allowed = ', '.join(t.value for t in FeeType)
        raise ValidationError(f"Invalid fee_type '{value}'. Must be one of: {allowed}", field='fee_type')


@dataclass(frozen=True)
class Tier:
    """A [min_value, max_value) band with its rate. max_value None means unbounded."""
    min_value: Decimal
    max_value: Optional[Decimal]
    rate: Decimal
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> 'Tier':
        if not isinstance(data, dict):
            raise ValidationError(f"Tier {index} must be an object", field=f"tiers[{index}]", index=index)
        if 'rate' not in data:
            raise ValidationError(f"Tier {index}: rate is required", field=f"tiers[{index}].rate", index=index)

        def amount(key, precision):
            field_name = f"tiers[{index}].{key}"
            value = to_decimal(data.get(key, 0) if key == 'min_value' else data[key], field_name)
            return check_precision(value, field_name, precision, index)

        return cls(
            min_value=amount('min_value', TIER_BOUND_PRECISION),
            max_value=None if data.get('max_value') is None else amount('max_value', TIER_BOUND_PRECISION),
            rate=amount('rate', TIER_RATE_PRECISION),
            name=data.get('name'),
        )

    def label(self) -> str:
        if self.name:
            return self.name
        upper = 'and above' if self.max_value is None else f"- {format_fee_amount(self.max_value)}"
        return f"{format_fee_amount(self.min_value)} {upper}"

    def contains(self, amount: Decimal) -> bool:
        return amount >= self.min_value and (self.max_value is None or amount < self.max_value)

    def overlap(self, amount: Decimal) -> Decimal:
        """Portion of [0, amount] that falls inside this tier's band."""
        upper = amount if self.max_value is None else min(amount, self.max_value)
        return max(upper - self.min_value, Decimal('0'))


@dataclass
class TierBreakdown:
    name: str
    amount: Decimal
    rate: Decimal
    fee: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'amount': float(self.amount),
            'rate': float(self.rate),
            'fee': float(self.fee.quantize(CENTS, rounding=ROUND_HALF_UP)),
        }


@dataclass
class FeeCalculationResult:
    total_fee: Decimal
    effective_rate: Decimal  # basis points
    breakdown: List[TierBreakdown] = field(default_factory=list)
    raw_fee: Optional[Decimal] = None
    clamped: Optional[str] = None  # 'minimum', 'maximum' or None
    fee_type: Optional[FeeType] = None
    frequency: Optional[FeeFrequency] = None

    @property
    def period_fee(self) -> Optional[Decimal]:
        if self.frequency is None:
            return None
        return period_fee(self.total_fee, self.frequency)

    def to_dict(self) -> Dict[str, Any]:
        period = self.period_fee
        result = {
            'total_fee': float(self.total_fee),
            'effective_rate': float(self.effective_rate),
            'raw_fee': float(self.raw_fee.quantize(CENTS, rounding=ROUND_HALF_UP)) if self.raw_fee is not None else None,
            'clamped': self.clamped,
            'breakdown': [item.to_dict() for item in self.breakdown],
            'formatted': {
                'total_fee': format_fee_amount(self.total_fee),
                'effective_rate': format_basis_points(self.effective_rate),
                'effective_rate_percent': format_percentage(self.effective_rate / BASIS_POINTS_PER_UNIT),
            },
        }
        if self.fee_type is not None:
            result['fee_type'] = self.fee_type.value
            result['fee_type_label'] = FEE_TYPE_LABELS[self.fee_type]
        if self.frequency is not None:
            result['frequency'] = self.frequency.value
            result['frequency_label'] = FEE_FREQUENCY_LABELS[self.frequency]
            result['period_fee'] = float(period)
            result['formatted']['period_fee'] = format_fee_amount(period)
        return result


def sort_tiers(tiers: Iterable[Tier]) -> List[Tier]:
    return sorted(tiers, key=lambda tier: tier.min_value)


def marginal_fee(tiers: Sequence[Tier], amount: Decimal) -> Tuple[Decimal, List[TierBreakdown]]:
    """
    Progressive-bracket fee: each tier's rate applies only to the slice of
    the amount inside that tier.

    Args:
        tiers: Tiers sorted ascending by min_value
        amount: Billable amount

    Returns:
        Tuple of (fee, per-tier breakdown)
    """
    total = Decimal('0')
    breakdown = []

    for tier in tiers:
        portion = tier.overlap(amount)
        if portion <= 0:
            continue
        tier_fee = portion * tier.rate
        breakdown.append(TierBreakdown(tier.label(), portion, tier.rate, tier_fee))
        total += tier_fee

    return total, breakdown


def bracket_fee(tiers: Sequence[Tier], amount: Decimal) -> Tuple[Decimal, List[TierBreakdown]]:
    """
    Single-bracket fee: the rate of the one tier containing the amount is
    returned as an absolute fee.

    Amounts below the first tier fall into the first tier.
    """
    selected = tiers[0]
    for tier in tiers:
        if tier.contains(amount):
            selected = tier
            break
        if tier.min_value > amount:
            break

    return selected.rate, [TierBreakdown(selected.label(), amount, selected.rate, selected.rate)]


def clamp_fee(fee: Decimal, minimum_fee: Optional[Decimal] = None,
              maximum_fee: Optional[Decimal] = None) -> Tuple[Decimal, Optional[str]]:
    """Apply the minimum floor, then the maximum ceiling."""
    clamped = None
    if minimum_fee is not None and fee < minimum_fee:
        fee = minimum_fee
        clamped = 'minimum'
    if maximum_fee is not None and fee > maximum_fee:
        fee = maximum_fee
        clamped = 'maximum'
    return fee, clamped


def effective_rate_bps(total_fee: Decimal, billable_amount: Decimal) -> Decimal:
    if billable_amount == 0:
        return Decimal('0')
    return (total_fee / billable_amount * BASIS_POINTS_PER_UNIT).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_fee(fee_type: Any, tiers: Sequence[Tier], billable_amount: Any,
                  minimum_fee: Any = None, maximum_fee: Any = None,
                  frequency: Any = None) -> FeeCalculationResult:
    """
    Calculate the fee for a billable amount under a tiered schedule

    Args:
        fee_type: FeeType (or its string value)
        tiers: Non-empty list of tiers
        billable_amount: Amount to bill against (>= 0)
        minimum_fee: Optional absolute floor
        maximum_fee: Optional absolute ceiling
        frequency: Optional billing frequency; when given the result also
            carries the fee for one billing period

    Returns:
        FeeCalculationResult with total fee rounded to cents and effective
        rate in basis points

    Raises:
        ValidationError: If the amount is negative or there are no tiers
    """
    fee_type = fee_type if isinstance(fee_type, FeeType) else parse_fee_type(fee_type)
    if frequency is not None:
        frequency = parse_frequency(frequency)
    amount = to_decimal(billable_amount, 'billable_amount')
    if amount < 0:
        raise ValidationError("billable_amount cannot be negative", field='billable_amount')
    if not tiers:
        raise ValidationError("Fee schedule has no tiers", field='tiers')

    ordered = sort_tiers(tiers)
    if fee_type in MARGINAL_FEE_TYPES:
        raw_fee, breakdown = marginal_fee(ordered, amount)
    else:
        raw_fee, breakdown = bracket_fee(ordered, amount)

    total, clamped = clamp_fee(
        raw_fee,
        None if minimum_fee is None else to_decimal(minimum_fee, 'minimum_fee'),
        None if maximum_fee is None else to_decimal(maximum_fee, 'maximum_fee'),
    )
    total = total.quantize(CENTS, rounding=ROUND_HALF_UP)

    return FeeCalculationResult(
        total_fee=total,
        effective_rate=effective_rate_bps(total, amount),
        breakdown=breakdown,
        raw_fee=raw_fee,
        clamped=clamped,
        fee_type=fee_type,
        frequency=frequency,
    )


def validate_tiers(tiers: Sequence[Tier], fee_type: Any) -> None:
    """
    Check that tiers form a contiguous, non-overlapping, ascending partition

    Each bounded tier must end exactly where the next one starts, the last
    tier must be unbounded, and marginal schedules must start at 0.

    Raises:
        ValidationError: naming the offending tier index
    """
    fee_type = fee_type if isinstance(fee_type, FeeType) else parse_fee_type(fee_type)
    if not tiers:
        raise ValidationError("At least one fee tier is required", field='tiers')

    for index, tier in enumerate(tiers):
        if tier.min_value < 0:
            raise ValidationError(f"Tier {index}: min_value cannot be negative",
                                  field=f"tiers[{index}].min_value", index=index)
        if tier.rate < 0:
            raise ValidationError(f"Tier {index}: rate cannot be negative",
                                  field=f"tiers[{index}].rate", index=index)
        if tier.max_value is not None and tier.max_value <= tier.min_value:
            raise ValidationError(f"Tier {index}: max_value must be greater than min_value",
                                  field=f"tiers[{index}].max_value", index=index)

        if index == 0:
            continue

        previous = tiers[index - 1]
        if previous.max_value is None:
            raise ValidationError(f"Tier {index - 1}: only the last tier may be unbounded",
                                  field=f"tiers[{index - 1}].max_value", index=index - 1)
        if tier.min_value < previous.max_value:
            raise ValidationError(f"Tier {index}: overlaps tier {index - 1} (starts at {tier.min_value}, "
                                  f"previous ends at {previous.max_value})",
                                  field=f"tiers[{index}].min_value", index=index)
        if tier.min_value > previous.max_value:
            raise ValidationError(f"Tier {index}: gap after tier {index - 1} (starts at {tier.min_value}, "
                                  f"previous ends at {previous.max_value})",
                                  field=f"tiers[{index}].min_value", index=index)

    last_index = len(tiers) - 1
    if tiers[last_index].max_value is not None:
        raise ValidationError(f"Tier {last_index}: the last tier must have no max_value",
                              field=f"tiers[{last_index}].max_value", index=last_index)

    if fee_type in MARGINAL_FEE_TYPES and tiers[0].min_value != 0:
        raise ValidationError("Tier 0: min_value must be 0 for marginal fee schedules",
                              field='tiers[0].min_value', index=0)


def parse_tiers(raw_tiers: Any) -> List[Tier]:
    """Build Tier objects from request payload dicts, keeping their order."""
    if not isinstance(raw_tiers, list):
        raise ValidationError("tiers must be an array", field='tiers')
    return [Tier.from_dict(item, index) for index, item in enumerate(raw_tiers)]


def parse_frequency(value: Any) -> FeeFrequency:
    if isinstance(value, FeeFrequency):
        return value
    try:
        return FeeFrequency(str(value).lower())
    except ValueError:
        allowed = ', '.join(f.value for f in FeeFrequency)
        raise ValidationError(f"Invalid frequency '{value}'. Must be one of: {allowed}", field='frequency')


def periods_per_year(frequency: Any) -> int:
    return PERIODS_PER_YEAR[parse_frequency(frequency)]


def period_fee(annual_fee: Any, frequency: Any) -> Decimal:
    """Pro-rate an annual fee to a single billing period."""
    annual = to_decimal(annual_fee, 'annual_fee')
    return (annual / periods_per_year(frequency)).quantize(CENTS, rounding=ROUND_HALF_UP)


# ==================== DISPLAY FORMATTING ====================

def format_fee_amount(amount: Any) -> str:
    value = Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(value):,.2f}"


def format_percentage(rate: Any, decimals: int = 2) -> str:
    return f"{float(rate) * 100:.{decimals}f}%"


def format_basis_points(bps: Any) -> str:
    return f"{float(bps):.0f} bps"
