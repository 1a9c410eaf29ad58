"""Concrete slab estimate calculator.

Turns a loosely-typed parameter mapping (usually a decoded JSON body) plus a
:class:`~utils.rates.DefaultRates` table into an itemized estimate. The
calculator never rejects input: anything that does not look like a number is
treated as 0, and every intermediate amount is rounded as soon as it is
computed so later sums build on the rounded figures.
"""
import math
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping, Optional

from utils.rates import DefaultRates

CUBIC_FEET_PER_YARD = 27.0
DEFAULT_THICKNESS_IN = 4.0
TO_FIXED_LIMIT = 1e21


def to_number(value: Any) -> float:
    """Coerce ``value`` to a finite float, or 0.0 when that is not possible."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def or_default_if_zero_or_absent(value: Any, default: float) -> float:
    # rate fields: a zero rate means "not supplied"
    number = to_number(value)
    return number if number else float(default)


def or_default_if_absent(value: Any, default: float) -> float:
    # percentage fields: an explicit 0 is a real override
    if value is None:
        return float(default)
    return to_number(value)


def is_tearout(value: Any) -> bool:
    return value is True or value == "true"


def round_to(value: float, places: int) -> float:
    """Round half away from zero on the exact binary value of ``value``.

    Like JS ``toFixed``, magnitudes of 1e21 and above come back unchanged.
    """
    if not math.isfinite(value) or abs(value) >= TO_FIXED_LIMIT:
        return value
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def money(value: float) -> float:
    return round_to(value, 2)


@dataclass(frozen=True)
class EstimateInputs:
    width_ft: float
    length_ft: float
    area_sqft: float
    thickness_in: float
    volume_cy: float


@dataclass(frozen=True)
class LineItems:
    concrete_cost: float
    rebar_cost: float
    forms_cost: float
    other_materials: float
    labor_hours: float
    labor_cost: float
    tearout_cost: float


@dataclass(frozen=True)
class Summary:
    subtotal: float
    overhead: float
    profit: float
    total: float


@dataclass(frozen=True)
class EffectiveRates:
    price_per_cy: float
    rebar_cost_per_sqft: float
    forms_cost_per_sqft: float
    labor_rate: float
    labor_hours_per_sqft: float
    tearout_cost_per_sqft: float
    overhead_pct: float
    profit_pct: float


@dataclass(frozen=True)
class Estimate:
    inputs: EstimateInputs
    line_items: LineItems
    summary: Summary
    params: EffectiveRates

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return asdict(self)


def compute_estimate(
    params: Optional[Mapping[str, Any]],
    rates: Optional[DefaultRates] = None,
) -> Estimate:
    """Compute a slab estimate from user ``params`` and fallback ``rates``."""
    p = params or {}
    d = rates or DefaultRates()

    width = to_number(p.get("width_ft"))
    length = to_number(p.get("length_ft"))
    thickness_in = or_default_if_zero_or_absent(p.get("thickness_in"), DEFAULT_THICKNESS_IN)
    area_sqft = money(width * length)
    volume_cy = round_to(area_sqft * (thickness_in / 12.0) / CUBIC_FEET_PER_YARD, 3)

    price_per_cy = or_default_if_zero_or_absent(p.get("price_per_cy"), d.price_per_cy)
    concrete_cost = money(volume_cy * price_per_cy)

    rebar_rate = or_default_if_zero_or_absent(p.get("rebar_cost_per_sqft"), d.rebar_cost_per_sqft)
    rebar_cost = money(area_sqft * rebar_rate)

    forms_rate = or_default_if_zero_or_absent(p.get("forms_cost_per_sqft"), d.forms_cost_per_sqft)
    forms_cost = money(area_sqft * forms_rate)

    labor_rate = or_default_if_zero_or_absent(p.get("labor_rate_per_hour"), d.labor_rate_per_hour)
    hours_per_sqft = or_default_if_zero_or_absent(p.get("labor_hours_per_sqft"), d.labor_hours_per_sqft)
    labor_hours = money(area_sqft * hours_per_sqft)
    labor_cost = money(labor_hours * labor_rate)

    tearout_rate = or_default_if_zero_or_absent(p.get("tearout_cost_per_sqft"), d.tearout_cost_per_sqft)
    tearout_cost = money(area_sqft * tearout_rate) if is_tearout(p.get("tearout")) else 0.0

    other_materials = money(to_number(p.get("other_materials")))

    subtotal = money(
        concrete_cost + rebar_cost + forms_cost + other_materials + labor_cost + tearout_cost
    )
    overhead_pct = or_default_if_absent(p.get("overhead_pct"), d.overhead_pct)
    overhead = money(subtotal * overhead_pct)
    profit_pct = or_default_if_absent(p.get("profit_pct"), d.profit_pct)
    # markup on subtotal + overhead, not on subtotal alone
    profit = money((subtotal + overhead) * profit_pct)
    total = money(subtotal + overhead + profit)

    return Estimate(
        inputs=EstimateInputs(
            width_ft=width,
            length_ft=length,
            area_sqft=area_sqft,
            thickness_in=thickness_in,
            volume_cy=volume_cy,
        ),
        line_items=LineItems(
            concrete_cost=concrete_cost,
            rebar_cost=rebar_cost,
            forms_cost=forms_cost,
            other_materials=other_materials,
            labor_hours=labor_hours,
            labor_cost=labor_cost,
            tearout_cost=tearout_cost,
        ),
        summary=Summary(subtotal=subtotal, overhead=overhead, profit=profit, total=total),
        params=EffectiveRates(
            price_per_cy=price_per_cy,
            rebar_cost_per_sqft=rebar_rate,
            forms_cost_per_sqft=forms_rate,
            labor_rate=labor_rate,
            labor_hours_per_sqft=hours_per_sqft,
            tearout_cost_per_sqft=tearout_rate,
            overhead_pct=overhead_pct,
            profit_pct=profit_pct,
        ),
    )
