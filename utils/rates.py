"""Fallback per-unit rates and markup fractions for slab estimates."""
import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

ENV_PREFIX = "QUICKBID_RATE_"


@dataclass(frozen=True)
class DefaultRates:
    price_per_cy: float = 140.0          # USD per cubic yard
    rebar_cost_per_sqft: float = 1.25    # grid + install
    labor_rate_per_hour: float = 60.0
    labor_hours_per_sqft: float = 0.02   # 20 hrs per 1000 sqft
    forms_cost_per_sqft: float = 1.50    # form, set, strip
    tearout_cost_per_sqft: float = 3.50  # demo + disposal
    overhead_pct: float = 0.15           # fraction of subtotal
    profit_pct: float = 0.12             # fraction of subtotal + overhead

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def with_overrides(self, overrides: Mapping[str, Any]) -> "DefaultRates":
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown rate field(s): {', '.join(unknown)}")
        values = {}
        for name, value in overrides.items():
            try:
                values[name] = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"Rate {name!r} must be numeric, got {value!r}") from None
        return replace(self, **values)


def load_default_rates(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DefaultRates:
    """Build the rate table for this deployment.

    Values from the JSON file at ``path`` are applied first, then any
    ``QUICKBID_RATE_<FIELD>`` environment variables.
    """
    rates = DefaultRates()
    if path is not None:
        with Path(path).open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        if not isinstance(data, dict):
            raise ValueError(f"Rates file {path} must contain a JSON object")
        rates = rates.with_overrides(data)

    env = os.environ if environ is None else environ
    from_env = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX) and value.strip()
    }
    if from_env:
        rates = rates.with_overrides(from_env)
    return rates
