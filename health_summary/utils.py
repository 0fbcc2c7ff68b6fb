from __future__ import annotations

import datetime as dt
import math
from typing import Optional, Union

import pytz

from .config import get_settings
from .models import MetricKind, Quantity, TimeWindow


def get_tz(name: Optional[str] = None) -> pytz.BaseTzInfo:
    return pytz.timezone(name or get_settings().TZ)


def today_window(now: Optional[dt.datetime] = None, tz: Optional[dt.tzinfo] = None) -> TimeWindow:
    """
    [local midnight of today, now) in the given timezone.
    A naive `now` is taken as already being local time.
    """
    tz = tz or get_tz()
    if now is None:
        now = dt.datetime.now(tz)
    elif now.tzinfo is None:
        now = _localize(tz, now)
    else:
        now = now.astimezone(tz)
    midnight = _localize(tz, dt.datetime.combine(now.date(), dt.time.min))
    return TimeWindow(start=midnight, end=now)


def _localize(tz: dt.tzinfo, naive: dt.datetime) -> dt.datetime:
    # pytz zones need localize(), plain tzinfo objects take replace()
    if hasattr(tz, "localize"):
        return tz.localize(naive)  # type: ignore[attr-defined]
    return naive.replace(tzinfo=tz)


def floor_int(value: Union[int, float]) -> int:
    """Truncate toward zero; NaN and infinities are rejected."""
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"not a finite number: {value!r}")
    return int(value)


# factor to multiply by to reach the canonical unit
ENERGY_TO_KCAL = {
    "kcal": 1.0,
    "Cal": 1.0,
    "cal": 1 / 1000.0,
    "kJ": 1 / 4.184,
    "J": 1 / 4184.0,
}

LIQUID_TO_ML = {
    "mL": 1.0,
    "ml": 1.0,
    "cL": 10.0,
    "dL": 100.0,
    "L": 1000.0,
    "fl_oz_us": 29.5735295625,
    "fl_oz_imp": 28.4130625,
    "cup_us": 236.5882365,
}

COUNT_UNITS = {"count": 1.0}

UNIT_TABLES = {
    MetricKind.KCAL_BURNED: ENERGY_TO_KCAL,
    MetricKind.KCAL_CONSUMED: ENERGY_TO_KCAL,
    MetricKind.LIQUID_CONSUMED: LIQUID_TO_ML,
    MetricKind.STEPS: COUNT_UNITS,
}


def to_canonical(quantity: Quantity, kind: MetricKind) -> float:
    table = UNIT_TABLES[kind]
    try:
        factor = table[quantity.unit]
    except KeyError:
        raise ValueError(f"unit {quantity.unit!r} cannot be converted to {kind.unit}") from None
    return float(quantity.value) * factor


def energy_to_kcal(quantity: Optional[Quantity]) -> float:
    if quantity is None:
        return 0.0
    return to_canonical(quantity, MetricKind.KCAL_BURNED)


def redact(value: Optional[str]) -> str:
    if not value:
        return ""
    return value[:4] + "…" if len(value) > 8 else "***"


# HKWorkoutActivityType raw values and identifiers
ACTIVITY_TYPE_CODES = {
    50: "strength",
    52: "walk",
    37: "running",
    13: "cycling",
}

ACTIVITY_TYPE_NAMES = {
    "HKWorkoutActivityTypeTraditionalStrengthTraining": "strength",
    "HKWorkoutActivityTypeWalking": "walk",
    "HKWorkoutActivityTypeRunning": "running",
    "HKWorkoutActivityTypeCycling": "cycling",
}


def normalize_activity_type(code: Union[int, str, None]) -> str:
    if code is None or isinstance(code, bool):
        return "unknown"
    if isinstance(code, int):
        return ACTIVITY_TYPE_CODES.get(code, "unknown")
    key = code.strip()
    if key.isdigit():
        return ACTIVITY_TYPE_CODES.get(int(key), "unknown")
    return ACTIVITY_TYPE_NAMES.get(key, "unknown")
