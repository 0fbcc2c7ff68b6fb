import datetime as dt

import pytest
import pytz

from health_summary.models import MetricKind, Quantity
from health_summary.utils import (
    floor_int,
    normalize_activity_type,
    redact,
    to_canonical,
    today_window,
)

PARIS = pytz.timezone("Europe/Paris")


def test_today_window_starts_at_local_midnight():
    now = PARIS.localize(dt.datetime(2024, 7, 11, 18, 30))
    window = today_window(now, PARIS)
    assert window.start == PARIS.localize(dt.datetime(2024, 7, 11, 0, 0))
    assert window.end == now
    assert window.start.utcoffset() == dt.timedelta(hours=2)


def test_today_window_naive_now_is_local_time():
    window = today_window(dt.datetime(2024, 1, 15, 9, 0), PARIS)
    assert window.start.isoformat() == "2024-01-15T00:00:00+01:00"
    assert window.end.isoformat() == "2024-01-15T09:00:00+01:00"


def test_today_window_converts_aware_now_to_local_day():
    # 23:30 UTC on the 10th is already the 11th in Paris
    now = dt.datetime(2024, 7, 10, 23, 30, tzinfo=dt.timezone.utc)
    window = today_window(now, PARIS)
    assert window.start.date() == dt.date(2024, 7, 11)


def test_window_is_half_open():
    window = today_window(PARIS.localize(dt.datetime(2024, 7, 11, 12, 0)), PARIS)
    assert window.contains(window.start)
    assert not window.contains(window.end)
    assert not window.contains(window.start - dt.timedelta(seconds=1))


def test_floor_int_truncates_toward_zero():
    assert floor_int(399.99) == 399
    assert floor_int(0.4) == 0
    assert floor_int(7) == 7
    with pytest.raises(ValueError):
        floor_int(float("nan"))
    with pytest.raises(ValueError):
        floor_int(float("inf"))


def test_to_canonical_units():
    assert to_canonical(Quantity(1.5, "L"), MetricKind.LIQUID_CONSUMED) == 1500.0
    assert to_canonical(Quantity(250, "mL"), MetricKind.LIQUID_CONSUMED) == 250.0
    assert to_canonical(Quantity(8, "fl_oz_us"), MetricKind.LIQUID_CONSUMED) == pytest.approx(236.588, abs=1e-3)
    assert to_canonical(Quantity(418.4, "kJ"), MetricKind.KCAL_BURNED) == pytest.approx(100.0)
    assert to_canonical(Quantity(500, "Cal"), MetricKind.KCAL_CONSUMED) == 500.0
    assert to_canonical(Quantity(42, "count"), MetricKind.STEPS) == 42.0


def test_small_calories_are_thousandths_of_kcal():
    assert to_canonical(Quantity(400000.0, "cal"), MetricKind.KCAL_BURNED) == pytest.approx(400.0)
    assert to_canonical(Quantity(400, "Cal"), MetricKind.KCAL_BURNED) == 400.0


def test_to_canonical_rejects_wrong_unit_for_kind():
    with pytest.raises(ValueError):
        to_canonical(Quantity(10, "kcal"), MetricKind.STEPS)
    with pytest.raises(ValueError):
        to_canonical(Quantity(10, "mL"), MetricKind.KCAL_BURNED)


@pytest.mark.parametrize(
    "code, expected",
    [
        (50, "strength"),
        (52, "walk"),
        (37, "running"),
        (13, "cycling"),
        ("37", "running"),
        ("HKWorkoutActivityTypeTraditionalStrengthTraining", "strength"),
        ("HKWorkoutActivityTypeWalking", "walk"),
        ("HKWorkoutActivityTypeCycling", "cycling"),
        (46, "unknown"),
        ("HKWorkoutActivityTypeYoga", "unknown"),
        ("", "unknown"),
        (None, "unknown"),
    ],
)
def test_normalize_activity_type(code, expected):
    assert normalize_activity_type(code) == expected


def test_redact():
    assert redact(None) == ""
    assert redact("short") == "***"
    assert redact("sk-1234567890") == "sk-1…"
