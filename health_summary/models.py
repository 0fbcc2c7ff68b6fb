from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union


class MetricKind(str, enum.Enum):
    """Tracked daily quantities; the value is the name used on the wire."""

    KCAL_BURNED = "KCAL_BURNED"
    KCAL_CONSUMED = "KCAL_CONSUMED"
    LIQUID_CONSUMED = "MILLILITER_DRANK"
    STEPS = "STEPS"

    @property
    def unit(self) -> str:
        return CANONICAL_UNITS[self]


CANONICAL_UNITS = {
    MetricKind.KCAL_BURNED: "kcal",
    MetricKind.KCAL_CONSUMED: "kcal",
    MetricKind.LIQUID_CONSUMED: "mL",
    MetricKind.STEPS: "count",
}

# Order of DailySummary.metrics
METRIC_KINDS: Tuple[MetricKind, ...] = (
    MetricKind.KCAL_BURNED,
    MetricKind.KCAL_CONSUMED,
    MetricKind.LIQUID_CONSUMED,
    MetricKind.STEPS,
)

ACTIVITY_CATEGORIES: Tuple[str, ...] = ("strength", "walk", "running", "cycling", "unknown")


@dataclass(frozen=True)
class Quantity:
    value: float
    unit: str


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end)."""

    start: dt.datetime
    end: dt.datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"window end {self.end} is before start {self.start}")

    def contains(self, instant: dt.datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True)
class RawSession:
    """A workout as the health data source reports it."""

    activity_type: Union[int, str, None]
    duration_seconds: float
    total_energy_burned: Optional[Quantity] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    start: Optional[dt.datetime] = None


@dataclass(frozen=True)
class MetricSample:
    kind: MetricKind
    value: int = 0

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"{self.kind.value} value must be >= 0, got {self.value}")


@dataclass(frozen=True)
class SessionRecord:
    name: Optional[str]
    energy_burned_kcal: int
    activity_category: str
    duration_seconds: int


@dataclass(frozen=True)
class DailySummary:
    metrics: Tuple[MetricSample, ...]
    sessions: Tuple[SessionRecord, ...] = ()

    @classmethod
    def build(cls, totals: Mapping[MetricKind, int], sessions) -> "DailySummary":
        """One sample per kind, in METRIC_KINDS order; absent kinds count as 0."""
        metrics = tuple(MetricSample(kind, totals.get(kind, 0)) for kind in METRIC_KINDS)
        return cls(metrics=metrics, sessions=tuple(sessions))

    def value_of(self, kind: MetricKind) -> int:
        for sample in self.metrics:
            if sample.kind is kind:
                return sample.value
        raise KeyError(kind)
