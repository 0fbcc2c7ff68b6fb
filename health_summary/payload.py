from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import SerializationError
from .models import DailySummary, MetricKind, MetricSample, SessionRecord

MetricType = Literal["KCAL_BURNED", "KCAL_CONSUMED", "MILLILITER_DRANK", "STEPS"]
ActivityType = Literal["strength", "walk", "running", "cycling", "unknown"]


class MetricEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: MetricType
    value: int = Field(ge=0)


class WorkoutEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: Optional[str] = None
    kcal_burned: int = Field(alias="kcalBurned", ge=0)
    activity_type: ActivityType = Field(alias="activityType")
    duration: int = Field(ge=0, description="seconds")

    @classmethod
    def from_record(cls, record: SessionRecord) -> "WorkoutEntry":
        return cls(
            name=record.name,
            kcal_burned=record.energy_burned_kcal,
            activity_type=record.activity_category,
            duration=record.duration_seconds,
        )

    def to_record(self) -> SessionRecord:
        return SessionRecord(
            name=self.name,
            energy_burned_kcal=self.kcal_burned,
            activity_category=self.activity_type,
            duration_seconds=self.duration,
        )


class SummaryPayload(BaseModel):
    """Body of POST /api/summaries."""

    metrics: List[MetricEntry]
    workouts: List[WorkoutEntry] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: DailySummary) -> "SummaryPayload":
        return cls(
            metrics=[MetricEntry(type=m.kind.value, value=m.value) for m in summary.metrics],
            workouts=[WorkoutEntry.from_record(s) for s in summary.sessions],
        )

    def to_summary(self) -> DailySummary:
        return DailySummary(
            metrics=tuple(MetricSample(MetricKind(m.type), m.value) for m in self.metrics),
            sessions=tuple(w.to_record() for w in self.workouts),
        )


def encode_summary(summary: DailySummary) -> bytes:
    try:
        payload = SummaryPayload.from_summary(summary)
        return payload.model_dump_json(by_alias=True).encode("utf-8")
    except (ValidationError, ValueError, TypeError) as e:
        raise SerializationError(f"cannot encode daily summary: {e}") from e


def decode_summary(body: bytes | str) -> DailySummary:
    try:
        return SummaryPayload.model_validate_json(body).to_summary()
    except (ValidationError, ValueError) as e:
        raise SerializationError(f"cannot decode daily summary: {e}") from e
