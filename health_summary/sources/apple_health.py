from __future__ import annotations

import asyncio
import datetime as dt
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, Iterable, List, Optional, Sequence, Union

import structlog
from lxml import etree

from ..errors import AuthorizationError
from ..models import MetricKind, Quantity, RawSession, TimeWindow
from ..utils import to_canonical

logger = structlog.get_logger()

# Reads the export.xml produced by Health > Export All Health Data.
#
# Totals are plain sums over every Record in the window. HealthKit's own
# statistics de-duplicate overlapping samples across devices (iPhone and
# Watch both count steps); the export carries no such merge, so pass
# `source_names` to keep only the devices/apps that should count.

RECORD_TYPES = {
    "HKQuantityTypeIdentifierStepCount": MetricKind.STEPS,
    "HKQuantityTypeIdentifierActiveEnergyBurned": MetricKind.KCAL_BURNED,
    "HKQuantityTypeIdentifierDietaryEnergyConsumed": MetricKind.KCAL_CONSUMED,
    "HKQuantityTypeIdentifierDietaryWater": MetricKind.LIQUID_CONSUMED,
}

ENERGY_STATISTIC = "HKQuantityTypeIdentifierActiveEnergyBurned"

DURATION_TO_SECONDS = {"s": 1.0, "sec": 1.0, "min": 60.0, "hr": 3600.0, "h": 3600.0}

DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


@dataclass(frozen=True)
class ExportRecord:
    kind: MetricKind
    start: dt.datetime
    quantity: Quantity
    source_name: Optional[str] = None


@dataclass
class ExportData:
    records: List[ExportRecord] = field(default_factory=list)
    workouts: List[RawSession] = field(default_factory=list)
    # sourceName per workout, parallel to `workouts`
    workout_sources: List[Optional[str]] = field(default_factory=list)


# --------------------------- Parsing ---------------------------

def _parse_date(value: Optional[str]) -> dt.datetime:
    if not value:
        raise ValueError("missing startDate")
    return dt.datetime.strptime(value.strip(), DATE_FORMAT)


def _parse_record(elem: etree._Element) -> Optional[ExportRecord]:
    kind = RECORD_TYPES.get(elem.get("type", ""))
    if kind is None:
        return None
    quantity = Quantity(float(elem.get("value", "")), elem.get("unit") or kind.unit)
    return ExportRecord(
        kind=kind,
        start=_parse_date(elem.get("startDate")),
        quantity=quantity,
        source_name=elem.get("sourceName"),
    )


def _workout_energy(elem: etree._Element) -> Optional[Quantity]:
    total = elem.get("totalEnergyBurned")
    if total is not None:
        return Quantity(float(total), elem.get("totalEnergyBurnedUnit") or "kcal")
    # newer exports moved the totals into WorkoutStatistics children
    for stat in elem.iter("WorkoutStatistics"):
        if stat.get("type") == ENERGY_STATISTIC and stat.get("sum") is not None:
            return Quantity(float(stat.get("sum", "")), stat.get("unit") or "kcal")
    return None


def _parse_workout(elem: etree._Element) -> RawSession:
    unit = elem.get("durationUnit") or "min"
    if unit not in DURATION_TO_SECONDS:
        raise ValueError(f"unknown duration unit {unit!r}")
    duration = float(elem.get("duration") or 0) * DURATION_TO_SECONDS[unit]
    metadata = {
        m.get("key"): m.get("value")
        for m in elem.findall("MetadataEntry")
        if m.get("key")
    }
    return RawSession(
        activity_type=elem.get("workoutActivityType"),
        duration_seconds=duration,
        total_energy_burned=_workout_energy(elem),
        metadata=metadata,
        start=_parse_date(elem.get("startDate")),
    )


def _release(elem: etree._Element) -> None:
    # drop the element and the already-processed siblings before it
    elem.clear()
    parent = elem.getparent()
    if parent is None:
        return
    while elem.getprevious() is not None:
        del parent[0]


def parse_export(path: Union[str, os.PathLike]) -> ExportData:
    """Stream through export.xml keeping only the records the summary needs."""
    data = ExportData()
    skipped = 0
    for _, elem in etree.iterparse(str(path), events=("end",), tag=("Record", "Workout"), huge_tree=True):
        if elem.tag == "Record":
            try:
                record = _parse_record(elem)
            except ValueError as e:
                skipped += 1
                logger.debug("export_record_skipped", type=elem.get("type"), error=str(e))
                record = None
            if record is not None:
                data.records.append(record)
        else:
            try:
                data.workouts.append(_parse_workout(elem))
                data.workout_sources.append(elem.get("sourceName"))
            except ValueError as e:
                skipped += 1
                logger.debug("export_workout_skipped", error=str(e))
        _release(elem)

    logger.info(
        "export_loaded",
        path=str(path),
        records=len(data.records),
        workouts=len(data.workouts),
        skipped=skipped,
    )
    return data


# --------------------------- Source ---------------------------

class AppleHealthExport:
    """HealthDataSource backed by an Apple Health export file."""

    def __init__(
        self,
        path: Union[str, os.PathLike],
        data: Optional[ExportData] = None,
        *,
        source_names: Optional[Collection[str]] = None,
    ) -> None:
        self.path = Path(path)
        self.source_names = frozenset(source_names) if source_names else None
        self._data = data
        self._lock = asyncio.Lock()

    @classmethod
    async def load(
        cls, path: Union[str, os.PathLike], *, source_names: Optional[Collection[str]] = None
    ) -> "AppleHealthExport":
        source = cls(path, source_names=source_names)
        await source._ensure_loaded()
        return source

    async def _ensure_loaded(self) -> ExportData:
        async with self._lock:
            if self._data is None:
                self._data = await asyncio.to_thread(parse_export, self.path)
            return self._data

    def _counts(self, source_name: Optional[str]) -> bool:
        return self.source_names is None or source_name in self.source_names

    async def request_authorization(self, kinds: Iterable[MetricKind]) -> None:
        if not self.path.is_file():
            raise AuthorizationError(f"Health export not found: {self.path}")
        try:
            await self._ensure_loaded()
        except (OSError, etree.LxmlError) as e:
            raise AuthorizationError(f"Health export unreadable: {self.path}: {e}") from e
        logger.info("authorization_granted", source="apple_health", kinds=[k.value for k in kinds])

    async def query_aggregate_sum(self, kind: MetricKind, window: TimeWindow) -> Optional[Quantity]:
        data = await self._ensure_loaded()
        matched = [
            r for r in data.records
            if r.kind is kind and window.contains(r.start) and self._counts(r.source_name)
        ]
        if not matched:
            return None
        total = sum(to_canonical(r.quantity, kind) for r in matched)
        return Quantity(total, kind.unit)

    async def query_sessions(self, window: TimeWindow) -> Sequence[RawSession]:
        data = await self._ensure_loaded()
        return [
            w for w, src in zip(data.workouts, data.workout_sources)
            if w.start is not None and window.contains(w.start) and self._counts(src)
        ]
