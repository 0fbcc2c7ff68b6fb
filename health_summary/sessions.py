from __future__ import annotations

import asyncio
import json
from typing import List, Optional, Sequence

import structlog

from .errors import FetchError
from .models import RawSession, SessionRecord, TimeWindow
from .payload import WorkoutEntry
from .sources.base import HealthDataSource
from .utils import energy_to_kcal, floor_int, normalize_activity_type

logger = structlog.get_logger()

SESSION_NAME_KEY = "HKWorkoutBrandName"


def normalize_session(raw: RawSession) -> SessionRecord:
    name = raw.metadata.get(SESSION_NAME_KEY) if raw.metadata else None
    if not isinstance(name, str) or not name.strip():
        name = None

    try:
        kcal = max(0, floor_int(energy_to_kcal(raw.total_energy_burned)))
    except ValueError as e:
        logger.warning("session_energy_unusable", name=name, error=str(e))
        kcal = 0

    return SessionRecord(
        name=name,
        energy_burned_kcal=kcal,
        activity_category=normalize_activity_type(raw.activity_type),
        duration_seconds=max(0, floor_int(raw.duration_seconds or 0)),
    )


async def fetch_sessions(
    source: HealthDataSource,
    window: TimeWindow,
    *,
    timeout: Optional[float] = None,
    errors: Optional[List[FetchError]] = None,
) -> List[SessionRecord]:
    """
    Workouts started inside `window`, normalized, in source order.
    A failed query yields [] plus a recorded error.
    """
    try:
        raw_sessions = await asyncio.wait_for(source.query_sessions(window), timeout)
    except asyncio.TimeoutError:
        return _failed(f"query timed out after {timeout}s", errors)
    except Exception as e:
        return _failed(str(e) or type(e).__name__, errors)

    records: List[SessionRecord] = []
    for idx, raw in enumerate(raw_sessions or []):
        try:
            records.append(normalize_session(raw))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("session_skipped", index=idx, error=str(e))

    logger.debug("sessions_fetched", count=len(records))
    return records


def _failed(reason: str, errors: Optional[List[FetchError]]) -> List[SessionRecord]:
    logger.warning("session_fetch_failed", error=reason)
    if errors is not None:
        errors.append(FetchError("sessions", reason))
    return []


def serialize_sessions(records: Sequence[SessionRecord]) -> str:
    """JSON array of the sessions, using the wire field names."""
    return json.dumps([WorkoutEntry.from_record(r).model_dump(by_alias=True) for r in records])
