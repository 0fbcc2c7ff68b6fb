from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any, Dict, List, Optional

import pytest
import pytz

from health_summary.models import MetricKind, Quantity, RawSession

PARIS = pytz.timezone("Europe/Paris")
# 2024-07-11 18:30 local
NOW = PARIS.localize(dt.datetime(2024, 7, 11, 18, 30))


class FakeSource:
    """
    In-memory HealthDataSource.

    `totals` maps a kind to a Quantity, None (no data) or an exception to
    raise. `sessions` is a list of RawSession or an exception. `gates`
    holds asyncio.Events keyed by kind or "sessions"; a query waits on its
    gate before answering.
    """

    def __init__(
        self,
        totals: Optional[Dict[MetricKind, Any]] = None,
        sessions: Any = (),
        gates: Optional[Dict[Any, asyncio.Event]] = None,
    ) -> None:
        self.totals = totals or {}
        self.sessions = sessions
        self.gates = gates or {}
        self.started: List[Any] = []
        self.completed: List[Any] = []
        self.windows = []

    async def request_authorization(self, kinds) -> None:
        return None

    async def _answer(self, key, value):
        self.started.append(key)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        self.completed.append(key)
        if isinstance(value, BaseException):
            raise value
        return value

    async def query_aggregate_sum(self, kind, window):
        self.windows.append(window)
        return await self._answer(kind, self.totals.get(kind))

    async def query_sessions(self, window):
        self.windows.append(window)
        return await self._answer("sessions", self.sessions)


class RecordingSubmitter:
    def __init__(self, result: bool = True, source: Optional[FakeSource] = None) -> None:
        self.result = result
        self.source = source
        self.bodies: List[bytes] = []
        # what the source had finished when submit() was called
        self.completed_at_submit: List[List[Any]] = []

    async def submit(self, body: bytes) -> bool:
        self.bodies.append(body)
        if self.source is not None:
            self.completed_at_submit.append(list(self.source.completed))
        return self.result


def morning_run() -> RawSession:
    return RawSession(
        activity_type=37,
        duration_seconds=1800.0,
        total_energy_burned=Quantity(300.0, "kcal"),
        metadata={"HKWorkoutBrandName": "Morning Run"},
    )


@pytest.fixture
def scenario_source() -> FakeSource:
    return FakeSource(
        totals={
            MetricKind.STEPS: Quantity(8000, "count"),
            MetricKind.KCAL_BURNED: Quantity(400.0, "kcal"),
            MetricKind.KCAL_CONSUMED: Quantity(1800.0, "kcal"),
            MetricKind.LIQUID_CONSUMED: Quantity(1200.0, "mL"),
        },
        sessions=[morning_run()],
    )
