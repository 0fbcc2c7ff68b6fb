from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

import httpx
import structlog

from .client import SubmissionClient
from .config import Settings
from .errors import FetchError, HealthSummaryError, SerializationError
from .metrics import fetch_metric_total
from .models import METRIC_KINDS, DailySummary, TimeWindow
from .payload import encode_summary
from .sessions import fetch_sessions, serialize_sessions
from .sources.base import HealthDataSource
from .utils import get_tz, today_window

logger = structlog.get_logger()


class Submitter(Protocol):
    async def submit(self, body: bytes) -> bool: ...


@dataclass(frozen=True)
class AggregationResult:
    window: TimeWindow
    summary: DailySummary
    errors: Tuple[FetchError, ...] = ()
    # a request went out
    submitted: bool = False
    # the API accepted it
    success: bool = False


class DailyAggregator:
    """
    One sync run: fan out the four metric queries and the session query,
    wait for all of them, build the summary, submit it once.
    """

    def __init__(
        self,
        source: HealthDataSource,
        submitter: Optional[Submitter],
        *,
        tz: Optional[dt.tzinfo] = None,
        query_timeout: Optional[float] = None,
    ) -> None:
        self.source = source
        self.submitter = submitter
        self.tz = tz
        self.query_timeout = query_timeout
        self._lock = asyncio.Lock()

    async def collect(self, window: TimeWindow) -> Tuple[DailySummary, List[FetchError]]:
        """Run the five queries concurrently and join on all of them."""
        errors: List[FetchError] = []
        metric_tasks = [
            fetch_metric_total(self.source, kind, window, timeout=self.query_timeout, errors=errors)
            for kind in METRIC_KINDS
        ]
        *totals, sessions = await asyncio.gather(
            *metric_tasks,
            fetch_sessions(self.source, window, timeout=self.query_timeout, errors=errors),
        )
        summary = DailySummary.build(dict(zip(METRIC_KINDS, totals)), sessions)
        return summary, errors

    async def run(self, now: Optional[dt.datetime] = None) -> Optional[AggregationResult]:
        if self._lock.locked():
            logger.warning("aggregation_already_running")
            return None

        async with self._lock:
            window = today_window(now, self.tz or get_tz())
            logger.info("aggregation_started", start=window.start.isoformat(), end=window.end.isoformat())

            summary, errors = await self.collect(window)
            result = AggregationResult(window=window, summary=summary, errors=tuple(errors))

            try:
                body = encode_summary(summary)
            except SerializationError as e:
                logger.error("summary_serialization_failed", error=str(e), fetch_errors=len(errors))
                return result

            logger.info(
                "summary_built",
                metrics={m.kind.value: m.value for m in summary.metrics},
                workouts=serialize_sessions(summary.sessions),
                fetch_errors=len(errors),
            )

            if self.submitter is None:
                return result

            success = await self.submitter.submit(body)
            return AggregationResult(
                window=window,
                summary=summary,
                errors=tuple(errors),
                submitted=True,
                success=success,
            )


async def run_daily_aggregation(
    source: HealthDataSource,
    settings: Settings,
    *,
    now: Optional[dt.datetime] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AggregationResult:
    aggregator = DailyAggregator(
        source,
        SubmissionClient.from_settings(settings, transport=transport),
        tz=get_tz(settings.TZ),
        query_timeout=settings.QUERY_TIMEOUT_SECONDS,
    )
    result = await aggregator.run(now)
    if result is None:
        raise HealthSummaryError("aggregation already running")
    return result
