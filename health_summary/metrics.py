from __future__ import annotations

import asyncio
from typing import List, Optional

import structlog

from .errors import FetchError
from .models import MetricKind, MetricSample, TimeWindow
from .sources.base import HealthDataSource
from .utils import floor_int, to_canonical

logger = structlog.get_logger()


async def fetch_metric_total(
    source: HealthDataSource,
    kind: MetricKind,
    window: TimeWindow,
    *,
    timeout: Optional[float] = None,
    errors: Optional[List[FetchError]] = None,
) -> int:
    """
    Sum of `kind` over `window` in its canonical unit, truncated to int.

    Any failure (no data, source error, timeout, unusable quantity) gives 0
    and is logged and appended to `errors`; nothing is raised.
    """
    try:
        quantity = await asyncio.wait_for(source.query_aggregate_sum(kind, window), timeout)
        if quantity is None:
            raise LookupError("no data returned")
        total = floor_int(to_canonical(quantity, kind))
        if total < 0:
            raise ValueError(f"negative total {total}")
    except asyncio.TimeoutError:
        return _failed(kind, f"query timed out after {timeout}s", errors)
    except Exception as e:
        return _failed(kind, str(e) or type(e).__name__, errors)

    logger.debug("metric_fetched", kind=kind.value, value=total)
    return total


def _failed(kind: MetricKind, reason: str, errors: Optional[List[FetchError]]) -> int:
    logger.warning("metric_fetch_failed", kind=kind.value, error=reason)
    if errors is not None:
        errors.append(FetchError(kind.value, reason))
    return 0


async def fetch_metric_sample(
    source: HealthDataSource,
    kind: MetricKind,
    window: TimeWindow,
    *,
    timeout: Optional[float] = None,
    errors: Optional[List[FetchError]] = None,
) -> MetricSample:
    total = await fetch_metric_total(source, kind, window, timeout=timeout, errors=errors)
    return MetricSample(kind, total)
