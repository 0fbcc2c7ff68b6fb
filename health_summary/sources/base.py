from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

from ..models import MetricKind, Quantity, RawSession, TimeWindow


@runtime_checkable
class HealthDataSource(Protocol):
    """
    Read side of a health data store.

    Implementations return quantities in whatever unit they hold; callers
    convert. `None` from query_aggregate_sum means "no data in the window".
    """

    async def request_authorization(self, kinds: Iterable[MetricKind]) -> None:
        """Raise AuthorizationError when read access is not available."""
        ...

    async def query_aggregate_sum(self, kind: MetricKind, window: TimeWindow) -> Optional[Quantity]:
        ...

    async def query_sessions(self, window: TimeWindow) -> Sequence[RawSession]:
        ...
