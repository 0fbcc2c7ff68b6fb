from __future__ import annotations


class HealthSummaryError(Exception):
    """Base class for everything the sync pipeline raises."""


class ConfigurationError(HealthSummaryError):
    """Required settings are missing or invalid."""


class AuthorizationError(HealthSummaryError):
    """The health data source refused or cannot serve read access."""


class SerializationError(HealthSummaryError):
    """The daily summary could not be encoded for the wire."""


class FetchError(HealthSummaryError):
    """
    Record of one failed query. Stored in the run result, never raised
    across the fetch boundary.
    """

    def __init__(self, target: str, reason: str) -> None:
        super().__init__(f"{target}: {reason}")
        self.target = target
        self.reason = reason
