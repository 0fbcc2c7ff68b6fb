from __future__ import annotations

from typing import Optional

import httpx
import structlog

from .config import Settings
from .errors import ConfigurationError
from .utils import redact

logger = structlog.get_logger()

SUMMARIES_PATH = "/api/summaries"


class SubmissionClient:
    """
    Posts an encoded daily summary to the metrics API.

    One attempt per call: no retry, no backoff. Failures are logged and
    reported through the return value.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ConfigurationError("BASE_URL is not set.")
        if not api_key or not api_key.strip():
            raise ConfigurationError("API_KEY is not set.")
        self.url = base_url.strip().rstrip("/") + SUMMARIES_PATH
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "SubmissionClient":
        return cls(
            settings.BASE_URL or "",
            settings.API_KEY or "",
            timeout=settings.SUBMIT_TIMEOUT_SECONDS,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-API-KEY": self._api_key,
        }

    async def submit(self, body: bytes) -> bool:
        """True when the API answered 2xx."""
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                r = await client.post(self.url, content=body, headers=self._headers())
            except httpx.TransportError as e:
                logger.error(
                    "summary_submit_failed",
                    url=self.url,
                    api_key=redact(self._api_key),
                    error=f"{type(e).__name__}: {e}",
                )
                return False

        if 200 <= r.status_code <= 299:
            logger.info("summary_submitted", url=self.url, status=r.status_code, response=r.text)
            return True

        logger.error("summary_rejected", url=self.url, status=r.status_code, response=r.text[:500])
        return False
