"""Per-user daily quota enforcement."""

import logging

import httpx

from core.config import QuotaSettings
from core.exceptions import QuotaCounterUnavailable, QuotaExceeded
from core.protocols import QuotaCounter

logger = logging.getLogger(__name__)


class HttpQuotaCounter:
    """Count calls via ``POST <counter_url>`` with ``{"user_id", "limit"}``.

    The counter answers ``{"exceeded": bool}``.
    """

    def __init__(self, client: httpx.AsyncClient, settings: QuotaSettings) -> None:
        if not settings.counter_url:
            raise ValueError("counter_url is required")
        self._client = client
        self._url = settings.counter_url
        self._api_key = settings.counter_api_key

    async def exceeded(self, user_id: str, limit: int) -> bool:
        headers = {"apikey": self._api_key} if self._api_key else {}
        try:
            response = await self._client.post(
                self._url,
                json={"user_id": user_id, "limit": limit},
                headers=headers,
            )
        except httpx.RequestError as e:
            raise QuotaCounterUnavailable(f"Quota counter unreachable: {e}") from e
        if not response.is_success:
            raise QuotaCounterUnavailable(f"Quota counter error: {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise QuotaCounterUnavailable("Quota counter returned invalid JSON") from e
        return isinstance(data, dict) and data.get("exceeded") is True


class QuotaEnforcer:
    """Reject authenticated calls over the daily limit; fail open when the counter is down."""

    def __init__(self, counter: QuotaCounter | None, daily_limit: int | None) -> None:
        self._counter = counter
        self._limit = daily_limit

    @property
    def enabled(self) -> bool:
        return self._limit is not None

    async def enforce(self, user_id: str) -> None:
        if not self.enabled:
            return
        if self._counter is None:
            logger.warning("Quota limit set but no counter configured; allowing %s", user_id)
            return
        try:
            over = await self._counter.exceeded(user_id, self._limit)
        except QuotaCounterUnavailable as e:
            logger.warning("Quota check skipped for %s: %s", user_id, e)
            return
        if over:
            raise QuotaExceeded(f"Daily limit of {self._limit} calls reached")
