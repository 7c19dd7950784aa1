"""Public-holiday provider — French metropolitan holidays from calendrier.api.gouv.fr.

The upstream document is a flat JSON object ``{"YYYY-MM-DD": "name", ...}``
covering several years around the current one. It is cached in-process;
when a refresh fails the stale copy (or an empty mapping) is served so that
day counting keeps working without holiday exclusions.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Callable, Optional

import httpx

from intranet.config import settings
from intranet.leave.days import DayLike, to_day
from intranet.leave.schemas import HolidayOut

logger = logging.getLogger(__name__)

HolidayMap = dict[str, str]


class HolidayProvider:
    """Fetches and caches the holiday mapping."""

    def __init__(
        self,
        url: Optional[str] = None,
        cache_seconds: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url or settings.HOLIDAYS_API_URL
        self.cache_seconds = (
            settings.HOLIDAYS_CACHE_SECONDS if cache_seconds is None else cache_seconds
        )
        self.timeout = settings.HOLIDAYS_TIMEOUT_SECONDS if timeout is None else timeout
        self._transport = transport
        self._clock = clock
        self._data: Optional[HolidayMap] = None
        self._fetched_at: float = 0.0

    def _is_fresh(self) -> bool:
        return (
            self._data is not None
            and self._clock() - self._fetched_at < self.cache_seconds
        )

    async def get(self) -> HolidayMap:
        """Return the holiday mapping, refreshing it when the cache expired."""
        if self._is_fresh():
            return self._data  # type: ignore[return-value]

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
                payload = resp.json()
            if not isinstance(payload, dict):
                raise ValueError("holiday payload is not a JSON object")
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch public holidays from %s: %s", self.url, exc)
            return dict(self._data) if self._data is not None else {}

        self._data = {str(k): str(v) for k, v in payload.items()}
        self._fetched_at = self._clock()
        logger.info("Loaded %d public holidays", len(self._data))
        return self._data

    def clear(self) -> None:
        self._data = None
        self._fetched_at = 0.0


# ── Mapping helpers ─────────────────────────────────────────────────

def holidays_for_years(
    holidays: HolidayMap, start_year: int, end_year: int
) -> list[HolidayOut]:
    """Holidays of the inclusive year range, sorted by date."""
    out = [
        HolidayOut(date=date.fromisoformat(key), name=name)
        for key, name in holidays.items()
        if start_year <= int(key[:4]) <= end_year
    ]
    return sorted(out, key=lambda h: h.date)


def holidays_in_range(
    holidays: HolidayMap, start: DayLike, end: DayLike
) -> list[HolidayOut]:
    """Holidays falling inside the inclusive day range, sorted by date."""
    first, last = to_day(start), to_day(end)
    out = [
        HolidayOut(date=day, name=name)
        for key, name in holidays.items()
        if first <= (day := date.fromisoformat(key)) <= last
    ]
    return sorted(out, key=lambda h: h.date)


# ── FastAPI dependency ──────────────────────────────────────────────

holiday_provider = HolidayProvider()


async def get_holidays() -> HolidayMap:
    """Dependency: current holiday mapping (possibly empty)."""
    return await holiday_provider.get()
