"""Test doubles for the upstream collaborators and the HTTP session."""

from __future__ import annotations

import asyncio
import random
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

import requests

from climarisk.errors import UpstreamUnavailable
from climarisk.signals import DailySeries, HazardEvent, HazardHistory, IndexValue, TerrainPoint


def daily(values: Sequence[float], end: date, unit: str = "mm/day") -> DailySeries:
    """Series whose last sample falls on ``end``."""

    start = end - timedelta(days=len(values) - 1)
    return DailySeries.from_pairs([(start + timedelta(days=i), v) for i, v in enumerate(values)], unit)


def history(hazard: str, start: date, end: date, days: Sequence[date] = ()) -> HazardHistory:
    return HazardHistory(hazard, start, end, tuple(HazardEvent(day, 1.0) for day in days))


class StaticSeries:
    def __init__(self, result):
        self.result = result
        self.calls: List[tuple] = []

    def fetch_series(self, location, window):
        self.calls.append((location, window))
        return self.result


class StaticTerrain:
    def __init__(self, elevation_m: float = 1500.0, slope_deg: float = 5.0):
        self.result = TerrainPoint(elevation_m, slope_deg)
        self.calls: List[Any] = []

    def fetch_point(self, location):
        self.calls.append(location)
        return self.result


class StaticIndex:
    def __init__(self, value: float, index: str = "ndvi"):
        self.result = IndexValue(value, index)

    def fetch_index(self, location):
        return self.result


class StaticHistory:
    """Returns the configured events that fall inside the requested window."""

    def __init__(self, hazard: str, days: Sequence[date] = ()):
        self.hazard = hazard
        self.days = tuple(days)
        self.calls: List[tuple] = []

    def fetch_events(self, location, window):
        self.calls.append((location, window))
        inside = [day for day in self.days if window.start <= day <= window.end]
        return history(self.hazard, window.start, window.end, inside)


class AsyncStaticIndex:
    def __init__(self, value: float, index: str = "ndvi"):
        self.result = IndexValue(value, index)

    async def fetch_index(self, location):
        await asyncio.sleep(0)
        return self.result


class FailingSource:
    """Every fetch raises."""

    def __init__(self, message: str = "upstream down"):
        self.message = message

    def _fail(self, *args):
        raise UpstreamUnavailable("fake", self.message)

    fetch_series = fetch_point = fetch_index = fetch_events = _fail


class NoneSource:
    def _none(self, *args):
        return None

    fetch_series = fetch_point = fetch_index = fetch_events = _none


class SlowSource:
    def __init__(self, delay: float = 5.0):
        self.delay = delay

    async def _slow(self, *args):
        await asyncio.sleep(self.delay)
        return TerrainPoint(1500.0, 5.0)

    fetch_point = _slow


class RandomWeather:
    """Seeded synthetic rain; the only place randomness enters the tests."""

    def __init__(self, seed: int = 7, mean_mm: float = 6.0):
        self.rng = random.Random(seed)
        self.mean_mm = mean_mm

    def fetch_series(self, location, window):
        values = [max(0.0, self.rng.gauss(self.mean_mm, 3.0)) for _ in range(window.days)]
        return daily(values, window.end)


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, text: Optional[str] = None):
        self.payload = payload
        self.status_code = status_code
        self.text = text if text is not None else ""
        self.content = self.text.encode("utf-8")

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if self.payload is None:
            raise ValueError("No JSON body")
        return self.payload


class FakeSession:
    """Answers by URL substring; each route holds a list of responses consumed in order."""

    def __init__(self, routes: Dict[str, List[FakeResponse]]):
        self.routes = {key: list(value) for key, value in routes.items()}
        self.calls: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        for key, responses in self.routes.items():
            if key in url:
                if len(responses) > 1:
                    return responses.pop(0)
                return responses[0]
        raise AssertionError(f"Unexpected request to {url}")

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("POST", url, **kwargs)
