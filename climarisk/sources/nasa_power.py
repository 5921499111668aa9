"""NASA POWER daily point client (precipitation and 2 m air temperature)."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..errors import UpstreamUnavailable
from ..net.tls import build_session
from ..signals import Absent, DailySeries, SeriesSignal
from ..utils import Location, TimeWindow

LOGGER = logging.getLogger(__name__)

POWER_URL = "https://power.larc.nasa.gov/api/temporal/daily/point"
FILL_VALUE = -999.0
MAX_HISTORY_YEARS = 5
UNITS = {"PRECTOTCORR": "mm/day", "T2M": "degC"}


def clamp_window(window: TimeWindow, today: Optional[date] = None) -> Optional[TimeWindow]:
    """Trim a window to what POWER serves: no future days, at most five years back."""

    today = today or date.today()
    earliest = today - timedelta(days=365 * MAX_HISTORY_YEARS + 1)
    start = max(window.start, earliest)
    end = min(window.end, today)
    if start > end:
        return None
    return TimeWindow(start, end)


def parse_daily(payload: Dict[str, Any], parameter: str, drop_negative: bool = False) -> List[Tuple[date, float]]:
    try:
        values = payload["properties"]["parameter"][parameter]
    except (KeyError, TypeError):
        raise UpstreamUnavailable("nasa_power", f"Response has no {parameter} values") from None

    pairs: List[Tuple[date, float]] = []
    for stamp, raw in values.items():
        if raw is None:
            continue
        value = float(raw)
        if value <= FILL_VALUE or (drop_negative and value < 0):
            continue
        pairs.append((datetime.strptime(stamp, "%Y%m%d").date(), value))
    return pairs


class NasaPowerSource:
    """``fetch_series`` for one POWER parameter (``PRECTOTCORR`` or ``T2M``)."""

    def __init__(self, parameter: str = "PRECTOTCORR", session: Optional[requests.Session] = None, timeout: float = 30.0):
        if parameter not in UNITS:
            raise ValueError(f"Unsupported NASA POWER parameter: {parameter}")
        self.parameter = parameter
        self.session = session or build_session()
        self.timeout = timeout

    def fetch_series(self, location: Location, window: TimeWindow) -> SeriesSignal:
        clamped = clamp_window(window)
        if clamped is None:
            return Absent(f"{self.parameter}: window outside NASA POWER coverage")

        params = {
            "parameters": self.parameter,
            "latitude": location.latitude,
            "longitude": location.longitude,
            "start": clamped.start.strftime("%Y%m%d"),
            "end": clamped.end.strftime("%Y%m%d"),
            "community": "RE",
            "format": "JSON",
        }
        LOGGER.debug("GET %s %s", POWER_URL, params)
        try:
            response = self.session.get(POWER_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise UpstreamUnavailable("nasa_power", str(exc)) from exc

        pairs = parse_daily(payload, self.parameter, drop_negative=self.parameter == "PRECTOTCORR")
        if not pairs:
            return Absent(f"{self.parameter}: only fill values for {clamped}")
        return DailySeries.from_pairs(pairs, UNITS[self.parameter])
