"""NASA Global Landslide Catalog (Socrata JSON endpoint)."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import requests

from ..errors import UpstreamUnavailable
from ..net.tls import build_session
from ..signals import HazardEvent, HazardHistory
from ..utils import Location, TimeWindow, haversine_km

LOGGER = logging.getLogger(__name__)

GLC_URL = "https://data.nasa.gov/resource/h9d8-neg4.json"
SIZE_MAGNITUDE = {"small": 1.0, "medium": 2.0, "large": 3.0, "very_large": 4.0, "catastrophic": 5.0}
ROW_LIMIT = 5000


def socrata_query(location: Location, window: TimeWindow, radius_km: float) -> Dict[str, Any]:
    """Pre-filter with a lat/lon box a little larger than the search radius."""

    lat_delta = radius_km / 111.0
    lon_delta = radius_km / (111.0 * max(math.cos(math.radians(location.latitude)), 0.01))
    where = (
        f"latitude > {location.latitude - lat_delta:.4f} AND latitude < {location.latitude + lat_delta:.4f} "
        f"AND longitude > {location.longitude - lon_delta:.4f} AND longitude < {location.longitude + lon_delta:.4f} "
        f"AND event_date >= '{window.start.isoformat()}T00:00:00' AND event_date <= '{window.end.isoformat()}T23:59:59'"
    )
    return {"$where": where, "$order": "event_date DESC", "$limit": ROW_LIMIT}


def parse_event(row: Mapping[str, Any]) -> Optional[HazardEvent]:
    try:
        day = datetime.fromisoformat(str(row["event_date"]).replace("Z", "")).date()
        latitude = float(row["latitude"])
        longitude = float(row["longitude"])
    except (KeyError, TypeError, ValueError):
        return None
    return HazardEvent(
        day=day,
        magnitude=SIZE_MAGNITUDE.get(str(row.get("landslide_size", "")).lower(), 1.0),
        latitude=latitude,
        longitude=longitude,
    )


class LandslideCatalogSource:
    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30.0, radius_km: float = 25.0):
        self.session = session or build_session()
        self.timeout = timeout
        self.radius_km = radius_km

    def fetch_events(self, location: Location, window: TimeWindow) -> HazardHistory:
        params = socrata_query(location, window, self.radius_km)
        LOGGER.debug("GET %s %s", GLC_URL, params["$where"])
        try:
            response = self.session.get(GLC_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            rows = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise UpstreamUnavailable("landslide_catalog", str(exc)) from exc
        if not isinstance(rows, list):
            raise UpstreamUnavailable("landslide_catalog", f"Expected a JSON array, got {type(rows).__name__}")

        events: List[HazardEvent] = []
        for row in rows:
            event = parse_event(row)
            if event is None:
                continue
            if haversine_km(location.latitude, location.longitude, event.latitude, event.longitude) <= self.radius_km:
                events.append(event)
        events.sort(key=lambda event: event.day)
        return HazardHistory("landslide", window.start, window.end, tuple(events))
