"""Elevation and slope from the Open-Meteo elevation API."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

import requests

from ..errors import UpstreamUnavailable
from ..net.tls import build_session
from ..signals import TerrainPoint
from ..terrain.wetness import slope_degrees
from ..utils import Location

LOGGER = logging.getLogger(__name__)

ELEVATION_URL = "https://api.open-meteo.com/v1/elevation"
OFFSET_DEG = 0.001
METERS_PER_DEGREE = 111320.0


def sample_grid(location: Location, offset_deg: float = OFFSET_DEG) -> List[Location]:
    """3x3 square of points centred on ``location``, north row first.

    Longitude steps are widened by 1/cos(lat) so the cells stay square on the ground.
    """

    lon_step = offset_deg / max(math.cos(math.radians(location.latitude)), 0.01)
    grid: List[Location] = []
    for row in (1, 0, -1):
        for col in (-1, 0, 1):
            grid.append(Location(location.latitude + row * offset_deg, location.longitude + col * lon_step))
    return grid


class OpenMeteoTerrainSource:
    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30.0, offset_deg: float = OFFSET_DEG):
        self.session = session or build_session()
        self.timeout = timeout
        self.offset_deg = offset_deg

    def fetch_point(self, location: Location) -> TerrainPoint:
        grid = sample_grid(location, self.offset_deg)
        params = {
            "latitude": ",".join(f"{point.latitude:.6f}" for point in grid),
            "longitude": ",".join(f"{point.longitude:.6f}" for point in grid),
        }
        LOGGER.debug("GET %s for %s", ELEVATION_URL, location)
        try:
            response = self.session.get(ELEVATION_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            elevations = response.json().get("elevation")
        except (requests.RequestException, ValueError, AttributeError) as exc:
            raise UpstreamUnavailable("open_meteo", str(exc)) from exc

        if not isinstance(elevations, list) or len(elevations) != 9 or any(value is None for value in elevations):
            raise UpstreamUnavailable("open_meteo", f"Expected 9 elevations, got {elevations!r}")

        window = [[float(value) for value in elevations[row * 3 : row * 3 + 3]] for row in range(3)]
        slope = slope_degrees(window, self.offset_deg * METERS_PER_DEGREE)
        return TerrainPoint(elevation_m=window[1][1], slope_deg=slope)
