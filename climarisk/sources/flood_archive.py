"""Historical floods from the Dartmouth Flood Observatory master list."""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

import requests

from ..errors import UpstreamUnavailable
from ..net.tls import build_session
from ..signals import HazardEvent, HazardHistory
from ..utils import Location, TimeWindow, haversine_km

LOGGER = logging.getLogger(__name__)

DFO_ARCHIVE_URL = "https://floodobservatory.colorado.edu/temp/FloodArchive.csv"
DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%d-%b-%y")


def _parse_date(raw: Optional[str]) -> Optional[date]:
    if not raw:
        return None
    text = raw.strip().split(" ")[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _float(raw: Optional[str], default: float = 0.0) -> float:
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default


def parse_archive(rows: Iterable[Mapping[str, str]]) -> List[HazardEvent]:
    events: List[HazardEvent] = []
    for row in rows:
        began = _parse_date(row.get("Began"))
        lat = row.get("lat")
        lon = row.get("long")
        if began is None or not lat or not lon:
            continue
        try:
            latitude, longitude = float(lat), float(lon)
        except ValueError:
            LOGGER.debug("Skipping DFO row %s with bad centroid", row.get("ID"))
            continue
        events.append(
            HazardEvent(
                day=began,
                magnitude=_float(row.get("Severity"), 1.0),
                affected_area_km2=_float(row.get("Area")),
                latitude=latitude,
                longitude=longitude,
            )
        )
    return events


class FloodArchiveSource:
    """Flood events whose centroid lies within ``radius_km`` of the location."""

    def __init__(
        self,
        archive_url: str = DFO_ARCHIVE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        radius_km: float = 100.0,
    ):
        self.archive_url = archive_url
        self.session = session or build_session()
        self.timeout = timeout
        self.radius_km = radius_km

    def _read_archive(self) -> str:
        if not self.archive_url.startswith(("http://", "https://")):
            path = Path(self.archive_url)
            try:
                return path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                raise UpstreamUnavailable("dfo", f"Cannot read {path}: {exc}") from exc

        LOGGER.debug("GET %s", self.archive_url)
        try:
            response = self.session.get(self.archive_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise UpstreamUnavailable("dfo", str(exc)) from exc
        return response.content.decode("utf-8", errors="replace")

    def fetch_events(self, location: Location, window: TimeWindow) -> HazardHistory:
        text = self._read_archive()
        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames or "Began" not in reader.fieldnames:
            raise UpstreamUnavailable("dfo", f"Unexpected archive header: {reader.fieldnames}")

        nearby = tuple(
            event
            for event in parse_archive(reader)
            if window.start <= event.day <= window.end
            and haversine_km(location.latitude, location.longitude, event.latitude, event.longitude) <= self.radius_km
        )
        LOGGER.debug("DFO: %d floods within %.0f km of %s over %s", len(nearby), self.radius_km, location, window)
        return HazardHistory("flood", window.start, window.end, nearby)
