"""Request model and small helpers shared by the risk engine."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional

from ..errors import InvalidRequest
from .aoi import aoi_to_geojson, aoi_to_polygon, polygon_contains, polygon_covers

PACKAGE_DIR: Path = Path(__file__).resolve().parents[1]
PLACES_FILE: Path = PACKAGE_DIR / "data" / "places.json"
EARTH_RADIUS_KM = 6371.0
LOGGER = logging.getLogger(__name__)

__all__ = [
    "Location",
    "TimeWindow",
    "BoundingBox",
    "OPERATIONAL_BOUNDS",
    "PlaceDescriptor",
    "haversine_km",
    "load_places",
    "load_place",
    "write_result_json",
    "aoi_to_geojson",
    "aoi_to_polygon",
]


@dataclass(frozen=True)
class Location:
    """A point in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        lat = float(self.latitude)
        lon = float(self.longitude)
        if math.isnan(lat) or math.isnan(lon):
            raise InvalidRequest("Coordinates must be numbers")
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
            raise InvalidRequest(f"Coordinates out of range: ({lat}, {lon})")
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)

    def buffer_bbox(self, half_width_deg: float) -> tuple[float, float, float, float]:
        """Square (minx, miny, maxx, maxy) around the point, for area-based upstreams."""

        return (
            self.longitude - half_width_deg,
            self.latitude - half_width_deg,
            self.longitude + half_width_deg,
            self.latitude + half_width_deg,
        )

    def __str__(self) -> str:
        return f"({self.latitude:.4f}, {self.longitude:.4f})"


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive range of calendar dates."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidRequest(f"Window start {self.start} is after end {self.end}")

    @classmethod
    def ending(cls, end: date, days: int) -> "TimeWindow":
        """Window of ``days`` calendar days finishing on ``end``."""

        if days < 1:
            raise InvalidRequest(f"Window must cover at least one day, got {days}")
        return cls(end - timedelta(days=days - 1), end)

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeWindow":
        try:
            return cls(date.fromisoformat(start), date.fromisoformat(end))
        except ValueError as exc:
            raise InvalidRequest(f"Dates must be YYYY-MM-DD: {exc}") from None

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def lookback(self, days: int) -> "TimeWindow":
        """Window of ``days`` days ending on this window's end date."""

        return TimeWindow.ending(self.end, days)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


@dataclass(frozen=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float

    def __post_init__(self) -> None:
        if not (self.south < self.north and self.west < self.east):
            raise InvalidRequest(f"Degenerate bounding box: {self}")

    @property
    def bbox(self) -> tuple[float, float, float, float]:
        """Shapely/GeoJSON ordering: (minx, miny, maxx, maxy)."""

        return (self.west, self.south, self.east, self.north)

    def contains(self, location: Location) -> bool:
        return polygon_contains(self.bbox, location.longitude, location.latitude)

    def within(self, other: "BoundingBox") -> bool:
        return polygon_covers(other.bbox, self.bbox)

    def lattice(self, grid_size: int) -> Iterator[Location]:
        """(grid_size + 1)^2 evenly spaced points, row by row from south-west."""

        if grid_size < 1:
            raise InvalidRequest(f"Grid size must be at least 1, got {grid_size}")
        lat_step = (self.north - self.south) / grid_size
        lon_step = (self.east - self.west) / grid_size
        for i in range(grid_size + 1):
            # The last row and column land exactly on the north and east edges.
            lat = self.north if i == grid_size else self.south + i * lat_step
            for j in range(grid_size + 1):
                lon = self.east if j == grid_size else self.west + j * lon_step
                yield Location(lat, lon)

    def to_dict(self) -> dict[str, float]:
        return {"south": self.south, "west": self.west, "north": self.north, "east": self.east}


# Rwanda, with a little slack around the national border.
OPERATIONAL_BOUNDS = BoundingBox(south=-2.8, west=28.8, north=-1.0, east=31.0)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass(frozen=True)
class PlaceDescriptor:
    """A named point from the published places catalogue."""

    id: str
    name: str
    location: Location
    bbox: Optional[BoundingBox] = None


def _entry_bbox(entry: Mapping[str, Any], location: Location) -> Optional[BoundingBox]:
    bbox = entry.get("bbox")
    if bbox and len(bbox) == 4:
        west, south, east, north = (float(v) for v in bbox)
        return BoundingBox(south=south, west=west, north=north, east=east)

    radius_km = entry.get("radius_km")
    if radius_km is None:
        return None
    lat_delta = float(radius_km) / 111.0
    lon_scale = max(abs(math.cos(math.radians(location.latitude))), 0.01)
    lon_delta = float(radius_km) / (111.0 * lon_scale)
    return BoundingBox(
        south=location.latitude - lat_delta,
        west=location.longitude - lon_delta,
        north=location.latitude + lat_delta,
        east=location.longitude + lon_delta,
    )


def load_places(path: Path = PLACES_FILE) -> List[PlaceDescriptor]:
    """Load every place descriptor from the catalogue."""

    if not path.exists():
        raise FileNotFoundError(f"Places catalogue missing at {path}")

    raw = json.loads(path.read_text(encoding="utf-8"))
    places: List[PlaceDescriptor] = []
    for entry in raw:
        if entry.get("lat") is None or entry.get("lon") is None:
            LOGGER.warning("Skipping place without coordinates: %s", entry)
            continue
        location = Location(float(entry["lat"]), float(entry["lon"]))
        places.append(
            PlaceDescriptor(
                id=str(entry["id"]),
                name=str(entry.get("name", entry["id"])),
                location=location,
                bbox=_entry_bbox(entry, location),
            )
        )
    return places


def load_place(place_id: str, path: Path = PLACES_FILE) -> PlaceDescriptor:
    """Lookup a place descriptor by identifier."""

    for place in load_places(path):
        if place.id == place_id:
            return place
    raise InvalidRequest(f"Place '{place_id}' not found in {path}")


def write_result_json(output_dir: Path, name: str, payload: Mapping[str, Any]) -> Path:
    """Write a serialized result under ``output_dir`` and return the file path."""

    output_dir.mkdir(parents=True, exist_ok=True)
    safe_name = name.replace("/", "_").replace("..", "_")
    target = output_dir / f"{safe_name}.json"
    with target.open("w", encoding="utf-8") as stream:
        json.dump(payload, stream, indent=2, sort_keys=True)
        stream.write("\n")
    LOGGER.info("Wrote risk payload %s -> %s", name, target)
    return target
