"""Typed upstream signals and the per-request bundle handed to composers.

Every collaborator answers with either a present value (``DailySeries``,
``TerrainPoint``, ``IndexValue`` or ``HazardHistory``) or ``Absent``. Scorers
branch on ``signal.present`` instead of probing loosely-typed payloads.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import date
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple, Union

from .utils import Location, TimeWindow


class SignalKind(str, Enum):
    PRECIPITATION = "precipitation"
    ANTECEDENT_PRECIPITATION = "antecedent_precipitation"
    TEMPERATURE = "temperature"
    TERRAIN = "terrain"
    VEGETATION = "vegetation"
    MOISTURE = "moisture"
    FLOOD_HISTORY = "flood_history"
    LANDSLIDE_HISTORY = "landslide_history"


@dataclass(frozen=True)
class Absent:
    """Explicit marker that an upstream produced no usable data."""

    reason: str = "unavailable"
    present: ClassVar[bool] = False


NOT_REQUESTED = Absent("not requested")


@dataclass(frozen=True)
class Sample:
    day: date
    value: float


@dataclass(frozen=True)
class DailySeries:
    """Non-empty, date-ordered daily samples (mm/day, degC, ...)."""

    samples: Tuple[Sample, ...]
    unit: str = ""
    present: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if not self.samples:
            raise ValueError("DailySeries needs at least one sample; use Absent instead")
        for previous, current in zip(self.samples, self.samples[1:]):
            if current.day <= previous.day:
                raise ValueError(f"Samples out of order: {previous.day} then {current.day}")

    @classmethod
    def from_pairs(cls, pairs, unit: str = "") -> "DailySeries":
        return cls(tuple(Sample(day, float(value)) for day, value in sorted(pairs)), unit)

    @property
    def values(self) -> Tuple[float, ...]:
        return tuple(sample.value for sample in self.samples)

    def total(self) -> float:
        return math.fsum(self.values)

    def mean(self) -> float:
        return self.total() / len(self.samples)

    def tail(self, count: int) -> Tuple[float, ...]:
        if count <= 0:
            return ()
        return self.values[-count:]

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class TerrainPoint:
    elevation_m: float
    slope_deg: float
    present: ClassVar[bool] = True


@dataclass(frozen=True)
class IndexValue:
    """A normalized-difference index (NDVI, NDWI) in [-1, 1]."""

    value: float
    index: str = "ndvi"
    present: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if math.isnan(self.value) or not -1.0 <= self.value <= 1.0:
            raise ValueError(f"{self.index} must be within [-1, 1], got {self.value}")


@dataclass(frozen=True)
class HazardEvent:
    day: date
    magnitude: float
    affected_area_km2: float = 0.0
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class HazardHistory:
    """Events recorded near a location inside ``[start, end]``; may be empty."""

    hazard: str
    start: date
    end: date
    events: Tuple[HazardEvent, ...] = ()
    present: ClassVar[bool] = True

    def latest(self) -> Optional[HazardEvent]:
        if not self.events:
            return None
        return max(self.events, key=lambda event: event.day)

    def __len__(self) -> int:
        return len(self.events)


SeriesSignal = Union[DailySeries, Absent]
TerrainSignal = Union[TerrainPoint, Absent]
IndexSignal = Union[IndexValue, Absent]
HistorySignal = Union[HazardHistory, Absent]
Signal = Union[DailySeries, TerrainPoint, IndexValue, HazardHistory, Absent]


@dataclass(frozen=True)
class RawSignalBundle:
    """Everything gathered for one risk computation. Never shared between requests."""

    location: Location
    window: TimeWindow
    precipitation: SeriesSignal = NOT_REQUESTED
    antecedent_precipitation: SeriesSignal = NOT_REQUESTED
    temperature: SeriesSignal = NOT_REQUESTED
    terrain: TerrainSignal = NOT_REQUESTED
    vegetation: IndexSignal = NOT_REQUESTED
    moisture: IndexSignal = NOT_REQUESTED
    flood_history: HistorySignal = NOT_REQUESTED
    landslide_history: HistorySignal = NOT_REQUESTED

    def get(self, kind: SignalKind) -> Signal:
        return getattr(self, kind.value)

    def absent_reasons(self) -> Dict[str, str]:
        reasons: Dict[str, str] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, Absent) and value is not NOT_REQUESTED:
                reasons[item.name] = value.reason
        return reasons
