"""Collaborator contracts the data gatherer depends on.

Implementations may be plain (blocking) callables or coroutine functions; the
gatherer runs the former in a worker thread. Returning ``Absent`` means the
upstream answered but had nothing usable; raising (usually
``UpstreamUnavailable``) means the call itself failed.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..signals import HistorySignal, IndexSignal, SeriesSignal, TerrainSignal
from ..utils import Location, TimeWindow


@runtime_checkable
class SeriesSource(Protocol):
    """Daily precipitation (mm/day) or temperature (degC) at a point."""

    def fetch_series(self, location: Location, window: TimeWindow) -> SeriesSignal:
        ...


PrecipitationSource = SeriesSource
TemperatureSource = SeriesSource


@runtime_checkable
class TerrainSource(Protocol):
    def fetch_point(self, location: Location) -> TerrainSignal:
        ...


@runtime_checkable
class IndexSource(Protocol):
    """A recent normalized-difference index (NDVI for vegetation, NDWI for moisture)."""

    def fetch_index(self, location: Location) -> IndexSignal:
        ...


VegetationSource = IndexSource
MoistureSource = IndexSource


@runtime_checkable
class HazardHistorySource(Protocol):
    def fetch_events(self, location: Location, window: TimeWindow) -> HistorySignal:
        ...
