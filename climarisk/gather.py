"""Concurrent collection of the raw signals one risk computation needs."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .signals import (
    Absent,
    DailySeries,
    HazardHistory,
    IndexValue,
    RawSignalBundle,
    Signal,
    SignalKind,
    TerrainPoint,
)
from .sources.base import (
    HazardHistorySource,
    MoistureSource,
    PrecipitationSource,
    TemperatureSource,
    TerrainSource,
    VegetationSource,
)
from .utils import Location, TimeWindow

LOGGER = logging.getLogger(__name__)

Plan = Mapping[SignalKind, Optional[TimeWindow]]

EXPECTED_TYPES = {
    SignalKind.PRECIPITATION: DailySeries,
    SignalKind.ANTECEDENT_PRECIPITATION: DailySeries,
    SignalKind.TEMPERATURE: DailySeries,
    SignalKind.TERRAIN: TerrainPoint,
    SignalKind.VEGETATION: IndexValue,
    SignalKind.MOISTURE: IndexValue,
    SignalKind.FLOOD_HISTORY: HazardHistory,
    SignalKind.LANDSLIDE_HISTORY: HazardHistory,
}
WINDOWED = {
    SignalKind.PRECIPITATION,
    SignalKind.ANTECEDENT_PRECIPITATION,
    SignalKind.TEMPERATURE,
    SignalKind.FLOOD_HISTORY,
    SignalKind.LANDSLIDE_HISTORY,
}


class DataGatherer:
    """Fan out one fetch per requested signal and fold the outcomes into a bundle.

    Every fetch is isolated: an exception, a ``None`` answer, a payload of the
    wrong type or a fetch slower than ``fetch_timeout`` seconds becomes
    ``Absent`` for that signal only. There are no retries at this level.
    """

    def __init__(
        self,
        precipitation: Optional[PrecipitationSource] = None,
        temperature: Optional[TemperatureSource] = None,
        terrain: Optional[TerrainSource] = None,
        vegetation: Optional[VegetationSource] = None,
        moisture: Optional[MoistureSource] = None,
        flood_history: Optional[HazardHistorySource] = None,
        landslide_history: Optional[HazardHistorySource] = None,
        fetch_timeout: float = 45.0,
    ):
        self.fetch_timeout = fetch_timeout
        self._fetchers: Dict[SignalKind, Optional[Callable[..., Any]]] = {
            SignalKind.PRECIPITATION: getattr(precipitation, "fetch_series", None),
            SignalKind.ANTECEDENT_PRECIPITATION: getattr(precipitation, "fetch_series", None),
            SignalKind.TEMPERATURE: getattr(temperature, "fetch_series", None),
            SignalKind.TERRAIN: getattr(terrain, "fetch_point", None),
            SignalKind.VEGETATION: getattr(vegetation, "fetch_index", None),
            SignalKind.MOISTURE: getattr(moisture, "fetch_index", None),
            SignalKind.FLOOD_HISTORY: getattr(flood_history, "fetch_events", None),
            SignalKind.LANDSLIDE_HISTORY: getattr(landslide_history, "fetch_events", None),
        }

    async def _call(self, fetch: Callable[..., Any], args: Tuple[Any, ...]) -> Any:
        if inspect.iscoroutinefunction(fetch):
            return await fetch(*args)
        return await asyncio.to_thread(fetch, *args)

    async def _fetch_one(self, kind: SignalKind, location: Location, window: Optional[TimeWindow]) -> Signal:
        fetch = self._fetchers[kind]
        if fetch is None:
            return Absent("no source configured")

        args: Tuple[Any, ...] = (location,)
        if kind in WINDOWED:
            if window is None:
                return Absent("no time window planned")
            args = (location, window)

        try:
            result = await asyncio.wait_for(self._call(fetch, args), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            reason = f"timed out after {self.fetch_timeout:g}s"
        except Exception as exc:  # noqa: BLE001
            reason = str(exc) or type(exc).__name__
        else:
            if isinstance(result, (Absent, EXPECTED_TYPES[kind])):
                if isinstance(result, Absent):
                    LOGGER.info("%s absent for %s: %s", kind.value, location, result.reason)
                return result
            reason = "no data" if result is None else f"unexpected payload {type(result).__name__}"

        LOGGER.warning("%s unavailable for %s: %s", kind.value, location, reason)
        return Absent(reason)

    async def gather(self, location: Location, window: TimeWindow, plan: Plan) -> RawSignalBundle:
        kinds = list(plan)
        results = await asyncio.gather(*(self._fetch_one(kind, location, plan[kind]) for kind in kinds))
        signals = {kind.value: result for kind, result in zip(kinds, results)}
        return RawSignalBundle(location=location, window=window, **signals)
