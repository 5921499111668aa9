"""Validate a request, gather its signals and hand them to the right composer."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping, Optional, Union

from .config import RWANDA, ScoringConfig, Settings
from .drought_risk import DroughtRiskIndex
from .errors import InvalidRequest
from .flood_risk import FloodRiskIndex
from .fuse_model import CompositeRiskResult, RiskComposer
from .gather import DataGatherer
from .landslide_risk import LandslideRiskIndex
from .predict.flood_prediction import FloodPredictionIndex
from .sources.climateserv import ChirpsSource
from .sources.flood_archive import FloodArchiveSource
from .sources.landslide_catalog import LandslideCatalogSource
from .sources.nasa_power import NasaPowerSource
from .sources.open_meteo import OpenMeteoTerrainSource
from .sources.sentinel_hub import SentinelHubIndexSource
from .utils import OPERATIONAL_BOUNDS, BoundingBox, Location, TimeWindow

LOGGER = logging.getLogger(__name__)


class RiskType(str, Enum):
    FLOOD = "flood"
    DROUGHT = "drought"
    PREDICTION = "prediction"
    LANDSLIDE = "landslide"

    @classmethod
    def parse(cls, value: Union[str, "RiskType"]) -> "RiskType":
        try:
            return cls(value)
        except ValueError:
            raise InvalidRequest(f"Unknown risk type {value!r}; expected one of {[t.value for t in cls]}") from None


def default_composers(config: ScoringConfig = RWANDA) -> dict[RiskType, RiskComposer]:
    return {
        RiskType.FLOOD: FloodRiskIndex(config),
        RiskType.DROUGHT: DroughtRiskIndex(config),
        RiskType.PREDICTION: FloodPredictionIndex(config),
        RiskType.LANDSLIDE: LandslideRiskIndex(config),
    }


class RiskEngine:
    def __init__(
        self,
        gatherer: DataGatherer,
        composers: Optional[Mapping[RiskType, RiskComposer]] = None,
        bounds: BoundingBox = OPERATIONAL_BOUNDS,
    ):
        self.gatherer = gatherer
        self.composers = dict(composers or default_composers())
        self.bounds = bounds

    def validate(self, risk_type: Union[str, RiskType], location: Location, window: TimeWindow) -> RiskComposer:
        kind = RiskType.parse(risk_type)
        if not self.bounds.contains(location):
            raise InvalidRequest(f"Location {location} is outside the operational region {self.bounds.to_dict()}")
        if window.start > window.end:
            raise InvalidRequest(f"Window start {window.start} is after end {window.end}")
        composer = self.composers.get(kind)
        if composer is None:
            raise InvalidRequest(f"No composer registered for {kind.value}")
        return composer

    async def assess(self, risk_type: Union[str, RiskType], location: Location, window: TimeWindow) -> CompositeRiskResult:
        composer = self.validate(risk_type, location, window)
        LOGGER.debug("Assessing %s risk at %s over %s", composer.risk_type, location, window)
        bundle = await self.gatherer.gather(location, window, composer.plan(window))
        return composer.compose(bundle)


def build_engine(settings: Optional[Settings] = None, config: ScoringConfig = RWANDA) -> RiskEngine:
    """Wire the production upstream clients into an engine."""

    settings = settings or Settings.from_env()
    timeout = settings.http_timeout
    if settings.precipitation_provider == "chirps":
        precipitation = ChirpsSource(
            timeout=timeout,
            poll_interval=settings.poll_interval,
            poll_timeout=settings.poll_timeout,
        )
    else:
        precipitation = NasaPowerSource("PRECTOTCORR", timeout=timeout)
    if not settings.sentinel_client_id:
        LOGGER.warning("Sentinel Hub credentials not set; vegetation and moisture will be absent")

    gatherer = DataGatherer(
        precipitation=precipitation,
        temperature=NasaPowerSource("T2M", timeout=timeout),
        terrain=OpenMeteoTerrainSource(timeout=timeout),
        vegetation=SentinelHubIndexSource("ndvi", settings.sentinel_client_id, settings.sentinel_client_secret, timeout=timeout),
        moisture=SentinelHubIndexSource("ndwi", settings.sentinel_client_id, settings.sentinel_client_secret, timeout=timeout),
        flood_history=FloodArchiveSource(settings.dfo_archive_url, timeout=timeout),
        landslide_history=LandslideCatalogSource(timeout=timeout, radius_km=config.landslide_radius_km),
        fetch_timeout=settings.fetch_timeout,
    )
    return RiskEngine(gatherer, default_composers(config))
