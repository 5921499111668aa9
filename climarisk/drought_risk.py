"""Drought risk from rainfall deficit, heat, vegetation stress and soil dryness."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from . import components as score
from .components import ComponentScore
from .fuse_model import PresenceWeights, RiskComposer, RiskWeights, SeverityScale
from .recommendations import drought_recommendations
from .signals import RawSignalBundle, SignalKind
from .utils import TimeWindow

DROUGHT_WEIGHTS = RiskWeights(
    {
        "precipitation_deficit": 0.40,
        "temperature_anomaly": 0.25,
        "vegetation_health": 0.25,
        "soil_moisture": 0.10,
    }
)
DROUGHT_PRESENCE = PresenceWeights(
    {
        SignalKind.PRECIPITATION: 0.40,
        SignalKind.TEMPERATURE: 0.25,
        SignalKind.VEGETATION: 0.25,
        SignalKind.MOISTURE: 0.10,
    }
)
DROUGHT_SEVERITY = SeverityScale(
    ((0.8, "extreme"), (0.6, "severe"), (0.4, "moderate"), (0.2, "mild")),
    "none",
)


class DroughtRiskIndex(RiskComposer):
    risk_type = "drought"
    weights = DROUGHT_WEIGHTS
    presence = DROUGHT_PRESENCE
    severity = DROUGHT_SEVERITY

    def plan(self, window: TimeWindow) -> Dict[SignalKind, Optional[TimeWindow]]:
        return {
            SignalKind.PRECIPITATION: window,
            SignalKind.TEMPERATURE: window,
            SignalKind.VEGETATION: None,
            SignalKind.MOISTURE: None,
        }

    def score_components(self, bundle: RawSignalBundle) -> Tuple[ComponentScore, ...]:
        fallback = self.config.neutral_fallback
        return (
            score.precipitation_deficit(bundle.precipitation, self.config, fallback),
            score.temperature_anomaly(bundle.temperature, self.config, fallback),
            score.vegetation_health(bundle.vegetation, self.config, fallback),
            score.soil_moisture(bundle.moisture, self.config, fallback),
        )

    def recommend(self, components: Mapping[str, ComponentScore], severity: str) -> Tuple[str, ...]:
        return drought_recommendations(components, severity)
