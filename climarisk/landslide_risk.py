"""Landslide susceptibility: steep slopes, triggering rain, wet soil and past slides."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from . import components as score
from .components import ComponentScore
from .fuse_model import PresenceWeights, RiskComposer, RiskWeights, SeverityScale
from .recommendations import landslide_recommendations
from .signals import RawSignalBundle, SignalKind
from .utils import TimeWindow

LANDSLIDE_WEIGHTS = RiskWeights(
    {
        "slope_instability": 0.35,
        "rainfall_trigger": 0.30,
        "soil_saturation": 0.20,
        "landslide_density": 0.15,
    }
)
LANDSLIDE_PRESENCE = PresenceWeights(
    {
        SignalKind.TERRAIN: 0.35,
        SignalKind.PRECIPITATION: 0.30,
        SignalKind.MOISTURE: 0.20,
        SignalKind.LANDSLIDE_HISTORY: 0.15,
    }
)
LANDSLIDE_SEVERITY = SeverityScale(
    ((0.9, "extreme"), (0.75, "very_high"), (0.6, "high"), (0.4, "moderate"), (0.2, "low")),
    "very_low",
)


class LandslideRiskIndex(RiskComposer):
    risk_type = "landslide"
    weights = LANDSLIDE_WEIGHTS
    presence = LANDSLIDE_PRESENCE
    severity = LANDSLIDE_SEVERITY

    def plan(self, window: TimeWindow) -> Dict[SignalKind, Optional[TimeWindow]]:
        return {
            SignalKind.PRECIPITATION: window,
            SignalKind.TERRAIN: None,
            SignalKind.MOISTURE: None,
            SignalKind.VEGETATION: None,
            SignalKind.LANDSLIDE_HISTORY: window.lookback(365 * self.config.landslide_lookback_years),
        }

    def score_components(self, bundle: RawSignalBundle) -> Tuple[ComponentScore, ...]:
        fallback = self.config.neutral_fallback
        return (
            score.slope_instability(bundle.terrain, self.config, fallback),
            score.rainfall_trigger(bundle.precipitation, self.config, fallback),
            score.soil_saturation(bundle.moisture, bundle.precipitation, bundle.vegetation, self.config, fallback),
            score.landslide_density(bundle.landslide_history, self.config, fallback),
        )

    def recommend(self, components: Mapping[str, ComponentScore], severity: str) -> Tuple[str, ...]:
        return landslide_recommendations(components, severity)
