"""Current flood risk from rainfall, terrain, vegetation cover and flood history."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from . import components as score
from .components import ComponentScore
from .fuse_model import PresenceWeights, RiskComposer, RiskWeights, SeverityScale
from .recommendations import flood_recommendations
from .signals import RawSignalBundle, SignalKind
from .utils import TimeWindow

FLOOD_WEIGHTS = RiskWeights(
    {
        "rainfall_intensity": 0.35,
        "terrain": 0.30,
        "vegetation_cover": 0.15,
        "historical_frequency": 0.20,
    }
)
FLOOD_PRESENCE = PresenceWeights(
    {
        SignalKind.PRECIPITATION: 0.35,
        SignalKind.TERRAIN: 0.30,
        SignalKind.VEGETATION: 0.15,
        SignalKind.FLOOD_HISTORY: 0.20,
    }
)
FLOOD_SEVERITY = SeverityScale(((0.75, "extreme"), (0.55, "high"), (0.35, "moderate")), "low")


class FloodRiskIndex(RiskComposer):
    risk_type = "flood"
    weights = FLOOD_WEIGHTS
    presence = FLOOD_PRESENCE
    severity = FLOOD_SEVERITY

    def plan(self, window: TimeWindow) -> Dict[SignalKind, Optional[TimeWindow]]:
        return {
            SignalKind.PRECIPITATION: window,
            SignalKind.TERRAIN: None,
            SignalKind.VEGETATION: None,
            SignalKind.FLOOD_HISTORY: window.lookback(365 * self.config.flood_lookback_years),
        }

    def score_components(self, bundle: RawSignalBundle) -> Tuple[ComponentScore, ...]:
        fallback = self.config.neutral_fallback
        return (
            score.rainfall_intensity(bundle.precipitation, self.config, fallback),
            score.terrain_risk(bundle.terrain, self.config, fallback),
            score.vegetation_cover(bundle.vegetation, self.config, fallback),
            score.historical_frequency(bundle.flood_history, self.config, bundle.window.end, fallback),
        )

    def recommend(self, components: Mapping[str, ComponentScore], severity: str) -> Tuple[str, ...]:
        return flood_recommendations(components, severity)
