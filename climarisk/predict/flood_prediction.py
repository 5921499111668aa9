"""Short-range flood outlook built from recent rain, seasonal history and terrain.

Unlike the current-risk indices, every missing input here contributes zero:
a forecast should not invent rain it has not seen.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Dict, Mapping, Optional, Tuple

from .. import components as score
from ..components import DECREASING, INCREASING, ComponentScore
from ..fuse_model import PresenceWeights, RiskComposer, RiskWeights, SeverityScale, TimeHorizons
from ..recommendations import prediction_recommendations
from ..signals import RawSignalBundle, SignalKind
from ..utils import TimeWindow

PREDICTION_WEIGHTS = RiskWeights(
    {
        "recent_rainfall": 0.40,
        "historical_pattern": 0.30,
        "terrain_factors": 0.20,
        "vegetation_runoff": 0.10,
    }
)
PREDICTION_PRESENCE = PresenceWeights(
    {
        SignalKind.PRECIPITATION: 0.30,
        SignalKind.ANTECEDENT_PRECIPITATION: 0.20,
        SignalKind.TERRAIN: 0.20,
        SignalKind.VEGETATION: 0.15,
        SignalKind.FLOOD_HISTORY: 0.15,
    }
)
PREDICTION_SEVERITY = SeverityScale(((0.8, "extreme"), (0.6, "high"), (0.4, "moderate")), "low")

TREND_MULTIPLIER = {INCREASING: 1.2, DECREASING: 0.8}
HORIZON_DECAY = (1.0, 0.9, 0.8)
NO_RAIN_FALLBACK = 0.0


def project_horizons(base: float, trend: str) -> TimeHorizons:
    """Scale the current score by the rain trend, fading with lead time."""

    multiplier = TREND_MULTIPLIER.get(trend, 1.0)
    next_24h, next_3_days, next_7_days = (min(1.0, base * multiplier * decay) for decay in HORIZON_DECAY)
    return TimeHorizons(next_24h, next_3_days, next_7_days)


class FloodPredictionIndex(RiskComposer):
    risk_type = "prediction"
    weights = PREDICTION_WEIGHTS
    presence = PREDICTION_PRESENCE
    severity = PREDICTION_SEVERITY

    def plan(self, window: TimeWindow) -> Dict[SignalKind, Optional[TimeWindow]]:
        as_of = window.end
        far, near = self.config.antecedent_days
        return {
            SignalKind.PRECIPITATION: TimeWindow.ending(as_of, self.config.recent_days),
            SignalKind.ANTECEDENT_PRECIPITATION: TimeWindow(as_of - timedelta(days=far), as_of - timedelta(days=near)),
            SignalKind.FLOOD_HISTORY: TimeWindow(as_of - timedelta(days=self.config.prediction_history_days), as_of),
            SignalKind.TERRAIN: None,
            SignalKind.VEGETATION: None,
        }

    def score_components(self, bundle: RawSignalBundle) -> Tuple[ComponentScore, ...]:
        return (
            score.recent_rainfall(bundle.precipitation, self.config, NO_RAIN_FALLBACK),
            score.historical_pattern(
                bundle.antecedent_precipitation,
                bundle.flood_history,
                self.config,
                bundle.window.end.month,
                NO_RAIN_FALLBACK,
            ),
            score.terrain_factors(bundle.terrain, self.config, NO_RAIN_FALLBACK),
            score.vegetation_runoff(bundle.vegetation, self.config, NO_RAIN_FALLBACK),
        )

    def recommend(self, components: Mapping[str, ComponentScore], severity: str) -> Tuple[str, ...]:
        return prediction_recommendations(components, severity)

    def horizons(self, overall: float, components: Mapping[str, ComponentScore]) -> Optional[TimeHorizons]:
        trend = components["recent_rainfall"].details.get("trend", "stable")
        return project_horizons(overall, trend)
