"""Fuse component scores into a composite risk result."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from .components import ComponentScore, clamp
from .config import RWANDA, ScoringConfig
from .signals import RawSignalBundle, SignalKind
from .utils import Location, TimeWindow

LOGGER = logging.getLogger(__name__)


def _check_total(weights: Mapping[Any, float], what: str) -> None:
    if any(weight < 0 for weight in weights.values()):
        raise ValueError(f"{what} must be non-negative: {dict(weights)}")
    total = math.fsum(weights.values())
    if not math.isclose(total, 1.0, abs_tol=1e-9):
        raise ValueError(f"{what} must sum to 1.0, got {total}")


@dataclass(frozen=True)
class RiskWeights:
    """Component name -> weight in the overall score."""

    weights: Mapping[str, float]

    def __post_init__(self) -> None:
        _check_total(self.weights, "Risk weights")

    def combine(self, components: Tuple[ComponentScore, ...]) -> float:
        names = {component.name for component in components}
        if names != set(self.weights):
            raise ValueError(f"Components {sorted(names)} do not match weights {sorted(self.weights)}")
        return clamp(math.fsum(self.weights[c.name] * c.score for c in components))


@dataclass(frozen=True)
class PresenceWeights:
    """Signal kind -> share of confidence earned when that signal is present."""

    weights: Mapping[SignalKind, float]

    def __post_init__(self) -> None:
        _check_total(self.weights, "Presence weights")

    def confidence(self, bundle: RawSignalBundle) -> float:
        return clamp(math.fsum(weight for kind, weight in self.weights.items() if bundle.get(kind).present))


@dataclass(frozen=True)
class SeverityScale:
    """Descending ``(threshold, label)`` pairs; scores below the last threshold get ``floor``."""

    levels: Tuple[Tuple[float, str], ...]
    floor: str

    def __post_init__(self) -> None:
        thresholds = [threshold for threshold, _ in self.levels]
        if any(later >= earlier for earlier, later in zip(thresholds, thresholds[1:])):
            raise ValueError(f"Severity thresholds must be strictly descending, got {thresholds}")

    def classify(self, score: float) -> str:
        for threshold, label in self.levels:
            if score >= threshold:
                level = label
                break
        else:
            level = self.floor
        return level

    @property
    def labels(self) -> Tuple[str, ...]:
        """Lowest to highest."""

        return (self.floor,) + tuple(label for _, label in reversed(self.levels))

    def rank(self, label: str) -> int:
        return self.labels.index(label)


@dataclass(frozen=True)
class TimeHorizons:
    next_24h: float
    next_3_days: float
    next_7_days: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "next24h": round(self.next_24h, 3),
            "next3days": round(self.next_3_days, 3),
            "next7days": round(self.next_7_days, 3),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CompositeRiskResult:
    risk_type: str
    overall_score: float
    severity: str
    confidence: float
    components: Tuple[ComponentScore, ...]
    recommendations: Tuple[str, ...]
    location: Location
    window: TimeWindow
    horizons: Optional[TimeHorizons] = None
    missing: Mapping[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow, compare=False)

    def component(self, name: str) -> ComponentScore:
        for component in self.components:
            if component.name == name:
                return component
        raise KeyError(name)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "riskType": self.risk_type,
            "overallScore": round(self.overall_score, 3),
            "severity": self.severity,
            "confidence": round(self.confidence, 3),
            "components": {component.name: component.to_dict() for component in self.components},
            "recommendations": list(self.recommendations),
            "location": {"latitude": self.location.latitude, "longitude": self.location.longitude},
            "window": {"start": self.window.start.isoformat(), "end": self.window.end.isoformat()},
            "missing": dict(self.missing),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.horizons is not None:
            payload["horizons"] = self.horizons.to_dict()
        return payload


class RiskComposer:
    """Template for one risk type: plan the signals, score them, combine them.

    Subclasses set the class attributes and implement ``plan``,
    ``score_components`` and ``recommend``. Composition is pure: the same
    bundle always yields an equal result.
    """

    risk_type = ""
    weights: RiskWeights
    presence: PresenceWeights
    severity: SeverityScale

    def __init__(self, config: ScoringConfig = RWANDA):
        self.config = config

    def plan(self, window: TimeWindow) -> Dict[SignalKind, Optional[TimeWindow]]:
        raise NotImplementedError

    def score_components(self, bundle: RawSignalBundle) -> Tuple[ComponentScore, ...]:
        raise NotImplementedError

    def recommend(self, components: Mapping[str, ComponentScore], severity: str) -> Tuple[str, ...]:
        raise NotImplementedError

    def horizons(self, overall: float, components: Mapping[str, ComponentScore]) -> Optional[TimeHorizons]:
        return None

    def compose(self, bundle: RawSignalBundle, generated_at: Optional[datetime] = None) -> CompositeRiskResult:
        components = self.score_components(bundle)
        by_name = {component.name: component for component in components}
        overall = self.weights.combine(components)
        severity = self.severity.classify(overall)
        confidence = self.presence.confidence(bundle)

        result = CompositeRiskResult(
            risk_type=self.risk_type,
            overall_score=overall,
            severity=severity,
            confidence=confidence,
            components=components,
            recommendations=self.recommend(by_name, severity),
            location=bundle.location,
            window=bundle.window,
            horizons=self.horizons(overall, by_name),
            missing=bundle.absent_reasons(),
            timestamp=generated_at or _utcnow(),
        )
        LOGGER.info(
            "%s risk at %s: %.3f %s (confidence %.2f)",
            self.risk_type,
            bundle.location,
            overall,
            severity,
            confidence,
        )
        return result
