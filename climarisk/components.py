"""Component scorers: one raw signal in, one normalized [0, 1] contribution out.

Each scorer is a pure function ``(signal, config, fallback) -> ComponentScore``.
When the signal is ``Absent`` the scorer returns ``fallback`` with
``absent=True`` so the composer can discount confidence; which fallback a risk
type uses is the composer's decision, not the scorer's.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional, Sequence

from .config import ScoringConfig
from .signals import Absent, HistorySignal, IndexSignal, SeriesSignal, TerrainSignal
from .terrain.wetness import wetness_proxy

INCREASING = "increasing"
DECREASING = "decreasing"
STABLE = "stable"

NEUTRAL = 0.5


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def safe_ratio(numerator: float, denominator: float) -> float:
    """Division that contributes zero instead of failing on a zero denominator."""

    if denominator == 0 or math.isnan(denominator):
        return 0.0
    return numerator / denominator


def _mean(values: Sequence[float]) -> float:
    return safe_ratio(math.fsum(values), len(values))


@dataclass(frozen=True)
class ComponentScore:
    name: str
    score: float
    details: Dict[str, Any] = field(default_factory=dict)
    absent: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", clamp(float(self.score)))

    def to_dict(self) -> Dict[str, Any]:
        details = {}
        for key, value in self.details.items():
            if isinstance(value, float):
                value = round(value, 3)
            elif isinstance(value, date):
                value = value.isoformat()
            details[key] = value
        return {"name": self.name, "score": round(self.score, 3), "absent": self.absent, "details": details}


def _missing(name: str, fallback: float, reason: str, **details: Any) -> ComponentScore:
    details["reason"] = reason
    return ComponentScore(name, fallback, details, absent=True)


def rainfall_trend(values: Sequence[float], band: float = 0.05) -> str:
    """Compare the mean of the first half with the mean of the second half.

    Changes within ``band`` (a fraction of the first-half mean) count as stable.
    """

    if len(values) < 2:
        return STABLE
    half = len(values) // 2
    first = _mean(values[:half])
    second = _mean(values[half:])
    if first == 0:
        return INCREASING if second > 0 else STABLE
    change = (second - first) / first
    if change > band:
        return INCREASING
    if change < -band:
        return DECREASING
    return STABLE


def long_term_trend(values: Sequence[float], minimum: int = 10) -> float:
    """Relative change between the first and last thirds, clamped to [-1, 1]."""

    if len(values) < minimum:
        return 0.0
    third = len(values) // 3
    first = _mean(values[:third])
    last = _mean(values[-third:])
    return clamp(safe_ratio(last - first, first), -1.0, 1.0)


# ---------------------------------------------------------------------------
# Flood risk index
# ---------------------------------------------------------------------------


def rainfall_intensity(series: SeriesSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "rainfall_intensity"
    if isinstance(series, Absent):
        return _missing(name, fallback, series.reason, total_mm=0.0, daily_average_mm=0.0, intensity_category="unknown")

    total_mm = series.total()
    daily_average = series.mean()
    score, category = config.rainfall_intensity.classify(daily_average)
    score = min(1.0, score + config.cumulative_bonus.score(total_mm))
    return ComponentScore(
        name,
        score,
        {"total_mm": total_mm, "daily_average_mm": daily_average, "intensity_category": category},
    )


def terrain_risk(terrain: TerrainSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "terrain"
    if isinstance(terrain, Absent):
        return _missing(name, fallback, terrain.reason, elevation_m=None, slope_deg=None, topographic_index=None)

    elevation_term = config.elevation_risk.score(terrain.elevation_m)
    slope_term = config.slope_risk.score(terrain.slope_deg)
    wetness = wetness_proxy(terrain.slope_deg, config.contributing_area)
    score = elevation_term * 0.5 + slope_term * 0.3 + wetness * 0.2
    return ComponentScore(
        name,
        score,
        {"elevation_m": terrain.elevation_m, "slope_deg": terrain.slope_deg, "topographic_index": wetness},
    )


def vegetation_cover(index: IndexSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "vegetation_cover"
    if isinstance(index, Absent):
        return _missing(name, fallback, index.reason, ndvi=None, cover_category="unknown")

    score, category = config.vegetation_cover.classify(index.value)
    return ComponentScore(name, score, {"ndvi": index.value, "cover_category": category})


def historical_frequency(
    history: HistorySignal,
    config: ScoringConfig,
    as_of: date,
    fallback: float = NEUTRAL,
) -> ComponentScore:
    name = "historical_frequency"
    if isinstance(history, Absent):
        return _missing(name, fallback, history.reason, events_per_year=None, last_event_date=None, days_since_last_event=None)

    events_per_year = safe_ratio(len(history), config.flood_lookback_years)
    score = config.flood_frequency.score(events_per_year)

    latest = history.latest()
    days_since: Optional[int] = None
    if latest is not None:
        days_since = max(0, (as_of - latest.day).days)
        # Recent floods leave saturated soil behind.
        for days, boost in config.recency_boosts:
            if days_since < days:
                score = min(1.0, score + boost)
                break

    return ComponentScore(
        name,
        score,
        {
            "events_per_year": events_per_year,
            "last_event_date": latest.day if latest else None,
            "days_since_last_event": days_since,
        },
    )


# ---------------------------------------------------------------------------
# Drought risk index
# ---------------------------------------------------------------------------


def precipitation_deficit(series: SeriesSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "precipitation_deficit"
    if isinstance(series, Absent):
        return _missing(name, fallback, series.reason, actual_mm=None, normal_mm=None, anomaly_percent=None)

    actual_mm = series.total()
    normal_mm = config.normal_daily_precip_mm * len(series)
    anomaly_percent = safe_ratio(actual_mm - normal_mm, normal_mm) * 100.0
    score, category = config.precipitation_deficit.classify(anomaly_percent)
    return ComponentScore(
        name,
        score,
        {"actual_mm": actual_mm, "normal_mm": normal_mm, "anomaly_percent": anomaly_percent, "category": category},
    )


def temperature_anomaly(series: SeriesSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "temperature_anomaly"
    if isinstance(series, Absent):
        return _missing(name, fallback, series.reason, actual_c=None, normal_c=config.normal_temperature_c, anomaly_c=None)

    actual_c = series.mean()
    anomaly_c = actual_c - config.normal_temperature_c
    score = config.temperature_anomaly.score(anomaly_c)
    return ComponentScore(
        name,
        score,
        {"actual_c": actual_c, "normal_c": config.normal_temperature_c, "anomaly_c": anomaly_c},
    )


def vegetation_health(index: IndexSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "vegetation_health"
    if isinstance(index, Absent):
        return _missing(name, fallback, index.reason, ndvi=None, ndvi_anomaly=None)

    score, category = config.vegetation_stress.classify(index.value)
    return ComponentScore(
        name,
        score,
        {"ndvi": index.value, "ndvi_anomaly": index.value - config.normal_ndvi, "stress": category},
    )


def soil_moisture(index: IndexSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "soil_moisture"
    if isinstance(index, Absent):
        return _missing(name, fallback, index.reason, ndwi=None, moisture_category="unknown")

    score, category = config.soil_dryness.classify(index.value)
    return ComponentScore(name, score, {"ndwi": index.value, "moisture_category": category})


# ---------------------------------------------------------------------------
# Flood prediction (absence always scores zero)
# ---------------------------------------------------------------------------


def recent_rainfall(series: SeriesSignal, config: ScoringConfig, fallback: float = 0.0) -> ComponentScore:
    name = "recent_rainfall"
    if isinstance(series, Absent):
        return _missing(name, fallback, series.reason, last_7_days_mm=0.0, trend=STABLE, intensity_mm_per_day=0.0)

    recent = series.tail(config.recent_days)
    total = math.fsum(recent)
    intensity = safe_ratio(total, len(recent))
    trend = rainfall_trend(series.values, config.trend_band)

    score = config.recent_intensity.score(intensity)
    # Trend only matters once there is meaningful rain.
    if intensity > 5:
        if trend == INCREASING:
            score += 0.3
        elif trend == STABLE:
            score += 0.05

    return ComponentScore(
        name,
        score,
        {"last_7_days_mm": total, "trend": trend, "intensity_mm_per_day": intensity},
    )


def historical_pattern(
    antecedent: SeriesSignal,
    history: HistorySignal,
    config: ScoringConfig,
    month: int,
    fallback: float = 0.0,
) -> ComponentScore:
    name = "historical_pattern"
    seasonal = config.season_risk(month)
    if isinstance(antecedent, Absent) and isinstance(history, Absent):
        return _missing(
            name,
            fallback,
            f"{antecedent.reason}; {history.reason}",
            seasonal_risk=seasonal,
            historical_events=0,
            long_term_trend=0.0,
        )

    score = 0.0
    trend = 0.0
    if not isinstance(antecedent, Absent):
        # A rainy season with dry antecedent days should not look risky.
        if antecedent.mean() > config.wet_antecedent_mm:
            score += seasonal * 0.4
        trend = long_term_trend(antecedent.values)
        if trend > 0:
            score += trend * 0.2

    event_count = 0
    if not isinstance(history, Absent):
        event_count = len(history)
        score += config.seasonal_flood_count.score(event_count)

    return ComponentScore(
        name,
        score,
        {"seasonal_risk": seasonal, "historical_events": event_count, "long_term_trend": trend},
    )


def terrain_factors(terrain: TerrainSignal, config: ScoringConfig, fallback: float = 0.0) -> ComponentScore:
    name = "terrain_factors"
    if isinstance(terrain, Absent):
        return _missing(name, fallback, terrain.reason, elevation_m=None, slope_deg=None, drainage_risk=0.0)

    drainage = config.drainage_risk.score(terrain.elevation_m)
    score = (
        config.prediction_elevation.score(terrain.elevation_m)
        + config.prediction_slope.score(terrain.slope_deg)
        + drainage * 0.3
    )
    return ComponentScore(
        name,
        score,
        {"elevation_m": terrain.elevation_m, "slope_deg": terrain.slope_deg, "drainage_risk": drainage},
    )


def vegetation_runoff(index: IndexSignal, config: ScoringConfig, fallback: float = 0.0) -> ComponentScore:
    name = "vegetation_runoff"
    if isinstance(index, Absent):
        return _missing(name, fallback, index.reason, ndvi=None, runoff_potential=0.0)

    runoff = max(0.0, 1.0 - index.value)
    return ComponentScore(name, runoff * 0.8, {"ndvi": index.value, "runoff_potential": runoff})


# ---------------------------------------------------------------------------
# Landslide susceptibility
# ---------------------------------------------------------------------------


def slope_instability(terrain: TerrainSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "slope_instability"
    if isinstance(terrain, Absent):
        return _missing(name, fallback, terrain.reason, slope_deg=None, slope_class="unknown")

    score, label = config.slope_instability.classify(terrain.slope_deg)
    return ComponentScore(name, score, {"slope_deg": terrain.slope_deg, "slope_class": label})


def rainfall_sums(series: SeriesSignal) -> tuple[float, float, float]:
    """Rain over the last 1, 3 and 7 daily samples."""

    if isinstance(series, Absent):
        return 0.0, 0.0, 0.0
    return math.fsum(series.tail(1)), math.fsum(series.tail(3)), math.fsum(series.tail(7))


def rainfall_trigger(series: SeriesSignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "rainfall_trigger"
    if isinstance(series, Absent):
        return _missing(name, fallback, series.reason, rain_24h_mm=None, rain_72h_mm=None, rain_7d_mm=None, triggered=False)

    rain_24h, rain_72h, rain_7d = rainfall_sums(series)
    score = (
        config.rain_24h_trigger.score(rain_24h)
        + config.rain_72h_trigger.score(rain_72h)
        + config.rain_7d_trigger.score(rain_7d)
    )
    return ComponentScore(
        name,
        score,
        {
            "rain_24h_mm": rain_24h,
            "rain_72h_mm": rain_72h,
            "rain_7d_mm": rain_7d,
            "triggered": rain_72h > config.trigger_rain_72h_mm,
        },
    )


def soil_saturation(
    moisture: IndexSignal,
    series: SeriesSignal,
    vegetation: IndexSignal,
    config: ScoringConfig,
    fallback: float = NEUTRAL,
) -> ComponentScore:
    name = "soil_saturation"
    if isinstance(moisture, Absent):
        return _missing(name, fallback, moisture.reason, wetness=None, rain_72h_mm=None)

    # Wet soil is the inverse of the drought dryness bucket.
    wetness = 1.0 - config.soil_dryness.score(moisture.value)
    _, rain_72h, _ = rainfall_sums(series)
    score = wetness + config.saturation_rain_boost.score(rain_72h)
    if not isinstance(vegetation, Absent):
        if vegetation.value > 0.6:
            score *= 0.8
        elif vegetation.value < 0.2:
            score *= 1.2
    return ComponentScore(name, score, {"wetness": wetness, "rain_72h_mm": rain_72h})


def landslide_density(history: HistorySignal, config: ScoringConfig, fallback: float = NEUTRAL) -> ComponentScore:
    name = "landslide_density"
    if isinstance(history, Absent):
        return _missing(name, fallback, history.reason, events=None, density_per_100km2=None)

    area_km2 = math.pi * config.landslide_radius_km ** 2
    density = safe_ratio(len(history), area_km2) * 100.0
    score = config.landslide_density.score(density)
    return ComponentScore(name, score, {"events": len(history), "density_per_100km2": density})
