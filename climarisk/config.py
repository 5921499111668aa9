"""Scoring thresholds, regional normals and runtime settings.

Everything a scorer needs to turn a raw signal into a [0, 1] contribution is
held in immutable dataclasses so that a region (or a test) can swap values with
``dataclasses.replace`` instead of mutating module globals.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

ABOVE = "above"
BELOW = "below"

BASE_DIR: Path = Path(__file__).resolve().parents[1]


def default_output_dir(base: Path = BASE_DIR) -> Path:
    """Results go under the checkout when run from one, else under the working directory."""

    root = base if (base / "pyproject.toml").exists() else Path.cwd()
    return root / "public" / "data" / "risk"


@dataclass(frozen=True)
class Bucket:
    """One threshold of a bucket table.

    For an ``above`` table a value matches when it is greater than ``bound``
    (or equal, with ``inclusive``); for a ``below`` table when it is smaller.
    """

    bound: float
    score: float
    label: str = ""
    inclusive: bool = False

    def matches(self, value: float, direction: str) -> bool:
        if direction == ABOVE:
            return value >= self.bound if self.inclusive else value > self.bound
        return value <= self.bound if self.inclusive else value < self.bound


@dataclass(frozen=True)
class BucketTable:
    """Ordered, non-overlapping thresholds mapping a value to a fixed score."""

    direction: str
    buckets: Tuple[Bucket, ...]
    default_score: float
    default_label: str = ""

    def __post_init__(self) -> None:
        if self.direction not in (ABOVE, BELOW):
            raise ValueError(f"Unknown bucket direction: {self.direction}")
        bounds = [bucket.bound for bucket in self.buckets]
        for previous, current in zip(bounds, bounds[1:]):
            ordered = current < previous if self.direction == ABOVE else current > previous
            if not ordered:
                raise ValueError(f"Bucket bounds must be strictly monotonic, got {bounds}")

    def classify(self, value: float) -> Tuple[float, str]:
        for bucket in self.buckets:
            if bucket.matches(value, self.direction):
                return bucket.score, bucket.label
        return self.default_score, self.default_label

    def score(self, value: float) -> float:
        return self.classify(value)[0]


def _rows(rows, inclusive: bool) -> Tuple[Bucket, ...]:
    # A row may carry its own inclusive flag as a fourth element.
    return tuple(Bucket(row[0], row[1], row[2], row[3] if len(row) > 3 else inclusive) for row in rows)


def _above(*rows, default: float, label: str = "", inclusive: bool = False) -> BucketTable:
    return BucketTable(
        ABOVE,
        _rows(rows, inclusive),
        default,
        label,
    )


def _below(*rows, default: float, label: str = "", inclusive: bool = False) -> BucketTable:
    return BucketTable(
        BELOW,
        _rows(rows, inclusive),
        default,
        label,
    )


# ---- Flood index tables ----
RAINFALL_INTENSITY = _above(
    (50.0, 1.0, "extreme"),
    (30.0, 0.85, "extreme"),
    (20.0, 0.7, "high"),
    (10.0, 0.5, "moderate"),
    (5.0, 0.3, "mild"),
    default=0.1,
    label="low",
    inclusive=True,
)
CUMULATIVE_RAINFALL_BONUS = _above(
    (200.0, 0.2, ""),
    (150.0, 0.15, ""),
    (100.0, 0.1, ""),
    default=0.0,
)
ELEVATION_RISK = _below(
    (1200.0, 0.9, "valley floor"),
    (1400.0, 0.7, "low hills"),
    (1600.0, 0.5, "moderate elevation"),
    (1800.0, 0.3, "higher hills"),
    default=0.1,
    label="mountain",
)
# Flat ground drains poorly and steep ground sheds water fast, so the curve is U-shaped.
SLOPE_RISK = _below(
    (2.0, 0.8, "flat"),
    (5.0, 0.5, "gentle"),
    (10.0, 0.3, "moderate"),
    (20.0, 0.4, "steep"),
    default=0.6,
    label="very steep",
)
VEGETATION_COVER = _below(
    (0.2, 0.9, "bare"),
    (0.4, 0.7, "sparse"),
    (0.6, 0.4, "moderate"),
    default=0.1,
    label="dense",
)
FLOOD_FREQUENCY = _above(
    (2.0, 1.0, ""),
    (1.0, 0.8, ""),
    (0.5, 0.6, ""),
    (0.0, 0.4, "", False),
    default=0.2,
    inclusive=True,
)

# ---- Drought index tables ----
PRECIPITATION_DEFICIT = _below(
    (-70.0, 1.0, "extreme deficit"),
    (-50.0, 0.85, "severe deficit"),
    (-30.0, 0.65, "moderate deficit"),
    (-15.0, 0.45, "mild deficit"),
    (0.0, 0.25, "slight deficit"),
    default=0.0,
    label="above normal",
)
TEMPERATURE_ANOMALY = _above(
    (5.0, 1.0, "extreme heat"),
    (3.0, 0.75, "severe heat"),
    (2.0, 0.5, "moderate heat"),
    (1.0, 0.3, "mild heat"),
    (0.0, 0.15, "slight heat"),
    default=0.0,
    label="normal",
)
VEGETATION_STRESS = _below(
    (0.2, 1.0, "extreme stress"),
    (0.3, 0.85, "severe stress"),
    (0.4, 0.65, "moderate stress"),
    (0.5, 0.45, "mild stress"),
    (0.6, 0.25, "slight stress"),
    default=0.0,
    label="healthy",
)
SOIL_DRYNESS = _below(
    (-0.2, 1.0, "extremely dry"),
    (-0.1, 0.8, "very dry"),
    (0.0, 0.6, "dry"),
    (0.1, 0.4, "moderate"),
    (0.2, 0.2, "moist"),
    default=0.0,
    label="wet",
)

# ---- Prediction tables (additive contributions) ----
RECENT_INTENSITY = _above(
    (20.0, 0.6, ""),
    (15.0, 0.4, ""),
    (10.0, 0.2, ""),
    (5.0, 0.1, ""),
    default=0.0,
)
SEASONAL_FLOOD_COUNT = _above(
    (5.0, 0.4, ""),
    (2.0, 0.2, ""),
    (0.0, 0.1, ""),
    default=0.0,
)
PREDICTION_ELEVATION = _below(
    (1000.0, 0.4, ""),
    (1500.0, 0.2, ""),
    (2000.0, 0.1, ""),
    default=0.0,
)
PREDICTION_SLOPE = _above(
    (15.0, 0.3, ""),
    (10.0, 0.2, ""),
    (5.0, 0.1, ""),
    default=0.0,
)
DRAINAGE_RISK = _below(
    (1200.0, 0.8, ""),
    (1500.0, 0.5, ""),
    default=0.2,
)

# ---- Landslide tables ----
SLOPE_INSTABILITY = _above(
    (45.0, 1.0, "extreme"),
    (35.0, 0.8, "very high"),
    (25.0, 0.6, "high"),
    (15.0, 0.35, "moderate"),
    (10.0, 0.15, "low"),
    default=0.05,
    label="very low",
    inclusive=True,
)
RAIN_24H_TRIGGER = _above((100.0, 0.4, ""), (75.0, 0.3, ""), (50.0, 0.2, ""), (30.0, 0.1, ""), default=0.0)
RAIN_72H_TRIGGER = _above((200.0, 0.5, ""), (150.0, 0.4, ""), (100.0, 0.3, ""), (75.0, 0.2, ""), default=0.0)
RAIN_7D_TRIGGER = _above((300.0, 0.3, ""), (200.0, 0.2, ""), (150.0, 0.1, ""), default=0.0)
SATURATION_RAIN_BOOST = _above((100.0, 0.3, ""), (50.0, 0.2, ""), default=0.0)
LANDSLIDE_DENSITY = _above(
    (2.0, 1.0, ""),
    (1.0, 0.75, ""),
    (0.5, 0.5, ""),
    (0.2, 0.3, ""),
    (0.0, 0.15, "", False),
    default=0.05,
    inclusive=True,
)

# Rwanda has two rainy seasons: March-May and October-December.
SEASONAL_RISK: Tuple[Tuple[Tuple[int, ...], float], ...] = (
    ((3, 4, 5), 0.8),
    ((10, 11, 12), 0.7),
    ((6, 7, 8, 9), 0.3),
    ((1, 2), 0.4),
)


@dataclass(frozen=True)
class ScoringConfig:
    """Thresholds and regional normals consumed by the component scorers."""

    region: str = "rwanda"

    rainfall_intensity: BucketTable = RAINFALL_INTENSITY
    cumulative_bonus: BucketTable = CUMULATIVE_RAINFALL_BONUS
    elevation_risk: BucketTable = ELEVATION_RISK
    slope_risk: BucketTable = SLOPE_RISK
    vegetation_cover: BucketTable = VEGETATION_COVER
    flood_frequency: BucketTable = FLOOD_FREQUENCY
    contributing_area: float = 100.0
    recency_boosts: Tuple[Tuple[int, float], ...] = ((30, 0.2), (90, 0.1))
    flood_lookback_years: int = 5

    precipitation_deficit: BucketTable = PRECIPITATION_DEFICIT
    temperature_anomaly: BucketTable = TEMPERATURE_ANOMALY
    vegetation_stress: BucketTable = VEGETATION_STRESS
    soil_dryness: BucketTable = SOIL_DRYNESS
    normal_daily_precip_mm: float = 3.2
    normal_temperature_c: float = 20.0
    normal_ndvi: float = 0.7

    recent_intensity: BucketTable = RECENT_INTENSITY
    seasonal_flood_count: BucketTable = SEASONAL_FLOOD_COUNT
    prediction_elevation: BucketTable = PREDICTION_ELEVATION
    prediction_slope: BucketTable = PREDICTION_SLOPE
    drainage_risk: BucketTable = DRAINAGE_RISK
    seasonal_risk: Tuple[Tuple[Tuple[int, ...], float], ...] = SEASONAL_RISK
    trend_band: float = 0.05
    wet_antecedent_mm: float = 5.0
    recent_days: int = 7
    antecedent_days: Tuple[int, int] = (90, 30)
    prediction_history_days: int = 90

    slope_instability: BucketTable = SLOPE_INSTABILITY
    rain_24h_trigger: BucketTable = RAIN_24H_TRIGGER
    rain_72h_trigger: BucketTable = RAIN_72H_TRIGGER
    rain_7d_trigger: BucketTable = RAIN_7D_TRIGGER
    saturation_rain_boost: BucketTable = SATURATION_RAIN_BOOST
    landslide_density: BucketTable = LANDSLIDE_DENSITY
    landslide_radius_km: float = 25.0
    landslide_lookback_years: int = 10
    trigger_rain_72h_mm: float = 100.0

    neutral_fallback: float = 0.5

    def season_risk(self, month: int) -> float:
        for months, risk in self.seasonal_risk:
            if month in months:
                return risk
        return 0.0


RWANDA = ScoringConfig()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be numeric, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Runtime knobs for the production collaborators, read from the environment."""

    fetch_timeout: float = 45.0
    http_timeout: float = 30.0
    grid_batch_size: int = 5
    precipitation_provider: str = "nasa_power"
    poll_interval: float = 2.0
    poll_timeout: float = 40.0
    sentinel_client_id: Optional[str] = None
    sentinel_client_secret: Optional[str] = field(default=None, repr=False)
    dfo_archive_url: str = "https://floodobservatory.colorado.edu/temp/FloodArchive.csv"
    output_dir: Path = field(default_factory=default_output_dir)

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        provider = os.getenv("CLIMARISK_PRECIP_PROVIDER", defaults.precipitation_provider).strip().lower()
        if provider not in ("nasa_power", "chirps"):
            raise ValueError(f"CLIMARISK_PRECIP_PROVIDER must be nasa_power or chirps, got {provider!r}")
        output_dir = os.getenv("CLIMARISK_OUTPUT_DIR")
        return cls(
            fetch_timeout=_env_float("CLIMARISK_FETCH_TIMEOUT", defaults.fetch_timeout),
            http_timeout=_env_float("CLIMARISK_HTTP_TIMEOUT", defaults.http_timeout),
            grid_batch_size=max(1, int(_env_float("CLIMARISK_GRID_BATCH", defaults.grid_batch_size))),
            precipitation_provider=provider,
            poll_interval=_env_float("CLIMARISK_POLL_INTERVAL", defaults.poll_interval),
            poll_timeout=_env_float("CLIMARISK_POLL_TIMEOUT", defaults.poll_timeout),
            sentinel_client_id=os.getenv("SENTINEL_HUB_CLIENT_ID") or None,
            sentinel_client_secret=os.getenv("SENTINEL_HUB_CLIENT_SECRET") or None,
            dfo_archive_url=os.getenv("DFO_ARCHIVE_URL", defaults.dfo_archive_url),
            output_dir=Path(output_dir) if output_dir else defaults.output_dir,
        )
