"""Evaluate one risk type over a regular lattice of points."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union

from .engine import RiskEngine, RiskType
from .errors import InvalidRequest
from .utils import BoundingBox, Location, TimeWindow

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridPoint:
    location: Location
    score: float
    severity: str
    failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": round(self.location.latitude, 6),
            "longitude": round(self.location.longitude, 6),
            "score": round(self.score, 3),
            "severity": self.severity,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class GridRiskMap:
    risk_type: str
    bbox: BoundingBox
    grid_size: int
    points: Tuple[GridPoint, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "riskType": self.risk_type,
            "bbox": self.bbox.to_dict(),
            "gridSize": self.grid_size,
            "points": [point.to_dict() for point in self.points],
        }


class GridEvaluator:
    """Runs the engine for every lattice point, ``batch_size`` points at a time.

    A point whose computation raises is kept in the map with score 0 and
    ``failed=True``; it never aborts the rest of the grid.
    """

    def __init__(self, engine: RiskEngine, batch_size: int = 5):
        if batch_size < 1:
            raise ValueError(f"Batch size must be at least 1, got {batch_size}")
        self.engine = engine
        self.batch_size = batch_size

    async def evaluate(
        self,
        bbox: BoundingBox,
        grid_size: int,
        risk_type: Union[str, RiskType],
        window: TimeWindow,
    ) -> GridRiskMap:
        kind = RiskType.parse(risk_type)
        if grid_size < 1:
            raise InvalidRequest(f"Grid size must be at least 1, got {grid_size}")
        if not bbox.within(self.engine.bounds):
            raise InvalidRequest(f"Bounding box {bbox.to_dict()} is outside the operational region")
        composer = self.engine.validate(kind, Location(bbox.south, bbox.west), window)
        failed_severity = composer.severity.classify(0.0)

        lattice = list(bbox.lattice(grid_size))
        points: List[GridPoint] = []
        for offset in range(0, len(lattice), self.batch_size):
            batch = lattice[offset : offset + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.engine.assess(kind, location, window) for location in batch),
                return_exceptions=True,
            )
            for location, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    if isinstance(outcome, asyncio.CancelledError):
                        raise outcome
                    LOGGER.warning("%s grid point %s failed: %s", kind.value, location, outcome)
                    points.append(GridPoint(location, 0.0, failed_severity, failed=True))
                else:
                    points.append(GridPoint(location, outcome.overall_score, outcome.severity))

        failures = sum(point.failed for point in points)
        LOGGER.info("%s grid %dx%d over %s: %d points, %d failed", kind.value, grid_size + 1, grid_size + 1, bbox.to_dict(), len(points), failures)
        return GridRiskMap(kind.value, bbox, grid_size, tuple(points))
