"""Slope and topographic wetness helpers."""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

log = logging.getLogger(__name__)


def slope_degrees(dem_window: Sequence[Sequence[float]], cell_size_m: float, nodata: Optional[float] = None) -> float:
    """Slope at the centre of a square elevation window, in degrees.

    Uses central differences over the window (``numpy.gradient``); cells equal
    to ``nodata`` are filled with the window mean before differencing.
    """

    dem = np.asarray(dem_window, dtype="float64")
    if dem.ndim != 2 or dem.shape[0] < 3 or dem.shape[1] < 3:
        raise ValueError(f"Need at least a 3x3 elevation window, got shape {dem.shape}")
    if cell_size_m <= 0:
        raise ValueError(f"Cell size must be positive, got {cell_size_m}")

    if nodata is not None:
        dem = np.where(dem == nodata, np.nan, dem)
    if np.isnan(dem).all():
        raise ValueError("Elevation window has no valid cells")
    if np.isnan(dem).any():
        dem = np.where(np.isnan(dem), np.nanmean(dem), dem)

    d_north, d_east = np.gradient(dem, cell_size_m)
    row, col = dem.shape[0] // 2, dem.shape[1] // 2
    rise = math.hypot(float(d_north[row, col]), float(d_east[row, col]))
    return math.degrees(math.atan(rise))


def wetness_proxy(slope_deg: float, contributing_area: float = 100.0) -> float:
    """Simplified topographic wetness index, ln(A / tan(slope)) / 10, clamped to [0, 1].

    Flat cells (slope <= 0) get 0.5 because tan(0) has no finite index.
    """

    if slope_deg <= 0:
        return 0.5
    if slope_deg >= 90:
        return 0.0
    tangent = math.tan(math.radians(slope_deg))
    try:
        twi = math.log(contributing_area / tangent) / 10.0
    except ValueError:
        log.debug("Wetness proxy undefined for slope=%s area=%s", slope_deg, contributing_area)
        return 0.0
    return max(0.0, min(1.0, twi))
