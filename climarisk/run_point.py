"""Entry point for assessing one place (or a grid around it) and writing JSON."""

from __future__ import annotations

import climarisk.net.tls  # noqa: F401  # side-effect TLS bootstrap

import argparse
import asyncio
import logging
from datetime import date
from typing import List, Optional, Sequence

from .config import Settings
from .engine import RiskEngine, RiskType, build_engine
from .errors import ClimaRiskError, InvalidRequest
from .grid import GridEvaluator
from .utils import OPERATIONAL_BOUNDS, BoundingBox, Location, TimeWindow, load_place, write_result_json

LOGGER = logging.getLogger(__name__)


def _parse_bbox(raw: str) -> BoundingBox:
    try:
        south, west, north, east = (float(part) for part in raw.split(","))
    except ValueError:
        raise InvalidRequest(f"--bbox must be SOUTH,WEST,NORTH,EAST, got {raw!r}") from None
    return BoundingBox(south=south, west=west, north=north, east=east)


def _window(args: argparse.Namespace) -> TimeWindow:
    end = date.fromisoformat(args.end) if args.end else date.today()
    if args.start:
        return TimeWindow(date.fromisoformat(args.start), end)
    return TimeWindow.ending(end, max(1, args.days))


def _risk_types(choice: str) -> List[RiskType]:
    if choice == "all":
        return list(RiskType)
    return [RiskType.parse(choice)]


async def run(
    engine: RiskEngine,
    settings: Settings,
    name: str,
    location: Location,
    window: TimeWindow,
    risks: Sequence[RiskType],
    grid_size: Optional[int] = None,
    bbox: Optional[BoundingBox] = None,
) -> None:
    for risk in risks:
        result = await engine.assess(risk, location, window)
        write_result_json(settings.output_dir, f"{name}_{risk.value}", result.to_dict())
        if grid_size:
            evaluator = GridEvaluator(engine, batch_size=settings.grid_batch_size)
            grid = await evaluator.evaluate(bbox or OPERATIONAL_BOUNDS, grid_size, risk, window)
            write_result_json(settings.output_dir, f"{name}_{risk.value}_grid", grid.to_dict())


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Assess environmental risk for a point in the operational region.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--place", dest="place", help="Place identifier from the catalogue")
    group.add_argument("--lat", dest="lat", type=float, help="Latitude in decimal degrees (requires --lon)")
    parser.add_argument("--lon", dest="lon", type=float, help="Longitude in decimal degrees")
    parser.add_argument(
        "--risk",
        dest="risk",
        choices=[t.value for t in RiskType] + ["all"],
        default="flood",
        help="Risk type to compute (default: flood)",
    )
    parser.add_argument("--start", dest="start", help="Window start, YYYY-MM-DD")
    parser.add_argument("--end", dest="end", help="Window end, YYYY-MM-DD (default: today)")
    parser.add_argument("--days", dest="days", type=int, default=7, help="Window length when --start is omitted (default: 7)")
    parser.add_argument("--grid", dest="grid", type=int, help="Also evaluate an (N+1)x(N+1) grid")
    parser.add_argument("--bbox", dest="bbox", help="Grid extent SOUTH,WEST,NORTH,EAST (default: place extent or region)")
    parser.add_argument("--verbose", dest="verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)
    if args.lat is not None and args.lon is None:
        parser.error("--lat requires --lon")
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    try:
        settings = Settings.from_env()
        if args.place:
            place = load_place(args.place)
            name, location, bbox = place.id, place.location, place.bbox
        else:
            location = Location(args.lat, args.lon)
            name, bbox = f"{location.latitude:.4f}_{location.longitude:.4f}", None
        if args.bbox:
            bbox = _parse_bbox(args.bbox)
        window = _window(args)
        engine = build_engine(settings)
        asyncio.run(run(engine, settings, name, location, window, _risk_types(args.risk), args.grid, bbox))
    except (InvalidRequest, ValueError) as exc:
        LOGGER.error("Invalid request: %s", exc)
        return 2
    except ClimaRiskError as exc:
        LOGGER.error("Risk assessment failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
