import json
from datetime import date

import pytest

from climarisk import run_point
from climarisk.config import Settings
from climarisk.engine import RiskEngine, RiskType
from climarisk.gather import DataGatherer
from climarisk.utils import BoundingBox, TimeWindow


class TestParseArgs:
    def test_place_defaults(self):
        args = run_point.parse_args(["--place", "kigali"])
        assert args.risk == "flood"
        assert args.days == 7
        assert args.grid is None

    def test_lat_requires_lon(self):
        with pytest.raises(SystemExit):
            run_point.parse_args(["--lat", "-1.9"])

    def test_place_and_lat_are_exclusive(self):
        with pytest.raises(SystemExit):
            run_point.parse_args(["--place", "kigali", "--lat", "-1.9", "--lon", "30.0"])

    def test_unknown_risk(self):
        with pytest.raises(SystemExit):
            run_point.parse_args(["--place", "kigali", "--risk", "wildfire"])

    def test_window_from_days(self):
        args = run_point.parse_args(["--place", "kigali", "--end", "2024-04-30", "--days", "10"])
        assert run_point._window(args) == TimeWindow(date(2024, 4, 21), date(2024, 4, 30))

    def test_all_risks(self):
        assert run_point._risk_types("all") == list(RiskType)

    def test_bbox(self):
        assert run_point._parse_bbox("-2.0,29.9,-1.8,30.1") == BoundingBox(south=-2.0, west=29.9, north=-1.8, east=30.1)


class TestMain:
    def test_outside_region_exits_2(self, monkeypatch):
        monkeypatch.setattr(run_point, "build_engine", lambda settings: RiskEngine(DataGatherer()))
        assert run_point.main(["--lat", "40.7", "--lon", "-74.0"]) == 2

    def test_bad_bbox_exits_2(self):
        assert run_point.main(["--place", "kigali", "--bbox", "1,2,3"]) == 2

    @pytest.mark.asyncio
    async def test_run_writes_point_and_grid(self, flood_gatherer, kigali, tmp_path):
        settings = Settings(output_dir=tmp_path, grid_batch_size=2)
        window = TimeWindow.ending(date(2024, 4, 30), 7)
        bbox = BoundingBox(south=-2.0, west=29.9, north=-1.8, east=30.1)

        await run_point.run(RiskEngine(flood_gatherer), settings, "kigali", kigali, window, [RiskType.FLOOD], 1, bbox)

        point = json.loads((tmp_path / "kigali_flood.json").read_text(encoding="utf-8"))
        grid = json.loads((tmp_path / "kigali_flood_grid.json").read_text(encoding="utf-8"))
        assert point["severity"] == "extreme"
        assert len(grid["points"]) == 4
