from datetime import date

import pytest

from climarisk.config import Settings
from climarisk.engine import RiskEngine, RiskType, build_engine
from climarisk.errors import InvalidRequest
from climarisk.gather import DataGatherer
from climarisk.grid import GridEvaluator
from climarisk.signals import SignalKind
from climarisk.sources.climateserv import ChirpsSource
from climarisk.sources.nasa_power import NasaPowerSource
from climarisk.utils import BoundingBox, Location, TimeWindow
from fakes import StaticSeries, StaticTerrain, daily

END = date(2024, 4, 30)


class FlakyEngine(RiskEngine):
    """Raises for one location so grid isolation can be observed."""

    def __init__(self, gatherer, broken: Location):
        super().__init__(gatherer)
        self.broken = broken

    async def assess(self, risk_type, location, window):
        if location == self.broken:
            raise RuntimeError("composer exploded")
        return await super().assess(risk_type, location, window)


class TestRiskEngine:
    @pytest.mark.asyncio
    async def test_flood_scenario_end_to_end(self, flood_gatherer, kigali, week):
        result = await RiskEngine(flood_gatherer).assess("flood", kigali, week)
        assert result.severity == "extreme"
        assert result.confidence == pytest.approx(1.0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("risk", list(RiskType))
    async def test_every_risk_type_stays_in_range(self, flood_gatherer, kigali, week, risk):
        result = await RiskEngine(flood_gatherer).assess(risk, kigali, week)
        assert 0.0 <= result.overall_score <= 1.0
        assert 0.0 <= result.confidence <= 1.0
        assert result.risk_type == risk.value

    @pytest.mark.asyncio
    async def test_outside_region_is_rejected_before_fetching(self, week):
        rain = StaticSeries(daily([1.0] * 7, END))
        engine = RiskEngine(DataGatherer(precipitation=rain))
        with pytest.raises(InvalidRequest):
            await engine.assess(RiskType.FLOOD, Location(-1.28, 36.82), week)
        assert rain.calls == []

    @pytest.mark.asyncio
    async def test_unknown_risk_type(self, flood_gatherer, kigali, week):
        with pytest.raises(InvalidRequest):
            await RiskEngine(flood_gatherer).assess("wildfire", kigali, week)

    def test_invalid_inputs(self):
        with pytest.raises(InvalidRequest):
            TimeWindow(date(2024, 5, 2), date(2024, 5, 1))
        with pytest.raises(InvalidRequest):
            Location(95.0, 30.0)

    def test_build_engine_selects_precipitation_provider(self):
        engine = build_engine(Settings(precipitation_provider="chirps"))
        assert isinstance(engine.gatherer._fetchers[SignalKind.PRECIPITATION].__self__, ChirpsSource)
        engine = build_engine(Settings())
        rain = engine.gatherer._fetchers[SignalKind.PRECIPITATION].__self__
        assert isinstance(rain, NasaPowerSource)
        assert rain.parameter == "PRECTOTCORR"
        assert set(engine.composers) == set(RiskType)


class TestGridEvaluator:
    BBOX = BoundingBox(south=-2.0, west=29.9, north=-1.8, east=30.1)

    @pytest.mark.asyncio
    async def test_three_by_three_lattice(self, flood_gatherer, week):
        grid = await GridEvaluator(RiskEngine(flood_gatherer)).evaluate(self.BBOX, 2, "flood", week)
        assert len(grid.points) == 9
        assert all(0.0 <= point.score <= 1.0 for point in grid.points)
        assert not any(point.failed for point in grid.points)
        # Row-major from the south-west corner.
        assert grid.points[0].location == Location(-2.0, 29.9)
        assert grid.points[1].location.latitude == pytest.approx(-2.0)
        assert grid.points[1].location.longitude == pytest.approx(30.0)
        assert grid.points[3].location.latitude == pytest.approx(-1.9)
        assert grid.points[-1].location.latitude == pytest.approx(-1.8)
        assert grid.points[-1].location.longitude == pytest.approx(30.1)

    @pytest.mark.asyncio
    async def test_failing_point_degrades_to_zero(self, flood_gatherer, week):
        broken = list(self.BBOX.lattice(2))[4]
        engine = FlakyEngine(flood_gatherer, broken)
        grid = await GridEvaluator(engine, batch_size=2).evaluate(self.BBOX, 2, RiskType.FLOOD, week)
        assert len(grid.points) == 9
        failed = [point for point in grid.points if point.failed]
        assert len(failed) == 1
        assert failed[0].location == broken
        assert failed[0].score == 0.0
        assert failed[0].severity == "low"
        assert sum(1 for point in grid.points if point.score > 0) == 8

    @pytest.mark.asyncio
    async def test_grid_touching_region_edges_keeps_every_point(self, flood_gatherer, week):
        bbox = BoundingBox(south=-1.69, west=29.6, north=-1.0, east=31.0)
        grid = await GridEvaluator(RiskEngine(flood_gatherer)).evaluate(bbox, 11, "flood", week)
        assert len(grid.points) == 144
        assert [point.location for point in grid.points if point.failed] == []
        assert grid.points[-1].location == Location(-1.0, 31.0)

    @pytest.mark.asyncio
    async def test_grid_validation(self, flood_gatherer, week):
        evaluator = GridEvaluator(RiskEngine(flood_gatherer))
        with pytest.raises(InvalidRequest):
            await evaluator.evaluate(self.BBOX, 0, "flood", week)
        with pytest.raises(InvalidRequest):
            await evaluator.evaluate(BoundingBox(south=-3.5, west=29.0, north=-2.0, east=30.0), 2, "flood", week)

    @pytest.mark.asyncio
    async def test_grid_to_dict(self, week):
        engine = RiskEngine(DataGatherer(terrain=StaticTerrain(1500.0, 12.0)))
        grid = await GridEvaluator(engine).evaluate(self.BBOX, 1, "landslide", week)
        payload = grid.to_dict()
        assert payload["gridSize"] == 1
        assert len(payload["points"]) == 4
        assert payload["bbox"] == {"south": -2.0, "west": 29.9, "north": -1.8, "east": 30.1}
