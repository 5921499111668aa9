import json
from datetime import date

import pytest

from climarisk.errors import InvalidRequest
from climarisk.utils import (
    OPERATIONAL_BOUNDS,
    BoundingBox,
    Location,
    TimeWindow,
    haversine_km,
    load_place,
    load_places,
    write_result_json,
)
from climarisk.utils.aoi import aoi_to_geojson, aoi_to_polygon


class TestRequestModel:
    @pytest.mark.parametrize("lat, lon", [(91.0, 30.0), (-1.9, 181.0), (float("nan"), 30.0)])
    def test_invalid_location(self, lat, lon):
        with pytest.raises(InvalidRequest):
            Location(lat, lon)

    def test_invalid_request_is_a_value_error(self):
        with pytest.raises(ValueError):
            Location(0.0, 200.0)

    def test_window_helpers(self):
        window = TimeWindow.ending(date(2024, 4, 30), 7)
        assert window.start == date(2024, 4, 24)
        assert window.days == 7
        assert window.lookback(90).end == window.end
        assert TimeWindow.parse("2024-04-01", "2024-04-30").days == 30
        with pytest.raises(InvalidRequest):
            TimeWindow.parse("2024-04-01", "April 30")
        with pytest.raises(InvalidRequest):
            TimeWindow.ending(date(2024, 4, 30), 0)

    def test_single_day_window(self):
        assert TimeWindow(date(2024, 4, 30), date(2024, 4, 30)).days == 1

    def test_degenerate_bbox(self):
        with pytest.raises(InvalidRequest):
            BoundingBox(south=-1.0, west=30.0, north=-2.0, east=31.0)

    def test_operational_bounds(self):
        assert OPERATIONAL_BOUNDS.contains(Location(-1.9441, 30.0619))
        assert OPERATIONAL_BOUNDS.contains(Location(-2.8, 28.8))
        assert not OPERATIONAL_BOUNDS.contains(Location(-1.28, 36.82))
        assert BoundingBox(south=-2.0, west=29.0, north=-1.5, east=30.0).within(OPERATIONAL_BOUNDS)

    def test_lattice_size(self):
        bbox = BoundingBox(south=-2.0, west=29.0, north=-1.0, east=30.0)
        points = list(bbox.lattice(3))
        assert len(points) == 16
        assert points[0] == Location(-2.0, 29.0)
        assert points[-1].latitude == pytest.approx(-1.0)

    def test_lattice_ends_exactly_on_the_far_edges(self):
        bbox = BoundingBox(south=-1.69, west=29.6, north=-1.0, east=31.0)
        points = list(bbox.lattice(11))
        assert {point.latitude for point in points[-12:]} == {-1.0}
        assert {point.longitude for point in points[11::12]} == {31.0}
        assert all(OPERATIONAL_BOUNDS.contains(point) for point in points)


class TestGeometry:
    def test_haversine(self):
        assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.19, abs=0.01)
        assert haversine_km(-1.9, 30.0, -1.9, 30.0) == 0.0

    def test_aoi_round_trip(self):
        polygon = aoi_to_polygon([29.0, -2.0, 30.0, -1.0])
        assert polygon.bounds == (29.0, -2.0, 30.0, -1.0)
        assert aoi_to_polygon(aoi_to_geojson([29.0, -2.0, 30.0, -1.0])).equals(polygon)
        with pytest.raises(TypeError):
            aoi_to_polygon("kigali")


class TestPlaces:
    def test_catalogue_is_inside_region(self):
        places = load_places()
        assert len(places) >= 5
        for place in places:
            assert OPERATIONAL_BOUNDS.contains(place.location), place.id

    def test_radius_becomes_bbox(self):
        kigali = load_place("kigali")
        assert kigali.name == "Kigali"
        assert kigali.bbox.contains(kigali.location)
        assert kigali.bbox.north - kigali.bbox.south == pytest.approx(30.0 / 111.0)

    def test_unknown_place(self):
        with pytest.raises(InvalidRequest):
            load_place("atlantis")

    def test_custom_catalogue(self, tmp_path):
        path = tmp_path / "places.json"
        path.write_text(
            json.dumps([{"id": "a", "lat": -2.0, "lon": 30.0, "bbox": [29.9, -2.1, 30.1, -1.9]}, {"id": "b"}]),
            encoding="utf-8",
        )
        places = load_places(path)
        assert [place.id for place in places] == ["a"]
        assert places[0].bbox == BoundingBox(south=-2.1, west=29.9, north=-1.9, east=30.1)


class TestWriteResult:
    def test_writes_sorted_json(self, tmp_path):
        target = write_result_json(tmp_path / "out", "kigali/flood", {"b": 1, "a": 2})
        assert target.name == "kigali_flood.json"
        text = target.read_text(encoding="utf-8")
        assert text.index('"a"') < text.index('"b"')
        assert json.loads(text) == {"a": 2, "b": 1}
