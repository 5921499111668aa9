import math
from datetime import date

import pytest

from climarisk import components as score
from climarisk.config import RWANDA
from climarisk.signals import Absent, IndexValue, TerrainPoint
from climarisk.terrain.wetness import slope_degrees, wetness_proxy
from fakes import daily, history

END = date(2024, 4, 30)


class TestHelpers:
    @pytest.mark.parametrize(
        "values, expected",
        [
            ([1.0, 1.0, 5.0, 5.0], score.INCREASING),
            ([5.0, 5.0, 1.0, 1.0], score.DECREASING),
            ([10.0, 10.0, 10.2, 10.3], score.STABLE),
            ([0.0, 0.0, 2.0, 2.0], score.INCREASING),
            ([0.0, 0.0, 0.0, 0.0], score.STABLE),
            ([4.0], score.STABLE),
        ],
    )
    def test_rainfall_trend(self, values, expected):
        assert score.rainfall_trend(values) == expected

    def test_long_term_trend_needs_ten_samples(self):
        assert score.long_term_trend([1.0] * 5 + [9.0] * 4) == 0.0
        assert score.long_term_trend([1.0] * 6 + [3.0] * 6) == pytest.approx(1.0)

    def test_clamp_and_ratio(self):
        assert score.clamp(1.7) == 1.0
        assert score.clamp(-0.2) == 0.0
        assert score.clamp(float("nan")) == 0.0
        assert score.safe_ratio(3.0, 0.0) == 0.0

    def test_component_score_is_clamped(self):
        assert score.ComponentScore("x", 1.4).score == 1.0


class TestWetness:
    def test_flat_cell_is_neutral(self):
        assert wetness_proxy(0.0) == 0.5

    def test_one_degree_slope(self):
        expected = math.log(100.0 / math.tan(math.radians(1.0))) / 10.0
        assert wetness_proxy(1.0) == pytest.approx(expected)

    def test_clamped_to_unit_interval(self):
        assert wetness_proxy(0.0001) == 1.0
        assert wetness_proxy(90.0) == 0.0

    def test_slope_of_tilted_plane(self):
        # 10 m rise per 100 m cell towards the east.
        window = [[0.0, 10.0, 20.0]] * 3
        assert slope_degrees(window, 100.0) == pytest.approx(math.degrees(math.atan(0.1)))

    def test_slope_rejects_small_window(self):
        with pytest.raises(ValueError):
            slope_degrees([[1.0, 2.0]], 30.0)


class TestFloodScorers:
    def test_rainfall_with_cumulative_bonus_is_capped(self):
        result = score.rainfall_intensity(daily([30.0] * 7, END), RWANDA)
        assert result.score == 1.0
        assert result.details["total_mm"] == pytest.approx(210.0)
        assert result.details["intensity_category"] == "extreme"

    def test_light_rain(self):
        result = score.rainfall_intensity(daily([2.0] * 7, END), RWANDA)
        assert result.score == pytest.approx(0.1)
        assert result.details["intensity_category"] == "low"

    def test_terrain_combination(self):
        result = score.terrain_risk(TerrainPoint(1100.0, 1.0), RWANDA)
        expected = 0.9 * 0.5 + 0.8 * 0.3 + wetness_proxy(1.0) * 0.2
        assert result.score == pytest.approx(expected)
        assert result.details["elevation_m"] == 1100.0

    def test_history_frequency_without_recent_event(self):
        events = history("flood", date(2019, 5, 1), END, [date(2021, 5, 2), date(2022, 4, 10), date(2023, 11, 20)])
        result = score.historical_frequency(events, RWANDA, END)
        assert result.details["events_per_year"] == pytest.approx(0.6)
        assert result.score == pytest.approx(0.6)
        assert result.details["days_since_last_event"] == (END - date(2023, 11, 20)).days

    @pytest.mark.parametrize("days_ago, boost", [(10, 0.2), (60, 0.1), (120, 0.0)])
    def test_history_recency_boost(self, days_ago, boost):
        event_day = date.fromordinal(END.toordinal() - days_ago)
        events = history("flood", date(2019, 5, 1), END, [event_day])
        result = score.historical_frequency(events, RWANDA, END)
        assert result.score == pytest.approx(0.4 + boost)

    def test_empty_history_is_present(self):
        result = score.historical_frequency(history("flood", date(2019, 5, 1), END), RWANDA, END)
        assert not result.absent
        assert result.score == 0.2

    def test_absent_uses_fallback(self):
        result = score.vegetation_cover(Absent("no scene"), RWANDA, fallback=0.5)
        assert result.absent
        assert result.score == 0.5
        assert result.details["reason"] == "no scene"


class TestDroughtScorers:
    def test_precipitation_deficit(self):
        # 80 % below the 3.2 mm/day normal.
        result = score.precipitation_deficit(daily([0.64] * 7, END), RWANDA)
        assert result.details["anomaly_percent"] == pytest.approx(-80.0)
        assert result.score == 1.0

    def test_wet_period_has_no_deficit(self):
        assert score.precipitation_deficit(daily([6.0] * 7, END), RWANDA).score == 0.0

    def test_temperature_anomaly(self):
        result = score.temperature_anomaly(daily([24.0] * 7, END, "degC"), RWANDA)
        assert result.details["anomaly_c"] == pytest.approx(4.0)
        assert result.score == 0.75

    def test_vegetation_health(self):
        result = score.vegetation_health(IndexValue(0.15), RWANDA)
        assert result.score == 1.0
        assert result.details["ndvi_anomaly"] == pytest.approx(-0.55)

    @pytest.mark.parametrize("ndwi, expected", [(-0.3, 1.0), (-0.15, 0.8), (-0.05, 0.6), (0.05, 0.4), (0.15, 0.2), (0.4, 0.0)])
    def test_soil_moisture(self, ndwi, expected):
        assert score.soil_moisture(IndexValue(ndwi, "ndwi"), RWANDA).score == expected


class TestPredictionScorers:
    def test_recent_rainfall_increasing(self):
        result = score.recent_rainfall(daily([5.0, 5.0, 5.0, 20.0, 20.0, 25.0, 25.0], END), RWANDA)
        assert result.details["trend"] == score.INCREASING
        # 105 mm / 7 = 15 mm/day, not above 15 -> 0.2, plus 0.3 trend bonus
        assert result.score == pytest.approx(0.5)

    def test_recent_rainfall_absent_is_zero(self):
        result = score.recent_rainfall(Absent("down"), RWANDA)
        assert result.score == 0.0
        assert result.absent

    def test_dry_antecedent_suppresses_season(self):
        dry = daily([1.0] * 60, date(2024, 3, 31))
        result = score.historical_pattern(dry, history("flood", date(2024, 1, 31), END), RWANDA, 4)
        assert result.details["seasonal_risk"] == 0.8
        assert result.score == 0.0

    def test_wet_antecedent_and_floods(self):
        wet = daily([8.0] * 60, date(2024, 3, 31))
        floods = history("flood", date(2024, 1, 31), END, [date(2024, 2, 10), date(2024, 3, 1), date(2024, 4, 2)])
        result = score.historical_pattern(wet, floods, RWANDA, 4)
        assert result.score == pytest.approx(0.8 * 0.4 + 0.2)
        assert result.details["historical_events"] == 3

    def test_historical_pattern_absent_only_when_both_missing(self):
        result = score.historical_pattern(Absent("a"), Absent("b"), RWANDA, 4)
        assert result.absent
        partial = score.historical_pattern(Absent("a"), history("flood", date(2024, 1, 31), END), RWANDA, 4)
        assert not partial.absent

    def test_terrain_factors(self):
        result = score.terrain_factors(TerrainPoint(900.0, 12.0), RWANDA)
        assert result.score == pytest.approx(0.4 + 0.2 + 0.8 * 0.3)

    def test_vegetation_runoff(self):
        assert score.vegetation_runoff(IndexValue(0.25), RWANDA).score == pytest.approx(0.6)


class TestLandslideScorers:
    def test_slope_instability(self):
        assert score.slope_instability(TerrainPoint(2000.0, 35.0), RWANDA).score == 0.8

    def test_rainfall_trigger_flags_72h(self):
        result = score.rainfall_trigger(daily([0.0, 0.0, 0.0, 0.0, 20.0, 40.0, 60.0], END), RWANDA)
        assert result.details["rain_24h_mm"] == 60.0
        assert result.details["rain_72h_mm"] == 120.0
        assert result.details["triggered"] is True
        assert result.score == pytest.approx(0.2 + 0.3)

    def test_soil_saturation_dense_vegetation_dampens(self):
        moist = IndexValue(0.15, "ndwi")
        rain = daily([20.0, 20.0, 20.0], END)
        result = score.soil_saturation(moist, rain, IndexValue(0.7), RWANDA)
        assert result.details["wetness"] == pytest.approx(0.8)
        assert result.score == pytest.approx((0.8 + 0.2) * 0.8)

    def test_landslide_density(self):
        assert score.landslide_density(history("landslide", date(2014, 5, 1), END), RWANDA).score == 0.05
        one_slide = history("landslide", date(2014, 5, 1), END, [date(2020, 1, 1)])
        result = score.landslide_density(one_slide, RWANDA)
        assert result.details["density_per_100km2"] == pytest.approx(100.0 / (math.pi * 25.0 ** 2))
        assert result.score == 0.15
