from datetime import date

import pytest

from climarisk.gather import DataGatherer
from climarisk.utils import Location, TimeWindow
from fakes import StaticHistory, StaticIndex, StaticSeries, StaticTerrain, daily

KIGALI = Location(-1.9441, 30.0619)
SCENARIO_END = date(2024, 4, 30)
# Three floods in the five years before the scenario end, none in the last 90 days.
FLOOD_DAYS = (date(2021, 5, 2), date(2022, 4, 10), date(2023, 11, 20))


@pytest.fixture
def kigali():
    return KIGALI


@pytest.fixture
def week():
    return TimeWindow.ending(SCENARIO_END, 7)


@pytest.fixture
def flood_gatherer():
    """210 mm over 7 days on a 1100 m valley floor with bare soil."""

    return DataGatherer(
        precipitation=StaticSeries(daily([30.0] * 7, SCENARIO_END)),
        temperature=StaticSeries(daily([21.0] * 7, SCENARIO_END, "degC")),
        terrain=StaticTerrain(1100.0, 1.0),
        vegetation=StaticIndex(0.15),
        moisture=StaticIndex(0.25, "ndwi"),
        flood_history=StaticHistory("flood", FLOOD_DAYS),
        landslide_history=StaticHistory("landslide"),
        fetch_timeout=2.0,
    )
