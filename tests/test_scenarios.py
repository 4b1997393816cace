import pytest

from models import InvalidInputError, WeatherType
from scenarios import (
    TIME_OF_DAY_PRESETS,
    WEATHER_PRESETS,
    SimulationControlConfig,
    format_time_of_day,
    parse_clock_time,
    weather_preset,
)


def test_presets_match_control_panel_times():
    assert TIME_OF_DAY_PRESETS == {"rush-hour": 480, "off-peak": 600}


@pytest.mark.parametrize("text, minutes", [("08:00", 480), ("17:30", 1050), ("0:05", 5), ("23:59", 1439)])
def test_parse_clock_time(text, minutes):
    assert parse_clock_time(text) == minutes


@pytest.mark.parametrize("text", ["8", "24:00", "12:60", "ab:cd", ""])
def test_parse_clock_time_rejects_garbage(text):
    with pytest.raises(InvalidInputError):
        parse_clock_time(text)


@pytest.mark.parametrize(
    "minutes, label",
    [(0, "12:00 AM"), (480, "8:00 AM"), (720, "12:00 PM"), (1050, "5:30 PM")],
)
def test_format_time_of_day(minutes, label):
    assert format_time_of_day(minutes) == label


def test_control_config_resolves_time():
    assert SimulationControlConfig(scenario="off-peak").resolve_time_of_day() == 600
    custom = SimulationControlConfig.for_scenario("custom", custom_time="17:15")
    assert custom.time_of_day == 1035
    # custom without a clock keeps the explicit minutes
    assert SimulationControlConfig(time_of_day=700, scenario="custom").resolve_time_of_day() == 700


def test_control_config_time_follows_scenario_on_construction():
    assert SimulationControlConfig(scenario="off-peak").time_of_day == 600
    assert SimulationControlConfig(time_of_day=700, scenario="rush-hour").time_of_day == 480
    assert SimulationControlConfig(scenario="custom", custom_time="06:30").time_of_day == 390
    assert SimulationControlConfig(time_of_day=700, scenario="custom").time_of_day == 700
    with pytest.raises(InvalidInputError):
        SimulationControlConfig(scenario="custom", custom_time="25:00")


def test_control_config_validation():
    with pytest.raises(InvalidInputError):
        SimulationControlConfig(scenario="midnight")
    with pytest.raises(InvalidInputError):
        SimulationControlConfig(trip_count=-3)


def test_weather_presets():
    assert weather_preset("clear").type is WeatherType.CLEAR
    assert weather_preset("snow").temperature < 0
    assert set(WEATHER_PRESETS) == {t.value for t in WeatherType}
    with pytest.raises(InvalidInputError):
        weather_preset("hail")
