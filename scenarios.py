# scenarios.py
"""
Scenario presets for driving the simulation engine.

Provides:
 - TIME_OF_DAY_PRESETS: scenario name -> minutes from midnight
 - SimulationControlConfig: what a control panel hands to the engine
   (time of day, trip count, scenario, optional custom clock time)
 - WEATHER_PRESETS / weather_preset(name): named WeatherConditions
 - parse_clock_time / format_time_of_day: "HH:MM" <-> minutes helpers
"""

from dataclasses import dataclass
from typing import Dict, Optional

import config
from models import InvalidInputError, WeatherConditions, WeatherType

CUSTOM_SCENARIO = "custom"

TIME_OF_DAY_PRESETS: Dict[str, int] = {
    "rush-hour": 480,  # 8:00 AM
    "off-peak": 600,  # 10:00 AM
}

SCENARIO_NAMES = tuple(TIME_OF_DAY_PRESETS) + (CUSTOM_SCENARIO,)

DEFAULT_TRIP_COUNT = 25

WEATHER_PRESETS: Dict[str, WeatherConditions] = {
    "clear": WeatherConditions(**config.DEFAULT_WEATHER),
    "rain": WeatherConditions(
        temperature=12, precipitation=0.6, wind_speed=6, visibility=0.7, type=WeatherType.RAIN
    ),
    "snow": WeatherConditions(
        temperature=-4, precipitation=0.5, wind_speed=8, visibility=0.5, type=WeatherType.SNOW
    ),
    "fog": WeatherConditions(
        temperature=10, precipitation=0.0, wind_speed=2, visibility=0.3, type=WeatherType.FOG
    ),
    "wind": WeatherConditions(
        temperature=15, precipitation=0.0, wind_speed=15, visibility=1.0, type=WeatherType.WIND
    ),
}


def weather_preset(name: str) -> WeatherConditions:
    preset = WEATHER_PRESETS.get(name)
    if preset is None:
        raise InvalidInputError(
            f"Unknown weather preset '{name}' (choose from {', '.join(sorted(WEATHER_PRESETS))})"
        )
    return preset


def parse_clock_time(value: str) -> int:
    """'HH:MM' (24h) -> minutes from midnight."""
    try:
        hours_s, minutes_s = value.strip().split(":")
        hours, minutes = int(hours_s), int(minutes_s)
    except (AttributeError, ValueError):
        raise InvalidInputError(f"expected HH:MM clock time, got {value!r}") from None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise InvalidInputError(f"clock time out of range: {value!r}")
    return hours * 60 + minutes


def format_time_of_day(minutes: float) -> str:
    """Minutes from midnight -> '8:00 AM' style label."""
    total = int(minutes) % 1440
    hours, mins = divmod(total, 60)
    period = "PM" if hours >= 12 else "AM"
    display = hours - 12 if hours > 12 else (12 if hours == 0 else hours)
    return f"{display}:{mins:02d} {period}"


@dataclass
class SimulationControlConfig:
    time_of_day: float = TIME_OF_DAY_PRESETS["rush-hour"]
    trip_count: int = DEFAULT_TRIP_COUNT
    scenario: str = "rush-hour"
    custom_time: Optional[str] = None

    def __post_init__(self):
        if self.scenario not in SCENARIO_NAMES:
            raise InvalidInputError(
                f"Unknown scenario '{self.scenario}' (choose from {', '.join(SCENARIO_NAMES)})"
            )
        if self.trip_count < 0:
            raise InvalidInputError(f"trip_count must be non-negative, got {self.trip_count}")
        self.time_of_day = self.resolve_time_of_day()

    @classmethod
    def for_scenario(cls, scenario: str, trip_count: int = DEFAULT_TRIP_COUNT,
                     custom_time: Optional[str] = None) -> "SimulationControlConfig":
        return cls(scenario=scenario, trip_count=trip_count, custom_time=custom_time)

    def resolve_time_of_day(self) -> float:
        """
        Minutes from midnight the engine should use: the preset for a named
        scenario, the parsed custom clock time for 'custom' (falling back to
        `time_of_day` when no clock time was given).
        """
        if self.scenario == CUSTOM_SCENARIO:
            if self.custom_time:
                return parse_clock_time(self.custom_time)
            return self.time_of_day
        return TIME_OF_DAY_PRESETS[self.scenario]
