import random
from collections import Counter

import pytest

import config
from agent_factory import PedestrianAgentFactory, weather_speed_modifier
from geo import distance, offset
from models import (
    AgentType,
    InvalidInputError,
    PedestrianSimConfig,
    Point,
    TransitStop,
    TripPair,
    WeatherConditions,
    WeatherType,
)


STOP = TransitStop(id="s1", name="Main St", location=Point(40.72, -74.05), routes=("Route 1",))


def _factory(seed=7, **overrides):
    return PedestrianAgentFactory(PedestrianSimConfig.from_config(**overrides), random.Random(seed))


def test_agent_ids_are_unique_and_sequential():
    f = _factory()
    a = f.create_agent(STOP.location, STOP.location)
    b = f.create_agent(STOP.location, STOP.location)
    assert (a.id, b.id) == ("pedestrian_1", "pedestrian_2")


@pytest.mark.parametrize(
    "agent_type, factor",
    [
        (AgentType.NORMAL, 1.0),
        (AgentType.WHEELCHAIR, config.WHEELCHAIR_SPEED_FACTOR),
        (AgentType.MOBILITY_AID, config.MOBILITY_AID_SPEED_FACTOR),
        (AgentType.ELDERLY, config.ELDERLY_SPEED_FACTOR),
        (AgentType.CHILD, config.CHILD_SPEED_FACTOR),
    ],
)
def test_speed_range_per_type(agent_type, factor):
    f = _factory()
    for _ in range(20):
        a = f.create_agent(STOP.location, STOP.location, agent_type=agent_type)
        assert config.BASE_SPEED_MIN * factor <= a.max_speed <= config.BASE_SPEED_MAX * factor
        # default weather is mild: no penalty
        assert a.walking_speed == pytest.approx(a.max_speed)
        assert a.agent_type is agent_type


def test_weather_sensitivity_and_radius_follow_type():
    f = _factory()
    for agent_type in AgentType:
        a = f.create_agent(STOP.location, STOP.location, agent_type=agent_type)
        low, high = config.WEATHER_SENSITIVITY_BANDS[agent_type.value]
        assert low <= a.weather_sensitivity <= high
        assert a.crowd_avoidance_radius == config.CROWD_AVOIDANCE_RADII[agent_type.value]


def test_bad_weather_slows_agents_but_not_below_floor():
    snow = WeatherConditions(
        temperature=-10, precipitation=1.0, wind_speed=20, visibility=0.0, type=WeatherType.SNOW
    )
    f = _factory(weather=snow)
    for _ in range(20):
        a = f.create_agent(STOP.location, STOP.location)
        assert a.walking_speed < a.max_speed
        assert a.walking_speed >= a.max_speed * config.WEATHER_MIN_SPEED_FACTOR - 1e-9


def test_weather_modifier():
    assert weather_speed_modifier(WeatherConditions.default(), 1.0) == 1.0

    rain = WeatherConditions(temperature=15, precipitation=0.5, wind_speed=0, visibility=1.0)
    assert weather_speed_modifier(rain, 0.5) == pytest.approx(1 - 0.5 * 0.5 * config.PRECIPITATION_PENALTY)

    worst = WeatherConditions(temperature=-10, precipitation=1.0, wind_speed=20, visibility=0.0)
    assert weather_speed_modifier(worst, 1.0) == config.WEATHER_MIN_SPEED_FACTOR


def test_agent_type_distribution_roughly_matches_config():
    f = _factory(seed=1)
    counts = Counter(f.select_random_agent_type() for _ in range(2000))
    assert set(counts) <= set(AgentType)
    assert 0.70 < counts[AgentType.NORMAL] / 2000 < 0.80


def test_same_seed_same_agents():
    a = _factory(seed=3).create_agent_batch([TripPair(STOP.location, STOP.location)] * 10)
    b = _factory(seed=3).create_agent_batch([TripPair(STOP.location, STOP.location)] * 10)
    assert [(x.agent_type, x.max_speed) for x in a] == [(y.agent_type, y.max_speed) for y in b]


def test_rush_hour_batch_slows_both_speeds():
    pairs = [TripPair(STOP.location, STOP.location)] * 10
    normal = _factory(seed=5).create_agent_batch(pairs)
    rush = _factory(seed=5).create_agent_batch(pairs, rush_hour=True)
    for n, r in zip(normal, rush):
        assert r.walking_speed == pytest.approx(n.walking_speed * config.RUSH_HOUR_AGENT_SPEED_FACTOR)
        assert r.max_speed == pytest.approx(n.max_speed * config.RUSH_HOUR_AGENT_SPEED_FACTOR)
        assert r.walking_speed == pytest.approx(r.max_speed)


def test_rush_hour_batch_keeps_max_speed_weather_free():
    snow = WeatherConditions(
        temperature=-5, precipitation=0.8, wind_speed=4, visibility=0.4, type=WeatherType.SNOW
    )
    pairs = [TripPair(STOP.location, STOP.location)] * 10
    for a in _factory(weather=snow).create_agent_batch(pairs, rush_hour=True):
        assert a.walking_speed == pytest.approx(
            a.max_speed * weather_speed_modifier(snow, a.weather_sensitivity)
        )
        assert a.walking_speed < a.max_speed


def test_agent_snapshot():
    a = _factory().create_agent(STOP.location, offset(STOP.location, 100, 0), agent_type=AgentType.CHILD)
    a.velocity = (0.5, -0.25)

    snap = a.to_dict()

    assert snap["id"] == a.id
    assert snap["position"] == STOP.location.to_dict()
    assert snap["velocity"] == {"x": 0.5, "y": -0.25}
    assert snap["agent_type"] == "child"
    assert snap["walking_speed"] == a.walking_speed
    assert snap["path_index"] == 0
    assert snap["is_at_destination"] is False


def test_stop_centric_trips_stay_within_radius():
    f = _factory()
    trips = f.generate_stop_centric_trips(STOP, 50, 500)

    assert len(trips) == 50
    spread = config.NEARBY_DESTINATION_SPREAD_DEG / 2
    for t in trips:
        # haversine vs. local projection differ by well under 1%
        assert distance(t.origin, STOP.location) <= 500 * 1.01
        assert t.target_stop == STOP
        assert abs(t.destination.lat - STOP.location.lat) <= spread
        assert abs(t.destination.lng - STOP.location.lng) <= spread


def test_stop_centric_trips_mostly_end_at_the_stop():
    trips = _factory(seed=11).generate_stop_centric_trips(STOP, 400)
    at_stop = sum(1 for t in trips if t.destination == STOP.location)
    assert 0.6 < at_stop / 400 < 0.8


def test_stop_centric_trips_validate_arguments():
    f = _factory()
    assert f.generate_stop_centric_trips(STOP, 0) == []
    with pytest.raises(InvalidInputError):
        f.generate_stop_centric_trips(STOP, -1)
    with pytest.raises(InvalidInputError):
        f.generate_stop_centric_trips(STOP, 5, radius=0)


def test_update_agent_moves_by_scaled_velocity():
    f = _factory()
    a = f.create_agent(STOP.location, STOP.location, agent_type=AgentType.NORMAL)
    a.velocity = (1.0, 0.0)
    a.walking_speed = a.max_speed / 2

    f.update_agent(a, 2.0)

    assert a.current_position == offset(STOP.location, 1.0, 0.0)


def test_update_agent_ignores_arrived_agents():
    f = _factory()
    a = f.create_agent(STOP.location, STOP.location)
    a.velocity = (1.0, 0.0)
    a.is_at_destination = True
    f.update_agent(a, 1.0)
    assert a.current_position == STOP.location
