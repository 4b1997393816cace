import random
from collections import Counter

import pytest

import config
from agent_factory import weather_speed_modifier
from geo import distance, offset
from models import (
    InvalidInputError,
    PedestrianSimConfig,
    Point,
    TransitStop,
)
from scenarios import weather_preset
from simulation import SimulationEngine


CENTRE = Point(lat=40.72, lng=-74.05)
STOPS = [
    TransitStop(id="s1", name="First", location=CENTRE, routes=("Route 1",)),
    TransitStop(id="s2", name="Second", location=offset(CENTRE, 300, 0), routes=("Route 1",)),
    TransitStop(id="s3", name="Third", location=offset(CENTRE, 600, 0), routes=("Route 1",)),
]


def _engine(seed=42, **overrides):
    return SimulationEngine(
        [],
        STOPS,
        pedestrian_config=PedestrianSimConfig.from_config(**overrides),
        rng=random.Random(seed),
    )


def test_lifecycle_flags():
    engine = _engine()
    assert not engine.is_running
    engine.start_pedestrian_simulation()
    assert engine.is_running
    engine.stop_pedestrian_simulation()
    assert not engine.is_running


def test_agents_spread_evenly_over_stops():
    engine = _engine()
    added = engine.add_pedestrian_agents(7)

    assert len(added) == 7
    per_stop = Counter(a.target_stop.id for a in added)
    assert per_stop == {"s1": 3, "s2": 2, "s3": 2}
    assert engine.get_pedestrian_agents() == added


def test_agents_get_planned_routes():
    engine = _engine()
    for agent in engine.add_pedestrian_agents(12):
        assert len(agent.route) >= 2
        assert agent.route[0] == agent.origin
        assert agent.route[-1] == agent.destination
        assert agent.current_position == agent.origin


def test_population_never_exceeds_cap():
    engine = _engine(max_agents=10)
    assert len(engine.add_pedestrian_agents(25)) == 10
    assert engine.add_pedestrian_agents(5) == []
    assert len(engine.get_pedestrian_agents()) == 10


def test_add_agents_validates_input():
    with pytest.raises(InvalidInputError):
        _engine(max_agents=0).add_pedestrian_agents(5)
    with pytest.raises(InvalidInputError):
        _engine().add_pedestrian_agents(-1)
    assert _engine().add_pedestrian_agents(0) == []


def test_no_stops_no_agents():
    engine = SimulationEngine([], [])
    assert engine.add_pedestrian_agents(5) == []


@pytest.mark.parametrize("delta", [0, -1.0, float("nan")])
def test_update_rejects_bad_delta(delta):
    engine = _engine()
    engine.start_pedestrian_simulation()
    engine.add_pedestrian_agents(3)
    with pytest.raises(InvalidInputError):
        engine.update_pedestrian_simulation(delta)


def test_update_is_noop_when_stopped():
    engine = _engine()
    agents = engine.add_pedestrian_agents(5)
    before = [a.current_position for a in agents]

    engine.update_pedestrian_simulation(1.0)

    assert engine.tick_count == 0
    assert [a.current_position for a in agents] == before


def test_update_moves_agents_within_speed_limit():
    engine = _engine()
    engine.start_pedestrian_simulation()
    agents = engine.add_pedestrian_agents(15)
    origins = {a.id: a.origin for a in agents}

    for _ in range(5):
        engine.update_pedestrian_simulation(1.0)

    assert engine.tick_count == 5
    assert engine.elapsed_time == pytest.approx(5.0)
    live = engine.get_pedestrian_agents()
    moved = [a for a in live if a.current_position != origins[a.id]]
    assert moved
    for a in live:
        assert a.speed() <= a.max_speed_mps + 1e-9
        # nobody outruns their walking speed
        assert distance(origins[a.id], a.current_position) <= a.walking_speed / 60 * 5 * 1.01


def test_arrived_agents_are_pruned_and_counted():
    engine = _engine()
    engine.start_pedestrian_simulation()
    agents = engine.add_pedestrian_agents(3)

    done = agents[0]
    done.current_position = done.destination
    done.route = [done.destination]
    done.path_index = 0

    engine.update_pedestrian_simulation(1.0)

    ids = [a.id for a in engine.get_pedestrian_agents()]
    assert done.id not in ids
    assert done.is_at_destination
    assert engine.arrived_count == 1
    assert len(ids) == 2


def test_agents_walk_to_their_destinations_and_leave():
    engine = _engine()
    engine.start_pedestrian_simulation()
    engine.add_pedestrian_agents(40)
    last_index = {a.id: a.path_index for a in engine.get_pedestrian_agents()}

    for _ in range(5000):
        if not engine.get_pedestrian_agents():
            break
        engine.update_pedestrian_simulation(1.0)
        for a in engine.get_pedestrian_agents():
            # waypoints are only ever consumed
            assert a.path_index >= last_index[a.id]
            last_index[a.id] = a.path_index

    assert engine.get_pedestrian_agents() == []
    assert engine.arrived_count == 40


def test_same_seed_same_run():
    def run(seed):
        engine = _engine(seed=seed)
        engine.start_pedestrian_simulation()
        engine.add_pedestrian_agents(10)
        for _ in range(3):
            engine.update_pedestrian_simulation(1.0)
        return [(a.id, a.current_position) for a in engine.get_pedestrian_agents()]

    assert run(9) == run(9)


def test_weather_change_rescales_live_agents():
    engine = _engine()
    agents = engine.add_pedestrian_agents(10)
    snow = weather_preset("snow")

    engine.set_weather_conditions(snow)

    assert engine.agent_factory.weather == snow
    for a in agents:
        expected = a.max_speed * weather_speed_modifier(snow, a.weather_sensitivity)
        assert a.walking_speed == pytest.approx(expected)
        assert a.walking_speed < a.max_speed

    # agents created afterwards see the new weather too
    later = engine.add_pedestrian_agents(1)[0]
    assert later.walking_speed < later.max_speed


def test_rush_hour_agents_walk_at_max_speed_in_clear_weather():
    engine = _engine()
    for a in engine.add_pedestrian_agents(5, rush_hour=True):
        assert a.walking_speed == pytest.approx(a.max_speed)
        assert a.max_speed <= config.BASE_SPEED_MAX * config.RUSH_HOUR_AGENT_SPEED_FACTOR


def test_rush_hour_agents_recover_when_weather_clears():
    engine = _engine(weather=weather_preset("snow"))
    agents = engine.add_pedestrian_agents(5, rush_hour=True)
    for a in agents:
        assert a.walking_speed < a.max_speed

    engine.set_weather_conditions(weather_preset("clear"))
    for a in agents:
        assert a.walking_speed == pytest.approx(a.max_speed)

    # penalty is applied once, so the weather floor still holds
    engine.set_weather_conditions(weather_preset("snow"))
    for a in agents:
        assert a.walking_speed >= a.max_speed * config.WEATHER_MIN_SPEED_FACTOR - 1e-9


def test_crowd_metrics_around_a_stop():
    engine = _engine()
    engine.add_pedestrian_agents(30)

    metrics = engine.get_crowd_metrics(CENTRE, 2000.0)
    assert metrics.density > 0
    assert 0.0 <= metrics.congestion_level <= 1.0

    empty = engine.get_crowd_metrics(offset(CENTRE, 50000, 0), 10.0)
    assert empty.density == 0 and empty.congestion_level == 0


def test_default_sidewalk_network_from_stops():
    engine = _engine()
    net = engine.generate_default_sidewalk_network()
    assert len(net.nodes) == 5 * len(STOPS)
    assert engine.sidewalk_network is not None


def test_metrics_summary_and_report(capsys):
    engine = _engine()
    engine.start_pedestrian_simulation()
    engine.add_pedestrian_agents(20)
    engine.update_pedestrian_simulation(1.0)

    summary = engine.get_metrics_summary()
    g = summary["global"]
    assert g["num_agents"] + g["arrived"] == 20
    assert g["ticks"] == 1
    assert g["avg_walking_speed"] > 0
    assert sum(s["count"] for s in summary["by_type"].values()) == g["num_agents"]

    engine.summary()
    out = capsys.readouterr().out
    assert "Pedestrian Simulation Summary" in out


def test_metrics_summary_for_empty_population():
    g = _engine().get_metrics_summary()["global"]
    assert g["num_agents"] == 0
    assert g["avg_speed"] == 0.0
