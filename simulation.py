# simulation.py

import asyncio
import logging
import math
import random
import time
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

import config
from agent import PedestrianAgent
from agent_factory import PedestrianAgentFactory, weather_speed_modifier
from crowd_dynamics import CrowdDynamicsSystem
from environment import build_default_sidewalk_network
from geo import distance, limit
from models import (
    PATH_ACCESSIBILITY,
    ComparisonResult,
    CrowdMetrics,
    Improvements,
    InvalidInputError,
    PedestrianSimConfig,
    Point,
    RouteSegment,
    SidewalkNetwork,
    SimulationConfig,
    SimulationResult,
    TransitStop,
    TransportMode,
    TravelMode,
    TravelTimeResult,
    TripPair,
    WeatherConditions,
)
from pathfinding import PathfindingSystem

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 1440

# confidence scores (heuristic trust, not a statistical interval)
CONFIDENCE_SHORT_WALK = 0.9
CONFIDENCE_NO_STOP = 0.8
CONFIDENCE_NO_SHARED_ROUTE = 0.7
CONFIDENCE_UNKNOWN_ROUTE = 0.6
CONFIDENCE_COMPARED = 0.8


def _walking_segment(origin: Point, destination: Point, seg_id: str = "walking", name: str = "Walking"):
    return RouteSegment(
        id=seg_id,
        name=name,
        coordinates=(origin, destination),
        type=TransportMode.WALKING,
    )


class SimulationEngine:
    """
    Top-level orchestrator.

    A. Stateless travel-time estimation over routes and stops: walking vs.
       transit per trip, scenario aggregation, current-vs-proposed comparison.
    B. Stateful pedestrian population: spawn agents around stops, advance them
       tick by tick with goal, flocking and obstacle forces, prune arrivals.

    The engine owns its agent list. Pathfinding and crowd systems are only read.
    """

    def __init__(
        self,
        routes: Sequence[RouteSegment],
        stops: Sequence[TransitStop],
        sim_config: Optional[SimulationConfig] = None,
        pedestrian_config: Optional[PedestrianSimConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        for r in routes:
            if not isinstance(r, RouteSegment):
                raise InvalidInputError(f"expected RouteSegment, got {type(r).__name__}")
        for s in stops:
            if not isinstance(s, TransitStop):
                raise InvalidInputError(f"expected TransitStop, got {type(s).__name__}")

        self.routes = tuple(routes)
        self.stops = tuple(stops)
        self.config = sim_config if sim_config is not None else SimulationConfig.from_config()
        self.pedestrian_config = (
            pedestrian_config if pedestrian_config is not None else PedestrianSimConfig.from_config()
        )
        self.rng = rng if rng is not None else random.Random(config.SEED)

        self._routes_by_key: Dict[str, RouteSegment] = {}
        for r in self.routes:
            self._routes_by_key.setdefault(r.id, r)
        for r in self.routes:
            # names win over ids when both match
            self._routes_by_key[r.name] = r

        # pedestrian state
        self.weather: WeatherConditions = self.pedestrian_config.weather
        self.crowd_dynamics = CrowdDynamicsSystem(self.pedestrian_config.crowd_dynamics)
        self.agent_factory = PedestrianAgentFactory(self.pedestrian_config, self.rng)
        self.pedestrians: List[PedestrianAgent] = []
        self.is_running = False
        self.tick_count = 0
        self.elapsed_time = 0.0
        self.total_spawned = 0
        self.arrived_count = 0

        self._sidewalk_network: Optional[SidewalkNetwork] = self.pedestrian_config.sidewalk_network
        self._pathfinding: Optional[PathfindingSystem] = None

    # ------------------------------------------------------------------
    # sidewalk network (built lazily: travel-time estimation never needs it)
    # ------------------------------------------------------------------
    @property
    def sidewalk_network(self) -> SidewalkNetwork:
        if self._sidewalk_network is None:
            self._sidewalk_network = self.generate_default_sidewalk_network()
        return self._sidewalk_network

    @property
    def pathfinding(self) -> PathfindingSystem:
        if self._pathfinding is None:
            self._pathfinding = PathfindingSystem(self.sidewalk_network)
        return self._pathfinding

    def generate_default_sidewalk_network(self) -> SidewalkNetwork:
        return build_default_sidewalk_network(self.stops)

    # ==================================================================
    # A. TRAVEL-TIME ESTIMATION
    # ==================================================================

    def get_speed_multiplier(self, time_of_day: float) -> float:
        minute = time_of_day % MINUTES_PER_DAY
        for window in self.config.rush_hour_periods:
            if window.contains(minute):
                return window.speed_multiplier
        return 1.0

    def is_rush_hour(self, time_of_day: float) -> bool:
        return self.get_speed_multiplier(time_of_day) < 1.0

    def find_nearest_stop(
        self, point: Point, stop_type: Optional[TransportMode] = None
    ) -> Optional[TransitStop]:
        best: Optional[TransitStop] = None
        best_dist = float("inf")
        for stop in self.stops:
            if stop_type is not None and stop.type != stop_type:
                continue
            d = distance(point, stop.location)
            if d < best_dist:
                best_dist = d
                best = stop
        return best

    def find_route(self, key: str) -> Optional[RouteSegment]:
        return self._routes_by_key.get(key)

    def walking_time(self, origin: Point, destination: Point, time_of_day: float) -> float:
        speeds = self.config.walking_speed
        speed = speeds.rush_hour if self.is_rush_hour(time_of_day) else speeds.normal
        return distance(origin, destination) / speed

    def bus_time(self, route: RouteSegment, time_of_day: float) -> float:
        """Wait plus in-vehicle minutes; the whole route length is ridden."""
        rush = self.is_rush_hour(time_of_day)
        speed = self.config.bus_speed.rush_hour if rush else self.config.bus_speed.normal
        wait = self.config.base_wait_time + (self.config.rush_hour_extra_wait if rush else 0.0)
        return wait + route.length() / speed

    def _walking_result(
        self, origin: Point, destination: Point, duration: float, confidence: float
    ) -> TravelTimeResult:
        return TravelTimeResult(
            origin=origin,
            destination=destination,
            duration=duration,
            confidence=confidence,
            route=(_walking_segment(origin, destination),),
            mode=TravelMode.WALKING,
        )

    def find_optimal_route(
        self, origin: Point, destination: Point, time_of_day: float = config.DEFAULT_TIME_OF_DAY
    ) -> TravelTimeResult:
        walk = self.walking_time(origin, destination, time_of_day)

        if distance(origin, destination) < self.config.max_walk_distance:
            return self._walking_result(origin, destination, walk, CONFIDENCE_SHORT_WALK)

        origin_stop = self.find_nearest_stop(origin, TransportMode.BUS)
        destination_stop = self.find_nearest_stop(destination, TransportMode.BUS)
        if origin_stop is None or destination_stop is None:
            logger.debug("[SimulationEngine] no bus stop available, walking")
            return self._walking_result(origin, destination, walk, CONFIDENCE_NO_STOP)

        shared = [r for r in origin_stop.routes if destination_stop.serves(r)]
        if not shared:
            logger.debug(
                "[SimulationEngine] no route serves both %s and %s, walking",
                origin_stop.id,
                destination_stop.id,
            )
            return self._walking_result(origin, destination, walk, CONFIDENCE_NO_SHARED_ROUTE)

        route = self.find_route(shared[0])
        if route is None:
            logger.debug("[SimulationEngine] route '%s' not loaded, walking", shared[0])
            return self._walking_result(origin, destination, walk, CONFIDENCE_UNKNOWN_ROUTE)

        transit = (
            self.walking_time(origin, origin_stop.location, time_of_day)
            + self.bus_time(route, time_of_day)
            + self.walking_time(destination_stop.location, destination, time_of_day)
        )
        if transit >= walk:
            return self._walking_result(origin, destination, walk, CONFIDENCE_COMPARED)

        return TravelTimeResult(
            origin=origin,
            destination=destination,
            duration=transit,
            confidence=CONFIDENCE_COMPARED,
            route=(
                _walking_segment(origin, origin_stop.location, "walk-to-stop", "Walk to stop"),
                route,
                _walking_segment(
                    destination_stop.location, destination, "walk-from-stop", "Walk from stop"
                ),
            ),
            mode=TravelMode.MIXED,
        )

    def simulate(
        self, pairs: Iterable[TripPair], time_of_day: float = config.DEFAULT_TIME_OF_DAY
    ) -> SimulationResult:
        started = time.perf_counter()
        travel_times = [self.find_optimal_route(p.origin, p.destination, time_of_day) for p in pairs]
        elapsed = time.perf_counter() - started

        transit_trips = [t for t in travel_times if t.mode != TravelMode.WALKING]
        # every transit trip is charged the same assumed wait
        average_wait = config.ASSUMED_WAIT_PER_TRANSIT_TRIP if transit_trips else 0.0
        confidence = float(np.mean([t.confidence for t in travel_times])) if travel_times else 0.0

        return SimulationResult(
            travel_times=travel_times,
            average_wait_time=average_wait,
            total_simulation_time=elapsed,
            confidence=confidence,
            scenario="current",
        )

    def compare_scenarios(
        self,
        pairs: Sequence[TripPair],
        proposed_routes: Sequence[RouteSegment],
        proposed_stops: Sequence[TransitStop],
        time_of_day: float = config.DEFAULT_TIME_OF_DAY,
    ) -> ComparisonResult:
        pairs = list(pairs)
        current = self.simulate(pairs, time_of_day)

        # the proposed engine shares nothing mutable with this one
        proposed_engine = SimulationEngine(proposed_routes, proposed_stops, self.config)
        proposed = proposed_engine.simulate(pairs, time_of_day)
        proposed.scenario = "proposed"

        current_avg = current.average_duration()
        proposed_avg = proposed.average_duration()
        saved = current_avg - proposed_avg
        percent = (saved / current_avg) * 100 if current_avg > 0 else 0.0

        affected: List[str] = []
        for result in (current, proposed):
            for t in result.travel_times:
                for segment in t.route:
                    if segment.type != TransportMode.WALKING and segment.name not in affected:
                        affected.append(segment.name)

        logger.info(
            "[SimulationEngine] compared %d trips: %.2f -> %.2f min (%.1f%%)",
            len(pairs),
            current_avg,
            proposed_avg,
            percent,
        )
        return ComparisonResult(
            current=current,
            proposed=proposed,
            improvements=Improvements(
                average_time_saved=saved,
                percent_improvement=percent,
                affected_routes=tuple(affected),
            ),
        )

    async def simulate_async(
        self, pairs: Iterable[TripPair], time_of_day: float = config.DEFAULT_TIME_OF_DAY
    ) -> SimulationResult:
        return await asyncio.to_thread(self.simulate, list(pairs), time_of_day)

    async def compare_scenarios_async(
        self,
        pairs: Sequence[TripPair],
        proposed_routes: Sequence[RouteSegment],
        proposed_stops: Sequence[TransitStop],
        time_of_day: float = config.DEFAULT_TIME_OF_DAY,
    ) -> ComparisonResult:
        return await asyncio.to_thread(
            self.compare_scenarios, list(pairs), proposed_routes, proposed_stops, time_of_day
        )

    def generate_sample_trips(
        self, count: int = 20, bounds: Optional[Dict[str, float]] = None
    ) -> List[TripPair]:
        """Uniform random origin/destination pairs inside a lat/lng box."""
        if count < 0:
            raise InvalidInputError(f"trip count must be non-negative, got {count}")
        b = bounds if bounds is not None else config.SAMPLE_TRIP_BOUNDS

        def sample() -> Point:
            return Point(
                lat=self.rng.uniform(b["south"], b["north"]),
                lng=self.rng.uniform(b["west"], b["east"]),
            )

        return [TripPair(origin=sample(), destination=sample()) for _ in range(count)]

    # ==================================================================
    # B. PEDESTRIAN POPULATION
    # ==================================================================

    def start_pedestrian_simulation(self):
        self.is_running = True
        logger.info("[SimulationEngine] pedestrian simulation started")

    def stop_pedestrian_simulation(self):
        self.is_running = False
        logger.info("[SimulationEngine] pedestrian simulation stopped")

    def get_pedestrian_agents(self) -> List[PedestrianAgent]:
        return list(self.pedestrians)

    def add_pedestrian_agents(self, count: int, rush_hour: bool = False) -> List[PedestrianAgent]:
        """
        Spawn up to `count` agents spread evenly over all stops (the first
        stops take the remainder), each with a planned path. The population
        never exceeds max_agents; only the remaining capacity is added.
        """
        max_agents = self.pedestrian_config.max_agents
        if max_agents <= 0:
            raise InvalidInputError(f"max_agents must be positive, got {max_agents}")
        if count < 0:
            raise InvalidInputError(f"agent count must be non-negative, got {count}")

        capacity = max(0, max_agents - len(self.pedestrians))
        n = min(count, capacity)
        if n < count:
            logger.info("[SimulationEngine] agent cap reached: adding %d of %d", n, count)
        if n == 0 or not self.stops:
            return []

        per_stop, remainder = divmod(n, len(self.stops))
        added: List[PedestrianAgent] = []
        for i, stop in enumerate(self.stops):
            k = per_stop + (1 if i < remainder else 0)
            if k == 0:
                continue
            trips = self.agent_factory.generate_stop_centric_trips(stop, k)
            for agent in self.agent_factory.create_agent_batch(trips, rush_hour):
                agent.route = self.pathfinding.find_path(
                    agent.origin,
                    agent.destination,
                    PATH_ACCESSIBILITY[agent.agent_type],
                )
                added.append(agent)

        self.pedestrians.extend(added)
        self.total_spawned += len(added)
        logger.info(
            "[SimulationEngine] spawned %d agents (population %d)", len(added), len(self.pedestrians)
        )
        return added

    def update_pedestrian_simulation(self, delta_time: Optional[float] = None):
        """
        Advance every agent by `delta_time` seconds.

        Two phases: all forces are computed from the current population
        snapshot first, then velocities and positions are written. Agents
        that arrive are removed afterwards.
        """
        dt = self.pedestrian_config.time_step if delta_time is None else delta_time
        if not math.isfinite(dt) or dt <= 0:
            raise InvalidInputError(f"delta_time must be a positive number of seconds, got {dt}")
        if not self.is_running or not self.pedestrians:
            return

        snapshot = self.pedestrians
        forces = []
        for agent in snapshot:
            if agent.is_at_destination:
                continue
            goal = self.crowd_dynamics.calculate_goal_force(agent)
            if agent.is_at_destination:
                continue
            flock = self.crowd_dynamics.calculate_flocking_forces(agent, snapshot)
            avoid = self.pathfinding.get_obstacle_avoidance_force(
                agent.current_position, agent.velocity
            )
            w = config.GOAL_FORCE_WEIGHT
            forces.append(
                (
                    agent,
                    (
                        goal[0] * w + flock[0] + avoid[0],
                        goal[1] * w + flock[1] + avoid[1],
                    ),
                )
            )

        for agent, (fx, fy) in forces:
            velocity = (agent.velocity[0] + fx * dt, agent.velocity[1] + fy * dt)
            agent.velocity = limit(velocity, agent.max_speed_mps)
            self.agent_factory.update_agent(agent, dt)

        arrived = sum(1 for a in self.pedestrians if a.is_at_destination)
        if arrived:
            self.pedestrians = [a for a in self.pedestrians if not a.is_at_destination]
            self.arrived_count += arrived

        self.tick_count += 1
        self.elapsed_time += dt

    def set_weather_conditions(self, weather: WeatherConditions):
        """Swap the active weather and rescale every live agent's walking speed."""
        self.weather = weather
        self.agent_factory.weather = weather
        for agent in self.pedestrians:
            agent.walking_speed = agent.max_speed * weather_speed_modifier(
                weather, agent.weather_sensitivity
            )
        logger.info(
            "[SimulationEngine] weather set to %s, %d agents rescaled",
            weather.type.value,
            len(self.pedestrians),
        )

    def get_crowd_metrics(self, center: Point, radius: float) -> CrowdMetrics:
        return self.crowd_dynamics.calculate_crowd_metrics(self.pedestrians, center, radius)

    # ---------- metrics & helpers ----------
    def get_metrics_summary(self) -> Dict[str, dict]:
        agents = self.pedestrians
        num_agents = len(agents)
        walking = np.array([a.walking_speed for a in agents])
        speeds = np.array([a.speed() for a in agents])

        global_metrics = {
            "num_agents": num_agents,
            "ticks": self.tick_count,
            "elapsed_time": self.elapsed_time,
            "total_spawned": self.total_spawned,
            "arrived": self.arrived_count,
            "avg_walking_speed": float(walking.mean()) if num_agents > 0 else 0.0,
            "avg_speed": float(speeds.mean()) if num_agents > 0 else 0.0,
            "weather": self.weather.type.value,
        }

        agents_by_type = defaultdict(list)
        for a in agents:
            agents_by_type[a.agent_type.value].append(a)

        by_type: Dict[str, dict] = {}
        for t, group in agents_by_type.items():
            walking_t = np.array([a.walking_speed for a in group])
            speeds_t = np.array([a.speed() for a in group])
            progress_t = np.array(
                [a.path_index / max(1, len(a.route) - 1) for a in group], dtype=float
            )
            by_type[t] = {
                "count": len(group),
                "avg_walking_speed": float(walking_t.mean()),
                "avg_speed": float(speeds_t.mean()),
                "avg_route_progress": float(progress_t.mean()),
            }

        return {"global": global_metrics, "by_type": by_type}

    def summary(self):
        metrics = self.get_metrics_summary()
        g = metrics["global"]

        print("\n=== Pedestrian Simulation Summary ===")
        print(f"Ticks: {g['ticks']} ({g['elapsed_time']:.1f} s simulated)")
        print(f"Weather: {g['weather']}")
        print(f"Active agents: {g['num_agents']} (spawned {g['total_spawned']}, arrived {g['arrived']})")
        print(f"Average walking speed: {g['avg_walking_speed']:.1f} m/min")
        print(f"Average current speed: {g['avg_speed']:.2f} m/s")

        for t, stats in sorted(metrics["by_type"].items()):
            print(
                f"  {t:<13} n={stats['count']:<5} walk={stats['avg_walking_speed']:.1f} m/min "
                f"progress={stats['avg_route_progress'] * 100:.0f}%"
            )
