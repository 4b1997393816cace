# models.py
"""
Data model for the pedestrian / transit simulation.

Everything here is plain data: positions, transit routes and stops, the
sidewalk network, weather, result records and the parameter bundles the
engine is built from. Behaviour lives in the subsystem modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import config


class InvalidInputError(ValueError):
    """
    Raised for precondition violations: malformed routes or stops, a
    non-positive time step, an agent request against a zero cap, and so on.

    Degraded conditions (no stop nearby, disconnected graph, empty population)
    never raise; they fall back to a defined result instead.
    """


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class TransportMode(str, Enum):
    BUS = "bus"
    RAIL = "rail"
    WALKING = "walking"


class TravelMode(str, Enum):
    WALKING = "walking"
    BUS = "bus"
    RAIL = "rail"
    MIXED = "mixed"


class Accessibility(str, Enum):
    FULL = "full"
    LIMITED = "limited"
    NONE = "none"


class ObstacleType(str, Enum):
    CONSTRUCTION = "construction"
    FURNITURE = "furniture"
    BUILDING = "building"
    TEMPORARY = "temporary"


class WeatherType(str, Enum):
    CLEAR = "clear"
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"
    WIND = "wind"


class AgentType(str, Enum):
    NORMAL = "normal"
    WHEELCHAIR = "wheelchair"
    MOBILITY_AID = "mobility_aid"
    ELDERLY = "elderly"
    CHILD = "child"


def require_all_agent_types(table: Dict[AgentType, object], name: str) -> None:
    missing = [t.value for t in AgentType if t not in table]
    if missing:
        raise RuntimeError(f"{name} is missing agent types: {missing}")


# Path accessibility requirement per agent type. Every AgentType must appear.
PATH_ACCESSIBILITY: Dict[AgentType, Optional[Accessibility]] = {
    AgentType.NORMAL: None,
    AgentType.ELDERLY: None,
    AgentType.CHILD: None,
    AgentType.WHEELCHAIR: Accessibility.FULL,
    AgentType.MOBILITY_AID: Accessibility.LIMITED,
}
require_all_agent_types(PATH_ACCESSIBILITY, "PATH_ACCESSIBILITY")


# ---------------------------------------------------------------------------
# Geometry / transit input
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Point:
    lat: float
    lng: float

    @classmethod
    def from_lng_lat(cls, coords: Sequence[float]) -> "Point":
        """Build from a GeoJSON-style [lng, lat] pair."""
        if len(coords) < 2:
            raise InvalidInputError(f"coordinate needs [lng, lat], got {coords!r}")
        return cls(lat=float(coords[1]), lng=float(coords[0]))

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class RouteSegment:
    """Named polyline with a mode tag: one journey leg or one transit line."""

    id: str
    name: str
    coordinates: Tuple[Point, ...]
    type: TransportMode
    color: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "coordinates", tuple(self.coordinates))
        object.__setattr__(self, "type", TransportMode(self.type))
        if len(self.coordinates) < 2:
            raise InvalidInputError(
                f"route '{self.name}' needs at least two coordinates, got {len(self.coordinates)}"
            )

    def length(self) -> float:
        from geo import route_length

        return route_length(self.coordinates)


@dataclass(frozen=True)
class TransitStop:
    id: str
    name: str
    location: Point
    routes: Tuple[str, ...]
    type: TransportMode = TransportMode.BUS

    def __post_init__(self):
        if not isinstance(self.location, Point):
            raise InvalidInputError(f"stop '{self.name}' has no valid location")
        object.__setattr__(self, "routes", tuple(self.routes))
        mode = TransportMode(self.type)
        if mode == TransportMode.WALKING:
            raise InvalidInputError(f"stop '{self.name}' must be a bus or rail stop")
        object.__setattr__(self, "type", mode)

    def serves(self, route: str) -> bool:
        return route in self.routes


# ---------------------------------------------------------------------------
# Sidewalk network
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SidewalkNode:
    id: str
    position: Point
    connections: Tuple[str, ...] = ()
    width: float = config.DEFAULT_SIDEWALK_WIDTH
    accessibility: Accessibility = Accessibility.FULL
    crowd_capacity: float = config.DEFAULT_CROWD_CAPACITY

    def __post_init__(self):
        object.__setattr__(self, "connections", tuple(self.connections))
        object.__setattr__(self, "accessibility", Accessibility(self.accessibility))


@dataclass(frozen=True)
class Obstacle:
    id: str
    position: Point
    radius: float
    type: ObstacleType = ObstacleType.TEMPORARY

    def __post_init__(self):
        object.__setattr__(self, "type", ObstacleType(self.type))


@dataclass(frozen=True)
class SidewalkNetwork:
    """Static walkable graph plus point obstacles. Read-only during a run."""

    nodes: Tuple[SidewalkNode, ...] = ()
    obstacles: Tuple[Obstacle, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "obstacles", tuple(self.obstacles))

    def node_by_id(self) -> Dict[str, SidewalkNode]:
        return {n.id: n for n in self.nodes}


# ---------------------------------------------------------------------------
# Weather / crowd metrics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WeatherConditions:
    temperature: float  # Celsius
    precipitation: float  # 0-1
    wind_speed: float  # m/s
    visibility: float  # 0-1, 1 = clear
    type: WeatherType = WeatherType.CLEAR

    def __post_init__(self):
        object.__setattr__(self, "type", WeatherType(self.type))

    @classmethod
    def default(cls) -> "WeatherConditions":
        return cls(**config.DEFAULT_WEATHER)


@dataclass(frozen=True)
class CrowdMetrics:
    density: float  # people / m^2
    average_speed: float  # m/s
    flow_rate: float  # people / minute
    congestion_level: float  # 0 free flow .. 1 gridlock

    @classmethod
    def empty(cls) -> "CrowdMetrics":
        return cls(density=0.0, average_speed=0.0, flow_rate=0.0, congestion_level=0.0)


# ---------------------------------------------------------------------------
# Travel-time estimation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TripPair:
    origin: Point
    destination: Point
    target_stop: Optional[TransitStop] = None


@dataclass(frozen=True)
class TimeWindow:
    start: float  # minutes from midnight
    end: float
    speed_multiplier: float

    def contains(self, minute_of_day: float) -> bool:
        return self.start <= minute_of_day <= self.end


@dataclass(frozen=True)
class SpeedProfile:
    normal: float  # metres / minute
    rush_hour: float


@dataclass(frozen=True)
class SimulationConfig:
    """Parameters for the stateless travel-time comparison."""

    duration: float = config.SIMULATION_DURATION_MIN
    time_step: float = config.SIMULATION_TIME_STEP_MIN
    rush_hour_periods: Tuple[TimeWindow, ...] = tuple(
        TimeWindow(*p) for p in config.RUSH_HOUR_PERIODS
    )
    walking_speed: SpeedProfile = SpeedProfile(
        config.WALKING_SPEED_NORMAL, config.WALKING_SPEED_RUSH_HOUR
    )
    bus_speed: SpeedProfile = SpeedProfile(config.BUS_SPEED_NORMAL, config.BUS_SPEED_RUSH_HOUR)
    base_wait_time: float = config.BASE_WAIT_TIME
    rush_hour_extra_wait: float = config.RUSH_HOUR_EXTRA_WAIT
    max_walk_distance: float = config.MAX_WALK_DISTANCE_M

    @classmethod
    def from_config(cls, **overrides) -> "SimulationConfig":
        """Defaults from the config module, with keyword overrides applied."""
        values = dict(
            duration=config.SIMULATION_DURATION_MIN,
            time_step=config.SIMULATION_TIME_STEP_MIN,
            rush_hour_periods=tuple(TimeWindow(*p) for p in config.RUSH_HOUR_PERIODS),
            walking_speed=SpeedProfile(config.WALKING_SPEED_NORMAL, config.WALKING_SPEED_RUSH_HOUR),
            bus_speed=SpeedProfile(config.BUS_SPEED_NORMAL, config.BUS_SPEED_RUSH_HOUR),
            base_wait_time=config.BASE_WAIT_TIME,
            rush_hour_extra_wait=config.RUSH_HOUR_EXTRA_WAIT,
            max_walk_distance=config.MAX_WALK_DISTANCE_M,
        )
        unknown = set(overrides) - set(values)
        if unknown:
            raise InvalidInputError(f"unknown SimulationConfig fields: {sorted(unknown)}")
        values.update(overrides)
        values["rush_hour_periods"] = tuple(values["rush_hour_periods"])
        return cls(**values)


@dataclass(frozen=True)
class TravelTimeResult:
    origin: Point
    destination: Point
    duration: float  # minutes
    confidence: float  # heuristic trust score 0-1
    route: Tuple[RouteSegment, ...]
    mode: TravelMode


@dataclass
class SimulationResult:
    travel_times: List[TravelTimeResult]
    average_wait_time: float
    total_simulation_time: float  # seconds of wall clock
    confidence: float
    scenario: str = "current"

    def average_duration(self) -> float:
        if not self.travel_times:
            return 0.0
        return sum(t.duration for t in self.travel_times) / len(self.travel_times)


@dataclass(frozen=True)
class Improvements:
    average_time_saved: float  # minutes
    percent_improvement: float
    affected_routes: Tuple[str, ...]


@dataclass
class ComparisonResult:
    current: SimulationResult
    proposed: SimulationResult
    improvements: Improvements


# ---------------------------------------------------------------------------
# Pedestrian simulation parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CrowdDynamicsParams:
    separation_radius: float = config.SEPARATION_RADIUS
    alignment_radius: float = config.ALIGNMENT_RADIUS
    cohesion_radius: float = config.COHESION_RADIUS
    max_force: float = config.MAX_FORCE

    @classmethod
    def from_config(cls) -> "CrowdDynamicsParams":
        return cls(
            separation_radius=config.SEPARATION_RADIUS,
            alignment_radius=config.ALIGNMENT_RADIUS,
            cohesion_radius=config.COHESION_RADIUS,
            max_force=config.MAX_FORCE,
        )


@dataclass(frozen=True)
class AccessibilityFactors:
    wheelchair_speed_factor: float = config.WHEELCHAIR_SPEED_FACTOR
    mobility_aid_speed_factor: float = config.MOBILITY_AID_SPEED_FACTOR
    elderly_speed_factor: float = config.ELDERLY_SPEED_FACTOR
    child_speed_factor: float = config.CHILD_SPEED_FACTOR

    @classmethod
    def from_config(cls) -> "AccessibilityFactors":
        return cls(
            wheelchair_speed_factor=config.WHEELCHAIR_SPEED_FACTOR,
            mobility_aid_speed_factor=config.MOBILITY_AID_SPEED_FACTOR,
            elderly_speed_factor=config.ELDERLY_SPEED_FACTOR,
            child_speed_factor=config.CHILD_SPEED_FACTOR,
        )

    def factor_for(self, agent_type: AgentType) -> float:
        factors = {
            AgentType.NORMAL: 1.0,
            AgentType.WHEELCHAIR: self.wheelchair_speed_factor,
            AgentType.MOBILITY_AID: self.mobility_aid_speed_factor,
            AgentType.ELDERLY: self.elderly_speed_factor,
            AgentType.CHILD: self.child_speed_factor,
        }
        return factors[AgentType(agent_type)]


@dataclass(frozen=True)
class PedestrianSimConfig:
    max_agents: int = config.MAX_AGENTS
    time_step: float = config.PEDESTRIAN_TIME_STEP  # seconds
    crowd_dynamics: CrowdDynamicsParams = field(default_factory=CrowdDynamicsParams)
    accessibility: AccessibilityFactors = field(default_factory=AccessibilityFactors)
    weather: WeatherConditions = field(default_factory=WeatherConditions.default)
    sidewalk_network: Optional[SidewalkNetwork] = None

    @classmethod
    def from_config(cls, **overrides) -> "PedestrianSimConfig":
        values = dict(
            max_agents=config.MAX_AGENTS,
            time_step=config.PEDESTRIAN_TIME_STEP,
            crowd_dynamics=CrowdDynamicsParams.from_config(),
            accessibility=AccessibilityFactors.from_config(),
            weather=WeatherConditions.default(),
            sidewalk_network=None,
        )
        values.update(overrides)
        return cls(**values)
