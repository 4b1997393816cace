# agent_factory.py

import logging
import math
import random
import time
from typing import Dict, Iterable, List, Optional, Tuple

import config
from agent import PedestrianAgent
from geo import offset
from models import (
    AgentType,
    InvalidInputError,
    PedestrianSimConfig,
    Point,
    TransitStop,
    TripPair,
    WeatherConditions,
    require_all_agent_types,
)

logger = logging.getLogger(__name__)


WEATHER_SENSITIVITY_BANDS: Dict[AgentType, Tuple[float, float]] = {
    AgentType(k): band for k, band in config.WEATHER_SENSITIVITY_BANDS.items()
}
CROWD_AVOIDANCE_RADII: Dict[AgentType, float] = {
    AgentType(k): r for k, r in config.CROWD_AVOIDANCE_RADII.items()
}
require_all_agent_types(WEATHER_SENSITIVITY_BANDS, "WEATHER_SENSITIVITY_BANDS")
require_all_agent_types(CROWD_AVOIDANCE_RADII, "CROWD_AVOIDANCE_RADII")


def weather_speed_modifier(weather: WeatherConditions, sensitivity: float) -> float:
    """
    Multiplicative speed factor for the given weather and agent sensitivity.

    Cold (< 0 C) or heat (> HEAT_THRESHOLD_C), precipitation, strong wind and
    poor visibility each apply an independent penalty proportional to
    `sensitivity`. The result never drops below WEATHER_MIN_SPEED_FACTOR.
    """
    modifier = 1.0

    if weather.temperature < 0:
        modifier *= 1 - sensitivity * config.COLD_PENALTY
    elif weather.temperature > config.HEAT_THRESHOLD_C:
        modifier *= 1 - sensitivity * config.HEAT_PENALTY

    if weather.precipitation > 0:
        modifier *= 1 - sensitivity * weather.precipitation * config.PRECIPITATION_PENALTY

    if weather.wind_speed > config.WIND_THRESHOLD_MS:
        modifier *= 1 - sensitivity * config.WIND_PENALTY

    if weather.visibility < config.VISIBILITY_THRESHOLD:
        modifier *= 1 - sensitivity * (1 - weather.visibility) * config.VISIBILITY_PENALTY

    return max(modifier, config.WEATHER_MIN_SPEED_FACTOR)


class PedestrianAgentFactory:
    """
    Creates pedestrian agents with type-dependent speed, weather sensitivity
    and personal space, samples stop-centric trips, and integrates agent
    positions each tick.

    All randomness goes through `rng` so runs are reproducible when it is seeded.
    """

    def __init__(self, sim_config: PedestrianSimConfig, rng: Optional[random.Random] = None):
        self.sim_config = sim_config
        self.weather: WeatherConditions = sim_config.weather
        self.rng = rng if rng is not None else random.Random()
        self._agent_counter = 0

    # ---------- per-type properties ----------
    def select_random_agent_type(self) -> AgentType:
        draw = self.rng.random()
        cumulative = 0.0
        last = AgentType.NORMAL
        for name, share in config.AGENT_TYPE_DISTRIBUTION.items():
            cumulative += share
            last = AgentType(name)
            if draw < cumulative:
                return last
        return last

    def speed_modifier(self, agent_type: AgentType) -> float:
        return self.sim_config.accessibility.factor_for(agent_type)

    def sample_weather_sensitivity(self, agent_type: AgentType) -> float:
        low, high = WEATHER_SENSITIVITY_BANDS[AgentType(agent_type)]
        return low + self.rng.random() * (high - low)

    @staticmethod
    def crowd_avoidance_radius(agent_type: AgentType) -> float:
        return CROWD_AVOIDANCE_RADII[AgentType(agent_type)]

    # ---------- creation ----------
    def create_agent(
        self,
        origin: Point,
        destination: Point,
        target_stop: Optional[TransitStop] = None,
        agent_type: Optional[AgentType] = None,
    ) -> PedestrianAgent:
        self._agent_counter += 1
        agent_id = f"pedestrian_{self._agent_counter}"
        selected = AgentType(agent_type) if agent_type is not None else self.select_random_agent_type()

        base_speed = self.rng.uniform(config.BASE_SPEED_MIN, config.BASE_SPEED_MAX)
        max_speed = base_speed * self.speed_modifier(selected)
        sensitivity = self.sample_weather_sensitivity(selected)
        walking_speed = max_speed * weather_speed_modifier(self.weather, sensitivity)

        return PedestrianAgent(
            id=agent_id,
            origin=origin,
            destination=destination,
            current_position=origin,
            walking_speed=walking_speed,
            max_speed=max_speed,
            agent_type=selected,
            weather_sensitivity=sensitivity,
            crowd_avoidance_radius=self.crowd_avoidance_radius(selected),
            target_stop=target_stop,
        )

    def create_agent_batch(
        self,
        pairs: Iterable[TripPair],
        rush_hour: bool = False,
    ) -> List[PedestrianAgent]:
        agents: List[PedestrianAgent] = []
        for pair in pairs:
            agent = self.create_agent(pair.origin, pair.destination, pair.target_stop)
            if rush_hour:
                # max_speed stays weather-free so later weather changes rescale from it
                agent.max_speed *= config.RUSH_HOUR_AGENT_SPEED_FACTOR
                agent.walking_speed = agent.max_speed * weather_speed_modifier(
                    self.weather, agent.weather_sensitivity
                )
            agents.append(agent)
        logger.debug("[AgentFactory] created %d agents (rush_hour=%s)", len(agents), rush_hour)
        return agents

    def generate_stop_centric_trips(
        self,
        stop: TransitStop,
        count: int,
        radius: float = config.STOP_TRIP_RADIUS_M,
    ) -> List[TripPair]:
        """
        `count` trips whose origins fall within `radius` metres of the stop.

        Origins use polar sampling (uniform angle, uniform radius), which
        concentrates samples near the stop rather than spreading them evenly
        over the disc. Destinations are the stop itself with probability
        STOP_DESTINATION_PROB, otherwise a random point in a small box around it.
        """
        if count < 0:
            raise InvalidInputError(f"trip count must be non-negative, got {count}")
        if radius <= 0:
            raise InvalidInputError(f"trip radius must be positive, got {radius}")

        spread = config.NEARBY_DESTINATION_SPREAD_DEG
        trips: List[TripPair] = []
        for _ in range(count):
            angle = self.rng.random() * 2 * math.pi
            dist = self.rng.random() * radius
            origin = offset(stop.location, dist * math.sin(angle), dist * math.cos(angle))

            if self.rng.random() < config.STOP_DESTINATION_PROB:
                destination = stop.location
            else:
                destination = Point(
                    lat=stop.location.lat + (self.rng.random() - 0.5) * spread,
                    lng=stop.location.lng + (self.rng.random() - 0.5) * spread,
                )
            trips.append(TripPair(origin=origin, destination=destination, target_stop=stop))
        return trips

    # ---------- kinematics ----------
    def update_agent(self, agent: PedestrianAgent, delta_time: float) -> None:
        """
        Euler step of `delta_time` seconds. Velocity is expressed at max speed,
        so it is scaled by walking_speed / max_speed before moving.
        """
        if agent.is_at_destination:
            return

        scale = agent.walking_speed / agent.max_speed if agent.max_speed > 0 else 0.0
        dx = agent.velocity[0] * scale * delta_time
        dy = agent.velocity[1] * scale * delta_time
        agent.current_position = offset(agent.current_position, dx, dy)
        agent.last_update = time.time()
