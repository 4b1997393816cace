# crowd_dynamics.py
"""
Crowd behaviour for pedestrian agents:
 - flocking (separation / alignment / cohesion, boids-style)
 - goal seeking along the agent's planned route
 - area crowd metrics (density, speed, flow, congestion)

Vectors are (x, y) tuples in the agent's local east/north frame, metres per
second. Steering forces follow the "desired velocity minus current velocity"
seek rule, with desired speed = the agent's max speed.
"""

import math
from typing import List, Sequence

import numpy as np

import config
from agent import PedestrianAgent
from geo import ZERO, Vector, distance, limit, normalize, to_local
from models import CrowdDynamicsParams, CrowdMetrics, InvalidInputError, Point


def _steer(agent: PedestrianAgent, direction: Vector) -> Vector:
    desired = normalize(direction)
    if desired == ZERO:
        return ZERO
    max_speed = agent.max_speed_mps
    return (desired[0] * max_speed - agent.velocity[0], desired[1] * max_speed - agent.velocity[1])


class CrowdDynamicsSystem:
    def __init__(self, params: CrowdDynamicsParams):
        self.params = params
        self.neighbor_radius = max(
            params.separation_radius, params.alignment_radius, params.cohesion_radius
        )

    # ---------- neighbours ----------
    def neighbors(
        self, agent: PedestrianAgent, all_agents: Sequence[PedestrianAgent]
    ) -> List[PedestrianAgent]:
        """
        Other agents within the largest flocking radius. Linear scan over the
        whole population; replace with a spatial index for large crowds.
        """
        return [
            other
            for other in all_agents
            if other.id != agent.id
            and distance(agent.current_position, other.current_position) < self.neighbor_radius
        ]

    # ---------- flocking sub-forces ----------
    def separation(self, agent: PedestrianAgent, neighbors: Sequence[PedestrianAgent]) -> Vector:
        sx, sy = 0.0, 0.0
        count = 0
        for other in neighbors:
            d = distance(agent.current_position, other.current_position)
            if 0 < d < self.params.separation_radius:
                ox, oy = to_local(other.current_position, agent.current_position)
                away = normalize((-ox, -oy))
                weight = 1.0 / d
                sx += away[0] * weight
                sy += away[1] * weight
                count += 1

        if count == 0:
            return ZERO
        return _steer(agent, (sx / count, sy / count))

    def alignment(self, agent: PedestrianAgent, neighbors: Sequence[PedestrianAgent]) -> Vector:
        vx, vy = 0.0, 0.0
        count = 0
        for other in neighbors:
            d = distance(agent.current_position, other.current_position)
            if 0 < d < self.params.alignment_radius:
                vx += other.velocity[0]
                vy += other.velocity[1]
                count += 1

        if count == 0:
            return ZERO
        return _steer(agent, (vx / count, vy / count))

    def cohesion(self, agent: PedestrianAgent, neighbors: Sequence[PedestrianAgent]) -> Vector:
        cx, cy = 0.0, 0.0
        count = 0
        for other in neighbors:
            d = distance(agent.current_position, other.current_position)
            if 0 < d < self.params.cohesion_radius:
                ox, oy = to_local(other.current_position, agent.current_position)
                cx += ox
                cy += oy
                count += 1

        if count == 0:
            return ZERO
        # centroid is already relative to the agent, so it is the seek direction
        return _steer(agent, (cx / count, cy / count))

    def calculate_flocking_forces(
        self, agent: PedestrianAgent, all_agents: Sequence[PedestrianAgent]
    ) -> Vector:
        neighbors = self.neighbors(agent, all_agents)
        if not neighbors:
            return ZERO

        sep = self.separation(agent, neighbors)
        align = self.alignment(agent, neighbors)
        coh = self.cohesion(agent, neighbors)

        total = (
            sep[0] * config.SEPARATION_WEIGHT
            + align[0] * config.ALIGNMENT_WEIGHT
            + coh[0] * config.COHESION_WEIGHT,
            sep[1] * config.SEPARATION_WEIGHT
            + align[1] * config.ALIGNMENT_WEIGHT
            + coh[1] * config.COHESION_WEIGHT,
        )
        return limit(total, self.params.max_force)

    # ---------- goal seeking ----------
    def calculate_goal_force(self, agent: PedestrianAgent) -> Vector:
        """
        Seek force toward the agent's current waypoint.

        Within WAYPOINT_THRESHOLD_M of a waypoint the cursor advances; within
        the threshold of the final waypoint the agent is marked as arrived and
        gets no further force. The cursor never moves backwards.
        """
        if not agent.route or agent.is_at_destination:
            return ZERO

        last_index = len(agent.route) - 1
        while True:
            waypoint = agent.route[agent.path_index]
            target = to_local(waypoint, agent.current_position)
            if math.hypot(*target) >= config.WAYPOINT_THRESHOLD_M:
                return _steer(agent, target)
            if agent.path_index >= last_index:
                agent.is_at_destination = True
                return ZERO
            agent.path_index += 1

    # ---------- metrics ----------
    def calculate_crowd_metrics(
        self,
        agents: Sequence[PedestrianAgent],
        center: Point,
        radius: float,
    ) -> CrowdMetrics:
        if radius <= 0:
            raise InvalidInputError(f"metrics radius must be positive, got {radius}")

        in_area = [a for a in agents if distance(a.current_position, center) <= radius]
        if not in_area:
            return CrowdMetrics.empty()

        area = math.pi * radius * radius
        density = len(in_area) / area

        velocities = np.array([a.velocity for a in in_area], dtype=float)
        average_speed = float(np.hypot(velocities[:, 0], velocities[:, 1]).mean())

        flow_rate = density * average_speed * 60
        density_factor = density / config.MAX_COMFORTABLE_DENSITY
        speed_factor = 1 - (average_speed * 60) / config.MAX_WALK_SPEED
        congestion = min(max(density_factor, speed_factor), 1.0)

        return CrowdMetrics(
            density=density,
            average_speed=average_speed,
            flow_rate=flow_rate,
            congestion_level=max(congestion, 0.0),
        )
