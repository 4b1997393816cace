# pathfinding.py
"""
Path planning over the sidewalk network plus obstacle queries.

No request ever fails: when nothing can be snapped, or the snapped nodes are
disconnected, the planner returns the direct segment [start, goal].
"""

import logging
from typing import List, Optional

import config
from environment import SidewalkEnvironment
from geo import ZERO, Vector, distance, from_local, magnitude, to_local
from models import Accessibility, Point, SidewalkNetwork

logger = logging.getLogger(__name__)


class PathfindingSystem:
    def __init__(self, network: SidewalkNetwork):
        self.network = network
        self.env = SidewalkEnvironment(network)

    def nearest_node(
        self,
        point: Point,
        accessibility_required: Optional[Accessibility] = None,
    ) -> Optional[str]:
        required = Accessibility(accessibility_required) if accessibility_required else None
        return self.env.nearest_node(point, required)

    def find_path(
        self,
        start: Point,
        goal: Point,
        accessibility_required: Optional[Accessibility] = None,
    ) -> List[Point]:
        """
        Ordered waypoints from `start` to `goal` inclusive.

        Intermediate points are network node positions; the first and last
        entries are always the exact, un-snapped start and goal.
        """
        required = Accessibility(accessibility_required) if accessibility_required else None

        start_node = self.env.nearest_node(start, required)
        goal_node = self.env.nearest_node(goal, required)
        if start_node is None or goal_node is None:
            logger.debug("[Pathfinding] no snappable node, using direct path")
            return [start, goal]

        node_path = self.env.shortest_path(start_node, goal_node, required)
        if node_path is None:
            logger.debug(
                "[Pathfinding] %s -> %s disconnected, using direct path", start_node, goal_node
            )
            return [start, goal]

        path = [self.env.get_pos(n) for n in node_path]
        if len(path) < 2:
            return [start, goal]
        path[0] = start
        path[-1] = goal
        return path

    # ------------------------------------------------------------------
    # OBSTACLES
    # ------------------------------------------------------------------

    def has_obstacle_at(self, position: Point, radius: float = config.OBSTACLE_QUERY_RADIUS) -> bool:
        for obstacle in self.network.obstacles:
            if distance(position, obstacle.position) < obstacle.radius + radius:
                return True
        return False

    def get_obstacle_avoidance_force(
        self,
        position: Point,
        velocity: Vector,
        look_ahead_distance: float = config.LOOK_AHEAD_DISTANCE,
    ) -> Vector:
        """
        Steering vector perpendicular to `velocity`, pointing away from any
        obstacle near the agent or near the look-ahead point. Closer obstacles
        push harder, up to AVOIDANCE_FORCE_MULTIPLIER.
        """
        speed = magnitude(velocity)
        if speed == 0:
            return ZERO

        hx, hy = velocity[0] / speed, velocity[1] / speed
        look_ahead = from_local((hx * look_ahead_distance, hy * look_ahead_distance), position)

        fx, fy = 0.0, 0.0
        for obstacle in self.network.obstacles:
            near_range = obstacle.radius + config.OBSTACLE_NEAR_MARGIN
            d_obstacle = distance(position, obstacle.position)
            d_ahead = distance(look_ahead, obstacle.position)
            if d_obstacle >= near_range and d_ahead >= obstacle.radius + config.OBSTACLE_AHEAD_MARGIN:
                continue

            # left-hand perpendicular; flip when the obstacle sits on the left
            ax, ay = -hy, hx
            ox, oy = to_local(obstacle.position, position)
            cross = hx * oy - hy * ox
            if cross > 0:
                ax, ay = -ax, -ay

            strength = max(0.0, 1.0 - d_obstacle / near_range) * config.AVOIDANCE_FORCE_MULTIPLIER
            fx += ax * strength
            fy += ay * strength

        return (fx, fy)
