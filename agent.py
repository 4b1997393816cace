# agent.py

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from geo import Vector, magnitude
from models import AgentType, Point, TransitStop


@dataclass
class PedestrianAgent:
    """
    Single simulated pedestrian.

    Lifecycle: spawned -> moving -> at destination. Once `is_at_destination`
    is set the agent is inert and the engine prunes it after the tick.

    Speeds are metres per minute. `max_speed` is the agent's speed before
    weather (base draw x type factor); `walking_speed` is the current,
    weather-adjusted speed and never exceeds `max_speed`. `velocity` is in
    the local east/north frame, metres per second at `max_speed`.
    """

    id: str
    origin: Point
    destination: Point
    current_position: Point
    walking_speed: float
    max_speed: float
    agent_type: AgentType
    weather_sensitivity: float
    crowd_avoidance_radius: float
    velocity: Vector = (0.0, 0.0)
    route: List[Point] = field(default_factory=list)
    path_index: int = 0
    target_stop: Optional[TransitStop] = None
    is_at_destination: bool = False
    last_update: float = field(default_factory=time.time)

    @property
    def max_speed_mps(self) -> float:
        return self.max_speed / 60.0

    def speed(self) -> float:
        """Current velocity magnitude (m/s)."""
        return magnitude(self.velocity)

    def to_dict(self) -> Dict[str, Any]:
        """Render snapshot for a frame-by-frame consumer."""
        return {
            "id": self.id,
            "position": self.current_position.to_dict(),
            "velocity": {"x": self.velocity[0], "y": self.velocity[1]},
            "agent_type": self.agent_type.value,
            "walking_speed": self.walking_speed,
            "path_index": self.path_index,
            "is_at_destination": self.is_at_destination,
        }
