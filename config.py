# config.py
# =========
# Global configuration / simulation knobs for the pedestrian + transit simulation.
#
# Each block below is grouped by purpose. Parameters carry a short comment
# describing what they control and how they interact with other values.
#
# The typed config bundles in models.py (PedestrianSimConfig, SimulationConfig)
# read these values at construction time, so tests and experiments can patch
# this module before building an engine.

# -------------------------
# RUN / REPRODUCIBILITY
# -------------------------
SEED = 42
# - SEED:
#   RNG seed for the engine's random.Random (agent types, speeds, trip sampling).
#   Set to None for nondeterministic runs.

MAX_AGENTS = 1000
# - MAX_AGENTS:
#   Cap on the live pedestrian population. add_pedestrian_agents never grows
#   the population beyond this value.

PEDESTRIAN_TIME_STEP = 1.0
# - PEDESTRIAN_TIME_STEP:
#   Default tick size in seconds for the agent-based pedestrian simulation.

# -------------------------
# GEOSPATIAL CONSTANTS
# -------------------------
EARTH_RADIUS_M = 6371000.0
# - EARTH_RADIUS_M:
#   Sphere radius for haversine distances. No ellipsoidal correction.

METERS_PER_DEG_LAT = 110540.0
METERS_PER_DEG_LNG_EQUATOR = 111320.0
# - METERS_PER_DEG_*:
#   Equirectangular local projection constants. Longitude metres shrink with
#   cos(latitude). Only valid within a few kilometres of the projection origin.

# -------------------------
# CROWD DYNAMICS (boids-style flocking)
# -------------------------
SEPARATION_RADIUS = 2.0
ALIGNMENT_RADIUS = 5.0
COHESION_RADIUS = 8.0
# - *_RADIUS (metres):
#   Neighbour ranges for the three flocking sub-forces. Neighbour search uses
#   the largest of the three.

MAX_FORCE = 3.0
# - MAX_FORCE:
#   Magnitude cap for the combined flocking force.

SEPARATION_WEIGHT = 2.0
ALIGNMENT_WEIGHT = 1.0
COHESION_WEIGHT = 1.0
# - *_WEIGHT:
#   Relative weights when combining flocking sub-forces. Separation dominates.

GOAL_FORCE_WEIGHT = 3.0
# - GOAL_FORCE_WEIGHT:
#   Weight of the path-following force relative to flocking in each tick.

WAYPOINT_THRESHOLD_M = 2.0
# - WAYPOINT_THRESHOLD_M:
#   Distance at which an agent counts as having reached its current waypoint.

MAX_COMFORTABLE_DENSITY = 5.0
# - MAX_COMFORTABLE_DENSITY (people / m^2):
#   Reference density for congestion_level. A tuning constant, not physics.

MAX_WALK_SPEED = 80.0
# - MAX_WALK_SPEED (m/min):
#   Reference free-flow speed for congestion_level.

# -------------------------
# OBSTACLES
# -------------------------
OBSTACLE_QUERY_RADIUS = 2.0
LOOK_AHEAD_DISTANCE = 5.0
OBSTACLE_NEAR_MARGIN = 3.0
OBSTACLE_AHEAD_MARGIN = 2.0
AVOIDANCE_FORCE_MULTIPLIER = 10.0
# - Obstacle steering:
#   An obstacle is "relevant" if the agent is within radius + NEAR_MARGIN of it,
#   or the look-ahead point is within radius + AHEAD_MARGIN. Strength falls off
#   linearly with distance and is scaled by AVOIDANCE_FORCE_MULTIPLIER.

# -------------------------
# AGENT POPULATION
# -------------------------
BASE_SPEED_MIN = 80.0
BASE_SPEED_MAX = 134.0
# - BASE_SPEED_* (m/min):
#   Uniform draw for an agent's unmodified walking speed (about 3-5 mph).

AGENT_TYPE_DISTRIBUTION = {
    "normal": 0.75,
    "elderly": 0.10,
    "child": 0.07,
    "wheelchair": 0.05,
    "mobility_aid": 0.03,
}
# - AGENT_TYPE_DISTRIBUTION:
#   Categorical draw used when no agent type is requested. Order matters:
#   cumulative thresholds are built in this order.

WHEELCHAIR_SPEED_FACTOR = 0.6
MOBILITY_AID_SPEED_FACTOR = 0.7
ELDERLY_SPEED_FACTOR = 0.8
CHILD_SPEED_FACTOR = 0.9
# - *_SPEED_FACTOR:
#   Multipliers on base speed per agent type. Normal pedestrians use 1.0.

WEATHER_SENSITIVITY_BANDS = {
    "normal": (0.3, 0.7),
    "elderly": (0.6, 0.9),
    "child": (0.5, 0.9),
    "wheelchair": (0.7, 0.9),
    "mobility_aid": (0.6, 0.9),
}
# - WEATHER_SENSITIVITY_BANDS:
#   (low, high) uniform band for each type's weather sensitivity in [0, 1].

CROWD_AVOIDANCE_RADII = {
    "normal": 1.5,
    "elderly": 2.0,
    "child": 1.0,
    "wheelchair": 2.5,
    "mobility_aid": 2.2,
}
# - CROWD_AVOIDANCE_RADII (metres):
#   Personal space per agent type.

RUSH_HOUR_AGENT_SPEED_FACTOR = 0.8
# - RUSH_HOUR_AGENT_SPEED_FACTOR:
#   Walking-speed reduction for agents created with rush_hour=True.

# -------------------------
# WEATHER
# -------------------------
DEFAULT_WEATHER = {
    "temperature": 20.0,
    "precipitation": 0.0,
    "wind_speed": 5.0,
    "visibility": 1.0,
    "type": "clear",
}
# - DEFAULT_WEATHER:
#   Mild clear day. Produces a weather speed modifier of exactly 1.0.

WEATHER_MIN_SPEED_FACTOR = 0.3
# - WEATHER_MIN_SPEED_FACTOR:
#   Floor on the multiplicative weather penalty.

COLD_PENALTY = 0.3
HEAT_PENALTY = 0.2
HEAT_THRESHOLD_C = 30.0
PRECIPITATION_PENALTY = 0.4
WIND_PENALTY = 0.2
WIND_THRESHOLD_MS = 10.0
VISIBILITY_PENALTY = 0.3
VISIBILITY_THRESHOLD = 0.8
# - Weather penalties:
#   Each active condition multiplies speed by (1 - sensitivity * penalty * scale).
#   Precipitation scales by intensity, visibility by (1 - visibility).

# -------------------------
# TRIP SAMPLING
# -------------------------
STOP_TRIP_RADIUS_M = 1000.0
# - STOP_TRIP_RADIUS_M:
#   Default radius for stop-centric trip origins.

STOP_DESTINATION_PROB = 0.7
# - STOP_DESTINATION_PROB:
#   Probability a stop-centric trip ends at the stop itself.

NEARBY_DESTINATION_SPREAD_DEG = 0.01
# - NEARBY_DESTINATION_SPREAD_DEG:
#   Width of the box (degrees) for non-stop destinations around the stop.

SAMPLE_TRIP_BOUNDS = {
    "north": 40.75,
    "south": 40.70,
    "east": -74.03,
    "west": -74.08,
}
# - SAMPLE_TRIP_BOUNDS:
#   Bounding box for generate_sample_trips (Jersey City, approximate).

# -------------------------
# DEFAULT SIDEWALK NETWORK
# -------------------------
APPROACH_NODE_DISTANCE_M = 100.0
STOP_LINK_DISTANCE_M = 500.0
DEFAULT_SIDEWALK_WIDTH = 3.0
DEFAULT_CROWD_CAPACITY = 10
# - Used only when no sidewalk network is supplied: every stop gets a centre node
#   and four cardinal approach nodes APPROACH_NODE_DISTANCE_M out; stops closer
#   than STOP_LINK_DISTANCE_M are linked directly.

# -------------------------
# TRAVEL-TIME MODEL
# -------------------------
RUSH_HOUR_PERIODS = [
    (420, 540, 0.7),
    (1020, 1140, 0.7),
]
# - RUSH_HOUR_PERIODS:
#   (start, end, speed_multiplier) in minutes from midnight, bounds inclusive.
#   Default: 7-9 AM and 5-7 PM. A multiplier below 1.0 marks the window as rush hour.

WALKING_SPEED_NORMAL = 80.0
WALKING_SPEED_RUSH_HOUR = 70.0
BUS_SPEED_NORMAL = 400.0
BUS_SPEED_RUSH_HOUR = 300.0
# - Speeds in metres per minute for the stateless travel-time estimate.

BASE_WAIT_TIME = 5.0
RUSH_HOUR_EXTRA_WAIT = 3.0
# - Minutes of waiting added to every bus leg, plus extra during rush hour.

MAX_WALK_DISTANCE_M = 2000.0
# - MAX_WALK_DISTANCE_M:
#   Trips shorter than this are always walked without considering transit.

SIMULATION_DURATION_MIN = 60.0
SIMULATION_TIME_STEP_MIN = 0.5
# - Nominal scenario duration and step (minutes), reported with results.

DEFAULT_TIME_OF_DAY = 480
# - DEFAULT_TIME_OF_DAY:
#   8 AM, minutes from midnight.

ASSUMED_WAIT_PER_TRANSIT_TRIP = 5.0
# - ASSUMED_WAIT_PER_TRANSIT_TRIP:
#   Fixed wait (minutes) used when aggregating average_wait_time.

# -------------------------
# NOTES & TUNING GUIDANCE
# -------------------------
# - For quick debugging: MAX_AGENTS small (50-100), PEDESTRIAN_TIME_STEP = 1.0.
# - Flocking neighbour search is O(n^2) per tick; above a few thousand agents
#   swap CrowdDynamicsSystem.neighbors for a grid or k-d tree query.
