# transit_data.py
"""
Loads transit routes and stops from GeoJSON-style feature collections.

Expected layout (what a map layer or a GTFS export script would hand over):

    {"type": "FeatureCollection",
     "features": [
        {"geometry": {"type": "LineString", "coordinates": [[lng, lat], ...]},
         "properties": {"id": "r1", "name": "Route 1", "type": "bus", "color": "#f00"}},
        {"geometry": {"type": "Point", "coordinates": [lng, lat]},
         "properties": {"id": "s1", "name": "Main St", "routes": ["Route 1"], "type": "bus"}}
     ]}

Coordinates are GeoJSON order ([lng, lat]). Missing ids fall back to the
feature's index, missing names to the id.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

from models import InvalidInputError, Point, RouteSegment, TransitStop, TransportMode

logger = logging.getLogger(__name__)

FeatureCollection = Dict[str, Any]

# rounding used when merging derived stops that share a location (~1 m)
STOP_MERGE_PRECISION = 5


def load_feature_collection(path: Union[str, Path]) -> FeatureCollection:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Transit data file not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    _check_collection(data)
    logger.info("[TransitData] loaded %d features from %s", len(data["features"]), p)
    return data


def _check_collection(fc: Any) -> None:
    if not isinstance(fc, dict) or not isinstance(fc.get("features"), list):
        raise InvalidInputError("expected a FeatureCollection with a 'features' list")


def _geometry(feature: Dict[str, Any]) -> Tuple[str, Any]:
    geometry = feature.get("geometry") or {}
    return geometry.get("type", ""), geometry.get("coordinates")


def routes_from_feature_collection(fc: FeatureCollection) -> List[RouteSegment]:
    """
    Every LineString feature becomes a RouteSegment (MultiLineString parts are
    chained). Features without a transport type are treated as bus lines.
    """
    _check_collection(fc)
    routes: List[RouteSegment] = []
    for i, feature in enumerate(fc["features"]):
        geom_type, coords = _geometry(feature)
        if geom_type == "LineString":
            raw = coords or []
        elif geom_type == "MultiLineString":
            raw = [c for part in (coords or []) for c in part]
        else:
            continue

        props = feature.get("properties") or {}
        route_id = str(props.get("id", f"route_{i}"))
        routes.append(
            RouteSegment(
                id=route_id,
                name=str(props.get("name", route_id)),
                coordinates=tuple(Point.from_lng_lat(c) for c in raw),
                type=TransportMode(props.get("type", TransportMode.BUS.value)),
                color=props.get("color"),
            )
        )
    return routes


def stops_from_feature_collection(fc: FeatureCollection) -> List[TransitStop]:
    _check_collection(fc)
    stops: List[TransitStop] = []
    for i, feature in enumerate(fc["features"]):
        geom_type, coords = _geometry(feature)
        if geom_type != "Point":
            continue
        if not coords:
            raise InvalidInputError(f"stop feature {i} has no coordinates")

        props = feature.get("properties") or {}
        stop_id = str(props.get("id", f"stop_{i}"))
        routes = props.get("routes", [])
        if isinstance(routes, str):
            routes = [r.strip() for r in routes.split(",") if r.strip()]
        stops.append(
            TransitStop(
                id=stop_id,
                name=str(props.get("name", stop_id)),
                location=Point.from_lng_lat(coords),
                routes=tuple(routes),
                type=TransportMode(props.get("type", TransportMode.BUS.value)),
            )
        )
    return stops


def derive_stops_from_routes(routes: Sequence[RouteSegment]) -> List[TransitStop]:
    """
    Synthesize stops when only route geometry is known: both endpoints and the
    middle vertex of every bus/rail route. Stops at the same (rounded)
    location are merged and serve the union of their routes.
    """
    merged: Dict[Tuple[float, float, str], Dict[str, Any]] = {}
    for route in routes:
        if route.type == TransportMode.WALKING:
            continue
        coords = route.coordinates
        picks = [coords[0], coords[len(coords) // 2], coords[-1]]
        for point in picks:
            key = (
                round(point.lat, STOP_MERGE_PRECISION),
                round(point.lng, STOP_MERGE_PRECISION),
                route.type.value,
            )
            entry = merged.setdefault(key, {"location": point, "routes": [], "type": route.type})
            if route.name not in entry["routes"]:
                entry["routes"].append(route.name)

    stops = [
        TransitStop(
            id=f"derived_{n}",
            name=f"{entry['routes'][0]} stop {n}",
            location=entry["location"],
            routes=tuple(entry["routes"]),
            type=entry["type"],
        )
        for n, entry in enumerate(merged.values(), start=1)
    ]
    logger.debug("[TransitData] derived %d stops from %d routes", len(stops), len(routes))
    return stops


# ---------------------------------------------------------------------------
# Built-in sample network (Jersey City area, inside config.SAMPLE_TRIP_BOUNDS)
# ---------------------------------------------------------------------------

def _line(lat0: float, lng0: float, lat1: float, lng1: float, vertices: int) -> Tuple[Point, ...]:
    step = 1.0 / (vertices - 1)
    return tuple(
        Point(lat=lat0 + (lat1 - lat0) * i * step, lng=lng0 + (lng1 - lng0) * i * step)
        for i in range(vertices)
    )


def sample_network(proposed: bool = False) -> Tuple[List[RouteSegment], List[TransitStop]]:
    """
    Small demo network: a north-south bus line ("Route 1"). The proposed
    variant adds an east-west crosstown line ("Route 2"). Stops sit on every
    vertex; the shared vertex is one stop serving both lines.
    """
    routes = [
        RouteSegment(
            id="r1",
            name="Route 1",
            coordinates=_line(40.700, -74.060, 40.750, -74.060, 6),
            type=TransportMode.BUS,
            color="#1f77b4",
        )
    ]
    if proposed:
        routes.append(
            RouteSegment(
                id="r2",
                name="Route 2",
                coordinates=_line(40.720, -74.080, 40.720, -74.030, 6),
                type=TransportMode.BUS,
                color="#ff7f0e",
            )
        )

    by_location: Dict[Tuple[float, float], List[str]] = {}
    for route in routes:
        for p in route.coordinates:
            names = by_location.setdefault((round(p.lat, 5), round(p.lng, 5)), [])
            if route.name not in names:
                names.append(route.name)

    stops = [
        TransitStop(
            id=f"s{n}",
            name=f"Stop {n}",
            location=Point(lat=lat, lng=lng),
            routes=tuple(names),
        )
        for n, ((lat, lng), names) in enumerate(by_location.items(), start=1)
    ]
    return routes, stops
