import json

import pytest

from models import InvalidInputError, Point, RouteSegment, TransportMode
from transit_data import (
    derive_stops_from_routes,
    load_feature_collection,
    routes_from_feature_collection,
    sample_network,
    stops_from_feature_collection,
)


FC = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "geometry": {"type": "LineString", "coordinates": [[-74.06, 40.70], [-74.06, 40.75]]},
            "properties": {"id": "r1", "name": "Route 1", "type": "bus", "color": "#1f77b4"},
        },
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [-74.06, 40.70]},
            "properties": {"id": "s1", "name": "South", "routes": ["Route 1"]},
        },
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [-74.06, 40.75]},
            "properties": {"name": "North", "routes": "Route 1, Route 2", "type": "rail"},
        },
    ],
}


def test_routes_from_feature_collection():
    routes = routes_from_feature_collection(FC)
    assert len(routes) == 1
    r = routes[0]
    assert (r.id, r.name, r.type, r.color) == ("r1", "Route 1", TransportMode.BUS, "#1f77b4")
    assert r.coordinates[0] == Point(lat=40.70, lng=-74.06)


def test_stops_from_feature_collection():
    stops = stops_from_feature_collection(FC)
    assert [s.name for s in stops] == ["South", "North"]
    assert stops[0].routes == ("Route 1",)
    assert stops[1].id == "stop_2"
    assert stops[1].routes == ("Route 1", "Route 2")
    assert stops[1].type is TransportMode.RAIL


def test_malformed_collections_are_rejected():
    with pytest.raises(InvalidInputError):
        routes_from_feature_collection({"type": "FeatureCollection"})
    with pytest.raises(InvalidInputError):
        stops_from_feature_collection([])

    bad_route = {
        "features": [{"geometry": {"type": "LineString", "coordinates": [[-74.0, 40.7]]}}]
    }
    with pytest.raises(InvalidInputError):
        routes_from_feature_collection(bad_route)


def test_load_feature_collection(tmp_path):
    path = tmp_path / "network.geojson"
    path.write_text(json.dumps(FC), encoding="utf-8")

    fc = load_feature_collection(path)
    assert len(fc["features"]) == 3

    with pytest.raises(FileNotFoundError):
        load_feature_collection(tmp_path / "missing.geojson")


def test_derived_stops_merge_shared_locations():
    a, b, c = Point(40.70, -74.06), Point(40.72, -74.06), Point(40.74, -74.06)
    d = Point(40.72, -74.03)
    routes = [
        RouteSegment(id="r1", name="Route 1", coordinates=(a, b, c), type="bus"),
        RouteSegment(id="r2", name="Route 2", coordinates=(b, d), type="bus"),
        RouteSegment(id="w", name="Walking", coordinates=(a, d), type="walking"),
    ]

    stops = derive_stops_from_routes(routes)

    by_location = {s.location: s for s in stops}
    assert set(by_location) == {a, b, c, d}
    assert by_location[b].routes == ("Route 1", "Route 2")
    assert by_location[d].routes == ("Route 2",)


def test_sample_network_proposed_adds_crosstown_line():
    routes, stops = sample_network()
    assert [r.name for r in routes] == ["Route 1"]
    assert len(stops) == 6

    routes, stops = sample_network(proposed=True)
    assert [r.name for r in routes] == ["Route 1", "Route 2"]
    assert len(stops) == 11
    assert any(set(s.routes) == {"Route 1", "Route 2"} for s in stops)
