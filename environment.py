# environment.py

import logging
from typing import Dict, List, Optional, Sequence

import networkx as nx

import config
from geo import distance, offset
from models import (
    Accessibility,
    Point,
    SidewalkNetwork,
    SidewalkNode,
    TransitStop,
)

logger = logging.getLogger(__name__)

NodeId = str


def node_allowed(accessibility: Accessibility, required: Optional[Accessibility]) -> bool:
    """
    Accessibility filter shared by snapping and search.

    - required=None or LIMITED: every node is usable
    - required=FULL: nodes marked NONE are excluded
    """
    if required == Accessibility.FULL:
        return accessibility != Accessibility.NONE
    return True


class SidewalkEnvironment:
    """
    Sidewalk network represented as a graph.

    Nodes: SidewalkNode ids
        Attributes:
            - pos: Point
            - accessibility: Accessibility
            - width: metres
            - crowd_capacity: people per metre

    Edges: undirected connections (bidirectional traversal is assumed even if
    only one side lists the other)
        Attributes:
            - distance: haversine metres between the endpoints
            - weight: cost used by pathfinding (== distance, the network is static)
    """

    def __init__(self, network: SidewalkNetwork):
        self.network = network
        self.graph = nx.Graph()
        self._build(network)

    # ------------------------------------------------------------------
    # BUILDERS
    # ------------------------------------------------------------------

    def _build(self, network: SidewalkNetwork):
        for node in network.nodes:
            self.graph.add_node(
                node.id,
                pos=node.position,
                accessibility=node.accessibility,
                width=node.width,
                crowd_capacity=node.crowd_capacity,
            )

        skipped = 0
        for node in network.nodes:
            for other in node.connections:
                if other not in self.graph or other == node.id:
                    skipped += 1
                    continue
                self._add_edge_with_defaults(node.id, other)

        if skipped:
            logger.debug("[SidewalkEnvironment] skipped %d dangling connections", skipped)

    def _add_edge_with_defaults(self, u: NodeId, v: NodeId):
        if self.graph.has_edge(u, v):
            return
        dist = distance(self.get_pos(u), self.get_pos(v))
        self.graph.add_edge(u, v, distance=dist, weight=dist)

    # ------------------------------------------------------------------
    # PUBLIC UTILITIES (NODES)
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def get_pos(self, node: NodeId) -> Point:
        return self.graph.nodes[node]["pos"]

    def get_accessibility(self, node: NodeId) -> Accessibility:
        return self.graph.nodes[node]["accessibility"]

    def is_accessible(self, node: NodeId, required: Optional[Accessibility] = None) -> bool:
        return node_allowed(self.get_accessibility(node), required)

    def nearest_node(
        self,
        point: Point,
        required: Optional[Accessibility] = None,
    ) -> Optional[NodeId]:
        best: Optional[NodeId] = None
        best_dist = float("inf")
        for n in self.graph.nodes():
            if not self.is_accessible(n, required):
                continue
            d = distance(point, self.get_pos(n))
            if d < best_dist:
                best_dist = d
                best = n
        return best

    # ------------------------------------------------------------------
    # PATHFINDING
    # ------------------------------------------------------------------

    def shortest_path(
        self,
        start: NodeId,
        goal: NodeId,
        required: Optional[Accessibility] = None,
    ) -> Optional[List[NodeId]]:
        """
        A* over the (optionally accessibility-filtered) graph.

        Haversine distance is both the edge weight and the heuristic, which is
        admissible. Ties on f-cost resolve in insertion order. Returns None
        when the goal is unreachable.
        """
        if required is None:
            graph = self.graph
        else:
            graph = nx.subgraph_view(
                self.graph, filter_node=lambda n: self.is_accessible(n, required)
            )

        goal_pos = self.get_pos(goal)
        try:
            return nx.astar_path(
                graph,
                start,
                goal,
                heuristic=lambda a, _b: distance(self.get_pos(a), goal_pos),
                weight="distance",
            )
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None


def build_default_sidewalk_network(stops: Sequence[TransitStop]) -> SidewalkNetwork:
    """
    Cheap proxy network for when no real sidewalk topology is available.

    Every stop gets a centre node plus four cardinal approach nodes about
    APPROACH_NODE_DISTANCE_M out, each linked to the centre. Centre nodes of
    stops closer than STOP_LINK_DISTANCE_M are linked to each other.
    """
    connections: Dict[NodeId, List[NodeId]] = {}
    positions: Dict[NodeId, Point] = {}

    step = config.APPROACH_NODE_DISTANCE_M
    cardinals = {
        "n": (0.0, step),
        "e": (step, 0.0),
        "s": (0.0, -step),
        "w": (-step, 0.0),
    }

    centres: List[NodeId] = []
    for stop in stops:
        centre = f"{stop.id}_center"
        positions[centre] = stop.location
        connections.setdefault(centre, [])
        centres.append(centre)

        for suffix, (dx, dy) in cardinals.items():
            node_id = f"{stop.id}_{suffix}"
            positions[node_id] = offset(stop.location, dx, dy)
            connections.setdefault(node_id, []).append(centre)
            connections[centre].append(node_id)

    for i, a in enumerate(centres):
        for b in centres[i + 1:]:
            if distance(positions[a], positions[b]) <= config.STOP_LINK_DISTANCE_M:
                connections[a].append(b)
                connections[b].append(a)

    nodes = [
        SidewalkNode(
            id=node_id,
            position=positions[node_id],
            connections=tuple(connections[node_id]),
            width=config.DEFAULT_SIDEWALK_WIDTH,
            accessibility=Accessibility.FULL,
            crowd_capacity=config.DEFAULT_CROWD_CAPACITY,
        )
        for node_id in positions
    ]
    logger.info(
        "[SidewalkEnvironment] default network built: %d nodes for %d stops",
        len(nodes),
        len(stops),
    )
    return SidewalkNetwork(nodes=tuple(nodes), obstacles=())
