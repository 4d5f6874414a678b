"""
Graph model for bounded verification of Prim's algorithm
Finite weighted graph instances and their exhaustive enumeration
"""

import logging
import string
from dataclasses import dataclass
from itertools import combinations, combinations_with_replacement
from math import comb, perm

import networkx as nx

logger = logging.getLogger(__name__)


class IllFormedInstance(ValueError):
    """Raised when a candidate node, edge or instance breaks a validity invariant"""


@dataclass(frozen=True, order=True)
class Node:
    id: int

    @property
    def label(self):
        if self.id < len(string.ascii_uppercase):
            return string.ascii_uppercase[self.id]
        return f"N{self.id}"

    def __repr__(self):
        return self.label


@dataclass(frozen=True, order=True)
class Edge:
    id: int
    u: Node
    v: Node
    weight: int

    def __post_init__(self):
        if isinstance(self.weight, bool) or not isinstance(self.weight, int):
            raise IllFormedInstance(f"edge e{self.id}: weight must be an integer")
        if self.weight < 0:
            raise IllFormedInstance(f"edge e{self.id}: negative weight {self.weight}")
        if self.u == self.v:
            raise IllFormedInstance(
                f"edge e{self.id}: endpoints must be two distinct nodes, got {self.u}"
            )

    @property
    def endpoints(self):
        return frozenset((self.u, self.v))

    def other(self, node):
        """Return the endpoint opposite to node"""
        return self.v if node == self.u else self.u

    def __repr__(self):
        return f"e{self.id}({self.u!r},{self.v!r},{self.weight})"


@dataclass(frozen=True)
class GraphInstance:
    """
    Immutable graph instance: a set of nodes and a set of weighted edges.
    Multi-edges are allowed, edges are independent entities.
    """

    nodes: frozenset
    edges: frozenset

    def __post_init__(self):
        edge_ids = set()
        for edge in self.edges:
            if edge.id in edge_ids:
                raise IllFormedInstance(f"duplicate edge identity e{edge.id}")
            edge_ids.add(edge.id)
            stray = edge.endpoints - self.nodes
            if stray:
                raise IllFormedInstance(
                    f"edge {edge!r} touches nodes outside the instance: "
                    f"{sorted(stray)}"
                )

    @classmethod
    def from_edge_list(cls, num_nodes, edges):
        """
        Build an instance from a node count and (u, v, weight) triples.
        Node i gets identity i, the k-th triple becomes edge e{k}.
        """
        if num_nodes < 0:
            raise IllFormedInstance(f"negative node count {num_nodes}")
        nodes = [Node(i) for i in range(num_nodes)]
        built = []
        for edge_id, triple in enumerate(edges):
            if len(triple) != 3:
                raise IllFormedInstance(
                    f"edge e{edge_id}: expected (u, v, weight), got {triple!r}"
                )
            u, v, weight = triple
            built.append(Edge(edge_id, Node(u), Node(v), weight))
        return cls(frozenset(nodes), frozenset(built))

    @property
    def sorted_nodes(self):
        return sorted(self.nodes)

    @property
    def sorted_edges(self):
        return sorted(self.edges)

    @property
    def num_nodes(self):
        return len(self.nodes)

    @property
    def num_edges(self):
        return len(self.edges)

    def edge_by_id(self, edge_id):
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        raise KeyError(edge_id)

    def to_networkx(self):
        """Return the instance as a networkx MultiGraph keyed by edge identity"""
        G = nx.MultiGraph()
        G.add_nodes_from(node.id for node in self.sorted_nodes)
        for edge in self.sorted_edges:
            G.add_edge(edge.u.id, edge.v.id, key=edge.id, weight=edge.weight)
        return G

    def is_connected(self):
        """Whether every node is reachable from every other (vacuous for n < 2)"""
        if self.num_nodes < 2:
            return True
        return nx.is_connected(self.to_networkx())

    def to_dict(self):
        return {
            "num_nodes": self.num_nodes,
            "nodes": [node.label for node in self.sorted_nodes],
            "num_edges": self.num_edges,
            "edges": [
                {
                    "id": edge.id,
                    "endpoints": [edge.u.label, edge.v.label],
                    "weight": edge.weight,
                }
                for edge in self.sorted_edges
            ],
        }

    def describe(self):
        edges = ", ".join(repr(edge) for edge in self.sorted_edges) or "no edges"
        return f"{self.num_nodes} nodes, {self.num_edges} edges: {edges}"


def weight_range(bit_width):
    """Non-negative weights representable in a signed integer of bit_width bits"""
    if bit_width < 1:
        raise ValueError(f"weight bit width must be at least 1, got {bit_width}")
    return range(0, 2 ** (bit_width - 1))


def edge_slots(num_nodes, max_weight):
    """All (u, v, weight) choices for a single edge between num_nodes nodes"""
    return [
        (u, v, weight)
        for u, v in combinations(range(num_nodes), 2)
        for weight in range(max_weight + 1)
    ]


def count_instances(max_nodes, max_edges, max_weight):
    """Exact number of instances enumerate_instances yields for the same bounds"""
    total = 0
    for num_nodes in range(max_nodes + 1):
        slots = comb(num_nodes, 2) * (max_weight + 1)
        for num_edges in range(max_edges + 1):
            total += _multisets(slots, num_edges)
    return total


def count_edge_subsets(max_nodes, max_edges, max_weight):
    """Total number of edge subsets over every enumerated instance"""
    total = 0
    for num_nodes in range(max_nodes + 1):
        slots = comb(num_nodes, 2) * (max_weight + 1)
        for num_edges in range(max_edges + 1):
            total += _multisets(slots, num_edges) * 2**num_edges
    return total


def count_traces(
    max_nodes, max_edges, max_weight, explore_ties=False, all_start_nodes=False
):
    """
    Upper bound on traces over every enumerated instance. One trace per start
    node, or with explore_ties one per sequence of at most |Node| - 1 distinct
    edges, which bounds every path through the tie choices.
    """
    total = 0
    for num_nodes in range(max_nodes + 1):
        slots = comb(num_nodes, 2) * (max_weight + 1)
        starts = max(num_nodes, 1) if all_start_nodes else 1
        for num_edges in range(max_edges + 1):
            per_start = 1
            if explore_ties and num_nodes:
                per_start = sum(perm(num_edges, d) for d in range(num_nodes))
            total += _multisets(slots, num_edges) * starts * per_start
    return total


def _multisets(n, k):
    if n == 0:
        return 1 if k == 0 else 0
    return comb(n + k - 1, k)


def enumerate_instances(max_nodes, max_edges, max_weight):
    """
    Yield every graph instance within the bounds.
    Edges are interchangeable, so each instance is one multiset of
    (u, v, weight) slots; node relabellings are not reduced.
    """
    for num_nodes in range(max_nodes + 1):
        slots = edge_slots(num_nodes, max_weight)
        for num_edges in range(max_edges + 1):
            if num_edges and not slots:
                break
            for chosen in combinations_with_replacement(slots, num_edges):
                try:
                    yield GraphInstance.from_edge_list(num_nodes, chosen)
                except IllFormedInstance as exc:
                    logger.warning("Skipping ill-formed candidate: %s", exc)


def shard(instances, rank, size):
    """Round-robin share of an instance stream for worker rank out of size"""
    if size < 1 or not 0 <= rank < size:
        raise ValueError(f"invalid shard {rank} of {size}")
    for index, instance in enumerate(instances):
        if index % size == rank:
            yield instance
