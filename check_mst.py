"""
Spanning-tree and optimality predicates for graph instances
Exhaustive over edge subsets, with networkx as an independent oracle
"""

from itertools import combinations

import networkx as nx


def total_weight(edges):
    return sum(edge.weight for edge in edges)


def is_spanning_tree(edges, graph):
    """
    edges touch every node of graph, there are exactly |Node| - 1 of them,
    and they connect all nodes into one component
    """
    edges = frozenset(edges)

    # Single node: the empty edge set is the spanning tree
    if graph.num_nodes == 1 and not edges:
        return True

    if not edges <= graph.edges:
        return False

    if len(edges) != graph.num_nodes - 1:
        return False

    touched = set()
    for edge in edges:
        touched |= edge.endpoints
    if touched != graph.nodes:
        return False

    # Connectivity: BFS over the adjacency induced by edges
    adjacency = {node: set() for node in graph.nodes}
    for edge in edges:
        adjacency[edge.u].add(edge.v)
        adjacency[edge.v].add(edge.u)

    first = min(graph.nodes)
    visited = set([first])
    queue_bfs = [first]
    while queue_bfs:
        current = queue_bfs.pop(0)
        for neighbor in adjacency[current]:
            if neighbor not in visited:
                visited.add(neighbor)
                queue_bfs.append(neighbor)

    return visited == graph.nodes


def spanning_trees(graph):
    """Yield every edge subset of graph that is a spanning tree"""
    edges = graph.sorted_edges
    for size in range(len(edges) + 1):
        for subset in combinations(edges, size):
            if is_spanning_tree(subset, graph):
                yield frozenset(subset)


def find_cheaper_spanning_tree(edges, graph, trees=None):
    """
    Return a spanning tree strictly cheaper than edges, or None.
    trees: spanning trees of graph already enumerated, searched instead
    """
    if trees is None:
        trees = spanning_trees(graph)
    weight = total_weight(edges)
    for candidate in trees:
        if total_weight(candidate) < weight:
            return candidate
    return None


def is_optimal(edges, graph):
    """edges is a spanning tree and no spanning tree of graph is cheaper"""
    if not is_spanning_tree(edges, graph):
        return False
    return find_cheaper_spanning_tree(edges, graph) is None


def networkx_mst_weight(graph):
    """MST weight according to networkx, None if graph has no spanning tree"""
    if graph.num_nodes == 0:
        return None
    G = graph.to_networkx()
    if not nx.is_connected(G):
        return None
    mst = nx.minimum_spanning_tree(G, weight="weight")
    return sum(data["weight"] for _, _, data in mst.edges(data=True))
