"""
Hand-built graph instances for checking Prim's state machine
Nodes 0, 1, 2 print as A, B, C
"""

from check_mst import is_optimal, is_spanning_tree
from prim_graph import GraphInstance
from prim_implementation import PrimTransitionEngine


def single_node():
    """1 node, 0 edges"""
    return GraphInstance.from_edge_list(1, [])


def single_edge():
    """A -- B (weight 3)"""
    return GraphInstance.from_edge_list(2, [(0, 1, 3)])


def triangle():
    """
    A -- B (1), B -- C (1), A -- C (5)
    Expected MST: e0, e1 with weight 2
    """
    return GraphInstance.from_edge_list(3, [(0, 1, 1), (1, 2, 1), (0, 2, 5)])


def disconnected_pair():
    """A   B, no edges: stuck before any step"""
    return GraphInstance.from_edge_list(2, [])


def tied_cut():
    """
    A -- B (2), A -- C (2), B -- C (4)
    Both cutting edges out of A tie at the first step
    """
    return GraphInstance.from_edge_list(3, [(0, 1, 2), (0, 2, 2), (1, 2, 4)])


def parallel_edges():
    """A == B with weights 4 and 1, B -- C (2)"""
    return GraphInstance.from_edge_list(3, [(0, 1, 4), (0, 1, 1), (1, 2, 2)])


SCENARIOS = {
    "single-node": single_node,
    "single-edge": single_edge,
    "triangle": triangle,
    "disconnected": disconnected_pair,
    "tied-cut": tied_cut,
    "parallel-edges": parallel_edges,
}


def create_simple_test():
    """Run every scenario and print its traces and verdicts"""
    for name, build in SCENARIOS.items():
        graph = build()
        print("=" * 70)
        print(f"Scenario {name}: {graph.describe()}")
        print("=" * 70)

        for trace in PrimTransitionEngine(graph).all_traces():
            print(trace.describe())
            if trace.final is None:
                continue
            chosen = trace.chosen_edges
            print(f"  Total weight: {trace.total_weight}")
            print(f"  Spanning tree: {is_spanning_tree(chosen, graph)}")
            print(f"  Optimal: {is_optimal(chosen, graph)}")


if __name__ == "__main__":
    create_simple_test()
