from check_mst import (
    find_cheaper_spanning_tree,
    is_optimal,
    is_spanning_tree,
    networkx_mst_weight,
    spanning_trees,
    total_weight,
)
from prim_graph import Edge, GraphInstance, Node


def _edges(graph, *ids):
    return frozenset(graph.edge_by_id(i) for i in ids)


def _triangle():
    return GraphInstance.from_edge_list(3, [(0, 1, 1), (1, 2, 1), (0, 2, 5)])


def test_single_node_empty_set_is_a_spanning_tree() -> None:
    graph = GraphInstance.from_edge_list(1, [])
    assert is_spanning_tree(frozenset(), graph)
    assert is_optimal(frozenset(), graph)


def test_empty_graph_has_no_spanning_tree() -> None:
    graph = GraphInstance.from_edge_list(0, [])
    assert not is_spanning_tree(frozenset(), graph)
    assert list(spanning_trees(graph)) == []


def test_two_nodes() -> None:
    graph = GraphInstance.from_edge_list(2, [(0, 1, 3)])
    assert is_spanning_tree(_edges(graph, 0), graph)
    assert not is_spanning_tree(frozenset(), graph)
    assert is_optimal(_edges(graph, 0), graph)


def test_edge_count_must_be_one_less_than_node_count() -> None:
    graph = _triangle()
    assert is_spanning_tree(_edges(graph, 0, 1), graph)
    assert not is_spanning_tree(_edges(graph, 0), graph)
    assert not is_spanning_tree(_edges(graph, 0, 1, 2), graph)


def test_right_count_but_disconnected() -> None:
    # A == B doubled plus C -- D: three edges touch all four nodes
    graph = GraphInstance.from_edge_list(4, [(0, 1, 1), (0, 1, 1), (2, 3, 1)])
    assert not is_spanning_tree(_edges(graph, 0, 1, 2), graph)


def test_every_node_must_be_touched() -> None:
    graph = GraphInstance.from_edge_list(3, [(0, 1, 1), (0, 1, 2), (1, 2, 1)])
    assert not is_spanning_tree(_edges(graph, 0, 1), graph)


def test_foreign_edge_is_rejected() -> None:
    graph = GraphInstance.from_edge_list(2, [(0, 1, 3)])
    stranger = Edge(9, Node(0), Node(1), 0)
    assert not is_spanning_tree(frozenset([stranger]), graph)


def test_spanning_trees_of_triangle() -> None:
    trees = list(spanning_trees(_triangle()))
    assert len(trees) == 3
    assert sorted(total_weight(tree) for tree in trees) == [2, 6, 6]


def test_spanning_trees_with_parallel_edges() -> None:
    graph = GraphInstance.from_edge_list(3, [(0, 1, 4), (0, 1, 1), (1, 2, 2)])
    trees = {frozenset(e.id for e in tree) for tree in spanning_trees(graph)}
    assert trees == {frozenset([0, 2]), frozenset([1, 2])}


def test_optimality() -> None:
    graph = _triangle()
    assert is_optimal(_edges(graph, 0, 1), graph)
    assert not is_optimal(_edges(graph, 0, 2), graph)
    assert not is_optimal(_edges(graph, 0), graph)


def test_cheaper_witness() -> None:
    graph = _triangle()
    witness = find_cheaper_spanning_tree(_edges(graph, 0, 2), graph)
    assert witness is not None
    assert is_spanning_tree(witness, graph)
    assert total_weight(witness) < 6
    assert find_cheaper_spanning_tree(_edges(graph, 0, 1), graph) is None


def test_predicates_are_pure() -> None:
    graph = _triangle()
    edges = _edges(graph, 0, 2)
    assert [is_spanning_tree(edges, graph) for _ in range(3)] == [True] * 3
    assert [is_optimal(edges, graph) for _ in range(3)] == [False] * 3


def test_networkx_oracle() -> None:
    assert networkx_mst_weight(_triangle()) == 2
    assert networkx_mst_weight(GraphInstance.from_edge_list(1, [])) == 0
    assert networkx_mst_weight(GraphInstance.from_edge_list(2, [])) is None
    assert networkx_mst_weight(GraphInstance.from_edge_list(0, [])) is None

    parallel = GraphInstance.from_edge_list(3, [(0, 1, 4), (0, 1, 1), (1, 2, 2)])
    assert networkx_mst_weight(parallel) == 3
