import time

import pytest

pytest.importorskip("mpi4py")

from mpi4py import MPI

from bounded_verifier import BoundConfig, Outcome
from bounded_verifier_mpi import MPIVerifierNode, collect_results
from prim_graph import count_instances


def _node(**overrides):
    options = dict(max_nodes=3, max_edges=3, weight_bit_width=2, batch_size=8)
    options.update(overrides)
    comm = MPI.COMM_WORLD
    if comm.Get_size() != 1:
        pytest.skip("expects a single MPI process")
    return comm, MPIVerifierNode(comm, 0, 1, BoundConfig(**options))


def test_rounds_cover_the_whole_shard() -> None:
    _, node = _node()
    total = count_instances(3, 3, 1)
    assert (node.rounds() - 1) * 8 < total <= node.rounds() * 8


def test_single_rank_pass() -> None:
    comm, node = _node()
    node.run(time.time())
    counts, instances_checked, traces_checked, counterexamples = collect_results(
        comm, 0, node
    )

    assert not node.stopped
    assert not node.timed_out
    assert instances_checked == count_instances(3, 3, 1)
    assert traces_checked == instances_checked
    assert counterexamples == []
    assert Outcome.FAIL not in counts
    assert counts[Outcome.STUCK] > 0


def test_fail_fast_stops_after_the_failing_round(heaviest_cut) -> None:
    comm, node = _node()
    node.run(time.time())
    _, instances_checked, _, counterexamples = collect_results(comm, 0, node)

    # Index 6 is two nodes joined by parallel edges of weight 0 and 1
    assert node.stopped
    assert not node.timed_out
    assert instances_checked == 8
    assert counterexamples[0].index == 6
    assert counterexamples[0].property_name == "optimality"


def test_collect_all_runs_every_round(heaviest_cut) -> None:
    comm, node = _node(fail_fast=False)
    node.run(time.time())
    _, instances_checked, _, counterexamples = collect_results(comm, 0, node)

    assert not node.stopped
    assert instances_checked == count_instances(3, 3, 1)
    indexes = [cex.index for cex in counterexamples]
    assert indexes == sorted(indexes)


def test_time_limit_stops_after_the_first_round() -> None:
    comm, node = _node(time_limit=1.0)
    node.run(time.time() - 10)
    _, instances_checked, _, _ = collect_results(comm, 0, node)

    assert node.stopped
    assert node.timed_out
    assert instances_checked == 8
