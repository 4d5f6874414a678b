"""
MPI-based bounded verification of Prim's algorithm
Each MPI process checks a round-robin shard of the instance enumeration

    mpiexec -n 4 python bounded_verifier_mpi.py --max-nodes 4 --max-edges 4
"""

from mpi4py import MPI
import json
import logging
import sys
import time
from collections import Counter
from itertools import islice

from bounded_verifier import (
    EXIT_CODES,
    ConfigError,
    ResultSink,
    VerificationReport,
    build_parser,
    check_instance,
    config_from_args,
    print_report,
)
from prim_graph import count_instances, shard

logger = logging.getLogger(__name__)


class MPIVerifierNode:
    """One rank of a distributed verification run"""

    def __init__(self, comm, rank, size, config):
        self.comm = comm
        self.rank = rank
        self.size = size
        self.config = config
        self.sink = ResultSink()
        self.stopped = False
        self.timed_out = False

    def rounds(self):
        """Synchronisation rounds needed for the largest shard"""
        config = self.config
        total = count_instances(config.max_nodes, config.max_edges, config.max_weight)
        per_rank = -(-total // self.size)
        return -(-per_rank // config.batch_size)

    def run(self, start_time):
        """Check this rank's shard, one batch per round"""
        config = self.config
        deadline = start_time + config.time_limit if config.time_limit else None
        instances = shard(enumerate(config.instances()), self.rank, self.size)

        for round_number in range(self.rounds()):
            for index, graph in islice(instances, config.batch_size):
                self.sink.add(check_instance(graph, config, index))

            found = config.fail_fast and bool(self.sink.counterexamples)
            late = deadline is not None and time.time() > deadline

            # Every rank joins every round, shards differ by at most one instance
            stop = self.comm.allreduce(int(found), op=MPI.MAX)
            timeout = self.comm.allreduce(int(late), op=MPI.MAX)
            if stop or timeout:
                self.stopped = True
                self.timed_out = bool(timeout) and not stop
                if self.rank == 0:
                    print(f"[Rank {self.rank}] Stopping after round {round_number + 1}")
                break

        logger.debug(
            "Rank %d checked %d instances", self.rank, self.sink.instances_checked
        )


def collect_results(comm, rank, node):
    """Gather every rank's results at rank 0"""
    local = (
        dict(node.sink.counts),
        node.sink.instances_checked,
        node.sink.traces_checked,
        node.sink.counterexamples,
    )
    gathered = comm.gather(local, root=0)

    if rank != 0:
        return None

    counts = Counter()
    instances_checked = 0
    traces_checked = 0
    counterexamples = []
    for rank_counts, rank_instances, rank_traces, rank_cex in gathered:
        counts.update(rank_counts)
        instances_checked += rank_instances
        traces_checked += rank_traces
        counterexamples.extend(rank_cex)

    counterexamples.sort(key=lambda cex: cex.index)
    return counts, instances_checked, traces_checked, counterexamples


def main():
    """Main MPI execution"""
    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()
    size = comm.Get_size()

    # Only rank 0 parses arguments and checks feasibility
    if rank == 0:
        args = build_parser().parse_args()
        logging.basicConfig(
            level=logging.INFO if args.verbose else logging.WARNING,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        config = config_from_args(args)
        try:
            work = config.check_feasible()
        except ConfigError as exc:
            print(f"Configuration error: {exc}")
            config = None
            work = None
    else:
        args = None
        config = None
        work = None

    config = comm.bcast(config, root=0)
    if config is None:
        return 2

    if rank == 0:
        print("=" * 70)
        print("MPI-based Bounded Verification of Prim's MST Algorithm")
        print("=" * 70)
        print(f"Number of MPI processes: {size}")
        print(f"Search space: {work:,} units of work")
        print("=" * 70)

    start_time = comm.bcast(time.time(), root=0)

    node = MPIVerifierNode(comm, rank, size, config)
    node.run(start_time)

    comm.Barrier()

    results = collect_results(comm, rank, node)
    if rank != 0:
        return 0

    counts, instances_checked, traces_checked, counterexamples = results
    if counterexamples:
        verdict = "fail"
    elif node.timed_out:
        verdict = "incomplete"
    else:
        verdict = "pass"

    report = VerificationReport(
        config=config,
        verdict=verdict,
        counts=dict(counts),
        instances_checked=instances_checked,
        traces_checked=traces_checked,
        counterexamples=counterexamples,
        elapsed=time.time() - start_time,
        estimated_work=work,
        cancelled=node.stopped and not node.timed_out,
        timed_out=node.timed_out,
    )
    print_report(report)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(report.to_dict(), f, indent=2)
        print(f"Report saved to: {args.output}")

    return EXIT_CODES[verdict]


if __name__ == "__main__":
    sys.exit(main())
