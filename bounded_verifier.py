"""
Bounded exhaustive verification of Prim's algorithm
Enumerates every graph instance within the bounds, runs the state machine
on each one, and checks the spanning-tree and optimality properties.
Worker threads share a cancellation event for fail-fast runs.
"""

import json
import logging
import os
import queue
import sys
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from check_mst import (
    find_cheaper_spanning_tree,
    is_spanning_tree,
    networkx_mst_weight,
    spanning_trees,
    total_weight,
)
from prim_graph import (
    count_edge_subsets,
    count_traces,
    enumerate_instances,
    weight_range,
)
from prim_implementation import PrimTransitionEngine
from prim_trace import TraceStatus

logger = logging.getLogger(__name__)

# Scope of the reference check: 5 Node, 10 Edge, 5 Int
REFERENCE_MAX_NODES = 5
REFERENCE_MAX_EDGES = 10
REFERENCE_WEIGHT_BITS = 5

DEFAULT_MAX_WORK = 5_000_000

MODES = ("correctness", "optimality", "both")

NOT_A_TREE = "terminal chosen set is not a spanning tree"


class ConfigError(ValueError):
    """Bound configuration is malformed"""


class InfeasibleBounds(ConfigError):
    """Search space estimated from the bounds exceeds the work budget"""


class Outcome(Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    STUCK = "STUCK"
    EMPTY = "EMPTY"
    SKIPPED = "SKIPPED"


@dataclass
class BoundConfig:
    max_nodes: int = REFERENCE_MAX_NODES
    max_edges: int = REFERENCE_MAX_EDGES
    weight_bit_width: int = REFERENCE_WEIGHT_BITS
    mode: str = "both"
    fail_fast: bool = True
    workers: int = 4
    batch_size: int = 64
    explore_ties: bool = False
    all_start_nodes: bool = False
    include_disconnected: bool = True
    cross_check: bool = False
    max_work: int = DEFAULT_MAX_WORK
    time_limit: Optional[float] = None

    def validate(self):
        """Raise ConfigError on malformed options"""
        for name in ("max_nodes", "max_edges"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(
                    f"{name} must be a non-negative integer, got {value!r}"
                )
        if not isinstance(self.weight_bit_width, int) or self.weight_bit_width < 1:
            raise ConfigError(
                f"weight_bit_width must be at least 1, got {self.weight_bit_width!r}"
            )
        if self.mode not in MODES:
            raise ConfigError(
                f"mode must be one of {', '.join(MODES)}, got {self.mode!r}"
            )
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.max_work < 1:
            raise ConfigError(f"max_work must be positive, got {self.max_work}")
        if self.time_limit is not None and self.time_limit <= 0:
            raise ConfigError(f"time_limit must be positive, got {self.time_limit}")

    @property
    def max_weight(self):
        return weight_range(self.weight_bit_width)[-1]

    @property
    def checks_correctness(self):
        return self.mode in ("correctness", "both")

    @property
    def checks_optimality(self):
        return self.mode in ("optimality", "both")

    def estimate_work(self):
        """
        Number of units the run will enumerate: an upper bound on the traces
        built (one per instance unless ties or extra start nodes are explored),
        plus one per candidate edge subset when optimality is checked. Subsets
        are enumerated once per instance and shared by all of its traces.
        """
        work = count_traces(
            self.max_nodes,
            self.max_edges,
            self.max_weight,
            explore_ties=self.explore_ties,
            all_start_nodes=self.all_start_nodes,
        )
        if self.checks_optimality:
            work += count_edge_subsets(
                self.max_nodes, self.max_edges, self.max_weight
            )
        return work

    def check_feasible(self):
        """Validate, then reject bounds whose search space exceeds max_work"""
        self.validate()
        work = self.estimate_work()
        if work > self.max_work:
            raise InfeasibleBounds(
                f"bounds {self.max_nodes} nodes / {self.max_edges} edges / "
                f"{self.weight_bit_width}-bit weights need about {work:,} units of "
                f"work, budget is {self.max_work:,}"
            )
        return work

    def instances(self):
        return enumerate_instances(self.max_nodes, self.max_edges, self.max_weight)

    def to_dict(self):
        return {
            "max_nodes": self.max_nodes,
            "max_edges": self.max_edges,
            "weight_bit_width": self.weight_bit_width,
            "mode": self.mode,
            "fail_fast": self.fail_fast,
            "explore_ties": self.explore_ties,
            "all_start_nodes": self.all_start_nodes,
            "include_disconnected": self.include_disconnected,
            "cross_check": self.cross_check,
        }


@dataclass
class Counterexample:
    property_name: str
    graph: object
    trace: object
    witness: Optional[frozenset] = None
    detail: str = ""
    index: Optional[int] = None

    def to_dict(self):
        return {
            "property": self.property_name,
            "detail": self.detail,
            "index": self.index,
            "instance": self.graph.to_dict(),
            "trace": self.trace.to_dict(),
            "witness": (
                sorted(edge.id for edge in self.witness)
                if self.witness is not None
                else None
            ),
        }


@dataclass
class InstanceResult:
    graph: object
    outcome: Outcome
    traces_checked: int = 0
    counterexamples: list = field(default_factory=list)


def check_instance(graph, config, index=None):
    """Run every requested trace of graph and check both properties on it"""
    if not config.include_disconnected and not graph.is_connected():
        return InstanceResult(graph, Outcome.SKIPPED)

    starts = graph.sorted_nodes if config.all_start_nodes else [None]
    counterexamples = []
    traces_checked = 0
    stuck = False
    empty = False
    oracle_weight = None
    if config.cross_check:
        oracle_weight = networkx_mst_weight(graph)

    # Enumerated once, on the first trace that needs it
    trees = None

    def report(name, trace, detail, witness=None):
        counterexamples.append(
            Counterexample(name, graph, trace, witness, detail, index)
        )

    for start in starts or [None]:
        engine = PrimTransitionEngine(graph, start)
        traces = engine.all_traces() if config.explore_ties else [engine.run()]

        for trace in traces:
            traces_checked += 1

            if trace.status == TraceStatus.EMPTY:
                empty = True
                continue

            problems = trace.invariant_violations()
            if problems:
                report("trace-invariant", trace, "; ".join(problems))

            if trace.status == TraceStatus.STUCK:
                stuck = True
                continue

            chosen = trace.chosen_edges
            spanning = is_spanning_tree(chosen, graph)
            if config.checks_correctness and not spanning:
                report("spanning-tree", trace, NOT_A_TREE)

            if config.checks_optimality:
                if not spanning:
                    # Already reported under spanning-tree in "both" mode
                    if not config.checks_correctness:
                        report("optimality", trace, NOT_A_TREE)
                else:
                    if trees is None:
                        trees = list(spanning_trees(graph))
                    witness = find_cheaper_spanning_tree(chosen, graph, trees)
                    if witness is not None:
                        report(
                            "optimality",
                            trace,
                            f"spanning tree of weight {total_weight(witness)} beats "
                            f"{trace.total_weight}",
                            witness,
                        )

            if config.cross_check and oracle_weight != trace.total_weight:
                report(
                    "oracle",
                    trace,
                    f"networkx MST weight {oracle_weight}, trace weight "
                    f"{trace.total_weight}",
                )

    if counterexamples:
        outcome = Outcome.FAIL
    elif stuck:
        outcome = Outcome.STUCK
    elif empty:
        outcome = Outcome.EMPTY
    else:
        outcome = Outcome.PASS
    return InstanceResult(graph, outcome, traces_checked, counterexamples)


class ResultSink:
    """Append-only, lock-protected collection of instance results"""

    def __init__(self):
        self.lock = threading.Lock()
        self.counts = Counter()
        self.counterexamples = []
        self.instances_checked = 0
        self.traces_checked = 0

    def add(self, result):
        with self.lock:
            self.instances_checked += 1
            self.traces_checked += result.traces_checked
            self.counts[result.outcome] += 1
            self.counterexamples.extend(result.counterexamples)


class VerificationWorker(threading.Thread):
    def __init__(self, worker_id, work_queue, config, sink, cancel_event):
        super().__init__()
        self.daemon = True
        self.worker_id = worker_id
        self.work_queue = work_queue
        self.config = config
        self.sink = sink
        self.cancel_event = cancel_event
        self.error = None

    def run(self):
        """Check batches until the sentinel arrives"""
        while True:
            batch = self.work_queue.get()
            if batch is None:
                break

            for index, graph in batch:
                # Cancellation is only observed between instances
                if self.cancel_event.is_set():
                    break
                try:
                    result = check_instance(graph, self.config, index)
                except Exception as exc:
                    self.error = exc
                    self.cancel_event.set()
                    logger.exception(
                        "Worker %d failed on instance %d", self.worker_id, index
                    )
                    break
                self.sink.add(result)
                if result.outcome == Outcome.FAIL:
                    logger.info(
                        "Counterexample at instance %d: %s", index, graph.describe()
                    )
                    if self.config.fail_fast:
                        self.cancel_event.set()


@dataclass
class VerificationReport:
    config: BoundConfig
    verdict: str
    counts: dict
    instances_checked: int
    traces_checked: int
    counterexamples: list
    elapsed: float
    estimated_work: Optional[int] = None
    cancelled: bool = False
    timed_out: bool = False

    @property
    def passed(self):
        return self.verdict == "pass"

    def to_dict(self):
        return {
            "verdict": self.verdict,
            "config": self.config.to_dict(),
            "instances_checked": self.instances_checked,
            "traces_checked": self.traces_checked,
            "outcomes": {outcome.value: n for outcome, n in self.counts.items()},
            "estimated_work": self.estimated_work,
            "cancelled": self.cancelled,
            "timed_out": self.timed_out,
            "elapsed_seconds": round(self.elapsed, 3),
            "counterexamples": [cex.to_dict() for cex in self.counterexamples],
        }


class BoundedVerifier:
    def __init__(self, config, instances=None):
        """
        config: BoundConfig
        instances: optional iterable of GraphInstance to check instead of the
        full enumeration (the feasibility estimate is skipped then)
        """
        self.config = config
        self.instances = instances
        self.cancel_event = threading.Event()
        self.sink = ResultSink()
        self.clock = time.time
        self.queued = 0

    def run(self):
        """Run the verification and return a VerificationReport"""
        config = self.config
        if self.instances is None:
            estimated = config.check_feasible()
            instances = config.instances()
        else:
            config.validate()
            estimated = None
            instances = self.instances

        logger.info("Starting verification with %d workers", config.workers)
        start_time = self.clock()
        deadline = start_time + config.time_limit if config.time_limit else None
        timed_out = False

        work_queue = queue.Queue(maxsize=config.workers * 4)
        workers = [
            VerificationWorker(i, work_queue, config, self.sink, self.cancel_event)
            for i in range(config.workers)
        ]
        for worker in workers:
            worker.start()

        batch = []
        exhausted = True
        for index, graph in enumerate(instances):
            if self.cancel_event.is_set():
                exhausted = False
                break
            if deadline is not None and self.clock() > deadline:
                timed_out = True
                exhausted = False
                self.cancel_event.set()
                break
            batch.append((index, graph))
            if len(batch) >= config.batch_size:
                timed_out = self._put(work_queue, batch, deadline) or timed_out
                batch = []
        if batch and not self.cancel_event.is_set():
            timed_out = self._put(work_queue, batch, deadline) or timed_out
        if self.cancel_event.is_set():
            exhausted = False

        for _ in workers:
            work_queue.put(None)

        # Wait for workers, enforcing the wall-clock cap
        while any(worker.is_alive() for worker in workers):
            if (
                deadline is not None
                and self.clock() > deadline
                and not timed_out
                and self.sink.instances_checked < self.queued
            ):
                timed_out = True
                self.cancel_event.set()
            time.sleep(0.01)

        for worker in workers:
            if worker.error is not None:
                raise worker.error

        # The deadline may pass after the last queued instance was checked
        if timed_out and exhausted and self.sink.instances_checked == self.queued:
            timed_out = False

        elapsed = self.clock() - start_time
        counterexamples = sorted(
            self.sink.counterexamples,
            key=lambda cex: (cex.index if cex.index is not None else -1),
        )
        if counterexamples:
            verdict = "fail"
        elif timed_out:
            verdict = "incomplete"
        else:
            verdict = "pass"

        logger.info(
            "Checked %d instances in %.2f seconds: %s",
            self.sink.instances_checked,
            elapsed,
            verdict,
        )
        return VerificationReport(
            config=config,
            verdict=verdict,
            counts=dict(self.sink.counts),
            instances_checked=self.sink.instances_checked,
            traces_checked=self.sink.traces_checked,
            counterexamples=counterexamples,
            elapsed=elapsed,
            estimated_work=estimated,
            cancelled=(
                config.fail_fast
                and bool(counterexamples)
                and self.cancel_event.is_set()
            ),
            timed_out=timed_out,
        )

    def _put(self, work_queue, batch, deadline):
        """Queue batch unless cancelled first, returns True if the deadline passed"""
        while not self.cancel_event.is_set():
            if deadline is not None and self.clock() > deadline:
                self.cancel_event.set()
                return True
            try:
                work_queue.put(batch, timeout=0.05)
                self.queued += len(batch)
                return False
            except queue.Full:
                continue
        return False


def verify(config, instances=None):
    return BoundedVerifier(config, instances).run()


def print_report(report):
    """Print the verification summary"""
    config = report.config
    print("\n" + "=" * 70)
    print(" " * 25 + "VERIFICATION SUMMARY")
    print("=" * 70)
    print(
        f"Bounds: {config.max_nodes} nodes, {config.max_edges} edges, "
        f"{config.weight_bit_width}-bit weights (0..{config.max_weight})"
    )
    print(f"Mode: {config.mode}")
    if report.estimated_work is not None:
        print(f"Estimated work: {report.estimated_work:,}")
    print(f"Instances checked: {report.instances_checked:,}")
    print(f"Traces checked: {report.traces_checked:,}")
    print(f"Elapsed: {report.elapsed:.2f} seconds")

    print(f"\n{'Outcome':<10} {'Instances':<10}")
    print("-" * 70)
    for outcome in Outcome:
        print(f"{outcome.value:<10} {report.counts.get(outcome, 0):<10}")

    if report.counterexamples:
        print(f"\nCounterexamples ({len(report.counterexamples)}):")
        for cex in report.counterexamples:
            print(f"\n[{cex.property_name}] instance {cex.index}: {cex.detail}")
            print(f"  {cex.graph.describe()}")
            for line in cex.trace.describe().splitlines():
                print(f"  {line}")
            if cex.witness is not None:
                witness = ", ".join(repr(edge) for edge in sorted(cex.witness))
                print(f"  Cheaper spanning tree: {witness}")

    status = {
        "pass": "✓ PASS - no counterexample within bounds",
        "fail": "✗ FAIL - counterexample found",
        "incomplete": "⚠ INCOMPLETE - time limit reached before the search finished",
    }[report.verdict]
    print("\n" + "=" * 70)
    print(f"Verdict: {status}")
    print("=" * 70)


EXIT_CODES = {"pass": 0, "fail": 1, "incomplete": 3}


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        description="Exhaustively verify Prim's algorithm on every bounded graph"
    )
    parser.add_argument(
        "--max-nodes", type=int, default=4, help="Maximum node count (default: 4)"
    )
    parser.add_argument(
        "--max-edges", type=int, default=4, help="Maximum edge count (default: 4)"
    )
    parser.add_argument(
        "--weight-bits",
        type=int,
        default=3,
        help="Signed bit width of edge weights (default: 3, weights 0..3)",
    )
    parser.add_argument(
        "--reference",
        action="store_true",
        help="Use the reference scope: 5 nodes, 10 edges, 5-bit weights",
    )
    parser.add_argument("--mode", choices=MODES, default="both")
    parser.add_argument(
        "--collect-all",
        dest="fail_fast",
        action="store_false",
        help="Keep going after the first counterexample",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=os.cpu_count() or 1,
        help="Number of worker threads (default: CPU count)",
    )
    parser.add_argument("--batch-size", type=int, default=64)
    parser.add_argument(
        "--explore-ties",
        action="store_true",
        help="Check every trace over all minimum-weight tie choices",
    )
    parser.add_argument(
        "--all-start-nodes",
        action="store_true",
        help="Run the algorithm from every node, not only the lowest",
    )
    parser.add_argument(
        "--exclude-disconnected",
        dest="include_disconnected",
        action="store_false",
        help="Skip disconnected instances instead of classifying them as stuck",
    )
    parser.add_argument(
        "--cross-check",
        action="store_true",
        help="Compare every trace weight against networkx's MST",
    )
    parser.add_argument(
        "--max-work",
        type=int,
        default=DEFAULT_MAX_WORK,
        help=f"Search-space budget (default: {DEFAULT_MAX_WORK:,})",
    )
    parser.add_argument(
        "--time-limit", type=float, default=None, help="Wall-clock cap in seconds"
    )
    parser.add_argument(
        "--output", type=str, default=None, help="Write the report as JSON"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def config_from_args(args):
    if args.reference:
        max_nodes, max_edges, weight_bits = (
            REFERENCE_MAX_NODES,
            REFERENCE_MAX_EDGES,
            REFERENCE_WEIGHT_BITS,
        )
    else:
        max_nodes, max_edges, weight_bits = (
            args.max_nodes,
            args.max_edges,
            args.weight_bits,
        )

    return BoundConfig(
        max_nodes=max_nodes,
        max_edges=max_edges,
        weight_bit_width=weight_bits,
        mode=args.mode,
        fail_fast=args.fail_fast,
        workers=args.workers,
        batch_size=args.batch_size,
        explore_ties=args.explore_ties,
        all_start_nodes=args.all_start_nodes,
        include_disconnected=args.include_disconnected,
        cross_check=args.cross_check,
        max_work=args.max_work,
        time_limit=args.time_limit,
    )


def main(argv=None):
    """Command-line entry point"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = config_from_args(args)

    print("=" * 70)
    print(" " * 10 + "Bounded Verification of Prim's MST Algorithm")
    print("=" * 70)

    try:
        work = config.check_feasible()
    except ConfigError as exc:
        print(f"Configuration error: {exc}")
        return 2

    print(f"Search space: {work:,} units of work, {config.workers} workers")
    report = verify(config)
    print_report(report)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(report.to_dict(), f, indent=2)
        print(f"Report saved to: {args.output}")

    return EXIT_CODES[report.verdict]


if __name__ == "__main__":
    sys.exit(main())
