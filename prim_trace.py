"""
Trace model for Prim's algorithm
A trace is the sequence of (covered, chosen) snapshots of one run on one graph
"""

from dataclasses import dataclass
from enum import Enum


class TraceStatus(Enum):
    TERMINATED = "TERMINATED"
    STUCK = "STUCK"
    EMPTY = "EMPTY"


@dataclass(frozen=True)
class State:
    covered: frozenset
    chosen: frozenset

    def to_dict(self):
        return {
            "covered": [node.label for node in sorted(self.covered)],
            "chosen": [edge.id for edge in sorted(self.chosen)],
        }


@dataclass(frozen=True)
class Trace:
    """
    One run of the algorithm: states[0] is the initial state, states[-1] the
    last state reached. A TERMINATED trace ends with every node covered, a
    STUCK trace ends where no cutting edge was left, an EMPTY trace belongs
    to a graph without nodes and has no states at all.
    """

    graph: object
    start: object
    states: tuple
    status: TraceStatus

    @property
    def final(self):
        return self.states[-1] if self.states else None

    @property
    def real_steps(self):
        return max(len(self.states) - 1, 0)

    @property
    def chosen_edges(self):
        """Chosen set of the last state"""
        return self.final.chosen if self.states else frozenset()

    @property
    def total_weight(self):
        return sum(edge.weight for edge in self.chosen_edges)

    def covered(self, t):
        return self.states[t].covered

    def chosen(self, t):
        return self.states[t].chosen

    def is_monotone(self):
        """covered and chosen only ever grow along the trace"""
        return all(
            prev.covered <= cur.covered and prev.chosen <= cur.chosen
            for prev, cur in zip(self.states, self.states[1:])
        )

    def invariant_violations(self):
        """Return a list of messages, one per broken trace invariant"""
        problems = []

        if self.status == TraceStatus.EMPTY:
            if self.states or self.graph.num_nodes:
                problems.append("EMPTY trace on a graph with nodes")
            return problems

        if not self.states:
            return ["trace has no initial state"]

        initial = self.states[0]
        if initial.covered != frozenset([self.start]):
            problems.append(f"initial covered set is {sorted(initial.covered)}")
        if initial.chosen:
            problems.append("initial chosen set is not empty")

        if not self.is_monotone():
            problems.append("covered/chosen sets are not monotone")

        for t, (prev, cur) in enumerate(zip(self.states, self.states[1:]), 1):
            new_edges = cur.chosen - prev.chosen
            new_nodes = cur.covered - prev.covered
            if len(new_edges) != 1 or len(new_nodes) != 1:
                problems.append(
                    f"step {t} added {len(new_nodes)} nodes, {len(new_edges)} edges"
                )
                continue
            (edge,) = new_edges
            crossing = edge.endpoints & prev.covered
            if len(crossing) != 1 or edge.endpoints - prev.covered != new_nodes:
                problems.append(f"step {t} chose {edge!r}, which is not a cutting edge")

        final = self.final
        if len(self.states) - 1 > self.graph.num_nodes:
            problems.append(f"trace has more than {self.graph.num_nodes} real steps")

        if self.status == TraceStatus.TERMINATED:
            if final.covered != self.graph.nodes:
                problems.append("terminal state does not cover every node")
            if len(final.chosen) != self.graph.num_nodes - 1:
                problems.append(
                    f"terminal state chose {len(final.chosen)} edges, "
                    f"expected {self.graph.num_nodes - 1}"
                )
        elif final.covered == self.graph.nodes:
            problems.append("STUCK trace covers every node")

        return problems

    def to_dict(self):
        return {
            "start": self.start.label if self.start is not None else None,
            "status": self.status.value,
            "total_weight": self.total_weight,
            "steps": [
                dict(t=t, **state.to_dict()) for t, state in enumerate(self.states)
            ],
        }

    def describe(self):
        lines = [f"Trace from {self.start!r} ({self.status.value})"]
        for t, state in enumerate(self.states):
            covered = ",".join(node.label for node in sorted(state.covered))
            chosen = ",".join(f"e{edge.id}" for edge in sorted(state.chosen))
            lines.append(f"  t{t}: covered={{{covered}}} chosen={{{chosen}}}")
        return "\n".join(lines)
