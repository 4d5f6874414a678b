"""
Prim's Algorithm as a discrete-time state machine
Each step adds one minimum-weight cutting edge to the growing tree
"""

import logging

from prim_trace import State, Trace, TraceStatus

logger = logging.getLogger(__name__)


class PrimTransitionEngine:
    def __init__(self, graph, start=None):
        """
        graph: GraphInstance to run on
        start: starting Node, defaults to the lowest node identity
        """
        self.graph = graph
        if start is None and graph.nodes:
            start = min(graph.nodes)
        if start is not None and start not in graph.nodes:
            raise ValueError(f"start node {start!r} is not in the instance")
        self.start = start

        # Sorted once so every tie resolves to the lowest edge identity
        self.edges = graph.sorted_edges

    def initial_state(self):
        """covered = {start}, chosen = {}"""
        return State(covered=frozenset([self.start]), chosen=frozenset())

    def is_terminal(self, state):
        return state.covered == self.graph.nodes

    def cutting_edges(self, state):
        """Edges with exactly one endpoint covered"""
        return [
            edge
            for edge in self.edges
            if len(edge.endpoints & state.covered) == 1
        ]

    def minimum_cutting_edges(self, state):
        """All cutting edges sharing the minimum weight, lowest identity first"""
        cutting = self.cutting_edges(state)
        if not cutting:
            return []
        best = min(edge.weight for edge in cutting)
        return [edge for edge in cutting if edge.weight == best]

    def apply(self, state, edge):
        """Successor state after choosing edge"""
        return State(
            covered=state.covered | edge.endpoints,
            chosen=state.chosen | {edge},
        )

    def step(self, state):
        """
        Deterministic transition. Returns the same state when terminal (fixed
        point) and None when stuck (no cutting edge left, nodes uncovered).
        """
        if self.is_terminal(state):
            return state

        candidates = self.minimum_cutting_edges(state)
        if not candidates:
            return None
        return self.apply(state, candidates[0])

    def successors(self, state):
        """Every allowed successor, one per minimum-weight cutting edge"""
        if self.is_terminal(state):
            return []
        return [self.apply(state, edge) for edge in self.minimum_cutting_edges(state)]

    def run(self):
        """Build the trace the deterministic tie-break produces"""
        if self.start is None:
            return Trace(self.graph, None, (), TraceStatus.EMPTY)

        state = self.initial_state()
        states = [state]

        # At most one node is added per real step
        for _ in range(self.graph.num_nodes):
            if self.is_terminal(state):
                break
            state = self.step(state)
            if state is None:
                break
            states.append(state)

        if self.is_terminal(states[-1]):
            return Trace(self.graph, self.start, tuple(states), TraceStatus.TERMINATED)

        logger.debug(
            "Stuck after %d steps on %s", len(states) - 1, self.graph.describe()
        )
        return Trace(self.graph, self.start, tuple(states), TraceStatus.STUCK)

    def all_traces(self):
        """Yield every trace over all tie-break choices, depth first"""
        if self.start is None:
            yield Trace(self.graph, None, (), TraceStatus.EMPTY)
            return

        pending = [(self.initial_state(),)]
        while pending:
            states = pending.pop()
            state = states[-1]
            if self.is_terminal(state):
                yield Trace(self.graph, self.start, states, TraceStatus.TERMINATED)
                continue

            successors = self.successors(state)
            if not successors:
                yield Trace(self.graph, self.start, states, TraceStatus.STUCK)
                continue

            # Reversed so the lowest-identity choice is explored first
            for successor in reversed(successors):
                pending.append(states + (successor,))


def run_prim(graph, start=None):
    """Convenience wrapper: deterministic trace of graph from start"""
    return PrimTransitionEngine(graph, start).run()
