import pytest

import prim_implementation


@pytest.fixture
def heaviest_cut(monkeypatch):
    """Swap the greedy rule for one that picks the heaviest cutting edge"""

    def maximum_cutting_edges(self, state):
        cutting = self.cutting_edges(state)
        if not cutting:
            return []
        worst = max(edge.weight for edge in cutting)
        return [edge for edge in cutting if edge.weight == worst]

    monkeypatch.setattr(
        prim_implementation.PrimTransitionEngine,
        "minimum_cutting_edges",
        maximum_cutting_edges,
    )
