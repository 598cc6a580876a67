"""Evaluation strategies for the Tree-of-Thoughts research planner.

Two layers live here:

* node-level scoring -- ``calculate_node_activity`` turns a thought's own
  score and its neighbours' scores (weighted by connection strength) into a
  decayed "activity" used for ranking and for Hebbian learning;
* state-level scoring -- ``BaseStateEvaluator`` strategies that the beam
  search engine calls to rank candidate states.

Classes
-------
BaseStateEvaluator
    Abstract base class for state evaluators.
HeuristicStateEvaluator
    ``len(thoughts) * (depth + 1)``; the fallback when nothing richer is wired.
MeanScoreEvaluator
    Mean raw score of a state's thoughts, normalized to [0, 1].
ActivityStateEvaluator
    Mean node activity of a state's thoughts against the live thought graph.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from tot_research.domain.values import (
    Connection,
    ExplorationState,
    NetworkMetrics,
    ThoughtNode,
)

if TYPE_CHECKING:
    from tot_research.services.store import ThoughtGraph

logger = logging.getLogger(__name__)


# ===================================================================== #
#  Node activity                                                         #
# ===================================================================== #


def _index_nodes(
    all_nodes: Mapping[str, ThoughtNode] | Iterable[ThoughtNode],
) -> Mapping[str, ThoughtNode]:
    if isinstance(all_nodes, Mapping):
        return all_nodes
    return {n.node_id: n for n in all_nodes}


def calculate_node_activity(
    node: ThoughtNode,
    connections: Sequence[Connection],
    all_nodes: Mapping[str, ThoughtNode] | Iterable[ThoughtNode],
    decay_factor: float = 0.9,
) -> float:
    """Compute the decayed activity of *node*.

    ``base = score / 10``.  An isolated node returns ``base`` unchanged (no
    decay).  Otherwise the result is::

        decay * (0.4 * base + 0.3 * mean_strength + 0.3 * neighbour_activity)

    where ``neighbour_activity`` is the mean over touching connections of
    ``(neighbour.score / 10) * strength``.  A neighbour missing from
    *all_nodes* contributes 0 but still counts in the mean.

    The value is meant for relative ranking and is not clamped.
    """
    base_activity = node.score / 10

    related = [c for c in connections if c.touches(node.node_id)]
    if not related:
        return base_activity

    lookup = _index_nodes(all_nodes)

    avg_strength = sum(c.strength for c in related) / len(related)

    neighbour_sum = 0.0
    for conn in related:
        neighbour = lookup.get(conn.other_end(node.node_id))
        if neighbour is None:
            continue
        neighbour_sum += (neighbour.score / 10) * conn.strength
    connected_activity = neighbour_sum / len(related)

    return decay_factor * (
        0.4 * base_activity + 0.3 * avg_strength + 0.3 * connected_activity
    )


def calculate_network_state(
    nodes: Sequence[ThoughtNode],
    connections: Sequence[Connection],
) -> NetworkMetrics:
    """Summarize the connection graph (read-only, for diagnostics)."""
    node_count = len(nodes)
    connection_count = len(connections)

    avg_strength = (
        float(np.mean([c.strength for c in connections])) if connections else 0.0
    )
    avg_score = float(np.mean([n.score for n in nodes])) if nodes else 0.0
    density = (
        connection_count / (node_count * (node_count - 1) / 2)
        if node_count > 1
        else 0.0
    )

    return NetworkMetrics(
        node_count=node_count,
        connection_count=connection_count,
        average_strength=avg_strength,
        average_score=avg_score,
        connection_density=density,
        timestamp=time.time(),
    )


# ===================================================================== #
#  State evaluators                                                      #
# ===================================================================== #


class BaseStateEvaluator(ABC):
    """Abstract base class for candidate-state scoring.

    Instances are callable so they can be handed straight to
    ``BeamSearchEngine.run`` as the ``evaluate_state`` callback.
    Subclasses may implement :meth:`evaluate` as a coroutine.
    """

    @abstractmethod
    def evaluate(self, state: ExplorationState) -> Any:
        """Return a number (or an awaitable of one); higher is better."""

    def __call__(self, state: ExplorationState) -> Any:
        return self.evaluate(state)


class HeuristicStateEvaluator(BaseStateEvaluator):
    """Placeholder heuristic: ``len(thoughts) * (depth + 1)``.

    It ignores thought scores entirely, so every single-thought candidate at
    the same depth ties and beam selection falls back to generation order.
    """

    def evaluate(self, state: ExplorationState) -> float:
        return float(len(state.thoughts) * (state.depth + 1))


class MeanScoreEvaluator(BaseStateEvaluator):
    """Mean raw thought score of the state, scaled into [0, 1]."""

    def evaluate(self, state: ExplorationState) -> float:
        if not state.thoughts:
            return 0.0
        return float(np.mean([t.score for t in state.thoughts])) / 10


class ActivityStateEvaluator(BaseStateEvaluator):
    """Mean ``calculate_node_activity`` of a state's thoughts.

    Activity is computed against the connections currently held by *graph*;
    the state's own thoughts are resolvable as neighbours even before they
    are registered in the graph.

    Parameters
    ----------
    graph:
        The live thought graph (read between depths only).
    decay_factor:
        Forwarded to ``calculate_node_activity``.
    """

    def __init__(self, graph: ThoughtGraph, decay_factor: float = 0.9) -> None:
        self._graph = graph
        self._decay_factor = decay_factor

    def evaluate(self, state: ExplorationState) -> float:
        if not state.thoughts:
            return 0.0
        lookup: dict[str, ThoughtNode] = dict(self._graph.node_map)
        lookup.update({t.node_id: t for t in state.thoughts})
        connections = self._graph.connections
        activities = [
            calculate_node_activity(t, connections, lookup, self._decay_factor)
            for t in state.thoughts
        ]
        value = float(np.mean(activities))
        logger.debug(
            "ActivityStateEvaluator: depth=%d thoughts=%d value=%.4f",
            state.depth,
            len(state.thoughts),
            value,
        )
        return value
