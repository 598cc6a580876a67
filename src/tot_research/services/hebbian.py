"""Hebbian connection adapter.

Connections between thoughts that are active together get stronger; those
that stay both weak and unused for too long are pruned.  Strength never
decays gradually -- forgetting happens only through pruning.

One learning cycle (driven once per beam-search depth, after selection):

1. compute the activity of every node against the current graph;
2. apply the Hebbian update to every connection whose two endpoint
   activities are both positive;
3. prune connections that are stale *and* weak;
4. recompute network metrics.

Staleness in step 3 is judged against each connection's last activation
as it stood when the cycle began, so a single reinforcement does not rescue
a long-dormant weak connection unless it lifts it over the threshold.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from tot_research.domain.events import LearningCycleCompleted
from tot_research.domain.values import Connection, NetworkMetrics, ThoughtNode
from tot_research.infrastructure.config import HebbianConfig
from tot_research.infrastructure.event_bus import EventBus
from tot_research.services.evaluation import (
    calculate_network_state,
    calculate_node_activity,
)
from tot_research.services.store import ThoughtGraph

logger = logging.getLogger(__name__)

_WEEK_MS = 7 * 24 * 60 * 60 * 1000


def update_connection_strength_hebbian(
    connection: Connection,
    source_activity: float,
    target_activity: float,
    learning_rate: float = 0.1,
    now: float | None = None,
) -> Connection:
    """Return *connection* strengthened by ``learning_rate * src * tgt``.

    The new strength is clamped at 1.0, ``activation_count`` grows by one and
    ``last_activated`` moves to *now*.  Callers only invoke this for
    connections whose two endpoint activities are positive.
    """
    delta = learning_rate * source_activity * target_activity
    new_strength = min(1.0, connection.strength + delta)
    return dataclasses.replace(
        connection,
        strength=new_strength,
        last_activated=time.time() if now is None else now,
        activation_count=connection.activation_count + 1,
    )


def prune_connections(
    connections: Sequence[Connection],
    pruning_threshold: float = 0.2,
    inactivity_threshold_ms: float = _WEEK_MS,
    *,
    now: float | None = None,
    last_seen: Mapping[str, float] | None = None,
) -> list[Connection]:
    """Filter out connections that are both stale and weak.

    A connection is removed only when it has been inactive for longer than
    *inactivity_threshold_ms* **and** its strength is below
    *pruning_threshold*.  Nothing is mutated.

    Parameters
    ----------
    last_seen:
        Optional ``connection_id -> timestamp`` overrides for judging
        staleness; connections not listed use ``Connection.last_seen``.
    """
    current = time.time() if now is None else now
    survivors: list[Connection] = []
    for conn in connections:
        seen = conn.last_seen
        if last_seen is not None:
            seen = last_seen.get(conn.connection_id, seen)
        inactive_ms = (current - seen) * 1000
        if inactive_ms > inactivity_threshold_ms and conn.strength < pruning_threshold:
            logger.debug(
                "prune_connections: removing %s (strength=%.3f, idle=%.0fms)",
                conn.connection_id,
                conn.strength,
                inactive_ms,
            )
            continue
        survivors.append(conn)
    return survivors


@dataclass(frozen=True)
class LearningCycleResult:
    """Outcome of one Hebbian learning cycle."""

    cycle: int
    activities: Mapping[str, float] = field(default_factory=dict)
    connections: tuple[Connection, ...] = ()
    updated_count: int = 0
    pruned_count: int = 0
    metrics: NetworkMetrics | None = None


class ConnectionAdapter:
    """Runs Hebbian learning cycles over a thought graph.

    Parameters
    ----------
    config:
        Learning rate, pruning thresholds and decay factor.
    bus:
        Optional event bus; a ``LearningCycleCompleted`` event is published
        after every cycle.
    """

    def __init__(
        self,
        config: HebbianConfig | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._config = config or HebbianConfig()
        self._config.validate()
        self._bus = bus
        self._cycles = 0

    @property
    def config(self) -> HebbianConfig:
        return self._config

    @property
    def cycles_completed(self) -> int:
        return self._cycles

    def run_cycle(
        self,
        nodes: Sequence[ThoughtNode],
        connections: Sequence[Connection],
        now: float | None = None,
    ) -> LearningCycleResult:
        """Apply one learning cycle and return the new connection set."""
        cfg = self._config
        current = time.time() if now is None else now
        lookup = {n.node_id: n for n in nodes}

        activities = {
            n.node_id: calculate_node_activity(n, connections, lookup, cfg.decay_factor)
            for n in nodes
        }
        seen_at_start = {c.connection_id: c.last_seen for c in connections}

        updated: list[Connection] = []
        updated_count = 0
        for conn in connections:
            source_activity = activities.get(conn.source_node_id, 0.0)
            target_activity = activities.get(conn.target_node_id, 0.0)
            if source_activity > 0 and target_activity > 0:
                new_conn = update_connection_strength_hebbian(
                    conn, source_activity, target_activity, cfg.learning_rate, now=current
                )
                logger.debug(
                    "Connection %s <-> %s strength %.3f -> %.3f",
                    conn.source_node_id,
                    conn.target_node_id,
                    conn.strength,
                    new_conn.strength,
                )
                updated.append(new_conn)
                updated_count += 1
            else:
                updated.append(conn)

        survivors = prune_connections(
            updated,
            cfg.pruning_threshold,
            cfg.inactivity_threshold_ms,
            now=current,
            last_seen=seen_at_start,
        )
        pruned_count = len(updated) - len(survivors)
        metrics = calculate_network_state(nodes, survivors)

        self._cycles += 1
        if pruned_count:
            logger.info(
                "ConnectionAdapter: cycle %d pruned %d weak connections",
                self._cycles,
                pruned_count,
            )

        result = LearningCycleResult(
            cycle=self._cycles,
            activities=activities,
            connections=tuple(survivors),
            updated_count=updated_count,
            pruned_count=pruned_count,
            metrics=metrics,
        )
        if self._bus is not None:
            self._bus.publish(
                LearningCycleCompleted(
                    source_id="connection_adapter",
                    cycle=self._cycles,
                    updated_count=updated_count,
                    pruned_count=pruned_count,
                    metrics=metrics,
                )
            )
        return result

    def apply(self, graph: ThoughtGraph, now: float | None = None) -> LearningCycleResult:
        """Run a cycle on *graph* and store the surviving connections in it."""
        result = self.run_cycle(graph.nodes, graph.connections, now=now)
        graph.replace_connections(result.connections)
        return result
