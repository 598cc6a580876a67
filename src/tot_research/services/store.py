"""Thought graph store.

``ThoughtGraph`` owns two distinct structures over the same node ids:

* an arena of ``ThoughtNode`` objects keyed by id -- the thought *tree* is
  implied by ``parent_id`` links and must stay a forest;
* a map of ``Connection`` edges keyed by their unordered endpoint pair --
  the Hebbian graph, which may be arbitrary (but has no self-loops and at
  most one edge per pair).

Nodes never hold references to edges, so pruning is a plain replacement of
the connection map.  The store is mutated only between beam-search depths.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from tot_research.domain.exceptions import GraphIntegrityError
from tot_research.domain.values import Connection, NetworkMetrics, ThoughtNode
from tot_research.services.evaluation import calculate_network_state

logger = logging.getLogger(__name__)


class ThoughtGraph:
    """Arena of thoughts plus a separate weighted connection graph."""

    def __init__(
        self,
        nodes: Iterable[ThoughtNode] = (),
        connections: Iterable[Connection] = (),
    ) -> None:
        self._nodes: dict[str, ThoughtNode] = {}
        self._connections: dict[frozenset[str], Connection] = {}
        self.add_nodes(nodes)
        for conn in connections:
            self.add_connection(conn)

    # -- nodes ----------------------------------------------------------------

    def add_node(self, node: ThoughtNode) -> None:
        """Register *node*, enforcing the forest invariant.

        Raises
        ------
        GraphIntegrityError
            On a duplicate id, a root with non-zero depth, an unknown parent,
            or a parent that is not strictly shallower than the child.
        """
        if node.node_id in self._nodes:
            raise GraphIntegrityError(
                f"Duplicate thought id {node.node_id!r}", node_id=node.node_id
            )
        if node.parent_id is None:
            if node.depth != 0:
                raise GraphIntegrityError(
                    f"Root thought {node.node_id!r} must have depth 0, got {node.depth}",
                    node_id=node.node_id,
                )
        else:
            parent = self._nodes.get(node.parent_id)
            if parent is None:
                raise GraphIntegrityError(
                    f"Parent {node.parent_id!r} of {node.node_id!r} is unknown",
                    node_id=node.node_id,
                )
            if parent.depth >= node.depth:
                raise GraphIntegrityError(
                    f"Parent depth {parent.depth} must be smaller than child "
                    f"depth {node.depth}",
                    node_id=node.node_id,
                )
        self._nodes[node.node_id] = node

    def add_nodes(self, nodes: Iterable[ThoughtNode]) -> int:
        """Register nodes in order (parents before children). Returns the count."""
        count = 0
        for node in nodes:
            self.add_node(node)
            count += 1
        return count

    def get(self, node_id: str) -> ThoughtNode | None:
        return self._nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> list[ThoughtNode]:
        return list(self._nodes.values())

    @property
    def node_map(self) -> Mapping[str, ThoughtNode]:
        return dict(self._nodes)

    def roots(self) -> list[ThoughtNode]:
        return [n for n in self._nodes.values() if n.parent_id is None]

    def children_of(self, node_id: str) -> list[ThoughtNode]:
        return [n for n in self._nodes.values() if n.parent_id == node_id]

    def path_to_root(self, node_id: str) -> list[ThoughtNode]:
        """Return the root-to-node path following ``parent_id`` links."""
        node = self._nodes.get(node_id)
        if node is None:
            raise KeyError(node_id)
        path = [node]
        while node.parent_id is not None:
            node = self._nodes[node.parent_id]
            path.append(node)
        path.reverse()
        return path

    # -- connections ----------------------------------------------------------

    def add_connection(self, connection: Connection) -> None:
        """Add *connection*; both endpoints must exist and the pair must be new."""
        for endpoint in (connection.source_node_id, connection.target_node_id):
            if endpoint not in self._nodes:
                raise GraphIntegrityError(
                    f"Connection endpoint {endpoint!r} is unknown", node_id=endpoint
                )
        if connection.pair in self._connections:
            raise GraphIntegrityError(
                "A connection already exists between "
                f"{connection.source_node_id!r} and {connection.target_node_id!r}",
                node_id=connection.source_node_id,
            )
        self._connections[connection.pair] = connection

    def merge_connections(self, connections: Iterable[Connection]) -> int:
        """Add connections whose pair is not yet connected; skip the rest.

        Connections with unknown endpoints are skipped as well.  Returns the
        number of connections actually added.
        """
        added = 0
        for conn in connections:
            if conn.pair in self._connections:
                continue
            if conn.source_node_id not in self._nodes or conn.target_node_id not in self._nodes:
                logger.debug(
                    "ThoughtGraph: skipping connection %s with unknown endpoint",
                    conn.connection_id,
                )
                continue
            self._connections[conn.pair] = conn
            added += 1
        return added

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def connections_for(self, node_id: str) -> list[Connection]:
        return [c for c in self._connections.values() if c.touches(node_id)]

    def replace_connections(self, connections: Iterable[Connection]) -> None:
        """Swap in the connection set produced by a learning cycle."""
        replacement: dict[frozenset[str], Connection] = {}
        for conn in connections:
            if conn.pair in replacement:
                raise GraphIntegrityError(
                    "Duplicate connection pair in replacement set",
                    node_id=conn.source_node_id,
                )
            replacement[conn.pair] = conn
        self._connections = replacement

    # -- diagnostics ----------------------------------------------------------

    def network_state(self) -> NetworkMetrics:
        return calculate_network_state(self.nodes, self.connections)
