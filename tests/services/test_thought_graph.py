"""Tests for the ThoughtGraph store."""

from __future__ import annotations

import pytest

from tot_research.domain.exceptions import GraphIntegrityError
from tot_research.domain.values import Connection, ThoughtNode
from tot_research.services.store import ThoughtGraph


class TestNodes:

    def test_add_and_lookup(self, thought_graph: ThoughtGraph) -> None:
        assert len(thought_graph) == 3
        assert "r1" in thought_graph
        assert thought_graph.get("r1").content == "Survey battery chemistry"
        assert thought_graph.get("missing") is None

    def test_duplicate_id_rejected(self, thought_graph: ThoughtGraph) -> None:
        with pytest.raises(GraphIntegrityError, match="Duplicate"):
            thought_graph.add_node(ThoughtNode(node_id="r1", content="again"))

    def test_root_must_have_depth_zero(self) -> None:
        graph = ThoughtGraph()
        with pytest.raises(GraphIntegrityError):
            graph.add_node(ThoughtNode(node_id="x", depth=2))

    def test_unknown_parent_rejected(self) -> None:
        graph = ThoughtGraph()
        with pytest.raises(GraphIntegrityError, match="unknown"):
            graph.add_node(ThoughtNode(node_id="c", parent_id="nope", depth=1))

    def test_parent_must_be_shallower(self, thought_graph: ThoughtGraph) -> None:
        with pytest.raises(GraphIntegrityError, match="depth"):
            thought_graph.add_node(ThoughtNode(node_id="c", parent_id="r1", depth=0))

    def test_children_and_path(self, thought_graph: ThoughtGraph) -> None:
        parent = thought_graph.get("r1")
        child = parent.child("deeper", 7.0)
        grandchild = child.child("deepest", 6.0)
        assert thought_graph.add_nodes([child, grandchild]) == 2

        assert thought_graph.children_of("r1") == [child]
        assert [n.node_id for n in thought_graph.roots()] == ["r1", "r2", "r3"]
        path = thought_graph.path_to_root(grandchild.node_id)
        assert [n.node_id for n in path] == ["r1", child.node_id, grandchild.node_id]

    def test_path_to_unknown_node(self, thought_graph: ThoughtGraph) -> None:
        with pytest.raises(KeyError):
            thought_graph.path_to_root("missing")


class TestConnections:

    def test_add_connection(self, thought_graph: ThoughtGraph) -> None:
        thought_graph.add_connection(Connection("r1", "r2", strength=0.5))
        assert len(thought_graph.connections) == 1
        assert len(thought_graph.connections_for("r1")) == 1
        assert thought_graph.connections_for("r3") == []

    def test_unknown_endpoint_rejected(self, thought_graph: ThoughtGraph) -> None:
        with pytest.raises(GraphIntegrityError):
            thought_graph.add_connection(Connection("r1", "zz"))

    def test_duplicate_pair_rejected_in_either_direction(
        self, thought_graph: ThoughtGraph
    ) -> None:
        thought_graph.add_connection(Connection("r1", "r2"))
        with pytest.raises(GraphIntegrityError):
            thought_graph.add_connection(Connection("r2", "r1"))

    def test_merge_skips_taken_pairs_and_unknown_nodes(
        self, thought_graph: ThoughtGraph
    ) -> None:
        thought_graph.add_connection(Connection("r1", "r2", strength=0.9))
        added = thought_graph.merge_connections(
            [
                Connection("r2", "r1", strength=0.1),
                Connection("r2", "r3", strength=0.3),
                Connection("r3", "ghost", strength=0.3),
            ]
        )
        assert added == 1
        strengths = {c.pair: c.strength for c in thought_graph.connections}
        assert strengths[frozenset(("r1", "r2"))] == 0.9

    def test_replace_connections(self, thought_graph: ThoughtGraph) -> None:
        thought_graph.add_connection(Connection("r1", "r2"))
        thought_graph.replace_connections([Connection("r2", "r3")])
        assert [c.pair for c in thought_graph.connections] == [frozenset(("r2", "r3"))]

    def test_replace_rejects_duplicate_pairs(self, thought_graph: ThoughtGraph) -> None:
        with pytest.raises(GraphIntegrityError):
            thought_graph.replace_connections(
                [Connection("r1", "r2"), Connection("r2", "r1")]
            )

    def test_network_state(self, thought_graph: ThoughtGraph) -> None:
        thought_graph.add_connection(Connection("r1", "r2", strength=0.4))
        thought_graph.add_connection(Connection("r1", "r3", strength=0.6))
        metrics = thought_graph.network_state()
        assert metrics.node_count == 3
        assert metrics.connection_count == 2
        assert metrics.average_strength == pytest.approx(0.5)
        assert metrics.average_score == pytest.approx(7.0)
        assert metrics.connection_density == pytest.approx(2 / 3)
