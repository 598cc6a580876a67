"""Tests for connection proposal strategies."""

from __future__ import annotations

import pytest

from tot_research.domain.exceptions import ThoughtGenerationError
from tot_research.domain.values import Connection, ThoughtNode
from tot_research.services.aggregation import (
    AggregationOutput,
    LexicalConnectionProposer,
    LLMConnectionProposer,
    ProposedConnection,
    ProposedSynthesis,
    merge_connections,
)
from tot_research.testing import MockStructuredChatModel


def _nodes() -> list[ThoughtNode]:
    return [
        ThoughtNode(node_id="a", content="Battery chemistry and electrolyte safety", score=8.0),
        ThoughtNode(node_id="b", content="Electrolyte safety testing standards", score=7.0),
        ThoughtNode(node_id="c", content="Venture funding trends", score=6.0),
    ]


class TestMergeConnections:

    def test_keeps_first_per_pair(self) -> None:
        first = Connection("a", "b", strength=0.9)
        merged = merge_connections([first], [Connection("b", "a", strength=0.1), Connection("a", "c")])
        assert merged[0] is first
        assert len(merged) == 2


class TestLexicalConnectionProposer:

    @pytest.mark.asyncio
    async def test_connects_shared_vocabulary(self) -> None:
        proposal = await LexicalConnectionProposer().propose("q", _nodes())
        pairs = {c.pair for c in proposal.connections}
        assert pairs == {frozenset(("a", "b"))}
        conn = proposal.connections[0]
        # a: battery chemistry electrolyte safety; b: electrolyte safety testing standards
        assert conn.strength == pytest.approx(2 / 6)
        assert "electrolyte" in conn.reasoning
        assert proposal.synthesized == ()

    @pytest.mark.asyncio
    async def test_skips_existing_pairs(self) -> None:
        existing = [Connection("b", "a", strength=0.7)]
        proposal = await LexicalConnectionProposer().propose("q", _nodes(), existing)
        assert proposal.connections == ()

    @pytest.mark.asyncio
    async def test_min_strength(self) -> None:
        proposal = await LexicalConnectionProposer(min_strength=0.5).propose("q", _nodes())
        assert proposal.connections == ()

    def test_invalid_min_strength(self) -> None:
        with pytest.raises(ValueError):
            LexicalConnectionProposer(min_strength=1.5)


class TestLLMConnectionProposer:

    @pytest.mark.asyncio
    async def test_filters_invalid_suggestions(self) -> None:
        output = AggregationOutput(
            connections=[
                ProposedConnection(source_node_id="a", target_node_id="b", strength=0.8),
                ProposedConnection(source_node_id="a", target_node_id="a", strength=0.8),
                ProposedConnection(source_node_id="a", target_node_id="zz", strength=0.8),
                ProposedConnection(source_node_id="c", target_node_id="b", strength=0.3),
            ],
            synthesized_thoughts=[
                ProposedSynthesis(node_ids=["a", "b"], content="Safety first", confidence=0.7),
                ProposedSynthesis(node_ids=["a", "zz"], content="Bogus", confidence=0.7),
            ],
        )
        model = MockStructuredChatModel(structured_responses=[output])
        existing = [Connection("b", "c", strength=0.2)]

        proposal = await LLMConnectionProposer(model).propose("q", _nodes(), existing)

        assert [c.pair for c in proposal.connections] == [frozenset(("a", "b"))]
        assert proposal.connections[0].strength == 0.8
        assert len(proposal.synthesized) == 1
        assert proposal.synthesized[0].node_ids == ("a", "b")

    @pytest.mark.asyncio
    async def test_single_node_skips_model(self) -> None:
        model = MockStructuredChatModel(structured_responses=[AggregationOutput()])
        proposal = await LLMConnectionProposer(model).propose("q", _nodes()[:1])
        assert proposal.connections == ()
        assert model.call_count == 0

    @pytest.mark.asyncio
    async def test_model_failure_raises(self) -> None:
        model = MockStructuredChatModel(structured_responses=[RuntimeError("rate limited")])
        with pytest.raises(ThoughtGenerationError, match="rate limited"):
            await LLMConnectionProposer(model).propose("q", _nodes())
