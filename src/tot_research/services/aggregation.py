"""Connection proposal strategies.

Connections are the Hebbian edges between thoughts.  How strongly two
thoughts are related initially is a judgement made outside the learning
core; this module provides two ways of making it:

* ``LexicalConnectionProposer`` -- Jaccard overlap of content terms, fully
  offline and deterministic;
* ``LLMConnectionProposer`` -- asks a chat model which thoughts belong
  together and, optionally, for higher-order thoughts synthesized from them.
"""

from __future__ import annotations

import itertools
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from tot_research.domain.exceptions import GraphIntegrityError, ThoughtGenerationError
from tot_research.domain.values import Connection, SynthesizedThought, ThoughtNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionProposal:
    """New connections plus any synthesized thoughts produced alongside them."""

    connections: tuple[Connection, ...] = ()
    synthesized: tuple[SynthesizedThought, ...] = ()


def merge_connections(
    existing: Iterable[Connection],
    proposed: Iterable[Connection],
) -> list[Connection]:
    """Concatenate *existing* and *proposed*, keeping the first edge per pair."""
    merged: list[Connection] = []
    seen: set[frozenset[str]] = set()
    for conn in itertools.chain(existing, proposed):
        if conn.pair in seen:
            continue
        seen.add(conn.pair)
        merged.append(conn)
    return merged


class BaseConnectionProposer(ABC):
    """Abstract base for strategies that relate thoughts to each other."""

    @abstractmethod
    async def propose(
        self,
        query: str,
        nodes: Sequence[ThoughtNode],
        existing: Sequence[Connection] = (),
    ) -> ConnectionProposal:
        """Return connections between *nodes* for pairs not in *existing*."""


# ===================================================================== #
#  Lexical proposer                                                      #
# ===================================================================== #

_TOKEN_RE = re.compile(r"[^\W_]+", re.UNICODE)
_STOP_WORDS = frozenset({
    "the", "and", "for", "with", "from", "that", "this", "are", "was", "its",
    "into", "onto", "over", "than", "then", "their", "there", "which", "what",
    "how", "why", "about", "between", "mainly", "best",
})


def _terms(text: str) -> frozenset[str]:
    return frozenset(
        t for t in (m.lower() for m in _TOKEN_RE.findall(text))
        if len(t) > 2 and t not in _STOP_WORDS
    )


class LexicalConnectionProposer(BaseConnectionProposer):
    """Connect thoughts that share vocabulary.

    The initial strength of a connection is the Jaccard similarity of the
    two thoughts' content terms.  Pairs below *min_strength* stay
    unconnected.
    """

    def __init__(self, min_strength: float = 0.05) -> None:
        if not 0.0 <= min_strength <= 1.0:
            raise ValueError(f"min_strength must be in [0, 1], got {min_strength}")
        self.min_strength = min_strength

    async def propose(
        self,
        query: str,
        nodes: Sequence[ThoughtNode],
        existing: Sequence[Connection] = (),
    ) -> ConnectionProposal:
        taken = {c.pair for c in existing}
        terms = {n.node_id: _terms(n.content) for n in nodes}
        proposed: list[Connection] = []
        for a, b in itertools.combinations(nodes, 2):
            if a.node_id == b.node_id:
                continue
            pair = frozenset((a.node_id, b.node_id))
            if pair in taken:
                continue
            union = terms[a.node_id] | terms[b.node_id]
            if not union:
                continue
            shared = terms[a.node_id] & terms[b.node_id]
            strength = len(shared) / len(union)
            if strength < self.min_strength:
                continue
            taken.add(pair)
            proposed.append(
                Connection(
                    source_node_id=a.node_id,
                    target_node_id=b.node_id,
                    strength=strength,
                    reasoning="shared terms: " + ", ".join(sorted(shared)[:5]),
                )
            )
        logger.debug(
            "LexicalConnectionProposer: %d connections among %d thoughts",
            len(proposed),
            len(nodes),
        )
        return ConnectionProposal(connections=tuple(proposed))


# ===================================================================== #
#  LLM proposer                                                          #
# ===================================================================== #


class ProposedConnection(BaseModel):
    """One connection suggested by the model."""

    source_node_id: str = Field(description="Id of the first thought")
    target_node_id: str = Field(description="Id of the second thought")
    strength: float = Field(ge=0, le=1, description="Relatedness [0, 1]")
    reasoning: str = Field(default="", description="Why the thoughts belong together")


class ProposedSynthesis(BaseModel):
    """A higher-order thought combining several connected thoughts."""

    node_ids: list[str] = Field(description="Ids of the combined thoughts")
    content: str = Field(description="The new combined thought")
    confidence: float = Field(ge=0, le=1, description="Confidence [0, 1]")


class AggregationOutput(BaseModel):
    """Structured output of a connection-proposal call."""

    connections: list[ProposedConnection] = Field(default_factory=list)
    synthesized_thoughts: list[ProposedSynthesis] = Field(default_factory=list)


_AGGREGATION_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You analyse how research thoughts relate to each other, like "
            "synapses linking related ideas. Connect thoughts that are "
            "semantically related or complementary, rate each connection's "
            "strength from 0 to 1, and where a group of connected thoughts "
            "yields a genuinely new idea, state it as a synthesized thought.",
        ),
        (
            "human",
            "## Research query\n{query}\n\n"
            "## Thoughts\n{nodes}\n\n"
            "Only use the ids listed above.",
        ),
    ]
)


class LLMConnectionProposer(BaseConnectionProposer):
    """Connection proposal backed by a LangChain chat model.

    Suggestions naming unknown ids, self-loops, or already-connected pairs
    are discarded.

    Parameters
    ----------
    model:
        A LangChain chat model.
    prompt:
        Optional custom ``ChatPromptTemplate`` receiving ``query`` and
        ``nodes``.
    """

    def __init__(
        self,
        model: BaseChatModel,
        prompt: ChatPromptTemplate | None = None,
    ) -> None:
        self.model = model
        self._prompt = prompt or _AGGREGATION_PROMPT
        self._chain = self._build_chain()

    def _build_chain(self) -> Any:
        structured_model = self.model.with_structured_output(AggregationOutput)
        return self._prompt | structured_model

    async def propose(
        self,
        query: str,
        nodes: Sequence[ThoughtNode],
        existing: Sequence[Connection] = (),
    ) -> ConnectionProposal:
        if len(nodes) < 2:
            return ConnectionProposal()
        try:
            result: AggregationOutput = await self._chain.ainvoke(
                {
                    "query": query,
                    "nodes": "\n\n".join(
                        f"id: {n.node_id}\ncontent: {n.content}\nscore: {n.score}"
                        for n in nodes
                    ),
                }
            )
        except Exception as exc:
            raise ThoughtGenerationError(
                f"LLM connection proposal failed: {exc}",
                query=query,
                generator=type(self).__name__,
            ) from exc

        known = {n.node_id for n in nodes}
        taken = {c.pair for c in existing}
        connections: list[Connection] = []
        for item in result.connections:
            if item.source_node_id not in known or item.target_node_id not in known:
                logger.debug("LLMConnectionProposer: unknown id in %s", item)
                continue
            try:
                conn = Connection(
                    source_node_id=item.source_node_id,
                    target_node_id=item.target_node_id,
                    strength=item.strength,
                    reasoning=item.reasoning,
                )
            except GraphIntegrityError:
                logger.debug("LLMConnectionProposer: self-loop on %s", item.source_node_id)
                continue
            if conn.pair in taken:
                continue
            taken.add(conn.pair)
            connections.append(conn)

        synthesized = tuple(
            SynthesizedThought(
                node_ids=tuple(s.node_ids),
                content=s.content,
                confidence=s.confidence,
            )
            for s in result.synthesized_thoughts
            if s.node_ids and all(i in known for i in s.node_ids)
        )
        logger.info(
            "LLMConnectionProposer: %d connections, %d synthesized thoughts",
            len(connections),
            len(synthesized),
        )
        return ConnectionProposal(connections=tuple(connections), synthesized=synthesized)
