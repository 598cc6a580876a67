"""Value objects for the Tree-of-Thoughts research planner.

All types here are frozen dataclasses -- immutable, compared by value.
Exploration never mutates a node or a connection in place: every update
produces a new instance, so a previous frontier stays valid for diagnostics.

Two graphs live over the same node ids and are kept apart on purpose:

* the *thought tree*, expressed only through ``ThoughtNode.parent_id``;
* the *connection graph*, a list of ``Connection`` edges held by the store.

Timestamps are POSIX seconds (``time.time()``).
"""

from __future__ import annotations

import dataclasses
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, TypedDict

from .enums import QueryType, StopReason
from .exceptions import GraphIntegrityError


def _short_id() -> str:
    return str(uuid.uuid4())[:8]


# ---------------------------------------------------------------------------
# ThoughtMetadata
# ---------------------------------------------------------------------------

class ThoughtMetadata(TypedDict, total=False):
    """Known optional annotations carried by a thought.

    Extra keys are tolerated at runtime; these are the ones the planner
    itself reads or writes.
    """

    phase: str
    stage: str
    index: int
    evaluation_criteria: dict[str, float]
    reasoning: str
    source: str
    merged_from: list[str]


# ---------------------------------------------------------------------------
# ThoughtNode
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThoughtNode:
    """A single thought in the exploration tree.

    ``score`` is a quality in [0, 10] assigned by the external generator or
    evaluator.  ``depth`` is 0 for root thoughts and grows by one per
    expansion; ``parent_id`` links a child to the node it was expanded from.
    """

    node_id: str = field(default_factory=_short_id)
    content: str = ""
    score: float = 0.0
    depth: int = 0
    parent_id: str | None = None
    metadata: ThoughtMetadata = field(default_factory=dict)  # type: ignore[assignment]
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 10.0:
            raise ValueError(f"score must be in [0, 10], got {self.score}")
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")
        if self.parent_id is not None and self.parent_id == self.node_id:
            raise GraphIntegrityError(
                "A thought cannot be its own parent", node_id=self.node_id
            )

    @property
    def is_root(self) -> bool:
        """True for thoughts that were not expanded from another thought."""
        return self.parent_id is None

    def child(
        self,
        content: str,
        score: float,
        metadata: ThoughtMetadata | None = None,
    ) -> ThoughtNode:
        """Return a NEW thought expanded from this one (one level deeper)."""
        return ThoughtNode(
            content=content,
            score=score,
            depth=self.depth + 1,
            parent_id=self.node_id,
            metadata=dict(metadata or {}),  # type: ignore[arg-type]
        )

    def with_evaluation(
        self,
        score: float,
        criteria: dict[str, float] | None = None,
        reasoning: str = "",
    ) -> ThoughtNode:
        """Return a copy re-scored by an evaluator, keeping the node identity."""
        metadata: dict[str, Any] = dict(self.metadata)
        if criteria is not None:
            metadata["evaluation_criteria"] = dict(criteria)
        if reasoning:
            metadata["reasoning"] = reasoning
        return dataclasses.replace(self, score=score, metadata=metadata)


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Connection:
    """A Hebbian edge between two thoughts, independent of the thought tree.

    ``strength`` is clamped into [0, 1] on construction.  ``activation_count``
    counts Hebbian updates and only ever grows.
    """

    source_node_id: str
    target_node_id: str
    strength: float = 0.0
    reasoning: str = ""
    connection_id: str = field(default_factory=_short_id)
    created_at: float = field(default_factory=time.time)
    last_activated: float | None = None
    activation_count: int = 0

    def __post_init__(self) -> None:
        if self.source_node_id == self.target_node_id:
            raise GraphIntegrityError(
                "Self-loop connections are not allowed",
                node_id=self.source_node_id,
            )
        if self.activation_count < 0:
            raise ValueError(
                f"activation_count must be >= 0, got {self.activation_count}"
            )
        clamped = max(0.0, min(1.0, float(self.strength)))
        object.__setattr__(self, "strength", clamped)

    @property
    def pair(self) -> frozenset[str]:
        """Unordered endpoint pair; at most one connection exists per pair."""
        return frozenset((self.source_node_id, self.target_node_id))

    @property
    def last_seen(self) -> float:
        """Last activation time, or creation time if never activated."""
        return self.last_activated if self.last_activated is not None else self.created_at

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source_node_id, self.target_node_id)

    def other_end(self, node_id: str) -> str:
        """Return the endpoint opposite *node_id*."""
        if node_id == self.source_node_id:
            return self.target_node_id
        if node_id == self.target_node_id:
            return self.source_node_id
        raise ValueError(f"Node {node_id!r} is not an endpoint of {self.connection_id!r}")


# ---------------------------------------------------------------------------
# Exploration state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HistoryEntry:
    """Snapshot of the retained frontier at one depth of the beam search."""

    depth: int
    thoughts: tuple[ThoughtNode, ...] = ()
    values: tuple[float, ...] = ()


@dataclass(frozen=True)
class ExplorationState:
    """ToT exploration state -- one branch of the beam.

    ``query`` is fixed for the whole run.  ``thoughts`` is the frontier of this
    branch, ``value`` its aggregate score, and ``history`` the append-only
    trace of retained snapshots used for path reconstruction.
    """

    query: str
    depth: int = 0
    thoughts: tuple[ThoughtNode, ...] = ()
    value: float = 0.0
    history: tuple[HistoryEntry, ...] = ()
    stop_reason: StopReason | None = None

    @classmethod
    def initial(cls, query: str, thoughts: tuple[ThoughtNode, ...] | list[ThoughtNode]) -> ExplorationState:
        """Build the depth-0 state; its history already holds the depth-0 snapshot."""
        roots = tuple(thoughts)
        return cls(
            query=query,
            depth=0,
            thoughts=roots,
            value=0.0,
            history=(HistoryEntry(depth=0, thoughts=roots),),
        )

    def with_history(self, entry: HistoryEntry) -> ExplorationState:
        return dataclasses.replace(self, history=self.history + (entry,))

    @property
    def frontier_size(self) -> int:
        return len(self.thoughts)


# ---------------------------------------------------------------------------
# Generator output and research plan
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeneratedThought:
    """Raw output of the external thought generator: content plus a 0-10 score."""

    content: str
    score: float = 0.0
    metadata: ThoughtMetadata = field(default_factory=dict)  # type: ignore[assignment]


@dataclass(frozen=True)
class ResearchQuery:
    """One search query in a research plan."""

    query: str
    purpose: str = ""
    query_type: QueryType = QueryType.GENERAL
    priority: int = 1


@dataclass(frozen=True)
class ResearchPlan:
    """Structured research plan produced once per run from the best path."""

    topic: str
    approach: str = ""
    description: str = ""
    main_topics: tuple[str, ...] = ()
    subtopics: tuple[str, ...] = ()
    queries: tuple[ResearchQuery, ...] = ()
    reasoning: str = ""


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NetworkMetrics:
    """Read-only summary of the connection graph between learning cycles."""

    node_count: int = 0
    connection_count: int = 0
    average_strength: float = 0.0
    average_score: float = 0.0
    connection_density: float = 0.0
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SynthesizedThought:
    """A higher-order thought combining several connected thoughts."""

    node_ids: tuple[str, ...]
    content: str
    confidence: float = 0.0
    synthesized_id: str = field(default_factory=_short_id)
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")


@dataclass(frozen=True)
class ReasoningStep:
    """Human-readable trace entry of the planning phase (for the UI)."""

    step_type: str
    title: str
    content: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    step_id: str = field(default_factory=_short_id)
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ResearchOutcome:
    """Everything the planner hands back to the hosting layer for one query."""

    query: str
    plan: ResearchPlan
    final_state: ExplorationState
    best_path: tuple[ThoughtNode, ...] = ()
    reasoning_steps: tuple[ReasoningStep, ...] = ()
    synthesized_thoughts: tuple[SynthesizedThought, ...] = ()
    network_metrics: NetworkMetrics | None = None
    stop_reason: StopReason | None = None
