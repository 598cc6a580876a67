"""Domain events for the Tree-of-Thoughts research planner.

Every event is a frozen dataclass inheriting from ``DomainEvent``.  The beam
search engine, the connection adapter and the orchestration graph emit
events; listeners (progress reporting, tracing, tests) react.

All events carry a ``timestamp`` and a ``source_id`` identifying the
originating component or run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .values import NetworkMetrics, ResearchPlan

# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    timestamp: float = field(default_factory=time.time)
    source_id: str = ""


# ---------------------------------------------------------------------------
# Exploration events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExplorationStarted(DomainEvent):
    """A beam search run began."""

    query: str = ""
    beam_width: int = 0
    max_depth: int = 0
    initial_frontier_size: int = 0


@dataclass(frozen=True)
class DepthCompleted(DomainEvent):
    """Beam selection for one depth finished; used for progress reporting."""

    depth: int = 0
    max_depth: int = 0
    candidate_count: int = 0
    dropped_count: int = 0
    frontier_size: int = 0
    best_value: float = 0.0
    explored_count: int = 0


@dataclass(frozen=True)
class CandidateDropped(DomainEvent):
    """A branch or candidate was discarded because an external call failed."""

    depth: int = 0
    phase: str = ""  # "generation" or "evaluation"
    error_type: str = ""
    error_message: str = ""


@dataclass(frozen=True)
class ExplorationFinished(DomainEvent):
    """A beam search run terminated."""

    query: str = ""
    final_depth: int = 0
    stop_reason: str = ""
    best_value: float = 0.0
    elapsed_seconds: float = 0.0


# ---------------------------------------------------------------------------
# Learning events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LearningCycleCompleted(DomainEvent):
    """One Hebbian learning cycle was applied to the connection graph."""

    cycle: int = 0
    updated_count: int = 0
    pruned_count: int = 0
    metrics: NetworkMetrics | None = None


# ---------------------------------------------------------------------------
# Planning events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlanSynthesized(DomainEvent):
    """A research plan was produced from the best path."""

    query: str = ""
    plan: ResearchPlan | None = None
    path_length: int = 0
    fallback: bool = False
