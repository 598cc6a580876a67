"""Domain layer for the Tree-of-Thoughts research planner.

Re-exports all public domain types so that consumers can write::

    from tot_research.domain import ThoughtNode, Connection, ExplorationState
"""

# -- Enumerations -------------------------------------------------------------
from .enums import QueryType, SelectionStrategy, StopReason, ThoughtStage

# -- Value Objects ------------------------------------------------------------
from .values import (
    Connection,
    ExplorationState,
    GeneratedThought,
    HistoryEntry,
    NetworkMetrics,
    ReasoningStep,
    ResearchOutcome,
    ResearchPlan,
    ResearchQuery,
    SynthesizedThought,
    ThoughtMetadata,
    ThoughtNode,
)

# -- Domain Events ------------------------------------------------------------
from .events import (
    CandidateDropped,
    DepthCompleted,
    DomainEvent,
    ExplorationFinished,
    ExplorationStarted,
    LearningCycleCompleted,
    PlanSynthesized,
)

# -- Exceptions ---------------------------------------------------------------
from .exceptions import (
    GraphIntegrityError,
    InvalidConfigurationError,
    PlanSynthesisError,
    ThoughtEvaluationError,
    ThoughtGenerationError,
    ToTResearchError,
)

__all__ = [
    # enums
    "QueryType",
    "SelectionStrategy",
    "StopReason",
    "ThoughtStage",
    # values
    "Connection",
    "ExplorationState",
    "GeneratedThought",
    "HistoryEntry",
    "NetworkMetrics",
    "ReasoningStep",
    "ResearchOutcome",
    "ResearchPlan",
    "ResearchQuery",
    "SynthesizedThought",
    "ThoughtMetadata",
    "ThoughtNode",
    # events
    "CandidateDropped",
    "DepthCompleted",
    "DomainEvent",
    "ExplorationFinished",
    "ExplorationStarted",
    "LearningCycleCompleted",
    "PlanSynthesized",
    # exceptions
    "GraphIntegrityError",
    "InvalidConfigurationError",
    "PlanSynthesisError",
    "ThoughtEvaluationError",
    "ThoughtGenerationError",
    "ToTResearchError",
]
