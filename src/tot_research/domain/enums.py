"""Domain enumerations for the Tree-of-Thoughts research planner.

These enums capture the fixed vocabularies used across the domain layer:
thought stages, search query types, path selection strategies, and the
reasons a beam-search exploration terminates.
"""

from enum import Enum


class ThoughtStage(Enum):
    """Phase of the research pipeline a thought was generated for."""

    PLANNING = "planning"  # candidate research approaches
    ANALYSIS = "analysis"  # interpretive hypotheses
    INSIGHT = "insight"  # key insights


class QueryType(Enum):
    """Classification of a search query inside a research plan."""

    GENERAL = "general"
    SPECIFIC = "specific"
    TECHNICAL = "technical"


class SelectionStrategy(Enum):
    """How the final thought is chosen from the best explored candidates."""

    BEST = "best"  # highest score wins
    HYBRID = "hybrid"  # merge the top two thoughts
    DIVERSE = "diverse"  # seeded pick among the top three


class StopReason(Enum):
    """Reason a beam-search exploration terminated."""

    MAX_DEPTH = "max_depth"
    EXHAUSTED = "exhausted"  # no candidates generated for any retained state
    ALL_FAILED = "all_failed"  # every candidate failed generation or evaluation
    BUDGET_EXCEEDED = "budget_exceeded"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
