"""Domain exceptions for the Tree-of-Thoughts research planner.

All domain-specific exceptions inherit from ``ToTResearchError`` so callers
can catch the full family with a single ``except`` clause when needed.
"""

from __future__ import annotations

from typing import Any


class ToTResearchError(Exception):
    """Base exception for all tot_research domain errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class InvalidConfigurationError(ToTResearchError):
    """Raised before exploration starts when the search parameters are invalid.

    Examples: ``beam_width < 1``, ``max_depth < 0``, ``branching_factor < 1``.
    This is the only error the beam search engine raises on its own.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        field_name: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field_name = field_name


class GraphIntegrityError(ToTResearchError):
    """Raised when the thought forest or the connection graph would be corrupted.

    Examples: a child whose parent is unknown or not strictly shallower,
    duplicate node ids, self-loop connections, or a second connection for
    an already-connected pair.
    """

    def __init__(
        self,
        message: str = "Thought graph integrity violation",
        node_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.node_id = node_id


class ThoughtGenerationError(ToTResearchError):
    """Raised when the external thought generator fails or returns garbage."""

    def __init__(
        self,
        message: str = "Thought generation failed",
        query: str = "",
        generator: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.query = query
        self.generator = generator


class ThoughtEvaluationError(ToTResearchError):
    """Raised when scoring a candidate state or thought fails."""

    def __init__(
        self,
        message: str = "Thought evaluation failed",
        evaluator: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.evaluator = evaluator


class PlanSynthesisError(ToTResearchError):
    """Raised when the research plan synthesizer cannot produce a plan."""

    def __init__(
        self,
        message: str = "Research plan synthesis failed",
        query: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.query = query
