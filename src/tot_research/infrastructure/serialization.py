"""Serialization utilities for the Tree-of-Thoughts research planner.

Provides ``*_to_dict`` / ``*_from_dict`` conversion for the domain value
objects that cross the boundary to the hosting layer: the research plan,
the exploration state with its full history (for visualization), the
thought nodes and connections, and the complete ``ResearchOutcome``.

Design goals:
- stdlib ``json`` only.
- Every ``to_dict`` output is JSON-serializable (no numpy, no sets, no enums).
- ``from_dict`` reconstructors accept permissive input and raise
  ``ValueError`` / ``KeyError`` for truly unrecoverable data.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from tot_research.domain.enums import QueryType, StopReason
from tot_research.domain.values import (
    Connection,
    ExplorationState,
    HistoryEntry,
    NetworkMetrics,
    ReasoningStep,
    ResearchOutcome,
    ResearchPlan,
    ResearchQuery,
    SynthesizedThought,
    ThoughtNode,
)

logger = logging.getLogger(__name__)


# =========================================================================== #
#  Generic helpers                                                             #
# =========================================================================== #

def _enum_val(v: Any) -> Any:
    """Return the ``.value`` if *v* is an enum member, else *v* unchanged."""
    if hasattr(v, "value"):
        return v.value
    return v


def _jsonable(value: Any) -> Any:
    """Recursively convert metadata values into JSON-safe structures."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "item") and callable(value.item):  # numpy scalars
        return value.item()
    return _enum_val(value)


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


# =========================================================================== #
#  Thoughts and connections                                                    #
# =========================================================================== #

def thought_node_to_dict(node: ThoughtNode) -> dict[str, Any]:
    return {
        "node_id": node.node_id,
        "content": node.content,
        "score": node.score,
        "depth": node.depth,
        "parent_id": node.parent_id,
        "metadata": _jsonable(dict(node.metadata)),
        "created_at": node.created_at,
    }


def thought_node_from_dict(data: dict[str, Any]) -> ThoughtNode:
    return ThoughtNode(
        node_id=str(data["node_id"]),
        content=str(data.get("content", "")),
        score=float(data.get("score", 0.0)),
        depth=int(data.get("depth", 0)),
        parent_id=data.get("parent_id"),
        metadata=dict(data.get("metadata", {})),  # type: ignore[arg-type]
        created_at=float(data["created_at"]),
    )


def connection_to_dict(conn: Connection) -> dict[str, Any]:
    return {
        "connection_id": conn.connection_id,
        "source_node_id": conn.source_node_id,
        "target_node_id": conn.target_node_id,
        "strength": conn.strength,
        "reasoning": conn.reasoning,
        "created_at": conn.created_at,
        "last_activated": conn.last_activated,
        "activation_count": conn.activation_count,
    }


def connection_from_dict(data: dict[str, Any]) -> Connection:
    return Connection(
        source_node_id=str(data["source_node_id"]),
        target_node_id=str(data["target_node_id"]),
        strength=float(data.get("strength", 0.0)),
        reasoning=str(data.get("reasoning", "")),
        connection_id=str(data["connection_id"]),
        created_at=float(data["created_at"]),
        last_activated=_optional_float(data.get("last_activated")),
        activation_count=int(data.get("activation_count", 0)),
    )


def synthesized_thought_to_dict(st: SynthesizedThought) -> dict[str, Any]:
    return {
        "synthesized_id": st.synthesized_id,
        "node_ids": list(st.node_ids),
        "content": st.content,
        "confidence": st.confidence,
        "created_at": st.created_at,
    }


def synthesized_thought_from_dict(data: dict[str, Any]) -> SynthesizedThought:
    return SynthesizedThought(
        node_ids=tuple(str(i) for i in data.get("node_ids", [])),
        content=str(data.get("content", "")),
        confidence=float(data.get("confidence", 0.0)),
        synthesized_id=str(data["synthesized_id"]),
        created_at=float(data["created_at"]),
    )


# =========================================================================== #
#  Exploration state                                                           #
# =========================================================================== #

def history_entry_to_dict(entry: HistoryEntry) -> dict[str, Any]:
    return {
        "depth": entry.depth,
        "thoughts": [thought_node_to_dict(t) for t in entry.thoughts],
        "values": list(entry.values),
    }


def history_entry_from_dict(data: dict[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        depth=int(data["depth"]),
        thoughts=tuple(thought_node_from_dict(t) for t in data.get("thoughts", [])),
        values=tuple(float(v) for v in data.get("values", [])),
    )


def exploration_state_to_dict(state: ExplorationState) -> dict[str, Any]:
    return {
        "query": state.query,
        "depth": state.depth,
        "thoughts": [thought_node_to_dict(t) for t in state.thoughts],
        "value": state.value,
        "history": [history_entry_to_dict(h) for h in state.history],
        "stop_reason": _enum_val(state.stop_reason),
    }


def exploration_state_from_dict(data: dict[str, Any]) -> ExplorationState:
    stop_reason = data.get("stop_reason")
    return ExplorationState(
        query=str(data["query"]),
        depth=int(data.get("depth", 0)),
        thoughts=tuple(thought_node_from_dict(t) for t in data.get("thoughts", [])),
        value=float(data.get("value", 0.0)),
        history=tuple(history_entry_from_dict(h) for h in data.get("history", [])),
        stop_reason=StopReason(stop_reason) if stop_reason else None,
    )


# =========================================================================== #
#  Research plan                                                               #
# =========================================================================== #

def research_query_to_dict(q: ResearchQuery) -> dict[str, Any]:
    return {
        "query": q.query,
        "purpose": q.purpose,
        "query_type": _enum_val(q.query_type),
        "priority": q.priority,
    }


def research_query_from_dict(data: dict[str, Any]) -> ResearchQuery:
    return ResearchQuery(
        query=str(data["query"]),
        purpose=str(data.get("purpose", "")),
        query_type=QueryType(data.get("query_type", "general")),
        priority=int(data.get("priority", 1)),
    )


def research_plan_to_dict(plan: ResearchPlan) -> dict[str, Any]:
    return {
        "topic": plan.topic,
        "approach": plan.approach,
        "description": plan.description,
        "main_topics": list(plan.main_topics),
        "subtopics": list(plan.subtopics),
        "queries": [research_query_to_dict(q) for q in plan.queries],
        "reasoning": plan.reasoning,
    }


def research_plan_from_dict(data: dict[str, Any]) -> ResearchPlan:
    return ResearchPlan(
        topic=str(data["topic"]),
        approach=str(data.get("approach", "")),
        description=str(data.get("description", "")),
        main_topics=tuple(str(t) for t in data.get("main_topics", [])),
        subtopics=tuple(str(t) for t in data.get("subtopics", [])),
        queries=tuple(research_query_from_dict(q) for q in data.get("queries", [])),
        reasoning=str(data.get("reasoning", "")),
    )


# =========================================================================== #
#  Diagnostics                                                                 #
# =========================================================================== #

def network_metrics_to_dict(m: NetworkMetrics) -> dict[str, Any]:
    return {
        "node_count": m.node_count,
        "connection_count": m.connection_count,
        "average_strength": m.average_strength,
        "average_score": m.average_score,
        "connection_density": m.connection_density,
        "timestamp": m.timestamp,
    }


def network_metrics_from_dict(data: dict[str, Any]) -> NetworkMetrics:
    return NetworkMetrics(
        node_count=int(data.get("node_count", 0)),
        connection_count=int(data.get("connection_count", 0)),
        average_strength=float(data.get("average_strength", 0.0)),
        average_score=float(data.get("average_score", 0.0)),
        connection_density=float(data.get("connection_density", 0.0)),
        timestamp=float(data["timestamp"]),
    )


def reasoning_step_to_dict(step: ReasoningStep) -> dict[str, Any]:
    return {
        "step_id": step.step_id,
        "timestamp": step.timestamp,
        "step_type": step.step_type,
        "title": step.title,
        "content": step.content,
        "metadata": _jsonable(dict(step.metadata)),
    }


def reasoning_step_from_dict(data: dict[str, Any]) -> ReasoningStep:
    return ReasoningStep(
        step_type=str(data["step_type"]),
        title=str(data.get("title", "")),
        content=str(data.get("content", "")),
        metadata=dict(data.get("metadata", {})),
        step_id=str(data["step_id"]),
        timestamp=float(data["timestamp"]),
    )


# =========================================================================== #
#  Outcome                                                                     #
# =========================================================================== #

def outcome_to_dict(outcome: ResearchOutcome) -> dict[str, Any]:
    return {
        "query": outcome.query,
        "plan": research_plan_to_dict(outcome.plan),
        "final_state": exploration_state_to_dict(outcome.final_state),
        "best_path": [thought_node_to_dict(n) for n in outcome.best_path],
        "reasoning_steps": [reasoning_step_to_dict(s) for s in outcome.reasoning_steps],
        "synthesized_thoughts": [
            synthesized_thought_to_dict(s) for s in outcome.synthesized_thoughts
        ],
        "network_metrics": (
            network_metrics_to_dict(outcome.network_metrics)
            if outcome.network_metrics is not None
            else None
        ),
        "stop_reason": _enum_val(outcome.stop_reason),
    }


def outcome_from_dict(data: dict[str, Any]) -> ResearchOutcome:
    metrics = data.get("network_metrics")
    stop_reason = data.get("stop_reason")
    return ResearchOutcome(
        query=str(data["query"]),
        plan=research_plan_from_dict(data["plan"]),
        final_state=exploration_state_from_dict(data["final_state"]),
        best_path=tuple(thought_node_from_dict(n) for n in data.get("best_path", [])),
        reasoning_steps=tuple(
            reasoning_step_from_dict(s) for s in data.get("reasoning_steps", [])
        ),
        synthesized_thoughts=tuple(
            synthesized_thought_from_dict(s)
            for s in data.get("synthesized_thoughts", [])
        ),
        network_metrics=network_metrics_from_dict(metrics) if metrics else None,
        stop_reason=StopReason(stop_reason) if stop_reason else None,
    )


# =========================================================================== #
#  JSON helpers                                                                #
# =========================================================================== #

def outcome_to_json(outcome: ResearchOutcome, *, indent: int | None = 2) -> str:
    """Serialize a research outcome to a JSON string."""
    return json.dumps(outcome_to_dict(outcome), indent=indent, ensure_ascii=False)


def outcome_from_json(json_str: str) -> ResearchOutcome:
    """Deserialize a JSON string produced by :func:`outcome_to_json`."""
    data = json.loads(json_str)
    if not isinstance(data, dict):
        raise ValueError("Top-level JSON must be an object")
    return outcome_from_dict(data)
