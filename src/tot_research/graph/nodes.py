"""LangGraph node functions for the research planning pipeline.

Each factory closes over the strategies it needs and returns an async node
that takes a ``ResearchState`` and returns a partial update dict.  The nodes
only orchestrate; all logic lives in the service classes.

A failure while seeding degrades to an empty frontier, and a failure while
synthesizing degrades to a minimal plan built from the query, so a run
always produces a usable outcome.

One deadline, fixed by the seed node, bounds the whole run: seeding and
plan synthesis are cut off with ``asyncio.wait_for`` and the beam search
receives whatever time is left.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from typing import Any, TypeVar

import numpy as np

from tot_research.domain.enums import StopReason
from tot_research.domain.events import PlanSynthesized
from tot_research.domain.exceptions import InvalidConfigurationError
from tot_research.domain.values import (
    ExplorationState,
    HistoryEntry,
    ReasoningStep,
    SynthesizedThought,
    ThoughtNode,
)
from tot_research.infrastructure.config import HebbianConfig, PlanConfig, TotConfig
from tot_research.infrastructure.event_bus import EventBus
from tot_research.services.aggregation import BaseConnectionProposer
from tot_research.services.beam_search import BeamSearchEngine, best_path
from tot_research.services.evaluation import ActivityStateEvaluator
from tot_research.services.generation import (
    BaseThoughtGenerator,
    ThoughtExpander,
    seed_initial_state,
)
from tot_research.services.hebbian import ConnectionAdapter
from tot_research.services.store import ThoughtGraph
from tot_research.services.synthesis import (
    BasePlanSynthesizer,
    fallback_plan,
    optimize_queries,
    select_path,
)

logger = logging.getLogger(__name__)

Node = Callable[[dict[str, Any]], Coroutine[Any, Any, dict[str, Any]]]
T = TypeVar("T")


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(0.0, deadline - asyncio.get_running_loop().time())


async def _within(awaitable: Awaitable[T], deadline: float | None) -> T:
    """Await *awaitable*, raising ``asyncio.TimeoutError`` past *deadline*."""
    return await asyncio.wait_for(awaitable, _remaining(deadline))


def _run_deadline(state: dict[str, Any], tot_config: TotConfig) -> float | None:
    timeout = state.get("timeout")
    if timeout is None:
        timeout = tot_config.timeout_seconds
    if timeout is None:
        return None
    if timeout <= 0:
        raise InvalidConfigurationError(
            f"timeout must be positive, got {timeout}", field_name="timeout"
        )
    return asyncio.get_running_loop().time() + timeout


async def _propose_connections(
    proposer: BaseConnectionProposer | None,
    query: str,
    nodes: Sequence[ThoughtNode],
    graph: ThoughtGraph,
    deadline: float | None = None,
) -> tuple[list[SynthesizedThought], list[str]]:
    """Merge proposed connections into *graph*; return synthesized thoughts and errors."""
    if proposer is None or len(nodes) < 2:
        return [], []
    try:
        proposal = await _within(
            proposer.propose(query, nodes, graph.connections), deadline
        )
    except asyncio.TimeoutError:
        logger.warning("Connection proposal timed out")
        return [], ["connections: timed out"]
    except Exception as exc:
        logger.warning("Connection proposal failed: %s", exc)
        return [], [f"connections: {exc}"]
    added = graph.merge_connections(proposal.connections)
    logger.debug("Merged %d new connections into the thought graph", added)
    return list(proposal.synthesized), []


# ===================================================================== #
#  seed                                                                  #
# ===================================================================== #


def make_seed_node(
    generator: BaseThoughtGenerator,
    tot_config: TotConfig,
    proposer: BaseConnectionProposer | None = None,
) -> Node:
    """Create the node that generates root thoughts and the initial graph."""

    async def seed_node(state: dict[str, Any]) -> dict[str, Any]:
        query = state["query"]
        graph = ThoughtGraph()
        errors: list[str] = []
        deadline = _run_deadline(state, tot_config)

        try:
            initial = await _within(
                seed_initial_state(generator, query, tot_config.branching_factor),
                deadline,
            )
        except asyncio.TimeoutError:
            logger.warning("seed: initial thought generation timed out")
            errors.append("seed: timed out")
            initial = ExplorationState.initial(query, ())
        except Exception as exc:
            logger.warning("seed: initial thought generation failed: %s", exc)
            errors.append(f"seed: {exc}")
            initial = ExplorationState.initial(query, ())

        graph.add_nodes(initial.thoughts)
        synthesized, proposal_errors = await _propose_connections(
            proposer, query, initial.thoughts, graph, deadline
        )
        errors.extend(proposal_errors)

        step = ReasoningStep(
            step_type="planning",
            title="Initial thoughts generated",
            content="\n".join(f"- {t.content}" for t in initial.thoughts)
            or "No initial thoughts could be generated.",
            metadata={
                "thought_count": len(initial.thoughts),
                "connection_count": len(graph.connections),
            },
        )
        logger.info(
            "seed: %d root thoughts, %d connections",
            len(initial.thoughts),
            len(graph.connections),
        )
        return {
            "deadline": deadline,
            "thought_graph": graph,
            "initial_state": initial,
            "reasoning_steps": [step],
            "synthesized_thoughts": synthesized,
            "errors": errors,
        }

    return seed_node


# ===================================================================== #
#  explore                                                               #
# ===================================================================== #


def make_explore_node(
    generator: BaseThoughtGenerator,
    tot_config: TotConfig,
    hebbian_config: HebbianConfig,
    proposer: BaseConnectionProposer | None = None,
    evaluator: Any | None = None,
    bus: EventBus | None = None,
) -> Node:
    """Create the node running the beam search plus one learning cycle per depth.

    When *evaluator* is ``None`` candidates are ranked by
    ``ActivityStateEvaluator`` over the run's thought graph.
    """
    engine = BeamSearchEngine(tot_config, bus=bus)
    expander = ThoughtExpander(generator, tot_config.branching_factor)

    async def explore_node(state: dict[str, Any]) -> dict[str, Any]:
        query = state["query"]
        graph: ThoughtGraph = state["thought_graph"]
        adapter = ConnectionAdapter(hebbian_config, bus=bus)
        evaluate = (
            evaluator
            if evaluator is not None
            else ActivityStateEvaluator(graph, hebbian_config.decay_factor)
        )

        steps: list[ReasoningStep] = []
        synthesized: list[SynthesizedThought] = []
        errors: list[str] = []

        async def on_depth_complete(entry: HistoryEntry) -> None:
            graph.add_nodes(t for t in entry.thoughts if t.node_id not in graph)
            found, proposal_errors = await _propose_connections(
                proposer, query, entry.thoughts, graph
            )
            synthesized.extend(found)
            errors.extend(proposal_errors)

            metadata: dict[str, Any] = {
                "depth": entry.depth,
                "frontier_size": len(entry.thoughts),
                "values": list(entry.values),
            }
            if hebbian_config.enabled:
                result = adapter.apply(graph)
                metadata["pruned_connections"] = result.pruned_count
                if result.metrics is not None:
                    metadata["average_strength"] = result.metrics.average_strength

            steps.append(
                ReasoningStep(
                    step_type="exploration",
                    title=f"Depth {entry.depth} explored",
                    content="\n".join(f"- {t.content}" for t in entry.thoughts),
                    metadata=metadata,
                )
            )

        initial: ExplorationState = state["initial_state"]
        remaining = _remaining(state.get("deadline"))
        if remaining is not None and remaining <= 0:
            logger.warning("explore: deadline passed before exploration started")
            final = dataclasses.replace(
                initial,
                history=initial.history
                or (HistoryEntry(depth=initial.depth, thoughts=initial.thoughts),),
                stop_reason=StopReason.TIMEOUT,
            )
        else:
            final = await engine.run(
                initial,
                expander,
                evaluate,
                timeout=remaining,
                cancel_event=state.get("cancel_event"),
                on_depth_complete=on_depth_complete,
            )
        stop_reason = final.stop_reason.value if final.stop_reason else ""
        steps.append(
            ReasoningStep(
                step_type="exploration",
                title="Exploration finished",
                content=f"Stopped at depth {final.depth} ({stop_reason}).",
                metadata={"depth": final.depth, "value": final.value},
            )
        )
        return {
            "final_state": final,
            "stop_reason": stop_reason,
            "reasoning_steps": steps,
            "synthesized_thoughts": synthesized,
            "errors": errors,
        }

    return explore_node


# ===================================================================== #
#  synthesize                                                            #
# ===================================================================== #


def make_synthesize_node(
    synthesizer: BasePlanSynthesizer,
    plan_config: PlanConfig,
    bus: EventBus | None = None,
) -> Node:
    """Create the node that selects a path and turns it into a research plan."""

    async def synthesize_node(state: dict[str, Any]) -> dict[str, Any]:
        query = state["query"]
        final: ExplorationState = state["final_state"]
        graph: ThoughtGraph | None = state.get("thought_graph")
        candidates = list(final.history[-1].thoughts) if final.history else []
        rng = np.random.default_rng(plan_config.seed)

        selection = None
        path: list[ThoughtNode] = []
        errors: list[str] = []
        fallback = False
        try:
            selection = select_path(candidates, plan_config.strategy, rng)
            anchored = dataclasses.replace(final, thoughts=(selection.selected,))
            path = best_path(anchored, graph)
            plan = await _within(
                synthesizer.synthesize(query, path, plan_config),
                state.get("deadline"),
            )
        except asyncio.TimeoutError:
            logger.warning("synthesize: timed out; falling back to a minimal plan")
            errors.append("synthesize: timed out")
            plan = fallback_plan(query, reason="Plan synthesis timed out.")
            fallback = True
        except Exception as exc:
            logger.warning("synthesize: falling back to a minimal plan: %s", exc)
            errors.append(f"synthesize: {exc}")
            plan = fallback_plan(query, reason=f"Plan synthesis failed: {exc}")
            fallback = True

        plan = dataclasses.replace(
            plan, queries=optimize_queries(plan.queries, plan_config.target_tool)
        )
        if bus is not None:
            bus.publish(
                PlanSynthesized(
                    source_id="synthesize",
                    query=query,
                    plan=plan,
                    path_length=len(path),
                    fallback=fallback,
                )
            )

        step = ReasoningStep(
            step_type="planning",
            title="Research plan synthesized",
            content=f"Approach: {plan.approach}\n"
            + "\n".join(f"- {q.query}" for q in plan.queries),
            metadata={
                "strategy": plan_config.selection_strategy,
                "selection": selection.reasoning if selection else "",
                "query_count": len(plan.queries),
                "fallback": fallback,
            },
        )
        return {
            "selection": selection,
            "best_path": path,
            "plan": plan,
            "plan_fallback": fallback,
            "network_metrics": graph.network_state() if graph is not None else None,
            "reasoning_steps": [step],
            "errors": errors,
        }

    return synthesize_node
