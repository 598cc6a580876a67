"""Build the research planning StateGraph.

``build_research_graph()`` wires three nodes into a compiled LangGraph::

    START -> seed -> explore -> synthesize -> END

Strategies are injected as keyword arguments and captured by closures, so
the state only carries data.
"""

from __future__ import annotations

from typing import Any

from langgraph.graph import END, START, StateGraph

from tot_research.graph.nodes import (
    make_explore_node,
    make_seed_node,
    make_synthesize_node,
)
from tot_research.graph.state import ResearchState
from tot_research.infrastructure.config import HebbianConfig, PlanConfig, TotConfig
from tot_research.infrastructure.event_bus import EventBus
from tot_research.services.aggregation import (
    BaseConnectionProposer,
    LexicalConnectionProposer,
)
from tot_research.services.generation import BaseThoughtGenerator
from tot_research.services.synthesis import BasePlanSynthesizer


def build_research_graph(
    generator: BaseThoughtGenerator,
    synthesizer: BasePlanSynthesizer,
    *,
    proposer: BaseConnectionProposer | None = None,
    evaluator: Any | None = None,
    tot_config: TotConfig | None = None,
    hebbian_config: HebbianConfig | None = None,
    plan_config: PlanConfig | None = None,
    bus: EventBus | None = None,
    checkpointer: Any | None = None,
) -> Any:
    """Build and compile the research planning StateGraph.

    Parameters
    ----------
    generator:
        Thought generator used for root thoughts and every expansion.
    synthesizer:
        Turns the selected path into a ``ResearchPlan``.
    proposer:
        Connection proposer; defaults to ``LexicalConnectionProposer``.
    evaluator:
        Optional state evaluator; defaults to ``ActivityStateEvaluator`` over
        each run's thought graph.
    tot_config, hebbian_config, plan_config:
        Search, learning and plan parameters (defaults when ``None``).
    bus:
        Optional event bus receiving exploration, learning and plan events.
    checkpointer:
        Optional LangGraph checkpointer.

    Returns
    -------
    CompiledStateGraph
        A compiled graph; run it with ``await app.ainvoke({"query": ...})``.
    """
    tot = tot_config or TotConfig()
    hebbian = hebbian_config or HebbianConfig()
    plan = plan_config or PlanConfig()
    hebbian.validate()
    plan.validate()
    connection_proposer = proposer if proposer is not None else LexicalConnectionProposer()

    graph = StateGraph(ResearchState)
    graph.add_node("seed", make_seed_node(generator, tot, connection_proposer))
    graph.add_node(
        "explore",
        make_explore_node(
            generator,
            tot,
            hebbian,
            proposer=connection_proposer,
            evaluator=evaluator,
            bus=bus,
        ),
    )
    graph.add_node("synthesize", make_synthesize_node(synthesizer, plan, bus=bus))

    graph.add_edge(START, "seed")
    graph.add_edge("seed", "explore")
    graph.add_edge("explore", "synthesize")
    graph.add_edge("synthesize", END)

    return graph.compile(checkpointer=checkpointer)
