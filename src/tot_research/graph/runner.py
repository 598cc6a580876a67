"""High-level entry point for planning one research query.

``ResearchPlanner`` compiles the research graph once and turns each query
into a ``ResearchOutcome``: the plan, the best path, the exploration state
with its full history, the reasoning trace and the final network metrics.

Example -- offline::

    planner = ResearchPlanner(
        TemplateThoughtGenerator(seed=7),
        TemplatePlanSynthesizer(),
        tot_config=TotConfig(beam_width=3, max_depth=2),
    )
    outcome = planner.plan_sync("solid-state batteries")

Example -- LLM-backed::

    planner = ResearchPlanner.from_model(ChatOpenAI(model="o4-mini"))
    outcome = await planner.plan("solid-state batteries", timeout=120)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from tot_research.domain.enums import StopReason
from tot_research.domain.values import ResearchOutcome
from tot_research.graph.builder import build_research_graph
from tot_research.infrastructure.config import HebbianConfig, PlanConfig, TotConfig
from tot_research.infrastructure.event_bus import EventBus
from tot_research.services.aggregation import (
    BaseConnectionProposer,
    LLMConnectionProposer,
)
from tot_research.services.generation import BaseThoughtGenerator
from tot_research.services.llm_generation import LLMThoughtGenerator
from tot_research.services.llm_synthesis import LLMPlanSynthesizer
from tot_research.services.synthesis import BasePlanSynthesizer

logger = logging.getLogger(__name__)


class ResearchPlanner:
    """Runs the ``seed -> explore -> synthesize`` pipeline per query.

    Parameters
    ----------
    generator:
        Thought generator strategy.
    synthesizer:
        Plan synthesizer strategy.
    proposer, evaluator:
        Optional connection proposer and state evaluator (see
        ``build_research_graph``).
    tot_config, hebbian_config, plan_config:
        Explicit configuration; defaults when ``None``.
    bus:
        Optional event bus for progress reporting.
    """

    def __init__(
        self,
        generator: BaseThoughtGenerator,
        synthesizer: BasePlanSynthesizer,
        *,
        proposer: BaseConnectionProposer | None = None,
        evaluator: Any | None = None,
        tot_config: TotConfig | None = None,
        hebbian_config: HebbianConfig | None = None,
        plan_config: PlanConfig | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.tot_config = tot_config or TotConfig()
        self.hebbian_config = hebbian_config or HebbianConfig()
        self.plan_config = plan_config or PlanConfig()
        self.bus = bus
        self._app = build_research_graph(
            generator,
            synthesizer,
            proposer=proposer,
            evaluator=evaluator,
            tot_config=self.tot_config,
            hebbian_config=self.hebbian_config,
            plan_config=self.plan_config,
            bus=bus,
        )

    @classmethod
    def from_model(
        cls,
        model: Any,
        *,
        llm_connections: bool = False,
        **kwargs: Any,
    ) -> ResearchPlanner:
        """Build a planner whose generator and synthesizer use *model*.

        With ``llm_connections=True`` the model also proposes connections;
        otherwise the lexical proposer is used.
        """
        if llm_connections:
            kwargs.setdefault("proposer", LLMConnectionProposer(model))
        return cls(LLMThoughtGenerator(model), LLMPlanSynthesizer(model), **kwargs)

    @property
    def app(self) -> Any:
        """The compiled LangGraph."""
        return self._app

    async def plan(
        self,
        query: str,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ResearchOutcome:
        """Plan research for *query*.

        *timeout* bounds the whole run from seeding through synthesis
        (defaulting to ``TotConfig.timeout_seconds``).  Exploration
        cut short by the deadline or by *cancel_event* keeps the best state
        reached so far; a plan synthesis cut short falls back to
        ``fallback_plan``.
        """
        query = query.strip()
        if not query:
            raise ValueError("query must not be empty")

        logger.info("ResearchPlanner: planning %r", query)
        result = await self._app.ainvoke(
            {
                "query": query,
                "timeout": timeout,
                "cancel_event": cancel_event,
                "reasoning_steps": [],
                "synthesized_thoughts": [],
                "errors": [],
            }
        )

        final = result["final_state"]
        for error in result.get("errors", []):
            logger.debug("ResearchPlanner: degraded step: %s", error)
        stop_reason = final.stop_reason or (
            StopReason(result["stop_reason"]) if result.get("stop_reason") else None
        )
        return ResearchOutcome(
            query=query,
            plan=result["plan"],
            final_state=final,
            best_path=tuple(result.get("best_path", ())),
            reasoning_steps=tuple(result.get("reasoning_steps", ())),
            synthesized_thoughts=tuple(result.get("synthesized_thoughts", ())),
            network_metrics=result.get("network_metrics"),
            stop_reason=stop_reason,
        )

    def plan_sync(
        self,
        query: str,
        timeout: float | None = None,
    ) -> ResearchOutcome:
        """Blocking wrapper around :meth:`plan`."""
        return asyncio.run(self.plan(query, timeout=timeout))
