"""LLM-based research plan synthesis using LangChain structured output."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Literal

from langchain_core.language_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from tot_research.domain.enums import QueryType
from tot_research.domain.exceptions import PlanSynthesisError
from tot_research.domain.values import ResearchPlan, ResearchQuery, ThoughtNode
from tot_research.infrastructure.config import PlanConfig
from tot_research.services.synthesis import DEFAULT_APPROACH, BasePlanSynthesizer

logger = logging.getLogger(__name__)


# -- Structured output schemas -----------------------------------------------


class PlanQuery(BaseModel):
    """A search query proposed for the plan."""

    query: str = Field(description="The search query text")
    purpose: str = Field(default="", description="What the query is meant to find")
    query_type: Literal["general", "specific", "technical"] = Field(
        default="general", description="Query classification"
    )
    priority: int = Field(default=1, ge=1, description="1 = run first")


class PlanOutput(BaseModel):
    """Structured research plan."""

    approach: str = Field(description="Name of the research approach")
    description: str = Field(default="", description="How the research will proceed")
    main_topics: list[str] = Field(default_factory=list)
    subtopics: list[str] = Field(default_factory=list)
    queries: list[PlanQuery] = Field(default_factory=list)
    reasoning: str = Field(default="", description="Why this plan fits the query")


# -- Prompt ------------------------------------------------------------------

_SYNTHESIS_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a research planner. Turn the chosen line of reasoning "
            "into a concrete research plan: an approach, the main topics, at "
            "most {max_subtopics} subtopics and at most {max_queries} search "
            "queries ordered by priority. Queries must be short and "
            "self-contained.",
        ),
        (
            "human",
            "## Research query\n{query}\n\n"
            "## Reasoning path (root first)\n{path}\n\n"
            "Produce the research plan.",
        ),
    ]
)


# -- LLMPlanSynthesizer ------------------------------------------------------


class LLMPlanSynthesizer(BasePlanSynthesizer):
    """Plan synthesizer backed by a LangChain chat model.

    Parameters
    ----------
    model:
        A LangChain chat model.
    prompt:
        Optional custom ``ChatPromptTemplate``.
    """

    def __init__(
        self,
        model: BaseChatModel,
        prompt: ChatPromptTemplate | None = None,
    ) -> None:
        self.model = model
        self._prompt = prompt or _SYNTHESIS_PROMPT
        self._chain = self._build_chain()

    def _build_chain(self) -> Any:
        structured_model = self.model.with_structured_output(PlanOutput)
        return self._prompt | structured_model

    async def synthesize(
        self,
        query: str,
        path: Sequence[ThoughtNode],
        config: PlanConfig | None = None,
    ) -> ResearchPlan:
        if not path:
            raise PlanSynthesisError("Cannot synthesize a plan from an empty path", query=query)
        cfg = config or PlanConfig()
        try:
            result: PlanOutput = await self._chain.ainvoke(
                {
                    "query": query,
                    "path": "\n\n".join(
                        f"[depth {n.depth}, score {n.score:.1f}] {n.content}" for n in path
                    ),
                    "max_subtopics": cfg.max_subtopics,
                    "max_queries": cfg.max_queries,
                }
            )
        except Exception as exc:
            raise PlanSynthesisError(
                f"LLM plan synthesis failed: {exc}", query=query
            ) from exc

        queries = sorted(result.queries, key=lambda q: q.priority)[: cfg.max_queries]
        if not queries:
            queries = [PlanQuery(query=query, purpose="baseline information")]
        plan = ResearchPlan(
            topic=query,
            approach=result.approach or DEFAULT_APPROACH,
            description=result.description or path[-1].content,
            main_topics=tuple(result.main_topics),
            subtopics=tuple(result.subtopics[: cfg.max_subtopics]),
            queries=tuple(
                ResearchQuery(
                    query=q.query,
                    purpose=q.purpose,
                    query_type=QueryType(q.query_type),
                    priority=q.priority,
                )
                for q in queries
            ),
            reasoning=result.reasoning,
        )
        logger.debug(
            "LLMPlanSynthesizer: %d queries, %d subtopics",
            len(plan.queries),
            len(plan.subtopics),
        )
        return plan
