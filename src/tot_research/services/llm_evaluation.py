"""LLM-based thought evaluation using LangChain structured output.

Scores each thought against stage-specific criteria.  The overall score
of a thought is the mean of its criterion scores; the re-scored thoughts
are returned as NEW nodes carrying ``evaluation_criteria`` and
``reasoning`` in their metadata.

The evaluator is also a state evaluator: called on an exploration state,
it returns the mean re-scored quality of the state's thoughts in [0, 1].
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
from langchain_core.language_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from tot_research.domain.enums import ThoughtStage
from tot_research.domain.exceptions import ThoughtEvaluationError
from tot_research.domain.values import ExplorationState, ThoughtNode
from tot_research.services.evaluation import BaseStateEvaluator
from tot_research.services.generation import stage_for_depth

logger = logging.getLogger(__name__)

DEFAULT_CRITERIA: dict[ThoughtStage, tuple[str, ...]] = {
    ThoughtStage.PLANNING: ("coverage", "feasibility", "uniqueness", "efficiency"),
    ThoughtStage.ANALYSIS: (
        "evidence_strength",
        "logical_consistency",
        "explanatory_power",
        "counter_evidence",
    ),
    ThoughtStage.INSIGHT: ("novelty", "practicality", "evidential_support", "importance"),
}


# -- Structured output schemas -----------------------------------------------


class ThoughtAssessment(BaseModel):
    """Assessment of one thought, identified by its position in the prompt."""

    index: int = Field(ge=0, description="Zero-based position of the thought")
    criteria_scores: dict[str, float] = Field(
        default_factory=dict,
        description="Per-criterion scores (criterion name -> score in [0, 10])",
    )
    reasoning: str = Field(default="", description="Short justification")


class EvaluationBatch(BaseModel):
    """Assessments for a batch of thoughts."""

    assessments: list[ThoughtAssessment] = Field(description="One entry per thought")


# -- Prompt ------------------------------------------------------------------

_EVALUATION_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a critical reviewer in a tree-of-thoughts research "
            "planner. Score every thought from 0 to 10 on each criterion, "
            "then justify the scores briefly. Be strict and consistent "
            "across thoughts.",
        ),
        (
            "human",
            "## Research query\n{query}\n\n"
            "## Stage\n{stage}\n\n"
            "## Criteria\n{criteria}\n\n"
            "## Thoughts\n{thoughts}\n\n"
            "Assess each thought by its index.",
        ),
    ]
)


# -- LLMThoughtEvaluator -----------------------------------------------------


class LLMThoughtEvaluator(BaseStateEvaluator):
    """Criteria-based thought scoring through an LLM.

    Parameters
    ----------
    model:
        A LangChain chat model.
    criteria:
        Optional override of the criteria for every stage.
    prompt:
        Optional custom ``ChatPromptTemplate``.
    """

    def __init__(
        self,
        model: BaseChatModel,
        criteria: Sequence[str] | None = None,
        prompt: ChatPromptTemplate | None = None,
    ) -> None:
        self.model = model
        self.criteria = tuple(criteria) if criteria else ()
        self._prompt = prompt or _EVALUATION_PROMPT
        self._chain = self._build_chain()

    def _build_chain(self) -> Any:
        structured_model = self.model.with_structured_output(EvaluationBatch)
        return self._prompt | structured_model

    def criteria_for(self, stage: ThoughtStage) -> tuple[str, ...]:
        return self.criteria or DEFAULT_CRITERIA[stage]

    async def evaluate_thoughts(
        self,
        query: str,
        thoughts: Sequence[ThoughtNode],
        stage: ThoughtStage = ThoughtStage.PLANNING,
    ) -> list[ThoughtNode]:
        """Return re-scored copies of *thoughts*, in the same order.

        A thought the model did not assess keeps its score.

        Raises
        ------
        ThoughtEvaluationError
            If the model call fails.
        """
        if not thoughts:
            return []
        criteria = self.criteria_for(stage)
        try:
            result: EvaluationBatch = await self._chain.ainvoke(
                {
                    "query": query,
                    "stage": stage.value,
                    "criteria": "\n".join(f"- {c}" for c in criteria),
                    "thoughts": "\n\n".join(
                        f"[{i}] {t.content}" for i, t in enumerate(thoughts)
                    ),
                }
            )
        except Exception as exc:
            raise ThoughtEvaluationError(
                f"LLM thought evaluation failed: {exc}",
                evaluator=type(self).__name__,
            ) from exc

        by_index = {a.index: a for a in result.assessments}
        rescored: list[ThoughtNode] = []
        for i, thought in enumerate(thoughts):
            assessment = by_index.get(i)
            if assessment is None or not assessment.criteria_scores:
                rescored.append(thought)
                continue
            scores = {
                name: float(min(10.0, max(0.0, value)))
                for name, value in assessment.criteria_scores.items()
            }
            overall = float(np.mean(list(scores.values())))
            rescored.append(
                thought.with_evaluation(overall, scores, assessment.reasoning)
            )
        return rescored

    async def evaluate(self, state: ExplorationState) -> float:
        if not state.thoughts:
            return 0.0
        stage = stage_for_depth(state.depth)
        rescored = await self.evaluate_thoughts(state.query, state.thoughts, stage)
        value = float(np.mean([t.score for t in rescored])) / 10
        logger.debug(
            "LLMThoughtEvaluator: depth=%d stage=%s value=%.4f",
            state.depth,
            stage.value,
            value,
        )
        return value
