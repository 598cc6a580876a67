"""LLM-based thought generation using LangChain structured output.

Asks the model for a batch of distinct thoughts for one stage of the
research pipeline -- research approaches while planning, interpretive
hypotheses while analysing, key insights at the end -- each with a
self-assessed 0-10 score.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from tot_research.domain.enums import ThoughtStage
from tot_research.domain.exceptions import ThoughtGenerationError
from tot_research.domain.values import GeneratedThought, ThoughtMetadata
from tot_research.services.generation import BaseThoughtGenerator

logger = logging.getLogger(__name__)


# -- Structured output schemas -----------------------------------------------


class ThoughtProposal(BaseModel):
    """A single generated thought."""

    content: str = Field(description="The thought, with a short title on the first line")
    score: float = Field(ge=0, le=10, description="Self-assessed quality [0, 10]")
    reasoning: str = Field(default="", description="Why this thought is promising")


class ThoughtBatch(BaseModel):
    """A batch of distinct thoughts for one stage."""

    thoughts: list[ThoughtProposal] = Field(description="Distinct thoughts, best first")


# -- Prompt ------------------------------------------------------------------

_STAGE_INSTRUCTIONS: dict[ThoughtStage, str] = {
    ThoughtStage.PLANNING: (
        "Generate {count} distinct research approaches. For each give a short "
        "name, a 2-3 sentence description, 3-5 subtopics to investigate and "
        "the information sources needed."
    ),
    ThoughtStage.ANALYSIS: (
        "Generate {count} distinct interpretive hypotheses. For each give the "
        "claim in one sentence, supporting evidence and counter-evidence."
    ),
    ThoughtStage.INSIGHT: (
        "Generate {count} key insights. For each give a short title, a 2-3 "
        "sentence explanation, supporting facts and the practical implication."
    ),
}

_GENERATION_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a research assistant exploring a question as a tree of "
            "thoughts. Each thought must take a clearly different angle from "
            "the others. Score every thought from 0 (useless) to 10 "
            "(excellent) for how much it advances the research.",
        ),
        (
            "human",
            "## Research query\n{query}\n\n"
            "## Thought being expanded\n{context}\n\n"
            "## Task\n{instructions}",
        ),
    ]
)


# -- LLMThoughtGenerator -----------------------------------------------------


class LLMThoughtGenerator(BaseThoughtGenerator):
    """Thought generator backed by a LangChain chat model.

    Parameters
    ----------
    model:
        A LangChain chat model.
    prompt:
        Optional custom ``ChatPromptTemplate``; it receives ``query``,
        ``context`` and ``instructions``.
    """

    def __init__(
        self,
        model: BaseChatModel,
        prompt: ChatPromptTemplate | None = None,
    ) -> None:
        self.model = model
        self._prompt = prompt or _GENERATION_PROMPT
        self._chain = self._build_chain()

    def _build_chain(self) -> Any:
        structured_model = self.model.with_structured_output(ThoughtBatch)
        return self._prompt | structured_model

    async def generate(
        self,
        query: str,
        count: int,
        *,
        stage: ThoughtStage = ThoughtStage.PLANNING,
        context: str = "",
    ) -> list[GeneratedThought]:
        try:
            result: ThoughtBatch = await self._chain.ainvoke(
                {
                    "query": query,
                    "context": context or "(none -- generate initial thoughts)",
                    "instructions": _STAGE_INSTRUCTIONS[stage].format(count=count),
                }
            )
        except Exception as exc:
            raise ThoughtGenerationError(
                f"LLM thought generation failed: {exc}",
                query=query,
                generator=type(self).__name__,
            ) from exc

        thoughts: list[GeneratedThought] = []
        for i, proposal in enumerate(result.thoughts[:count]):
            metadata: ThoughtMetadata = {
                "stage": stage.value,
                "index": i,
                "source": "llm",
            }
            if proposal.reasoning:
                metadata["reasoning"] = proposal.reasoning
            thoughts.append(
                GeneratedThought(
                    content=proposal.content,
                    score=proposal.score,
                    metadata=metadata,
                )
            )
        logger.debug(
            "LLMThoughtGenerator: %d %s thoughts for %r",
            len(thoughts),
            stage.value,
            query,
        )
        return thoughts
