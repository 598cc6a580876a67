"""Thought generation strategies and frontier expansion.

The core never produces thought text itself; it asks a generator for up to
``count`` scored thoughts and wraps each one into a brand-new node.

Classes
-------
BaseThoughtGenerator
    Abstract async generator: ``generate(query, count) -> [GeneratedThought]``.
TemplateThoughtGenerator
    Deterministic offline generator built from stage templates.
ThoughtExpander
    The ``generate_next_states`` callback handed to the beam search engine.

Functions
---------
stage_for_depth
    Map an exploration depth to the thought stage used to expand it.
seed_initial_state
    Ask a generator for root thoughts and build the depth-0 state.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import numpy as np

from tot_research.domain.enums import ThoughtStage
from tot_research.domain.exceptions import (
    InvalidConfigurationError,
    ThoughtGenerationError,
)
from tot_research.domain.values import (
    ExplorationState,
    GeneratedThought,
    ThoughtMetadata,
    ThoughtNode,
)

logger = logging.getLogger(__name__)


def stage_for_depth(depth: int) -> ThoughtStage:
    """Depth 0 plans, depth 1 analyses, anything deeper looks for insights."""
    if depth <= 0:
        return ThoughtStage.PLANNING
    if depth == 1:
        return ThoughtStage.ANALYSIS
    return ThoughtStage.INSIGHT


def _clamp_score(score: float) -> float:
    return float(min(10.0, max(0.0, score)))


# ===================================================================== #
#  Generator strategies                                                  #
# ===================================================================== #


class BaseThoughtGenerator(ABC):
    """Abstract base for thought generators.

    Implementations return **at most** *count* thoughts and may return
    fewer.  Failures should surface as ``ThoughtGenerationError``.
    """

    @abstractmethod
    async def generate(
        self,
        query: str,
        count: int,
        *,
        stage: ThoughtStage = ThoughtStage.PLANNING,
        context: str = "",
    ) -> list[GeneratedThought]:
        """Return up to *count* scored thoughts about *query*."""


_TEMPLATES: dict[ThoughtStage, tuple[str, ...]] = {
    ThoughtStage.PLANNING: (
        "Survey the background and key definitions of {query}",
        "Compare the competing approaches to {query}",
        "Track the latest developments around {query}",
        "Assess practical applications and case studies of {query}",
        "Identify open problems and criticism of {query}",
        "Map the main actors and sources on {query}",
    ),
    ThoughtStage.ANALYSIS: (
        "Hypothesis: {focus} is driven mainly by technical constraints",
        "Hypothesis: {focus} depends on adoption and cost factors",
        "Hypothesis: evidence on {focus} is contested across sources",
        "Hypothesis: {focus} changed significantly in recent work",
        "Hypothesis: {focus} is best explained by its historical context",
    ),
    ThoughtStage.INSIGHT: (
        "Insight: the strongest evidence on {focus} comes from primary data",
        "Insight: {focus} has a clear practical implication for practitioners",
        "Insight: gaps in {focus} point to follow-up research questions",
        "Insight: trade-offs in {focus} dominate the outcome",
        "Insight: {focus} connects to adjacent fields in non-obvious ways",
    ),
}


class TemplateThoughtGenerator(BaseThoughtGenerator):
    """Offline generator producing stage-specific template thoughts.

    Scores are drawn from a seeded numpy generator, so two generators built
    with the same seed produce identical runs.

    Parameters
    ----------
    seed:
        Seed for ``numpy.random.default_rng``.
    score_range:
        ``(low, high)`` bounds of the drawn scores, within [0, 10].
    """

    def __init__(
        self,
        seed: int | None = None,
        score_range: tuple[float, float] = (5.0, 9.5),
    ) -> None:
        low, high = score_range
        if not (0.0 <= low <= high <= 10.0):
            raise ValueError(f"score_range must lie within [0, 10], got {score_range}")
        self._rng = np.random.default_rng(seed)
        self._low = low
        self._high = high

    async def generate(
        self,
        query: str,
        count: int,
        *,
        stage: ThoughtStage = ThoughtStage.PLANNING,
        context: str = "",
    ) -> list[GeneratedThought]:
        templates = _TEMPLATES[stage]
        focus = (context.splitlines()[0] if context else query).strip() or query
        thoughts: list[GeneratedThought] = []
        for i in range(max(0, count)):
            template = templates[i % len(templates)]
            score = round(float(self._rng.uniform(self._low, self._high)), 2)
            metadata: ThoughtMetadata = {
                "stage": stage.value,
                "index": i,
                "source": "template",
            }
            thoughts.append(
                GeneratedThought(
                    content=template.format(query=query, focus=focus),
                    score=score,
                    metadata=metadata,
                )
            )
        return thoughts


# ===================================================================== #
#  Frontier expansion                                                    #
# ===================================================================== #


async def seed_initial_state(
    generator: BaseThoughtGenerator,
    query: str,
    count: int,
    stage: ThoughtStage = ThoughtStage.PLANNING,
) -> ExplorationState:
    """Generate up to *count* root thoughts and wrap them in a depth-0 state."""
    generated = await generator.generate(query, count, stage=stage)
    roots = []
    for i, thought in enumerate(generated[:count]):
        metadata = dict(thought.metadata)
        metadata.setdefault("stage", stage.value)
        metadata.setdefault("index", i)
        roots.append(
            ThoughtNode(
                content=thought.content,
                score=_clamp_score(thought.score),
                depth=0,
                metadata=metadata,  # type: ignore[arg-type]
            )
        )
    logger.debug("seed_initial_state: %d root thoughts for %r", len(roots), query)
    return ExplorationState.initial(query, roots)


class ThoughtExpander:
    """Expand a state's frontier into single-thought candidate states.

    Every frontier node is expanded concurrently into up to
    *branching_factor* children; each child becomes its own candidate state
    at ``depth + 1``.  Candidates come back in frontier order, then in the
    order the generator returned them.

    A node whose expansion fails is logged and skipped.  When every node of
    the frontier fails, a ``ThoughtGenerationError`` is raised so the engine
    drops the whole state.

    Parameters
    ----------
    generator:
        The thought generator strategy.
    branching_factor:
        Maximum children requested per node.
    stage:
        Fixed stage for every expansion; ``None`` derives it from the child
        depth via :func:`stage_for_depth`.
    """

    def __init__(
        self,
        generator: BaseThoughtGenerator,
        branching_factor: int = 5,
        stage: ThoughtStage | None = None,
    ) -> None:
        if branching_factor < 1:
            raise InvalidConfigurationError(
                f"branching_factor must be >= 1, got {branching_factor}",
                field_name="branching_factor",
            )
        self._generator = generator
        self._branching_factor = branching_factor
        self._stage = stage

    @property
    def branching_factor(self) -> int:
        return self._branching_factor

    async def __call__(self, state: ExplorationState) -> list[ExplorationState]:
        if not state.thoughts:
            return []

        results = await asyncio.gather(
            *(self._expand_node(state.query, node) for node in state.thoughts),
            return_exceptions=True,
        )

        children: list[ThoughtNode] = []
        failures: list[Exception] = []
        for node, result in zip(state.thoughts, results):
            if isinstance(result, Exception):
                logger.warning(
                    "ThoughtExpander: expansion of %s failed: %s", node.node_id, result
                )
                failures.append(result)
                continue
            if isinstance(result, BaseException):
                raise result
            children.extend(result)

        if failures and len(failures) == len(state.thoughts):
            raise ThoughtGenerationError(
                f"All {len(failures)} frontier expansions failed",
                query=state.query,
                generator=type(self._generator).__name__,
                details={"errors": [str(f) for f in failures]},
            ) from failures[0]

        return [
            ExplorationState(
                query=state.query,
                depth=state.depth + 1,
                thoughts=(child,),
                value=0.0,
            )
            for child in children
        ]

    async def _expand_node(self, query: str, node: ThoughtNode) -> list[ThoughtNode]:
        stage = self._stage or stage_for_depth(node.depth + 1)
        generated = await self._generator.generate(
            query,
            self._branching_factor,
            stage=stage,
            context=node.content,
        )
        children: list[ThoughtNode] = []
        for i, thought in enumerate(generated[: self._branching_factor]):
            metadata = dict(thought.metadata)
            metadata.setdefault("stage", stage.value)
            metadata.setdefault("index", i)
            children.append(
                node.child(thought.content, _clamp_score(thought.score), metadata)  # type: ignore[arg-type]
            )
        return children
