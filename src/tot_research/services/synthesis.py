"""Path selection and research plan synthesis.

After exploration the planner picks one thought from the final frontier
(``select_path``), turns the root-to-selection path into a structured
``ResearchPlan`` (a ``BasePlanSynthesizer``) and finally adapts the plan's
search queries to the search tool that will run them
(``optimize_queries``).
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable

import numpy as np

from tot_research.domain.enums import QueryType, SelectionStrategy
from tot_research.domain.exceptions import PlanSynthesisError
from tot_research.domain.values import ResearchPlan, ResearchQuery, ThoughtNode
from tot_research.infrastructure.config import PlanConfig

logger = logging.getLogger(__name__)

DEFAULT_APPROACH = "Comprehensive research approach"

DEFAULT_SUBTOPICS: tuple[str, ...] = (
    "historical background and development",
    "key technical characteristics",
    "practical applications",
    "future outlook and challenges",
    "related legal and ethical issues",
)


# ===================================================================== #
#  Path selection                                                        #
# ===================================================================== #


@dataclass(frozen=True)
class PathSelection:
    """The thought chosen to anchor the plan, and why."""

    selected: ThoughtNode
    strategy: SelectionStrategy
    reasoning: str = ""


def select_path(
    candidates: Sequence[ThoughtNode],
    strategy: SelectionStrategy | str = SelectionStrategy.BEST,
    rng: np.random.Generator | None = None,
) -> PathSelection:
    """Choose the thought the research plan is built around.

    Candidates are ranked by score (stable, so equal scores keep their
    order).  ``best`` takes the top one; ``hybrid`` merges the top two into
    a new thought scored at their mean; ``diverse`` picks uniformly among
    the top three using *rng*.

    Raises
    ------
    PlanSynthesisError
        If *candidates* is empty.
    """
    if not candidates:
        raise PlanSynthesisError("No candidate thoughts to select from")
    strategy = SelectionStrategy(strategy)
    ranked = sorted(candidates, key=lambda n: -n.score)
    top = ranked[0]

    if strategy is SelectionStrategy.HYBRID:
        if len(ranked) < 2:
            return PathSelection(top, strategy, "Only one candidate; selected it as is.")
        second = ranked[1]
        metadata = dict(top.metadata)
        metadata["merged_from"] = [top.node_id, second.node_id]
        merged = ThoughtNode(
            content=f"{top.content}\n\nCombined with: {second.content}",
            score=(top.score + second.score) / 2,
            depth=top.depth,
            parent_id=top.parent_id,
            metadata=metadata,  # type: ignore[arg-type]
        )
        return PathSelection(
            merged,
            strategy,
            f"Combined the top two thoughts (scores {top.score:.2f} and {second.score:.2f}).",
        )

    if strategy is SelectionStrategy.DIVERSE:
        generator = rng if rng is not None else np.random.default_rng()
        index = int(generator.integers(0, min(3, len(ranked))))
        return PathSelection(
            ranked[index],
            strategy,
            f"Picked candidate {index + 1} of the top {min(3, len(ranked))} for diversity.",
        )

    return PathSelection(top, strategy, f"Selected the highest score ({top.score:.2f}).")


# ===================================================================== #
#  Plan synthesis                                                        #
# ===================================================================== #


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def fallback_plan(query: str, reason: str = "") -> ResearchPlan:
    """Minimal plan built from the query alone, used when synthesis fails."""
    return ResearchPlan(
        topic=query,
        approach=DEFAULT_APPROACH,
        description=query,
        main_topics=(query,),
        queries=(
            ResearchQuery(
                query=query,
                purpose="baseline information",
                query_type=QueryType.GENERAL,
                priority=1,
            ),
        ),
        reasoning=reason or "Fallback plan built from the query.",
    )


class BasePlanSynthesizer(ABC):
    """Turns a root-to-leaf thought path into a ``ResearchPlan``.

    The last element of *path* is the selected thought.
    """

    @abstractmethod
    async def synthesize(
        self,
        query: str,
        path: Sequence[ThoughtNode],
        config: PlanConfig | None = None,
    ) -> ResearchPlan:
        """Return the research plan; raise ``PlanSynthesisError`` on failure."""


class TemplatePlanSynthesizer(BasePlanSynthesizer):
    """Deterministic plan builder.

    The approach is the selected thought's first line and the main topics
    are the first lines along the path.  Queries are the plain query, one
    query per subtopic, a technical-documentation query and a
    latest-developments query, truncated to ``max_queries``.
    """

    def __init__(self, subtopics: Sequence[str] = DEFAULT_SUBTOPICS) -> None:
        self.subtopics = tuple(subtopics)

    async def synthesize(
        self,
        query: str,
        path: Sequence[ThoughtNode],
        config: PlanConfig | None = None,
    ) -> ResearchPlan:
        if not path:
            raise PlanSynthesisError("Cannot synthesize a plan from an empty path", query=query)
        cfg = config or PlanConfig()
        selected = path[-1]
        subtopics = self.subtopics[: cfg.max_subtopics]

        main_topics: list[str] = []
        for node in path:
            line = _first_line(node.content)
            if line and line not in main_topics:
                main_topics.append(line)

        queries = [
            ResearchQuery(
                query=query,
                purpose="baseline information",
                query_type=QueryType.GENERAL,
                priority=1,
            )
        ]
        for i, subtopic in enumerate(subtopics):
            queries.append(
                ResearchQuery(
                    query=f"{query} {subtopic}",
                    purpose=f"investigate subtopic '{subtopic}'",
                    query_type=QueryType.SPECIFIC,
                    priority=i + 2,
                )
            )
        queries.append(
            ResearchQuery(
                query=f"{query} technical details documentation",
                purpose="collect technical details",
                query_type=QueryType.TECHNICAL,
                priority=len(subtopics) + 2,
            )
        )
        queries.append(
            ResearchQuery(
                query=f"{query} latest developments news",
                purpose="track the latest developments",
                query_type=QueryType.SPECIFIC,
                priority=len(subtopics) + 3,
            )
        )

        return ResearchPlan(
            topic=query,
            approach=_first_line(selected.content) or DEFAULT_APPROACH,
            description=selected.content,
            main_topics=tuple(main_topics),
            subtopics=subtopics,
            queries=tuple(queries[: cfg.max_queries]),
            reasoning=(
                f"Built from a path of {len(path)} thoughts ending in a thought "
                f"scored {selected.score:.2f}."
            ),
        )


# ===================================================================== #
#  Query optimization                                                    #
# ===================================================================== #


def _web_search(query: str, query_type: QueryType) -> str:
    if query_type is QueryType.SPECIFIC:
        return f"{query} detailed information"
    if query_type is QueryType.TECHNICAL:
        return f"{query} technical documentation guide"
    return query


_OPTIMIZERS: dict[str, Callable[[str, QueryType], str]] = {
    "web_search": _web_search,
    "scholar_search": lambda query, _type: f"{query} research paper academic",
    "news_search": lambda query, _type: f"{query} latest news recent developments",
}


def optimize_queries(
    queries: Sequence[ResearchQuery],
    target_tool: str = "web_search",
) -> tuple[ResearchQuery, ...]:
    """Rewrite queries for *target_tool*; unknown tools leave them unchanged."""
    optimizer = _OPTIMIZERS.get(target_tool)
    if optimizer is None:
        return tuple(queries)
    return tuple(
        dataclasses.replace(q, query=optimizer(q.query, q.query_type)) for q in queries
    )
