"""LangGraph state definition for the research planning pipeline.

Defines ``ResearchState``, a ``TypedDict`` that flows through the
``seed -> explore -> synthesize`` ``StateGraph``.  Append-only channels use
``Annotated[list, operator.add]`` so each node can emit new items without
overwriting earlier ones.

Note: We intentionally do NOT use ``from __future__ import annotations`` because
LangGraph needs to resolve type hints at runtime via ``get_type_hints()``.
"""

import asyncio
import operator
from typing import Annotated, TypedDict

from tot_research.domain.values import (
    ExplorationState,
    NetworkMetrics,
    ResearchPlan,
    ThoughtNode,
)
from tot_research.services.store import ThoughtGraph
from tot_research.services.synthesis import PathSelection


class ResearchState(TypedDict, total=False):
    """State flowing through the research planning LangGraph.

    Fields are grouped into:

    * **Input** -- the query and run controls, set once at invocation.  The
      seed node turns ``timeout`` into an event-loop ``deadline`` shared by
      every later node.
    * **Exploration** -- the thought graph and the beam search states.
    * **Output** -- the selected path, the plan and diagnostics.
    * **Accumulation channels** -- append-reducers for the reasoning trace.
    """

    # -- Input ---------------------------------------------------------------
    query: str
    timeout: float | None
    cancel_event: asyncio.Event | None
    deadline: float | None

    # -- Exploration ---------------------------------------------------------
    thought_graph: ThoughtGraph
    initial_state: ExplorationState
    final_state: ExplorationState
    stop_reason: str

    # -- Output --------------------------------------------------------------
    selection: PathSelection | None
    best_path: list[ThoughtNode]
    plan: ResearchPlan
    plan_fallback: bool
    network_metrics: NetworkMetrics | None

    # -- Accumulation channels (append-reducers) -----------------------------
    reasoning_steps: Annotated[list, operator.add]
    synthesized_thoughts: Annotated[list, operator.add]
    errors: Annotated[list, operator.add]
