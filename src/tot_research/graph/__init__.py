"""LangGraph orchestration for the Tree-of-Thoughts research planner.

Exports::

    from tot_research.graph import (
        ResearchState, build_research_graph, ResearchPlanner,
    )
"""

from tot_research.graph.builder import build_research_graph
from tot_research.graph.nodes import (
    make_explore_node,
    make_seed_node,
    make_synthesize_node,
)
from tot_research.graph.runner import ResearchPlanner
from tot_research.graph.state import ResearchState

__all__ = [
    "ResearchPlanner",
    "ResearchState",
    "build_research_graph",
    "make_explore_node",
    "make_seed_node",
    "make_synthesize_node",
]
