"""Tree-of-Thoughts research planner.

Explores a research query as a tree of thoughts with beam search, adapts
Hebbian connections between co-active thoughts, and converges on a
structured research plan.
"""

__version__ = "0.1.0"

from tot_research.graph import ResearchPlanner, build_research_graph
from tot_research.services import BeamSearchEngine, ConnectionAdapter, ThoughtGraph

__all__ = [
    "BeamSearchEngine",
    "ConnectionAdapter",
    "ResearchPlanner",
    "ThoughtGraph",
    "build_research_graph",
]
