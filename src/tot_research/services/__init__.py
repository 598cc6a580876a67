"""Service layer for the Tree-of-Thoughts research planner.

Re-exports public service types for convenient top-level access::

    from tot_research.services import (
        ThoughtGraph, BeamSearchEngine, best_path,
        calculate_node_activity, calculate_network_state,
        HeuristicStateEvaluator, ActivityStateEvaluator,
        ConnectionAdapter, update_connection_strength_hebbian,
        prune_connections, ThoughtExpander, TemplateThoughtGenerator,
        LexicalConnectionProposer, TemplatePlanSynthesizer,
        select_path, optimize_queries,
    )
"""

from tot_research.services.aggregation import (
    BaseConnectionProposer,
    ConnectionProposal,
    LexicalConnectionProposer,
    LLMConnectionProposer,
    merge_connections,
)
from tot_research.services.beam_search import BeamSearchEngine, best_path
from tot_research.services.evaluation import (
    ActivityStateEvaluator,
    BaseStateEvaluator,
    HeuristicStateEvaluator,
    MeanScoreEvaluator,
    calculate_network_state,
    calculate_node_activity,
)
from tot_research.services.generation import (
    BaseThoughtGenerator,
    TemplateThoughtGenerator,
    ThoughtExpander,
    seed_initial_state,
    stage_for_depth,
)
from tot_research.services.hebbian import (
    ConnectionAdapter,
    LearningCycleResult,
    prune_connections,
    update_connection_strength_hebbian,
)
from tot_research.services.llm_evaluation import LLMThoughtEvaluator
from tot_research.services.llm_generation import LLMThoughtGenerator
from tot_research.services.llm_synthesis import LLMPlanSynthesizer
from tot_research.services.store import ThoughtGraph
from tot_research.services.synthesis import (
    BasePlanSynthesizer,
    PathSelection,
    TemplatePlanSynthesizer,
    fallback_plan,
    optimize_queries,
    select_path,
)

__all__ = [
    # store
    "ThoughtGraph",
    # evaluation
    "ActivityStateEvaluator",
    "BaseStateEvaluator",
    "HeuristicStateEvaluator",
    "LLMThoughtEvaluator",
    "MeanScoreEvaluator",
    "calculate_network_state",
    "calculate_node_activity",
    # hebbian
    "ConnectionAdapter",
    "LearningCycleResult",
    "prune_connections",
    "update_connection_strength_hebbian",
    # beam search
    "BeamSearchEngine",
    "best_path",
    # generation
    "BaseThoughtGenerator",
    "LLMThoughtGenerator",
    "TemplateThoughtGenerator",
    "ThoughtExpander",
    "seed_initial_state",
    "stage_for_depth",
    # aggregation
    "BaseConnectionProposer",
    "ConnectionProposal",
    "LLMConnectionProposer",
    "LexicalConnectionProposer",
    "merge_connections",
    # synthesis
    "BasePlanSynthesizer",
    "LLMPlanSynthesizer",
    "PathSelection",
    "TemplatePlanSynthesizer",
    "fallback_plan",
    "optimize_queries",
    "select_path",
]
