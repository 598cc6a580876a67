"""Infrastructure layer for the Tree-of-Thoughts research planner.

Re-exports the public API surface for convenience::

    from tot_research.infrastructure import (
        EventBus, EventStore,
        TotConfig, HebbianConfig, PlanConfig, load_config_from_json,
        outcome_to_json, outcome_from_json,
    )
"""

from tot_research.infrastructure.config import (
    HebbianConfig,
    PlanConfig,
    TotConfig,
    load_config_from_json,
)
from tot_research.infrastructure.event_bus import EventBus, EventStore
from tot_research.infrastructure.serialization import (
    outcome_from_dict,
    outcome_from_json,
    outcome_to_dict,
    outcome_to_json,
)

__all__ = [
    "EventBus",
    "EventStore",
    "HebbianConfig",
    "PlanConfig",
    "TotConfig",
    "load_config_from_json",
    "outcome_from_dict",
    "outcome_from_json",
    "outcome_to_dict",
    "outcome_to_json",
]
