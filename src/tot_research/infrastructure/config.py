"""Configuration dataclasses for the Tree-of-Thoughts research planner.

Each config is a plain ``dataclass`` with a ``validate()`` method that raises
``ValueError`` on invalid combinations.  Configs are **frozen** and read once
per run; they are passed explicitly to the components that need them rather
than living in a module-level singleton.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from typing import Any

from tot_research.domain.enums import SelectionStrategy

_WEEK_MS = 7 * 24 * 60 * 60 * 1000


# ===================================================================== #
#  Tree-of-Thoughts search configuration                                 #
# ===================================================================== #

@dataclass(frozen=True)
class TotConfig:
    """Parameters governing the beam search exploration.

    Attributes
    ----------
    beam_width:
        Number of candidate states retained per depth.
    branching_factor:
        Maximum children generated per expanded thought.
    max_depth:
        Number of expansion levels below the root thoughts.
    cost_budget:
        Optional cap on the cumulative number of retained thoughts; the
        search stops once it is exceeded.  ``None`` disables the check.
    max_concurrency:
        Upper bound on simultaneous generation / evaluation calls.
    timeout_seconds:
        Overall wall-clock budget for one run.  On expiry the best state
        reached so far is returned.  ``None`` disables the timeout.
    generation_model:
        Model name forwarded to LLM-backed thought generators.
    evaluation_model:
        Model name forwarded to LLM-backed thought evaluators.
    """

    beam_width: int = 3
    branching_factor: int = 5
    max_depth: int = 3
    cost_budget: int | None = None
    max_concurrency: int = 5
    timeout_seconds: float | None = 120.0
    generation_model: str = "o4-mini"
    evaluation_model: str = "o4-mini"

    def validate(self) -> None:
        """Raise ``ValueError`` if any field is out of valid range."""
        if self.beam_width < 1:
            raise ValueError(f"beam_width must be >= 1, got {self.beam_width}")
        if self.branching_factor < 1:
            raise ValueError(
                f"branching_factor must be >= 1, got {self.branching_factor}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.cost_budget is not None and self.cost_budget < 1:
            raise ValueError(f"cost_budget must be >= 1, got {self.cost_budget}")
        if self.max_concurrency < 1:
            raise ValueError(
                f"max_concurrency must be >= 1, got {self.max_concurrency}"
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TotConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Hebbian learning configuration                                        #
# ===================================================================== #

@dataclass(frozen=True)
class HebbianConfig:
    """Parameters of the connection adapter's learning cycle.

    Attributes
    ----------
    learning_rate:
        Scale of the Hebbian strength increment.
    pruning_threshold:
        Connections weaker than this are pruned once they are also stale.
    inactivity_threshold_ms:
        Age (since last activation) beyond which a connection is stale.
    decay_factor:
        Multiplier applied to the activity of connected thoughts.
    enabled:
        If ``False`` the orchestration graph skips learning cycles.
    """

    learning_rate: float = 0.1
    pruning_threshold: float = 0.2
    inactivity_threshold_ms: float = _WEEK_MS
    decay_factor: float = 0.9
    enabled: bool = True

    def validate(self) -> None:
        if not (0.0 <= self.learning_rate <= 1.0):
            raise ValueError(
                f"learning_rate must be in [0, 1], got {self.learning_rate}"
            )
        if not (0.0 <= self.pruning_threshold <= 1.0):
            raise ValueError(
                f"pruning_threshold must be in [0, 1], got {self.pruning_threshold}"
            )
        if self.inactivity_threshold_ms < 0:
            raise ValueError(
                "inactivity_threshold_ms must be >= 0, "
                f"got {self.inactivity_threshold_ms}"
            )
        if not (0.0 <= self.decay_factor <= 1.0):
            raise ValueError(
                f"decay_factor must be in [0, 1], got {self.decay_factor}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HebbianConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Plan synthesis configuration                                          #
# ===================================================================== #

_VALID_TARGET_TOOLS = frozenset({
    "web_search",
    "scholar_search",
    "news_search",
    "x_search",
})


@dataclass(frozen=True)
class PlanConfig:
    """Parameters for turning the best path into a research plan.

    Attributes
    ----------
    max_subtopics:
        Upper bound on plan subtopics.
    max_queries:
        Upper bound on plan search queries.
    selection_strategy:
        ``"best"``, ``"hybrid"`` or ``"diverse"`` (see ``SelectionStrategy``).
    target_tool:
        Search tool the queries are optimized for.
    seed:
        Random seed for the ``diverse`` strategy.
    """

    max_subtopics: int = 5
    max_queries: int = 10
    selection_strategy: str = SelectionStrategy.BEST.value
    target_tool: str = "web_search"
    seed: int | None = None

    def validate(self) -> None:
        if not (1 <= self.max_subtopics <= 10):
            raise ValueError(
                f"max_subtopics must be in [1, 10], got {self.max_subtopics}"
            )
        if not (1 <= self.max_queries <= 20):
            raise ValueError(
                f"max_queries must be in [1, 20], got {self.max_queries}"
            )
        valid = {s.value for s in SelectionStrategy}
        if self.selection_strategy not in valid:
            raise ValueError(
                f"selection_strategy must be one of {sorted(valid)}, "
                f"got '{self.selection_strategy}'"
            )
        if self.target_tool not in _VALID_TARGET_TOOLS:
            raise ValueError(
                f"target_tool must be one of {sorted(_VALID_TARGET_TOOLS)}, "
                f"got '{self.target_tool}'"
            )

    @property
    def strategy(self) -> SelectionStrategy:
        return SelectionStrategy(self.selection_strategy)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlanConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Unified config loader                                                 #
# ===================================================================== #

_CONFIG_MAP: dict[str, type] = {
    "tot": TotConfig,
    "hebbian": HebbianConfig,
    "plan": PlanConfig,
}


def load_config_from_json(json_str: str) -> dict[str, Any]:
    """Parse a JSON string into a dict of typed config objects.

    The JSON is expected to be an object whose top-level keys correspond to
    config section names (``tot``, ``hebbian``, ``plan``).  Unknown sections
    are preserved as raw dicts.
    """
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")
    result: dict[str, Any] = {}
    for section, data in raw.items():
        cls = _CONFIG_MAP.get(section)
        if cls is not None and isinstance(data, dict):
            result[section] = cls.from_dict(data)
        else:
            result[section] = data
    return result
