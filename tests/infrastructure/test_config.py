"""Tests for the configuration dataclasses and the JSON loader."""

from __future__ import annotations

import json

import pytest

from tot_research.domain.enums import SelectionStrategy
from tot_research.infrastructure.config import (
    HebbianConfig,
    PlanConfig,
    TotConfig,
    load_config_from_json,
)


class TestTotConfig:

    def test_defaults(self) -> None:
        cfg = TotConfig()
        cfg.validate()
        assert (cfg.beam_width, cfg.branching_factor, cfg.max_depth) == (3, 5, 3)
        assert cfg.timeout_seconds == 120.0
        assert cfg.cost_budget is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"beam_width": 0},
            {"branching_factor": 0},
            {"max_depth": -1},
            {"cost_budget": 0},
            {"max_concurrency": 0},
            {"timeout_seconds": 0.0},
        ],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            TotConfig(**kwargs).validate()

    def test_round_trip_ignores_unknown_keys(self) -> None:
        data = TotConfig(beam_width=4).to_dict()
        data["unknown"] = 1
        assert TotConfig.from_dict(data) == TotConfig(beam_width=4)


class TestHebbianConfig:

    def test_defaults(self) -> None:
        cfg = HebbianConfig()
        assert cfg.learning_rate == 0.1
        assert cfg.pruning_threshold == 0.2
        assert cfg.inactivity_threshold_ms == 7 * 24 * 60 * 60 * 1000
        assert cfg.decay_factor == 0.9

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"learning_rate": -0.1},
            {"pruning_threshold": 1.5},
            {"inactivity_threshold_ms": -1},
            {"decay_factor": 2.0},
        ],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            HebbianConfig(**kwargs).validate()


class TestPlanConfig:

    def test_strategy_property(self) -> None:
        assert PlanConfig(selection_strategy="hybrid").strategy is SelectionStrategy.HYBRID

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_subtopics": 0},
            {"max_queries": 21},
            {"selection_strategy": "random"},
            {"target_tool": "carrier_pigeon"},
        ],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            PlanConfig(**kwargs).validate()


class TestLoadConfigFromJson:

    def test_sections(self) -> None:
        raw = json.dumps(
            {
                "tot": {"beam_width": 2},
                "hebbian": {"enabled": False},
                "plan": {"target_tool": "news_search"},
                "extra": {"keep": True},
            }
        )
        loaded = load_config_from_json(raw)
        assert loaded["tot"] == TotConfig(beam_width=2)
        assert loaded["hebbian"].enabled is False
        assert loaded["plan"].target_tool == "news_search"
        assert loaded["extra"] == {"keep": True}

    def test_invalid_section_raises(self) -> None:
        with pytest.raises(ValueError):
            load_config_from_json(json.dumps({"tot": {"beam_width": 0}}))

    def test_top_level_must_be_object(self) -> None:
        with pytest.raises(ValueError):
            load_config_from_json("[1, 2]")
