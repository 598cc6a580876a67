"""Command-line interface for the Tree-of-Thoughts research planner.

Provides subcommands for planning a query offline, displaying a saved
outcome, and querying version and default configuration.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    tot-research = "tot_research.cli:main"

Usage examples::

    tot-research plan "solid-state batteries" --beam-width 3 --max-depth 2
    tot-research plan "quantum error correction" --output outcome.json
    tot-research report --input outcome.json --format tree
    tot-research info
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="tot-research",
        description=(
            "Tree-of-Thoughts research planner -- explore a research query "
            "with beam search and emit a research plan."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- plan --------------------------------------------------------------
    plan_parser = subparsers.add_parser(
        "plan",
        help="Plan research for a query (offline template strategies).",
        description="Run seed -> explore -> synthesize for a single query.",
    )
    plan_parser.add_argument("query", type=str, help="The research query.")
    plan_parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON file with 'tot', 'hebbian' and 'plan' sections.",
    )
    plan_parser.add_argument(
        "--beam-width",
        type=int,
        default=None,
        help="Candidates retained per depth. (default: 3)",
    )
    plan_parser.add_argument(
        "--branching-factor",
        type=int,
        default=None,
        help="Children generated per expanded thought. (default: 5)",
    )
    plan_parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Expansion levels below the root thoughts. (default: 3)",
    )
    plan_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Exploration budget in seconds. (default: 120)",
    )
    plan_parser.add_argument(
        "--strategy",
        type=str,
        default=None,
        choices=["best", "hybrid", "diverse"],
        help="Path selection strategy. (default: best)",
    )
    plan_parser.add_argument(
        "--target-tool",
        type=str,
        default=None,
        choices=["web_search", "scholar_search", "news_search", "x_search"],
        help="Search tool the queries are optimized for. (default: web_search)",
    )
    plan_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility.",
    )
    plan_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the JSON outcome to this file instead of printing a summary.",
    )

    # -- report ------------------------------------------------------------
    report_parser = subparsers.add_parser(
        "report",
        help="Load and display a saved outcome.",
        description="Load a previously exported JSON outcome and display it.",
    )
    report_parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Path to the JSON outcome file.",
    )
    report_parser.add_argument(
        "--format",
        type=str,
        default="summary",
        choices=["summary", "json", "tree"],
        help="Display format. (default: summary)",
    )

    # -- info --------------------------------------------------------------
    subparsers.add_parser(
        "info",
        help="Show version and default configuration.",
        description="Display version, default configuration and dependency status.",
    )

    return parser


# =========================================================================
# Rendering
# =========================================================================

def _format_summary(outcome: Any) -> str:
    plan = outcome.plan
    lines = [
        f"Query:       {outcome.query}",
        f"Stop reason: {outcome.stop_reason.value if outcome.stop_reason else 'n/a'}",
        f"Depth:       {outcome.final_state.depth}",
        f"Approach:    {plan.approach}",
    ]
    if plan.subtopics:
        lines.append("Subtopics:")
        lines.extend(f"  - {s}" for s in plan.subtopics)
    lines.append("Queries:")
    lines.extend(
        f"  [{q.priority}] ({q.query_type.value}) {q.query}" for q in plan.queries
    )
    if outcome.network_metrics is not None:
        m = outcome.network_metrics
        lines.append(
            f"Network:     {m.node_count} thoughts, {m.connection_count} connections, "
            f"avg strength {m.average_strength:.3f}"
        )
    return "\n".join(lines)


def _format_tree(outcome: Any) -> str:
    lines: list[str] = []
    for entry in outcome.final_state.history:
        lines.append(f"depth {entry.depth}:")
        values = list(entry.values)
        for i, thought in enumerate(entry.thoughts):
            value = f" value={values[i]:.3f}" if i < len(values) else ""
            first = thought.content.splitlines()[0] if thought.content else ""
            lines.append(f"  {'  ' * entry.depth}- [{thought.score:.1f}{value}] {first}")
    if outcome.best_path:
        lines.append("best path:")
        for node in outcome.best_path:
            lines.append(f"  {node.depth}: {node.content.splitlines()[0]}")
    return "\n".join(lines)


# =========================================================================
# Subcommand handlers
# =========================================================================

def _load_configs(args: argparse.Namespace) -> tuple[Any, Any, Any]:
    from dataclasses import replace

    from tot_research.infrastructure.config import (
        HebbianConfig,
        PlanConfig,
        TotConfig,
        load_config_from_json,
    )

    sections: dict[str, Any] = {}
    if args.config is not None:
        sections = load_config_from_json(Path(args.config).read_text(encoding="utf-8"))

    tot: TotConfig = sections.get("tot") or TotConfig()
    hebbian: HebbianConfig = sections.get("hebbian") or HebbianConfig()
    plan: PlanConfig = sections.get("plan") or PlanConfig()

    tot_overrides = {
        "beam_width": args.beam_width,
        "branching_factor": args.branching_factor,
        "max_depth": args.max_depth,
        "timeout_seconds": args.timeout,
    }
    tot = replace(tot, **{k: v for k, v in tot_overrides.items() if v is not None})
    plan_overrides = {
        "selection_strategy": args.strategy,
        "target_tool": args.target_tool,
        "seed": args.seed,
    }
    plan = replace(plan, **{k: v for k, v in plan_overrides.items() if v is not None})
    tot.validate()
    plan.validate()
    return tot, hebbian, plan


def _cmd_plan(args: argparse.Namespace) -> int:
    """Handle the ``plan`` subcommand."""
    from tot_research.domain.events import DepthCompleted
    from tot_research.graph.runner import ResearchPlanner
    from tot_research.infrastructure.event_bus import EventBus
    from tot_research.infrastructure.serialization import outcome_to_json
    from tot_research.services.generation import TemplateThoughtGenerator
    from tot_research.services.synthesis import TemplatePlanSynthesizer

    tot, hebbian, plan = _load_configs(args)

    bus = EventBus()

    def _progress(event: Any) -> None:
        print(
            f"  depth {event.depth}/{event.max_depth}: "
            f"kept {event.frontier_size} of {event.candidate_count} candidates "
            f"(best {event.best_value:.3f})",
            file=sys.stderr,
        )

    bus.subscribe(DepthCompleted, _progress)

    planner = ResearchPlanner(
        TemplateThoughtGenerator(seed=args.seed),
        TemplatePlanSynthesizer(),
        tot_config=tot,
        hebbian_config=hebbian,
        plan_config=plan,
        bus=bus,
    )
    print(f"Planning research for {args.query!r}...", file=sys.stderr)
    outcome = planner.plan_sync(args.query)

    if args.output is not None:
        out = Path(args.output)
        out.write_text(outcome_to_json(outcome), encoding="utf-8")
        print(f"Outcome written to {out}")
    else:
        print(_format_summary(outcome))
    return 0


def _cmd_report(args: argparse.Namespace) -> int:
    """Handle the ``report`` subcommand."""
    from tot_research.infrastructure.serialization import (
        outcome_from_json,
        outcome_to_dict,
    )

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        outcome = outcome_from_json(input_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError, KeyError, ValueError) as exc:
        print(f"Error reading {input_path}: {exc}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(outcome_to_dict(outcome), indent=2, ensure_ascii=False))
    elif args.format == "tree":
        print(_format_tree(outcome))
    else:
        print(_format_summary(outcome))
    return 0


def _cmd_info(args: argparse.Namespace) -> int:
    """Handle the ``info`` subcommand."""
    from tot_research import __version__
    from tot_research.infrastructure.config import HebbianConfig, PlanConfig, TotConfig

    print(f"tot-research v{__version__}")
    print()

    deps = {
        "numpy": "Numerical computation",
        "langchain_core": "Chat model abstraction and structured output",
        "langgraph": "Pipeline orchestration",
        "pydantic": "Structured output schemas",
    }
    print("Dependencies:")
    for pkg, desc in deps.items():
        try:
            mod = __import__(pkg)
            version = getattr(mod, "__version__", "unknown")
            print(f"  [installed] {pkg} {version} -- {desc}")
        except ImportError:
            print(f"  [missing]   {pkg} -- {desc}")
    print()

    print("Default configuration:")
    for name, cfg in (
        ("tot", TotConfig()),
        ("hebbian", HebbianConfig()),
        ("plan", PlanConfig()),
    ):
        print(f"  {name}: {json.dumps(cfg.to_dict())}")
    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.version:
        from tot_research import __version__
        print(f"tot-research {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    handlers: dict[str, Any] = {
        "plan": _cmd_plan,
        "report": _cmd_report,
        "info": _cmd_info,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
