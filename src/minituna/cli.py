"""Command line interface for running configured experiments."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict

import yaml
from pydantic import ValidationError

from .config import OptimizationConfig, build_search_space
from .visualization import VisualizationError, plot_history

if TYPE_CHECKING:
    from .optimization import OptimizationResult


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Run a random-search optimization loop or inspect the configuration summary."
        )
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("configs/quadratic.yaml"),
        help="Path to the optimization configuration YAML file.",
    )
    parser.add_argument(
        "--as-json",
        action="store_true",
        help="Print the validated configuration as JSON for downstream tooling.",
    )
    parser.add_argument(
        "--summarize",
        action="store_true",
        help="Only print a summary of the configuration without running the loop.",
    )
    parser.add_argument(
        "--n-trials",
        type=int,
        help="Override search.n_trials from the configuration.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Override the sampler seed from the configuration.",
    )
    subparsers = parser.add_subparsers(dest="command")
    _configure_visualize_subcommand(subparsers)
    return parser.parse_args()


def _configure_visualize_subcommand(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
) -> None:
    visualize = subparsers.add_parser(
        "visualize",
        help="Plot the optimization history stored in a trial log.",
    )
    visualize.add_argument(
        "--log",
        type=Path,
        required=True,
        help="Path to the CSV trial log written by a run.",
    )
    visualize.add_argument(
        "--metric",
        required=True,
        help="Metric column to plot (with or without the metric_ prefix).",
    )
    visualize.add_argument(
        "--title",
        help="Optional plot title.",
    )
    visualize.add_argument(
        "--output",
        type=Path,
        help="Output image path (default: <log>_history.png next to the log).",
    )


def load_config(path: Path) -> OptimizationConfig:
    if not path.exists():
        raise SystemExit(f"Configuration file not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if not isinstance(data, dict):
        raise SystemExit("Configuration root must be a mapping (YAML dictionary).")

    return validate_config(data)


def validate_config(data: Dict[str, Any]) -> OptimizationConfig:
    try:
        validated = OptimizationConfig.model_validate(data)
    except ValidationError as exc:
        details = []
        for error in exc.errors(include_url=False):
            location = ".".join(str(loc) for loc in error["loc"])
            details.append(f"- {location or '<root>'}: {error['msg']}")
        message = "Configuration validation failed:\n" + "\n".join(details)
        raise SystemExit(message) from exc

    return validated


def apply_overrides(
    config: OptimizationConfig,
    *,
    n_trials: int | None,
    seed: int | None,
) -> OptimizationConfig:
    if n_trials is None and seed is None:
        return config

    data = config.model_dump(mode="python")
    if n_trials is not None:
        data["search"]["n_trials"] = n_trials
    if seed is not None:
        data["seed"] = seed
    return validate_config(data)


def summarize_config(config: Dict[str, Any]) -> str:
    metadata = config.get("metadata", {})
    search = config.get("search", {})
    stopping = config.get("stopping") or {}
    report = config.get("report", {})
    artifacts = config.get("artifacts") or {}

    lines = [
        f"Experiment name : {metadata.get('name', 'N/A')}",
        f"Description    : {metadata.get('description', 'N/A')}",
        f"Seed           : {config.get('seed', 'N/A')}",
        "",
        "[Search]",
        f"  Sampler      : {search.get('sampler', 'N/A')}",
        f"  Trials       : {search.get('n_trials', 'N/A')}",
        f"  Metric       : {search.get('metric', 'N/A')} (minimize)",
        "",
        "[Search space]",
    ]
    for name, distribution in build_search_space(config.get("search_space", {})).items():
        lines.append(f"  {name:<12} : {distribution!r}")
    lines.extend(
        [
            "",
            "[Stopping]",
            f"  max_trials   : {stopping.get('max_trials', 'N/A')}",
            f"  max_minutes  : {stopping.get('max_time_minutes', 'N/A')}",
            "",
            "[Report]",
            f"  metrics      : {', '.join(report.get('metrics', [])) if report.get('metrics') else 'N/A'}",
            f"  output_dir   : {report.get('output_dir', 'reports')}",
            f"  log_file     : {artifacts.get('log_file', 'runs/log.csv')}",
        ]
    )

    return "\n".join(lines)


def format_result(result: "OptimizationResult") -> str:
    lines = [
        "Optimization finished.",
        f"Trials completed : {result.trials_completed}",
        f"Trials failed    : {result.trials_failed}",
        f"Best trial       : {result.best_trial if result.best_trial is not None else 'N/A'}",
        f"Best value       : {result.best_value}",
        "Best parameters  :",
    ]
    lines.extend([f"  - {name}: {value}" for name, value in result.best_params.items()])
    lines.append("Best metrics     :")
    lines.extend([f"  - {name}: {value}" for name, value in result.best_metrics.items()])
    if result.early_stopped_reason:
        lines.append(f"Early stop       : {result.early_stopped_reason}")
    if result.report_path is not None:
        lines.append(f"Report           : {result.report_path}")
    if result.log_path is not None:
        lines.append(f"Trial log        : {result.log_path}")
    return "\n".join(lines)


def _handle_visualize_command(args: argparse.Namespace) -> None:
    try:
        result_path = plot_history(
            args.log,
            args.metric,
            title=args.title,
            output_path=args.output,
        )
    except VisualizationError as exc:
        raise SystemExit(str(exc)) from exc
    print(f"Visualization written to {result_path}")


def main() -> None:
    args = parse_args()

    if getattr(args, "command", None) == "visualize":
        _handle_visualize_command(args)
        return

    config_model = load_config(args.config)
    config_model = apply_overrides(config_model, n_trials=args.n_trials, seed=args.seed)
    config = config_model.model_dump(mode="python")

    if args.as_json:
        print(json.dumps(config, indent=2, ensure_ascii=False))
        return

    if args.summarize:
        print(summarize_config(config))
        return

    from .optimization import run_optimization

    result = run_optimization(config)
    print(format_result(result))


if __name__ == "__main__":
    main()
