"""Configuration driven optimization loop."""
from __future__ import annotations

import csv
import importlib
import inspect
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

from .evaluators import EvaluatorResult, MetricValue
from .samplers import BaseSampler, RandomSampler
from .storage import FrozenTrial, TrialState
from .study import ObjectiveFuncType, Study, create_study
from .trial import Trial


Evaluator = Callable[[Dict[str, Any], int | None], EvaluatorResult | float]


@dataclass
class OptimizationResult:
    """Container for summarising the optimization run."""

    trials_completed: int
    trials_failed: int
    best_trial: int | None
    best_params: Dict[str, Any]
    best_metrics: Dict[str, MetricValue]
    best_value: float
    early_stopped_reason: str | None = None
    report_path: Path | None = None
    log_path: Path | None = None


def run_optimization(config: Mapping[str, Any]) -> OptimizationResult:
    """Execute the optimization loop using the provided configuration."""

    ensure_directories(config)
    seed = config.get("seed")
    evaluator = load_evaluator(config["evaluator"])
    search_cfg: Dict[str, Any] = dict(config["search"])
    search_space = {name: dict(spec) for name, spec in config["search_space"].items()}
    metric_name = str(search_cfg["metric"])

    stopping_cfg = config.get("stopping") or {}
    n_trials = int(search_cfg["n_trials"])
    max_trials = stopping_cfg.get("max_trials")
    if max_trials is not None:
        n_trials = min(n_trials, int(max_trials))
    max_time_minutes = stopping_cfg.get("max_time_minutes")
    timeout = float(max_time_minutes) * 60.0 if max_time_minutes is not None else None

    sampler = build_sampler(search_cfg, seed)
    study = create_study(sampler=sampler, study_name=config["metadata"]["name"])

    metrics_by_trial: Dict[int, Dict[str, MetricValue]] = {}
    objective = build_objective(
        evaluator,
        search_space,
        metric_name=metric_name,
        seed=seed,
        metrics_sink=metrics_by_trial,
    )

    report_metrics = list((config.get("report") or {}).get("metrics") or [metric_name])
    log_path = Path((config.get("artifacts") or {}).get("log_file", "runs/log.csv"))

    with TrialLogger(log_path, search_space.keys(), report_metrics) as trial_logger:

        def _log_trial(_study: Study, frozen: FrozenTrial) -> None:
            trial_logger.log(
                frozen.number,
                frozen.state,
                frozen.params,
                metrics_by_trial.get(frozen.number, {}),
            )

        study.optimize(
            objective,
            n_trials=n_trials,
            timeout=timeout,
            callbacks=[_log_trial],
            verbose=True,
        )

    trials = study.trials
    completed = sum(1 for trial in trials if trial.state is TrialState.COMPLETED)
    failed = sum(1 for trial in trials if trial.state is TrialState.FAILED)
    early_stop_reason = None
    if len(trials) < n_trials:
        early_stop_reason = (
            f"Time budget of {max_time_minutes} minutes exhausted after {len(trials)} trials"
        )

    best = study.best_trial
    best_params: Dict[str, Any] = dict(best.params) if best is not None else {}
    best_metrics: Dict[str, MetricValue] = (
        dict(metrics_by_trial.get(best.number, {})) if best is not None else {}
    )
    best_value = best.value if best is not None else math.nan

    report_path = build_report(
        config,
        trials,
        best_trial=best,
        best_metrics=best_metrics,
        metric_name=metric_name,
        early_stop_reason=early_stop_reason,
    )

    return OptimizationResult(
        trials_completed=completed,
        trials_failed=failed,
        best_trial=best.number if best is not None else None,
        best_params=best_params,
        best_metrics=best_metrics,
        best_value=best_value,
        early_stopped_reason=early_stop_reason,
        report_path=report_path,
        log_path=log_path,
    )


def build_objective(
    evaluator: Evaluator,
    space: Mapping[str, Any],
    *,
    metric_name: str,
    seed: int | None,
    metrics_sink: Dict[int, Dict[str, MetricValue]] | None = None,
) -> ObjectiveFuncType:
    """Wrap an ``evaluator(params, seed)`` callable into an objective function."""

    def objective(trial: Trial) -> float:
        params = sample_params(trial, space)
        metrics = _normalise_metrics(evaluator(params, seed), metric_name)
        if metrics_sink is not None:
            metrics_sink[trial.number] = metrics
        if _trial_failed(metrics):
            reason = metrics.get("reason") or metrics.get("status")
            raise RuntimeError(f"Evaluator reported a failed trial: {reason}")
        return _extract_objective_value(metrics, metric_name)

    return objective


def _normalise_metrics(
    payload: EvaluatorResult | float | int,
    metric_name: str,
) -> Dict[str, MetricValue]:
    if isinstance(payload, Mapping):
        return dict(payload)
    if isinstance(payload, (int, float)) and not isinstance(payload, bool):
        return {metric_name: float(payload)}
    raise TypeError(
        f"Evaluator must return a float or a mapping of metrics, got {type(payload).__name__}."
    )


def _trial_failed(metrics: Mapping[str, MetricValue]) -> bool:
    status = metrics.get("status")
    if status is not None and str(status).lower() != "ok":
        return True
    return bool(metrics.get("timed_out", False))


def _extract_objective_value(metrics: Mapping[str, MetricValue], metric_name: str) -> float:
    if metric_name in metrics:
        value = metrics[metric_name]
    elif f"metric_{metric_name}" in metrics:
        value = metrics[f"metric_{metric_name}"]
    else:
        raise RuntimeError(f"Evaluator did not return required metric: {metric_name}.")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Metric '{metric_name}' must be numeric, got {value!r}.")
    return float(value)


def ensure_directories(config: Mapping[str, Any]) -> None:
    artifacts = config.get("artifacts") or {}
    report = config.get("report") or {}

    log_path = Path(artifacts.get("log_file", "runs/log.csv"))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    report_dir = Path(report.get("output_dir", "reports"))
    report_dir.mkdir(parents=True, exist_ok=True)


def load_evaluator(config: Mapping[str, Any]) -> Evaluator:
    module = importlib.import_module(config["module"])
    target = getattr(module, config["callable"])

    if not callable(target):
        raise TypeError("Evaluator callable must be a function or a factory.")

    signature = inspect.signature(target)
    if len(signature.parameters) <= 1:
        evaluator_obj = target(config)
    else:
        evaluator_obj = target

    if not callable(evaluator_obj):
        raise TypeError("Evaluator factory did not return a callable.")
    return evaluator_obj


def build_sampler(search_cfg: Mapping[str, Any], seed: int | None) -> BaseSampler:
    sampler_name = str(search_cfg.get("sampler", "random")).lower()
    if sampler_name == "random":
        return RandomSampler(seed=seed)
    raise ValueError(f"Unsupported sampler: {sampler_name}")


def sample_params(trial: Trial, space: Mapping[str, Any]) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    for name, spec in space.items():
        param_type = spec.get("type")
        if param_type == "float":
            params[name] = trial.suggest_float(
                name,
                float(spec["low"]),
                float(spec["high"]),
                log=bool(spec.get("log", False)),
            )
        elif param_type == "int":
            params[name] = trial.suggest_int(name, int(spec["low"]), int(spec["high"]))
        elif param_type == "categorical":
            params[name] = trial.suggest_categorical(name, list(spec["choices"]))
        else:
            raise ValueError(f"Unsupported parameter type for '{name}': {param_type}")
    return params


class TrialLogger:
    """Utility to append trial information to a CSV log file."""

    def __init__(
        self,
        path: Path,
        param_names: Iterable[str],
        metric_names: Iterable[str],
    ) -> None:
        self.path = path
        self.param_names = list(param_names)
        self.metric_names = [str(name) for name in metric_names]
        self.metric_fields = [
            (
                name,
                name if name.startswith("metric_") else f"metric_{name}",
            )
            for name in self.metric_names
        ]

        write_header = not path.exists()
        self._fh = path.open("a", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(
            self._fh,
            fieldnames=[
                "trial",
                "state",
                *[f"param_{name}" for name in self.param_names],
                *[field for _, field in self.metric_fields],
            ],
        )
        if write_header:
            self._writer.writeheader()

    def log(
        self,
        trial_number: int,
        state: TrialState,
        params: Mapping[str, Any],
        metrics: Mapping[str, MetricValue],
    ) -> None:
        row: Dict[str, Any] = {"trial": trial_number, "state": state.value}
        for name in self.param_names:
            row[f"param_{name}"] = params.get(name)
        for name, field in self.metric_fields:
            row[field] = self._resolve_metric_value(metrics, name)
        self._writer.writerow(row)
        self._fh.flush()

    @staticmethod
    def _resolve_metric_value(
        metrics: Mapping[str, MetricValue],
        name: str,
    ) -> MetricValue | None:
        if name in metrics:
            return metrics[name]

        if name.startswith("metric_"):
            bare_name = name.removeprefix("metric_")
            if bare_name in metrics:
                return metrics[bare_name]
        else:
            prefixed = f"metric_{name}"
            if prefixed in metrics:
                return metrics[prefixed]

        return None

    def close(self) -> None:
        self._fh.close()

    def __enter__(self) -> "TrialLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def build_report(
    config: Mapping[str, Any],
    trials: Sequence[FrozenTrial],
    *,
    best_trial: FrozenTrial | None,
    best_metrics: Mapping[str, MetricValue],
    metric_name: str,
    early_stop_reason: str | None,
) -> Path:
    report_cfg = config.get("report") or {}
    report_dir = Path(report_cfg.get("output_dir", "reports"))
    filename = report_cfg.get("filename") or f"{config['metadata']['name']}.md"
    report_path = report_dir / filename

    completed = [trial for trial in trials if trial.state is TrialState.COMPLETED]
    failed = [trial for trial in trials if trial.state is TrialState.FAILED]

    lines: List[str] = [
        f"# Experiment Report  {config['metadata']['name']}",
        "",
        f"Description: {config['metadata'].get('description', '')}",
        "",
        f"Trials executed: {len(trials)} ({len(completed)} completed, {len(failed)} failed)",
        f"Objective: {metric_name} (minimize)",
        "",
    ]
    if best_trial is None:
        lines.append("No completed trial produced a finite objective value.")
    else:
        lines.append(f"Best trial: {best_trial.number}")
        lines.append(f"Best value: {_format_metric_value(best_trial.value)}")
        lines.extend(["", "## Best Parameters"])
        lines.extend([f"- **{name}**: {value}" for name, value in best_trial.params.items()])
        lines.extend(["", "## Best Metrics"])
        lines.extend([f"- **{name}**: {value}" for name, value in best_metrics.items()])
    if early_stop_reason:
        lines.extend(["", f"_Early stopping_: {early_stop_reason}"])

    lines.extend(["", "## Trials", "", "| Trial | State | Value | Params |", "| --- | --- | --- | --- |"])
    for trial in trials:
        value = _format_metric_value(trial.value) if trial.state is TrialState.COMPLETED else "-"
        lines.append(
            f"| {trial.number} | {trial.state.value} | {value} | {_format_param_summary(trial.params)} |"
        )

    report_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return report_path


def _format_metric_value(value: Any) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "nan"
        return f"{value:.6g}"
    return str(value)


def _format_param_summary(params: Mapping[str, Any]) -> str:
    return ", ".join(f"{name}={_format_metric_value(value)}" for name, value in params.items())


__all__ = [
    "OptimizationResult",
    "TrialLogger",
    "build_objective",
    "build_report",
    "build_sampler",
    "ensure_directories",
    "load_evaluator",
    "run_optimization",
    "sample_params",
]
