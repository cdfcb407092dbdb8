"""Static plots generated from the CSV trial log."""
from __future__ import annotations

from pathlib import Path

import matplotlib

# Force a non-interactive backend to support headless environments (tests/CI).
matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt
import pandas as pd


class VisualizationError(RuntimeError):
    """Raised when a visualization cannot be generated."""


def plot_history(
    log_path: Path | str,
    metric: str,
    *,
    title: str | None = None,
    output_path: Path | str | None = None,
) -> Path:
    """Plot each trial's objective value together with the running minimum."""

    log_path = Path(log_path)
    df = _read_log(log_path)
    column = metric if metric.startswith("metric_") else f"metric_{metric}"
    if column not in df.columns:
        raise VisualizationError(
            f"Log file {log_path} does not contain required metric column: {column}"
        )
    if "trial" in df.columns:
        df = df.sort_values("trial")
    else:
        df = df.reset_index(drop=False).rename(columns={"index": "trial"})

    values = pd.to_numeric(df[column], errors="coerce")
    if "state" in df.columns:
        values = values.where(df["state"] == "completed")
    if values.dropna().empty:
        raise VisualizationError(f"Log file {log_path} has no completed values for {metric}.")

    x_values = df["trial"].to_list()
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.scatter(x_values, values, alpha=0.5, color="#5DA5DA", label="Objective value")
    ax.plot(x_values, _running_best(values), color="#F15854", label="Best value")
    ax.set_xlabel("Trial")
    ax.set_ylabel(metric)
    ax.set_title(title or "Optimization history")
    ax.grid(True, linestyle=":", linewidth=0.5)
    ax.legend()
    fig.tight_layout()

    output = _resolve_output_path(log_path, output_path, suffix="history")
    fig.savefig(output)
    plt.close(fig)
    return output


def _read_log(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise VisualizationError(f"Log file not found: {path}")
    try:
        df = pd.read_csv(path)
    except pd.errors.EmptyDataError as exc:
        raise VisualizationError(f"Log file is empty: {path}") from exc
    return df


def _running_best(series: pd.Series) -> list[float]:
    values: list[float] = []
    best: float | None = None
    for value in series:
        if pd.isna(value) or value in (float("inf"), float("-inf")):
            values.append(float("nan") if best is None else best)
            continue
        best = float(value) if best is None else min(best, float(value))
        values.append(best)
    return values


def _resolve_output_path(log_path: Path, output_path: Path | str | None, *, suffix: str) -> Path:
    if output_path is not None:
        return Path(output_path)
    return log_path.parent / f"{log_path.stem}_{suffix}.png"


__all__ = ["VisualizationError", "plot_history"]
