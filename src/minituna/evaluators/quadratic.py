"""Two dimensional integer quadratic bowl with its minimum at (3, 5)."""

from __future__ import annotations

import time
from typing import Any, Dict, Mapping, Optional


def quadratic(x: float, y: float) -> float:
    return (x - 3.0) ** 2 + (y - 5.0) ** 2


def quadratic_objective(
    params: Mapping[str, Any],
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    """Evaluate ``f(x, y) = (x - 3)^2 + (y - 5)^2``.

    Called as ``evaluator(params, seed)``; ``x`` and ``y`` must match the
    search-space names of the experiment file.
    """
    x = int(params["x"])
    y = int(params["y"])

    start = time.perf_counter()
    value = quadratic(x, y)
    elapsed = time.perf_counter() - start

    return {
        "f": float(value),
        "distance": float(value) ** 0.5,
        "status": "ok",
        "elapsed_seconds": elapsed,
    }
