from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
import math
import time


def branin_objective(
    params: Mapping[str, float],
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    """Two dimensional Branin function.

    The usual domain is ``x1 in [-5, 10]`` and ``x2 in [0, 15]``; the global
    minimum is about 0.397887.
    """
    x1 = float(params["x1"])
    x2 = float(params["x2"])

    start = time.perf_counter()

    # f(x1, x2) = a (x2 - b x1^2 + c x1 - r)^2 + s(1 - t) cos(x1) + s
    a = 1.0
    b = 5.1 / (4.0 * math.pi**2)
    c = 5.0 / math.pi
    r = 6.0
    s = 10.0
    t = 1.0 / (8.0 * math.pi)

    y = a * (x2 - b * x1**2 + c * x1 - r) ** 2 + \
        s * (1.0 - t) * math.cos(x1) + s

    elapsed = time.perf_counter() - start

    return {
        "f": float(y),
        "status": "ok",
        "elapsed_seconds": elapsed,
    }
