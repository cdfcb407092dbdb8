"""Synthetic training-loss surface over a mixed search space.

Exercises every parameter kind at once: an integer layer count, a uniform
dropout rate, a log-uniform learning rate and a categorical optimizer name.
"""
from __future__ import annotations

import math
import random
from typing import Any, Callable, Dict, Mapping


OPTIMIZER_PENALTY = {"adam": 0.0, "sgd": 0.15, "rmsprop": 0.05}


def synthetic_loss(
    n_layers: int,
    dropout: float,
    learning_rate: float,
    optimizer: str,
) -> float:
    # Minimum at 3 layers, dropout 0.2, learning rate 1e-3 with adam.
    depth_term = 0.05 * (n_layers - 3) ** 2
    dropout_term = (dropout - 0.2) ** 2
    lr_term = 0.1 * (math.log10(learning_rate) + 3.0) ** 2
    return depth_term + dropout_term + lr_term + OPTIMIZER_PENALTY.get(optimizer, 1.0)


class MixedSpaceEvaluator:
    """Evaluator returning the synthetic loss plus optional Gaussian noise."""

    def __init__(self, noise: float = 0.0) -> None:
        if noise < 0:
            raise ValueError("noise must be non-negative")
        self.noise = float(noise)

    def __call__(self, params: Mapping[str, Any], seed: int | None = None) -> Dict[str, Any]:
        loss = synthetic_loss(
            int(params["n_layers"]),
            float(params["dropout"]),
            float(params["learning_rate"]),
            str(params["optimizer"]),
        )
        if self.noise:
            rng = random.Random(f"{seed}:{sorted(params.items())}")
            loss += rng.gauss(0.0, self.noise)
        return {
            "loss": loss,
            "optimizer": str(params["optimizer"]),
            "status": "ok",
        }


def create_mixed_evaluator(config: Mapping[str, Any]) -> Callable[..., Dict[str, Any]]:
    """Factory used from experiment files; reads ``noise`` from the evaluator block."""
    return MixedSpaceEvaluator(noise=float(config.get("noise", 0.0)))
