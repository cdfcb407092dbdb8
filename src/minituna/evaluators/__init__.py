"""Evaluator package exports."""

from .base import EvaluatorResult, MetricValue
from .branin import branin_objective
from .mixed import MixedSpaceEvaluator, create_mixed_evaluator
from .quadratic import quadratic, quadratic_objective

__all__ = [
    "EvaluatorResult",
    "MetricValue",
    "MixedSpaceEvaluator",
    "branin_objective",
    "create_mixed_evaluator",
    "quadratic",
    "quadratic_objective",
]
