"""Shared types for evaluator plugins."""
from __future__ import annotations

from typing import Dict


MetricValue = float | int | str | bool | None
"""Supported value types in an evaluator result payload."""


EvaluatorResult = Dict[str, MetricValue]
"""Canonical mapping type returned by evaluators.

Evaluators are called as ``evaluator(params, seed)``. The objective metric
named in ``search.metric`` must be present; a ``status`` other than ``"ok"``
or a truthy ``timed_out`` marks the trial as failed.
"""
