"""Parameter distributions and their internal float representation.

Every sampled parameter is stored as a single float regardless of its
user-facing type. Each distribution knows how to convert a user value into
that internal float and back again.
"""
from __future__ import annotations

import math
import numbers
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence, Tuple

from .exceptions import ConfigurationError


ExternalValue = int | float | str
"""User-facing parameter value returned by ``suggest_*`` calls."""

MAX_EXACT_INT = 2**53
"""Largest integer magnitude a float64 internal value represents exactly."""


class BaseDistribution(ABC):
    """Common interface of all search-space distributions."""

    @abstractmethod
    def to_internal_repr(self, external_repr: Any) -> float:
        """Convert a user-facing value into the internal float representation."""

    @abstractmethod
    def to_external_repr(self, internal_repr: float) -> ExternalValue:
        """Convert an internal float back into the user-facing value."""

    @abstractmethod
    def single(self) -> bool:
        """Return ``True`` when the space contains exactly one value."""


def _as_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{field} must be an integer, got {value!r}")
    result = int(value)
    if abs(result) > MAX_EXACT_INT:
        raise ConfigurationError(
            f"{field} must lie within +/-{MAX_EXACT_INT} to be stored exactly, got {value!r}"
        )
    return result


def _as_finite_float(value: Any, *, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{field} must be a real number, got {value!r}")
    result = float(value)
    if not math.isfinite(result):
        raise ConfigurationError(f"{field} must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class IntUniformDistribution(BaseDistribution):
    """Integers drawn uniformly from ``[low, high]``, both ends included."""

    low: int
    high: int

    def __post_init__(self) -> None:
        low = _as_int(self.low, field="low")
        high = _as_int(self.high, field="high")
        if low > high:
            raise ConfigurationError(
                f"IntUniformDistribution requires low <= high (low={low}, high={high})"
            )
        object.__setattr__(self, "low", low)
        object.__setattr__(self, "high", high)

    def to_internal_repr(self, external_repr: Any) -> float:
        return float(external_repr)

    def to_external_repr(self, internal_repr: float) -> int:
        return int(internal_repr)

    def single(self) -> bool:
        return self.low == self.high


@dataclass(frozen=True)
class UniformDistribution(BaseDistribution):
    """Floats drawn uniformly from ``[low, high]``."""

    low: float
    high: float

    def __post_init__(self) -> None:
        low = _as_finite_float(self.low, field="low")
        high = _as_finite_float(self.high, field="high")
        if low > high:
            raise ConfigurationError(
                f"UniformDistribution requires low <= high (low={low}, high={high})"
            )
        object.__setattr__(self, "low", low)
        object.__setattr__(self, "high", high)

    def to_internal_repr(self, external_repr: Any) -> float:
        return float(external_repr)

    def to_external_repr(self, internal_repr: float) -> float:
        return float(internal_repr)

    def single(self) -> bool:
        return self.low == self.high


@dataclass(frozen=True)
class LogUniformDistribution(BaseDistribution):
    """Floats in ``[low, high]`` whose logarithm is uniformly distributed."""

    low: float
    high: float

    def __post_init__(self) -> None:
        low = _as_finite_float(self.low, field="low")
        high = _as_finite_float(self.high, field="high")
        if low <= 0.0:
            raise ConfigurationError(
                f"LogUniformDistribution requires low > 0 (low={low})"
            )
        if low > high:
            raise ConfigurationError(
                f"LogUniformDistribution requires low <= high (low={low}, high={high})"
            )
        object.__setattr__(self, "low", low)
        object.__setattr__(self, "high", high)

    def to_internal_repr(self, external_repr: Any) -> float:
        return float(external_repr)

    def to_external_repr(self, internal_repr: float) -> float:
        return float(internal_repr)

    def single(self) -> bool:
        return self.low == self.high


@dataclass(frozen=True)
class CategoricalDistribution(BaseDistribution):
    """A fixed, ordered set of string labels.

    The internal representation of a label is its position in ``choices``.
    """

    choices: Tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.choices, str) or not isinstance(self.choices, Sequence):
            raise ConfigurationError(
                f"CategoricalDistribution choices must be a sequence of labels, got {self.choices!r}"
            )
        choices = tuple(self.choices)
        if not choices:
            raise ConfigurationError("CategoricalDistribution requires at least one choice")
        for choice in choices:
            if not isinstance(choice, str):
                raise ConfigurationError(
                    f"CategoricalDistribution choices must be strings, got {choice!r}"
                )
        object.__setattr__(self, "choices", choices)

    def to_internal_repr(self, external_repr: Any) -> float:
        try:
            return float(self.choices.index(external_repr))
        except ValueError:
            warnings.warn(
                f"Label {external_repr!r} is not one of {list(self.choices)}; "
                "falling back to the first choice.",
                RuntimeWarning,
                stacklevel=2,
            )
            return 0.0

    def to_external_repr(self, internal_repr: float) -> str:
        return self.choices[int(internal_repr)]

    def single(self) -> bool:
        return len(self.choices) == 1


__all__ = [
    "BaseDistribution",
    "CategoricalDistribution",
    "ExternalValue",
    "IntUniformDistribution",
    "LogUniformDistribution",
    "MAX_EXACT_INT",
    "UniformDistribution",
]
