"""Samplers drawing raw parameter values from distributions."""
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Protocol

import numpy as np

from .distributions import (
    BaseDistribution,
    CategoricalDistribution,
    ExternalValue,
    IntUniformDistribution,
    LogUniformDistribution,
    UniformDistribution,
)
from .exceptions import ConfigurationError


class RandomSource(Protocol):
    """Uniform random capability injected into samplers."""

    def uniform(self, low: float, high: float) -> float:
        """Return a float drawn uniformly from ``[low, high]``."""

    def randint(self, low: int, high: int) -> int:
        """Return an integer drawn uniformly from ``[low, high]``, both ends included."""


class NumpyRandomSource:
    """:class:`RandomSource` backed by a NumPy ``Generator``."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = np.random.default_rng(seed)

    def reseed(self, seed: int | None) -> None:
        self._rng = np.random.default_rng(seed)

    def uniform(self, low: float, high: float) -> float:
        return float(self._rng.uniform(low, high))

    def randint(self, low: int, high: int) -> int:
        return int(self._rng.integers(low, high, endpoint=True))


class BaseSampler(ABC):
    """Interface shared by all samplers.

    A sampler turns a distribution into a raw, user-facing value. Conversion to
    the internal representation and recording in the storage happen in the
    trial handle.
    """

    @abstractmethod
    def sample_independent(
        self,
        param_name: str,
        param_distribution: BaseDistribution,
    ) -> ExternalValue:
        """Draw one value for ``param_name`` from ``param_distribution``."""

    def reseed_rng(self, seed: int | None) -> None:
        """Reset the random state, if the sampler has one."""


class RandomSampler(BaseSampler):
    """Independent uniform sampler.

    Every call is drawn independently of any earlier trial. A custom
    :class:`RandomSource` can be injected for deterministic tests; otherwise a
    :class:`NumpyRandomSource` seeded with ``seed`` is used.
    """

    def __init__(
        self,
        seed: int | None = None,
        *,
        random_source: RandomSource | None = None,
    ) -> None:
        self._random = random_source if random_source is not None else NumpyRandomSource(seed)

    def reseed_rng(self, seed: int | None) -> None:
        reseed = getattr(self._random, "reseed", None)
        if reseed is None:
            raise TypeError(
                f"{type(self._random).__name__} does not support reseeding"
            )
        reseed(seed)

    def sample_independent(
        self,
        param_name: str,
        param_distribution: BaseDistribution,
    ) -> ExternalValue:
        if isinstance(param_distribution, IntUniformDistribution):
            return int(self._random.randint(param_distribution.low, param_distribution.high))

        if isinstance(param_distribution, UniformDistribution):
            if param_distribution.single():
                return param_distribution.low
            return float(self._random.uniform(param_distribution.low, param_distribution.high))

        if isinstance(param_distribution, LogUniformDistribution):
            low = param_distribution.low
            high = param_distribution.high
            if param_distribution.single():
                return low
            value = math.exp(self._random.uniform(math.log(low), math.log(high)))
            # exp(log(x)) may land one ulp outside the bounds.
            return min(max(value, low), high)

        if isinstance(param_distribution, CategoricalDistribution):
            index = self._random.randint(0, len(param_distribution.choices) - 1)
            return param_distribution.choices[index]

        raise ConfigurationError(
            f"Unsupported distribution for parameter '{param_name}': {param_distribution!r}"
        )


__all__ = ["BaseSampler", "NumpyRandomSource", "RandomSampler", "RandomSource"]
