"""Trial handle passed to objective functions."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Sequence

from .distributions import (
    BaseDistribution,
    CategoricalDistribution,
    ExternalValue,
    IntUniformDistribution,
    LogUniformDistribution,
    UniformDistribution,
)

if TYPE_CHECKING:
    from .study import Study


class Trial:
    """Per-trial facade used by objective functions to request parameters.

    The handle keeps only the trial id and the owning study. All record state
    lives in the study's storage and is read back on demand.
    """

    def __init__(self, study: "Study", trial_id: int) -> None:
        self.study = study
        self._trial_id = trial_id

    @property
    def number(self) -> int:
        return self._trial_id

    @property
    def params(self) -> Dict[str, ExternalValue]:
        return self.study.storage.get_trial(self._trial_id).params

    @property
    def distributions(self) -> Dict[str, BaseDistribution]:
        return self.study.storage.get_trial(self._trial_id).distributions

    def suggest_int(self, name: str, low: int, high: int) -> int:
        """Suggest an integer from ``[low, high]``, both ends included."""
        return self._suggest(name, IntUniformDistribution(low=low, high=high))

    def suggest_uniform(self, name: str, low: float, high: float) -> float:
        """Suggest a float from ``[low, high]``."""
        return self._suggest(name, UniformDistribution(low=low, high=high))

    def suggest_loguniform(self, name: str, low: float, high: float) -> float:
        """Suggest a float from ``[low, high]`` sampled in log space."""
        return self._suggest(name, LogUniformDistribution(low=low, high=high))

    def suggest_float(self, name: str, low: float, high: float, *, log: bool = False) -> float:
        if log:
            return self.suggest_loguniform(name, low, high)
        return self.suggest_uniform(name, low, high)

    def suggest_categorical(self, name: str, choices: Sequence[str]) -> str:
        """Suggest one label out of ``choices``."""
        return self._suggest(name, CategoricalDistribution(choices=choices))

    def _suggest(self, name: str, distribution: BaseDistribution) -> ExternalValue:
        value = self.study.sampler.sample_independent(name, distribution)
        internal = distribution.to_internal_repr(value)
        self.study.storage.set_trial_param(self._trial_id, name, distribution, internal)
        return value

    def __repr__(self) -> str:
        return f"Trial(number={self._trial_id})"


__all__ = ["Trial"]
