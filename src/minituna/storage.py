"""In-memory trial storage enforcing the trial state machine."""
from __future__ import annotations

import enum
import math
import numbers
import threading
from dataclasses import dataclass, field, replace
from typing import Container, Dict, List

from .distributions import BaseDistribution, ExternalValue
from .exceptions import AlreadyFinishedError, NotFoundError


class TrialState(enum.Enum):
    """Lifecycle states of a trial. ``RUNNING`` is the only non-terminal one."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_finished(self) -> bool:
        return self is not TrialState.RUNNING


@dataclass
class FrozenTrial:
    """Snapshot of a trial record.

    Instances handed out by :class:`InMemoryStorage` are copies; changing them
    has no effect on the stored record.
    """

    trial_id: int
    state: TrialState
    value: float
    internal_params: Dict[str, float] = field(default_factory=dict)
    distributions: Dict[str, BaseDistribution] = field(default_factory=dict)

    @property
    def number(self) -> int:
        return self.trial_id

    @property
    def is_finished(self) -> bool:
        return self.state.is_finished()

    @property
    def params(self) -> Dict[str, ExternalValue]:
        """User-facing parameter values decoded through their distributions."""
        return {
            name: self.distributions[name].to_external_repr(internal)
            for name, internal in self.internal_params.items()
        }

    def copy(self) -> "FrozenTrial":
        return replace(
            self,
            internal_params=dict(self.internal_params),
            distributions=dict(self.distributions),
        )


class InMemoryStorage:
    """Append-only sequence of trial records addressed by trial id.

    The trial id of a record equals its position in creation order. The
    storage is the only writer of records; every mutation checks that the
    target trial is still running.
    """

    def __init__(self) -> None:
        self._trials: List[FrozenTrial] = []
        self._lock = threading.RLock()

    def create_new_trial(self) -> int:
        with self._lock:
            trial_id = len(self._trials)
            self._trials.append(FrozenTrial(trial_id=trial_id, state=TrialState.RUNNING, value=0.0))
            return trial_id

    def get_n_trials(self) -> int:
        with self._lock:
            return len(self._trials)

    def get_trial(self, trial_id: int) -> FrozenTrial:
        with self._lock:
            return self._lookup(trial_id).copy()

    def get_all_trials(
        self,
        states: Container[TrialState] | None = None,
    ) -> List[FrozenTrial]:
        with self._lock:
            return [
                trial.copy()
                for trial in self._trials
                if states is None or trial.state in states
            ]

    def get_best_trial(self) -> FrozenTrial | None:
        """Return the completed trial with the lowest finite value.

        Ties go to the trial created first.
        """
        with self._lock:
            candidates = [
                trial
                for trial in self._trials
                if trial.state is TrialState.COMPLETED and math.isfinite(trial.value)
            ]
            if not candidates:
                return None
            best = min(candidates, key=lambda trial: (trial.value, trial.trial_id))
            return best.copy()

    def set_trial_value(self, trial_id: int, value: float) -> None:
        with self._lock:
            trial = self._lookup_running(trial_id)
            trial.value = float(value)

    def set_trial_state(self, trial_id: int, state: TrialState) -> None:
        with self._lock:
            trial = self._lookup_running(trial_id)
            trial.state = TrialState(state)

    def set_trial_param(
        self,
        trial_id: int,
        param_name: str,
        distribution: BaseDistribution,
        internal_value: float,
    ) -> None:
        with self._lock:
            trial = self._lookup_running(trial_id)
            trial.internal_params[param_name] = float(internal_value)
            trial.distributions[param_name] = distribution

    def _lookup(self, trial_id: int) -> FrozenTrial:
        if isinstance(trial_id, bool) or not isinstance(trial_id, numbers.Integral):
            raise NotFoundError(trial_id)
        trial_id = int(trial_id)
        if trial_id < 0 or trial_id >= len(self._trials):
            raise NotFoundError(trial_id)
        return self._trials[trial_id]

    def _lookup_running(self, trial_id: int) -> FrozenTrial:
        trial = self._lookup(trial_id)
        if trial.state.is_finished():
            raise AlreadyFinishedError(trial_id, trial.state.value)
        return trial


__all__ = ["FrozenTrial", "InMemoryStorage", "TrialState"]
