"""Study object driving the optimization loop."""
from __future__ import annotations

import math
import time
from typing import Callable, Container, Dict, Iterable, List

from .distributions import ExternalValue
from .exceptions import ConfigurationError
from .samplers import BaseSampler, RandomSampler
from .storage import FrozenTrial, InMemoryStorage, TrialState
from .trial import Trial


ObjectiveFuncType = Callable[[Trial], float]
CallbackFuncType = Callable[["Study", FrozenTrial], None]


class Study:
    """A sequence of trials sharing one storage and one sampler.

    Optimization is minimization: the best trial is the completed trial with
    the lowest finite objective value.
    """

    def __init__(
        self,
        storage: InMemoryStorage | None = None,
        sampler: BaseSampler | None = None,
        *,
        study_name: str | None = None,
    ) -> None:
        self.storage = storage if storage is not None else InMemoryStorage()
        self.sampler = sampler if sampler is not None else RandomSampler()
        self.study_name = study_name

    @property
    def trials(self) -> List[FrozenTrial]:
        return self.storage.get_all_trials()

    def get_trials(self, states: Container[TrialState] | None = None) -> List[FrozenTrial]:
        return self.storage.get_all_trials(states=states)

    @property
    def best_trial(self) -> FrozenTrial | None:
        return self.storage.get_best_trial()

    @property
    def best_value(self) -> float:
        return self._require_best_trial().value

    @property
    def best_params(self) -> Dict[str, ExternalValue]:
        return self._require_best_trial().params

    def _require_best_trial(self) -> FrozenTrial:
        best = self.storage.get_best_trial()
        if best is None:
            raise ValueError("No completed trial with a finite value is available yet.")
        return best

    def optimize(
        self,
        func: ObjectiveFuncType,
        n_trials: int,
        *,
        timeout: float | None = None,
        callbacks: Iterable[CallbackFuncType] | None = None,
        verbose: bool = False,
    ) -> None:
        """Run ``n_trials`` trials of ``func`` one after another.

        A trial whose objective raises is marked failed and the loop moves on,
        except for :class:`ConfigurationError`, which is re-raised after the
        trial is sealed. ``timeout`` (seconds) stops launching new trials once
        elapsed; it never interrupts a running objective.
        """

        if n_trials < 0:
            raise ValueError("n_trials must be non-negative")
        callback_list = list(callbacks or [])
        start = time.perf_counter()

        for _ in range(n_trials):
            if timeout is not None and time.perf_counter() - start >= timeout:
                if verbose:
                    print(f"[study] Timeout of {timeout}s reached; stopping.")
                break

            frozen_trial = self._run_trial(func, verbose=verbose)
            for callback in callback_list:
                callback(self, frozen_trial)

    def _run_trial(self, func: ObjectiveFuncType, *, verbose: bool) -> FrozenTrial:
        trial_id = self.storage.create_new_trial()
        trial = Trial(self, trial_id)

        try:
            raw_value = func(trial)
        except ConfigurationError:
            self._fail_trial(trial_id)
            raise
        except KeyboardInterrupt:
            self._fail_trial(trial_id)
            raise
        except Exception as exc:  # noqa: BLE001 - objective failures end the trial only
            self._fail_trial(trial_id)
            print(f"[warning] Trial {trial_id} failed: {type(exc).__name__}: {exc}")
            return self.storage.get_trial(trial_id)

        try:
            value = float(raw_value)
        except (TypeError, ValueError):
            self._fail_trial(trial_id)
            print(
                f"[warning] Trial {trial_id} failed: objective returned {raw_value!r}, "
                "which cannot be converted to float."
            )
            return self.storage.get_trial(trial_id)

        self.storage.set_trial_value(trial_id, value)
        self.storage.set_trial_state(trial_id, TrialState.COMPLETED)
        if verbose:
            best = self.storage.get_best_trial()
            best_note = f" Best is trial {best.number} with value {best.value}." if best else ""
            if not math.isfinite(value):
                best_note = " Non-finite values are ignored for the best trial." + best_note
            print(f"[trial {trial_id}] Completed with value {value}.{best_note}")
        return self.storage.get_trial(trial_id)

    def _fail_trial(self, trial_id: int) -> None:
        # Failed trials never carry a meaningful score.
        self.storage.set_trial_value(trial_id, math.nan)
        self.storage.set_trial_state(trial_id, TrialState.FAILED)


def create_study(
    *,
    storage: InMemoryStorage | None = None,
    sampler: BaseSampler | None = None,
    seed: int | None = None,
    study_name: str | None = None,
) -> Study:
    """Create a study with in-memory storage and an independent random sampler."""

    if sampler is None:
        sampler = RandomSampler(seed=seed)
    elif seed is not None:
        sampler.reseed_rng(seed)
    return Study(storage=storage, sampler=sampler, study_name=study_name)


__all__ = ["CallbackFuncType", "ObjectiveFuncType", "Study", "create_study"]
