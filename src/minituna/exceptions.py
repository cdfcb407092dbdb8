"""Error types raised by the trial engine."""
from __future__ import annotations


class MinitunaError(Exception):
    """Base class for every error raised by minituna."""


class ConfigurationError(MinitunaError, ValueError):
    """Raised when a distribution is built with malformed bounds or choices."""


class NotFoundError(MinitunaError, LookupError):
    """Raised when a trial identifier does not exist in the storage."""

    def __init__(self, trial_id: int) -> None:
        super().__init__(f"Missing trial id: {trial_id}")
        self.trial_id = trial_id


class AlreadyFinishedError(MinitunaError, RuntimeError):
    """Raised when a finished trial is mutated."""

    def __init__(self, trial_id: int, state: str) -> None:
        super().__init__(
            f"Cannot update trial {trial_id} because it is already finished with state {state}."
        )
        self.trial_id = trial_id
        self.state = state


__all__ = [
    "AlreadyFinishedError",
    "ConfigurationError",
    "MinitunaError",
    "NotFoundError",
]
