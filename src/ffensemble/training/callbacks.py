"""Callbacks observing network builds."""

from __future__ import annotations

import logging
from abc import ABC
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ffensemble.models.network import NetworkModel

    from .controller import TrainingController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildProgress:
    """Snapshot of the training controller after one epoch.

    ``current`` is None when the epoch diverged, and ``best`` is None until the
    first finite candidate exists.
    """

    model_name: str
    attempt: int
    max_attempts: int
    attempt_epoch: int
    max_attempt_epochs: int
    current: NetworkModel | None
    best: NetworkModel | None
    best_attempt: int
    best_attempt_epoch: int
    in_fine_tune: bool
    stop_attempt: bool
    stop_all: bool
    diverged: bool = False

    @property
    def is_last_epoch(self) -> bool:
        """True when no further epoch follows in the current attempt."""
        return (
            self.diverged
            or self.stop_all
            or self.stop_attempt
            or self.attempt_epoch == self.max_attempt_epochs
        )


class BuildCallback(ABC):
    """Base class for network build callbacks.

    Callbacks are invoked synchronously on the controller thread and can't
    influence the course of training.
    """

    def on_build_begin(self, controller: TrainingController) -> None:
        """Called before the first epoch."""
        pass

    def on_epoch_end(self, progress: BuildProgress) -> None:
        """Called after each epoch."""
        pass

    def on_attempt_end(self, progress: BuildProgress) -> None:
        """Called when an attempt finishes."""
        pass

    def on_build_end(self, controller: TrainingController) -> None:
        """Called after the best model is selected."""
        pass


class CallbackList:
    """Container for managing multiple callbacks."""

    def __init__(self, callbacks: list[BuildCallback] | None = None):
        self.callbacks = list(callbacks or [])

    def append(self, callback: BuildCallback) -> None:
        """Add a callback to the list."""
        self.callbacks.append(callback)

    def on_build_begin(self, controller: TrainingController) -> None:
        for cb in self.callbacks:
            cb.on_build_begin(controller)

    def on_epoch_end(self, progress: BuildProgress) -> None:
        for cb in self.callbacks:
            cb.on_epoch_end(progress)

    def on_attempt_end(self, progress: BuildProgress) -> None:
        for cb in self.callbacks:
            cb.on_attempt_end(progress)

    def on_build_end(self, controller: TrainingController) -> None:
        for cb in self.callbacks:
            cb.on_build_end(controller)


class LoggingCallback(BuildCallback):
    """
    Callback logging build progress.

    Args:
        log_interval: Epochs between log outputs.

    Example:
        >>> model = build_model(config, task_kind, names, data, callbacks=[LoggingCallback(10)])
    """

    def __init__(self, log_interval: int = 10):
        if log_interval <= 0:
            raise ValueError(f"log_interval must be positive, got {log_interval}")
        self.log_interval = log_interval

    def on_epoch_end(self, progress: BuildProgress) -> None:
        if progress.attempt_epoch % self.log_interval != 0 and not progress.is_last_epoch:
            return
        current = progress.current.metrics
        best = progress.best.metrics
        logger.info(
            f"[{progress.model_name}] attempt {progress.attempt}/{progress.max_attempts} "
            f"epoch {progress.attempt_epoch}/{progress.max_attempt_epochs} | "
            f"cost {current.cost:.5f} acc {current.binary_accuracy:.5f} | "
            f"best cost {best.cost:.5f} (attempt {progress.best_attempt}, "
            f"epoch {progress.best_attempt_epoch})"
            + (" | fine-tune" if progress.in_fine_tune else "")
        )

    def on_attempt_end(self, progress: BuildProgress) -> None:
        if progress.diverged:
            reason = "diverged"
        elif progress.stop_all:
            reason = "stop"
        else:
            reason = "patience" if progress.stop_attempt else "budget"
        logger.info(
            f"[{progress.model_name}] attempt {progress.attempt} finished after "
            f"{progress.attempt_epoch} epochs ({reason})"
        )


class HistoryCallback(BuildCallback):
    """Callback recording every progress snapshot."""

    def __init__(self) -> None:
        self.history: list[BuildProgress] = []
        self.finished_attempts: list[int] = []

    def on_epoch_end(self, progress: BuildProgress) -> None:
        self.history.append(progress)

    def on_attempt_end(self, progress: BuildProgress) -> None:
        self.finished_attempts.append(progress.attempt)
