"""Training controller driving a network through attempts and epochs."""

from __future__ import annotations

import copy
import logging
from collections.abc import Sequence

import numpy as np

from ffensemble.core.exceptions import ShapeMismatchError, TrainingError, ValidationError
from ffensemble.core.task import MIN_REGRESSION_RMSE, OutputTaskKind
from ffensemble.data.dataset import SampleDataset
from ffensemble.data.filters import FeatureFilter
from ffensemble.models.network import NetworkModel
from ffensemble.stats.errstat import BinaryErrStat, ErrorStatistic, compute_error_stat

from .callbacks import BuildCallback, BuildProgress, CallbackList
from .config import NetworkModelConfig
from .engine import EngineTrainer, MLPEngine

logger = logging.getLogger(__name__)


class ControllerState:
    """Mutable state of a network build."""

    def __init__(self) -> None:
        self.attempt: int = 1
        self.attempt_epoch: int = 0
        self.total_epochs: int = 0
        self.best: NetworkModel | None = None
        self.best_attempt: int = 0
        self.best_attempt_epoch: int = 0
        self.last_improvement: NetworkModel | None = None
        self.last_improvement_epoch: int = 0
        self.in_fine_tune: bool = False
        self.stop_attempt: bool = False
        self.stop_all: bool = False

    def reset_attempt(self) -> None:
        """Reset per-attempt tracking."""
        self.attempt_epoch = 0
        self.last_improvement = None
        self.last_improvement_epoch = 0
        self.in_fine_tune = False


class TrainingController:
    """
    Builds a :class:`NetworkModel` through bounded attempts and epochs.

    Each epoch trains the engine once, snapshots it into a candidate model and
    compares the candidate with the best model so far. An attempt ends when
    its epoch budget is exhausted or the candidates stop improving for
    ``attempt_epochs * patience`` epochs; the next attempt restarts from new
    random weights. The whole build ends early when a classifier reaches
    perfect accuracy (possibly after fine-tuning) or a regression model fits
    the training data exactly.

    Args:
        config: Network model configuration.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        training_data: Training data.
        validation_data: Optional validation data.
        callbacks: Build callbacks.
        seed: Seed of the build's random generator.
        name: Name given to the built model.

    Example:
        >>> config = NetworkModelConfig(hidden_layers=[HiddenLayerConfig(8)])
        >>> controller = TrainingController(config, OutputTaskKind.BINARY, ["AND"], data)
        >>> model = controller.build()
    """

    def __init__(
        self,
        config: NetworkModelConfig,
        task_kind: OutputTaskKind,
        output_feature_names: Sequence[str],
        training_data: SampleDataset,
        validation_data: SampleDataset | None = None,
        callbacks: Sequence[BuildCallback] | None = None,
        seed: int = 0,
        name: str = "MLP",
    ):
        self.config = config
        self.task_kind = task_kind
        self.output_feature_names = tuple(output_feature_names)
        self.name = name
        self._check_data(training_data, "training")
        if validation_data is not None:
            self._check_data(validation_data, "validation")
            if validation_data.input_length != training_data.input_length:
                raise ShapeMismatchError(
                    "Validation input length differs from training input length",
                    expected=(training_data.input_length,),
                    got=(validation_data.input_length,),
                )
        self.training_data = training_data
        self.validation_data = validation_data
        self.callbacks = CallbackList(list(callbacks or []))
        self.rng = np.random.default_rng(seed)
        self.state = ControllerState()

        self.input_filter = FeatureFilter().fit(training_data.inputs)
        self.output_filter = (
            FeatureFilter().fit(training_data.outputs)
            if task_kind is OutputTaskKind.REGRESSION
            else None
        )
        self._train_inputs = self.input_filter.apply(training_data.inputs)
        self._val_inputs = None
        if validation_data is not None:
            self._val_inputs = self.input_filter.apply(validation_data.inputs)
        train_targets = training_data.outputs
        if self.output_filter is not None:
            train_targets = self.output_filter.apply(train_targets)

        self.engine = MLPEngine(
            training_data.input_length,
            len(self.output_feature_names),
            task_kind,
            config.hidden_layers,
        )
        self.engine.reset_parameters(self.rng)
        self.trainer = EngineTrainer(
            self.engine, self._train_inputs, train_targets, config.training, self.rng
        )

    def _check_data(self, data: SampleDataset, role: str) -> None:
        if len(data) == 0:
            raise ValidationError(f"The {role} data is empty")
        if data.output_length != len(self.output_feature_names):
            raise ShapeMismatchError(
                f"The {role} data output length differs from the number of output features",
                expected=(len(self.output_feature_names),),
                got=(data.output_length,),
            )

    @property
    def has_validation(self) -> bool:
        return self.validation_data is not None

    def _error_stat(
        self, engine: MLPEngine, inputs: np.ndarray, ideal: np.ndarray
    ) -> ErrorStatistic | None:
        computed = engine.compute_batch(inputs)
        if self.output_filter is not None:
            computed = self.output_filter.reverse(computed)
        if not np.all(np.isfinite(computed)):
            return None
        try:
            return compute_error_stat(
                self.task_kind, self.output_feature_names, computed, ideal
            )
        except OverflowError:
            logger.debug(f"[{self.name}] error statistic out of float range")
            return None

    def _snapshot(self) -> NetworkModel | None:
        """Freeze the engine into a candidate, or None when its outputs are not finite."""
        engine = copy.deepcopy(self.engine)
        training_stat = self._error_stat(engine, self._train_inputs, self.training_data.outputs)
        if training_stat is None:
            return None
        validation_stat = None
        if self.validation_data is not None:
            assert self._val_inputs is not None
            validation_stat = self._error_stat(
                engine, self._val_inputs, self.validation_data.outputs
            )
            if validation_stat is None:
                return None
        return NetworkModel(
            self.name,
            self.task_kind,
            self.output_feature_names,
            engine,
            self.input_filter,
            self.output_filter,
            training_stat,
            validation_stat,
        )

    def _is_better(self, candidate: NetworkModel, reference: NetworkModel) -> bool:
        if not self.has_validation:
            return candidate.training_error_stat.is_better_than(reference.training_error_stat)
        return candidate.metrics.is_better_than(reference.metrics)

    def _next_attempt(self) -> bool:
        if self.state.attempt >= self.config.training.attempts:
            return False
        self.state.attempt += 1
        self.state.reset_attempt()
        self.trainer.reset()
        logger.debug(f"[{self.name}] starting attempt {self.state.attempt}")
        return True

    def _evaluate_epoch(self, current: NetworkModel) -> None:
        """Update the tracked candidates and stop flags with a new candidate."""
        state = self.state
        training = self.config.training
        classification = self.task_kind.is_classification

        if state.attempt_epoch == 1:
            state.last_improvement = current
            state.last_improvement_epoch = state.attempt_epoch
            state.in_fine_tune = False
        elif state.last_improvement is None or self._is_better(current, state.last_improvement):
            state.last_improvement = current
            state.last_improvement_epoch = state.attempt_epoch

        if state.best is None or self._is_better(current, state.best):
            state.best = current
            state.best_attempt = state.attempt
            state.best_attempt_epoch = state.attempt_epoch
            if self.has_validation and classification and current.metrics.binary_accuracy == 1.0:
                if training.fine_tune:
                    state.in_fine_tune = True
                else:
                    state.stop_all = True
        elif self.has_validation and state.in_fine_tune:
            state.stop_all = True

        if state.in_fine_tune and state.attempt_epoch == training.attempt_epochs:
            state.stop_all = True

        training_stat = current.training_error_stat
        if not self.has_validation:
            if classification:
                assert isinstance(training_stat, BinaryErrStat)
                if training_stat.binary_accuracy == 1.0:
                    state.stop_all = True
            elif training_stat.total_rmse < MIN_REGRESSION_RMSE:
                state.stop_all = True

        state.stop_attempt = (
            state.stop_all
            or state.attempt_epoch - state.last_improvement_epoch
            >= training.attempt_epochs * training.patience
            or training_stat.total_rmse < MIN_REGRESSION_RMSE
        )

    def _progress(self, current: NetworkModel | None, diverged: bool = False) -> BuildProgress:
        state = self.state
        return BuildProgress(
            model_name=self.name,
            attempt=state.attempt,
            max_attempts=self.config.training.attempts,
            attempt_epoch=state.attempt_epoch,
            max_attempt_epochs=self.config.training.attempt_epochs,
            current=current,
            best=state.best,
            best_attempt=state.best_attempt,
            best_attempt_epoch=state.best_attempt_epoch,
            in_fine_tune=state.in_fine_tune,
            stop_attempt=state.stop_attempt,
            stop_all=state.stop_all,
            diverged=diverged,
        )

    def build(self) -> NetworkModel:
        """
        Run the attempts and return the best model.

        Returns:
            Best model with its training (and validation) error statistics.

        Raises:
            TrainingError: If no attempt produced a finite candidate.
        """
        training = self.config.training
        state = self.state
        logger.info(
            f"[{self.name}] training network: {training.attempts} attempt(s) x "
            f"{training.attempt_epochs} epoch(s), {len(self.training_data)} training samples"
            + (f", {len(self.validation_data)} validation samples" if self.validation_data else "")
        )
        self.callbacks.on_build_begin(self)

        while True:
            state.attempt_epoch += 1
            state.total_epochs += 1
            current = self._snapshot() if self.trainer.run_epoch() else None
            if current is None:
                logger.warning(
                    f"[{self.name}] attempt {state.attempt} diverged "
                    f"at epoch {state.attempt_epoch}"
                )
                self.callbacks.on_attempt_end(self._progress(None, diverged=True))
                if not self._next_attempt():
                    break
                continue

            self._evaluate_epoch(current)
            progress = self._progress(current)
            logger.debug(
                f"[{self.name}] attempt {state.attempt} epoch {state.attempt_epoch}: "
                f"cost {current.metrics.cost:.5f}, best cost {progress.best.metrics.cost:.5f}"
            )
            self.callbacks.on_epoch_end(progress)

            if progress.is_last_epoch:
                self.callbacks.on_attempt_end(progress)
                if state.stop_all or not self._next_attempt():
                    break

        self.callbacks.on_build_end(self)
        if state.best is None:
            raise TrainingError(f"[{self.name}] training produced no finite model")
        logger.info(
            f"[{self.name}] finished after {state.total_epochs} epoch(s); best model from "
            f"attempt {state.best_attempt}, epoch {state.best_attempt_epoch}"
        )
        return state.best


def train_network(
    config: NetworkModelConfig,
    task_kind: OutputTaskKind,
    output_feature_names: Sequence[str],
    training_data: SampleDataset,
    validation_data: SampleDataset | None = None,
    callbacks: Sequence[BuildCallback] | None = None,
    seed: int = 0,
    name: str = "MLP",
) -> NetworkModel:
    """
    One-liner network training.

    Example:
        >>> model = train_network(NetworkModelConfig(), OutputTaskKind.REGRESSION, ["y"], data)
    """
    controller = TrainingController(
        config,
        task_kind,
        output_feature_names,
        training_data,
        validation_data,
        callbacks=callbacks,
        seed=seed,
        name=name,
    )
    return controller.build()
