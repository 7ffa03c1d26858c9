"""Stacked generalization over a stack of networks."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from ffensemble.core.exceptions import ValidationError
from ffensemble.core.task import OutputTaskKind
from ffensemble.data.dataset import SampleDataset
from ffensemble.models.base import Model
from ffensemble.models.diagnostics import DiagnosticRecord
from ffensemble.training.callbacks import BuildCallback
from ffensemble.training.controller import train_network

from .base import child_seed
from .config import StackingModelConfig
from .kfold import leave_out, make_folds

logger = logging.getLogger(__name__)


def meta_inputs(inputs: np.ndarray, stack_outputs: np.ndarray, route_input: bool) -> np.ndarray:
    """Meta-learner input rows from flattened stack outputs and optionally the input."""
    if route_input:
        return np.hstack([inputs, stack_outputs])
    return stack_outputs


def stack_outputs(stack: Sequence[Model], matrix: np.ndarray) -> np.ndarray:
    """Flattened outputs of the stack members, one row per input row."""
    return np.hstack([member.compute_batch(matrix) for member in stack])


def stack_dataset(stack: Sequence[Model], data: SampleDataset, route_input: bool) -> SampleDataset:
    """Dataset of meta-learner inputs paired with the ideal outputs of ``data``."""
    inputs = data.inputs
    return data.with_inputs(meta_inputs(inputs, stack_outputs(stack, inputs), route_input))


class StackedEnsemble(Model):
    """
    A stack of networks whose outputs feed a meta-learner.

    The model reports the meta-learner's confidence metrics.

    Args:
        name: Model name.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        stack: Stacked networks.
        meta_learner: Model computing the final output from the stack outputs.
        route_input: Whether the meta-learner also receives the original input.
    """

    def __init__(
        self,
        name: str,
        task_kind: OutputTaskKind,
        output_feature_names: Sequence[str],
        stack: Sequence[Model],
        meta_learner: Model,
        route_input: bool,
    ):
        super().__init__(name, task_kind, output_feature_names, meta_learner.metrics)
        if not stack:
            raise ValidationError(f"{name}: stack must not be empty")
        for member in list(stack) + [meta_learner]:
            if member.task_kind is not task_kind:
                raise ValidationError(
                    f"{member.name} solves a {member.task_kind.value} task, "
                    f"{name} a {task_kind.value} task"
                )
            if member.num_output_features != self.num_output_features:
                raise ValidationError(
                    f"{member.name} has {member.num_output_features} output features, "
                    f"{name} expects {self.num_output_features}"
                )
        self.stack: tuple[Model, ...] = tuple(stack)
        self.meta_learner = meta_learner
        self.route_input = route_input

    def children(self) -> tuple[Model, ...]:
        return self.stack

    def meta_dataset(self, data: SampleDataset) -> SampleDataset:
        """Dataset of meta-learner inputs with the ideal outputs of ``data``."""
        return stack_dataset(self.stack, data, self.route_input)

    def compute(self, input_vector: np.ndarray) -> np.ndarray:
        return self.compute_batch(np.asarray(input_vector, dtype=np.float64)[np.newaxis, :])[0]

    def compute_batch(self, matrix: np.ndarray) -> np.ndarray:
        matrix = np.asarray(matrix, dtype=np.float64)
        rows = meta_inputs(matrix, stack_outputs(self.stack, matrix), self.route_input)
        return self.meta_learner.compute_batch(rows)

    def _child_diagnostics(self, data: SampleDataset) -> list[DiagnosticRecord]:
        records = super()._child_diagnostics(data)
        records.append(self.meta_learner.diagnostic_test(self.meta_dataset(data)))
        return records

    def get_info_text(self, detail: bool = False, margin: int = 0) -> str:
        text = super().get_info_text(detail, margin)
        if not detail:
            return text
        return "\n".join([text, self.meta_learner.get_info_text(detail=True, margin=margin + 4)])


def build_stacked_ensemble(
    config: StackingModelConfig,
    task_kind: OutputTaskKind,
    output_feature_names: Sequence[str],
    training_data: SampleDataset,
    validation_data: SampleDataset | None = None,
    callbacks: Sequence[BuildCallback] | None = None,
    seed: int = 0,
    name: str = "Stacking",
) -> StackedEnsemble:
    """
    Build a stacked ensemble.

    For every hold-out fold each stack network is trained as a weak learner
    on the remaining folds and predicts the hold-out samples. Strong networks
    are then trained on the whole data and form the model's stack. The
    meta-learner is trained on the average of the weak hold-out output and
    the strong output of every sample.

    Args:
        config: Stacking model configuration.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        training_data: Training data.
        validation_data: Optional validation data of the meta-learner.
        callbacks: Build callbacks passed to nested builds.
        seed: Seed of the build's random generator.
        name: Name of the ensemble.

    Returns:
        The finished :class:`StackedEnsemble`.
    """
    from .builder import build_model

    rng = np.random.default_rng(seed)
    folds = make_folds(training_data, config.fold_ratio, task_kind, rng)
    logger.info(
        f"[{name}] building {len(config.stack)} stack network(s) over {len(folds)} folds"
    )

    # weak_outputs[j] collects hold-out predictions of stack network j in fold order
    weak_outputs: list[list[np.ndarray]] = [[] for _ in config.stack]
    for i, fold in enumerate(folds):
        fold_training = leave_out(folds, i)
        for j, network_config in enumerate(config.stack):
            weak = train_network(
                network_config,
                task_kind,
                output_feature_names,
                fold_training,
                callbacks=callbacks,
                seed=child_seed(rng),
                name=f"{name}.W{i + 1:02d}-S{j + 1:02d}-MLP",
            )
            weak_outputs[j].append(weak.compute_batch(fold.inputs))

    holdout = SampleDataset.concat(folds)
    holdout_inputs = holdout.inputs
    strong = []
    blended = []
    for j, network_config in enumerate(config.stack):
        network = train_network(
            network_config,
            task_kind,
            output_feature_names,
            holdout,
            callbacks=callbacks,
            seed=child_seed(rng),
            name=f"{name}.S{j + 1:02d}-MLP",
        )
        strong.append(network)
        blended.append((np.vstack(weak_outputs[j]) + network.compute_batch(holdout_inputs)) / 2.0)

    meta_training = holdout.with_inputs(
        meta_inputs(holdout_inputs, np.hstack(blended), config.route_input)
    )
    meta_validation = None
    if validation_data is not None:
        meta_validation = stack_dataset(strong, validation_data, config.route_input)
    meta_learner = build_model(
        config.meta_learner,
        task_kind,
        output_feature_names,
        meta_training,
        meta_validation,
        callbacks=callbacks,
        seed=child_seed(rng),
        name=f"{name}.Meta",
    )
    return StackedEnsemble(
        name, task_kind, output_feature_names, strong, meta_learner, config.route_input
    )
