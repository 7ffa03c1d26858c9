"""Bagging of halved stacks."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from ffensemble.core.task import OutputTaskKind
from ffensemble.data.dataset import SampleDataset
from ffensemble.training.callbacks import BuildCallback
from ffensemble.training.controller import train_network

from .base import EnsembleBuilder, EnsembleModel, HalvedStackEnsemble, child_seed
from .config import HalvedStackModelConfig
from .kfold import leave_out, make_folds
from .stacking import StackedEnsemble, stack_dataset

logger = logging.getLogger(__name__)

HALF_FOLD_DATA_RATIO = 0.5


class HalvedStackModel(StackedEnsemble):
    """A stack trained on one half of the data whose meta-learner learned the other half."""


def build_halved_stack_model(
    config: HalvedStackModelConfig,
    task_kind: OutputTaskKind,
    output_feature_names: Sequence[str],
    training_data: SampleDataset,
    validation_data: SampleDataset,
    callbacks: Sequence[BuildCallback] | None = None,
    seed: int = 0,
    name: str = "HSM",
) -> HalvedStackModel:
    """
    Build one halved stack.

    The stack networks are trained on ``training_data`` and validated on
    ``validation_data``. The meta-learner is then trained on the stack
    outputs over the validation half and validated on the stack outputs over
    the training half.

    Args:
        config: Halved stack configuration.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        training_data: Half used to train the stack.
        validation_data: Half used to train the meta-learner.
        callbacks: Build callbacks passed to nested builds.
        seed: Seed of the build's random generator.
        name: Name of the model.

    Returns:
        The finished :class:`HalvedStackModel`.
    """
    from .builder import build_model

    rng = np.random.default_rng(seed)
    stack = [
        train_network(
            network_config,
            task_kind,
            output_feature_names,
            training_data,
            validation_data,
            callbacks=callbacks,
            seed=child_seed(rng),
            name=f"{name}.S{j + 1:02d}-MLP",
        )
        for j, network_config in enumerate(config.stack)
    ]
    meta_learner = build_model(
        config.meta_learner,
        task_kind,
        output_feature_names,
        stack_dataset(stack, validation_data, config.route_input),
        stack_dataset(stack, training_data, config.route_input),
        callbacks=callbacks,
        seed=child_seed(rng),
        name=f"{name}.Meta",
    )
    return HalvedStackModel(
        name, task_kind, output_feature_names, stack, meta_learner, config.route_input
    )


def build_halved_stack_ensemble(
    config: HalvedStackModelConfig,
    task_kind: OutputTaskKind,
    output_feature_names: Sequence[str],
    training_data: SampleDataset,
    callbacks: Sequence[BuildCallback] | None = None,
    seed: int = 0,
    name: str = "BHSM",
) -> EnsembleModel:
    """
    Build ``config.repetitions`` pairs of halved stacks and combine them.

    Every repetition shuffles the data and splits it into two halves; the
    first stack of the pair trains on the first half and the second stack on
    the second half, each validated on the opposite half.

    Args:
        config: Halved stack configuration.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        training_data: Training data.
        callbacks: Build callbacks passed to nested builds.
        seed: Seed of the build's random generator.
        name: Name of the ensemble.

    Returns:
        The finished :class:`HalvedStackEnsemble`.
    """
    rng = np.random.default_rng(seed)
    builder = EnsembleBuilder(name, task_kind, output_feature_names)
    for repetition in range(1, config.repetitions + 1):
        folds = make_folds(training_data, HALF_FOLD_DATA_RATIO, task_kind, rng)
        first = folds[0]
        rest = leave_out(folds, 0)
        logger.info(
            f"[{name}] repetition {repetition}/{config.repetitions}: "
            f"halves of {len(first)} and {len(rest)} samples"
        )
        for half, (train_half, val_half) in enumerate(((first, rest), (rest, first)), start=1):
            builder.add_member(
                build_halved_stack_model(
                    config,
                    task_kind,
                    output_feature_names,
                    train_half,
                    val_half,
                    callbacks=callbacks,
                    seed=child_seed(rng),
                    name=f"{name}.R{repetition:02d}-H{half}",
                )
            )
    return builder.build(HalvedStackEnsemble)
