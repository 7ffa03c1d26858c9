"""K-fold bagging of networks."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from ffensemble.core.exceptions import ValidationError
from ffensemble.core.task import OutputTaskKind
from ffensemble.data.dataset import SampleDataset
from ffensemble.training.callbacks import BuildCallback
from ffensemble.training.controller import train_network

from .base import EnsembleBuilder, EnsembleModel, KFoldEnsemble, child_seed
from .config import CrossValModelConfig

logger = logging.getLogger(__name__)


def make_folds(
    data: SampleDataset,
    fold_ratio: float,
    task_kind: OutputTaskKind,
    rng: np.random.Generator,
) -> list[SampleDataset]:
    """Shuffle the data and divide it into at least two folds.

    Raises:
        ValidationError: If the data yields fewer than two folds.
    """
    folds = data.shuffle(rng).folderize(fold_ratio, task_kind)
    if len(folds) < 2:
        raise ValidationError(f"Data of {len(data)} samples yields only {len(folds)} fold(s)")
    return folds


def leave_out(folds: Sequence[SampleDataset], index: int) -> SampleDataset:
    """Concatenate all folds except the one at ``index``."""
    return SampleDataset.concat(fold for i, fold in enumerate(folds) if i != index)


def build_kfold_ensemble(
    config: CrossValModelConfig,
    task_kind: OutputTaskKind,
    output_feature_names: Sequence[str],
    training_data: SampleDataset,
    callbacks: Sequence[BuildCallback] | None = None,
    seed: int = 0,
    name: str = "CVM",
) -> EnsembleModel:
    """
    Train one network per fold and combine them with confidence weights.

    The training data is shuffled and folderized; the network of fold ``i`` is
    trained on all other folds and validated on fold ``i``, so every sample
    validates exactly one member.

    Args:
        config: Cross-validation model configuration.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        training_data: Training data.
        callbacks: Build callbacks passed to every member build.
        seed: Seed of the build's random generator.
        name: Name of the ensemble.

    Returns:
        The finished :class:`KFoldEnsemble`.
    """
    rng = np.random.default_rng(seed)
    folds = make_folds(training_data, config.fold_ratio, task_kind, rng)
    logger.info(f"[{name}] building {len(folds)} fold networks")
    builder = EnsembleBuilder(name, task_kind, output_feature_names)
    for i, fold in enumerate(folds):
        member = train_network(
            config.network,
            task_kind,
            output_feature_names,
            leave_out(folds, i),
            fold,
            callbacks=callbacks,
            seed=child_seed(rng),
            name=f"{name}.F{i + 1:02d}-MLP",
        )
        builder.add_member(member)
    return builder.build(KFoldEnsemble)
