"""Composition of sub-models of arbitrary kinds."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from ffensemble.core.task import OutputTaskKind
from ffensemble.data.dataset import SampleDataset
from ffensemble.training.callbacks import BuildCallback

from .base import CompositeEnsemble, EnsembleBuilder, EnsembleModel, child_seed
from .config import CompositeModelConfig

logger = logging.getLogger(__name__)


def build_composite_ensemble(
    config: CompositeModelConfig,
    task_kind: OutputTaskKind,
    output_feature_names: Sequence[str],
    training_data: SampleDataset,
    callbacks: Sequence[BuildCallback] | None = None,
    seed: int = 0,
    name: str = "Composite",
) -> EnsembleModel:
    """
    Build every configured sub-model on the full training data and combine them.

    Sub-models are built without validation data and named after their
    position and default kind name, e.g. ``"Composite.M02-CVM"``.
    """
    from .builder import build_model, default_model_name

    rng = np.random.default_rng(seed)
    builder = EnsembleBuilder(name, task_kind, output_feature_names)
    logger.info(f"[{name}] building {len(config.members)} sub-model(s)")
    for i, member_config in enumerate(config.members):
        member = build_model(
            member_config,
            task_kind,
            output_feature_names,
            training_data,
            callbacks=callbacks,
            seed=child_seed(rng),
            name=f"{name}.M{i + 1:02d}-{default_model_name(member_config)}",
        )
        builder.add_member(member)
    return builder.build(CompositeEnsemble)
