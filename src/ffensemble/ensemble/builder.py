"""Generic model building dispatched on the configuration kind."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ffensemble.core.config import BaseConfig
from ffensemble.core.exceptions import ConfigurationError
from ffensemble.core.task import OutputTaskKind
from ffensemble.data.dataset import SampleDataset
from ffensemble.models.base import Model
from ffensemble.training.callbacks import BuildCallback
from ffensemble.training.config import NetworkModelConfig
from ffensemble.training.controller import train_network

from .composite import build_composite_ensemble
from .config import (
    CompositeModelConfig,
    CrossValModelConfig,
    HalvedStackModelConfig,
    RVFLModelConfig,
    StackingModelConfig,
)
from .halved import build_halved_stack_ensemble
from .kfold import build_kfold_ensemble
from .rvfl import build_random_projection_model
from .stacking import build_stacked_ensemble

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAMES: dict[str, str] = {
    NetworkModelConfig.kind: "MLP",
    CrossValModelConfig.kind: "CVM",
    StackingModelConfig.kind: "Stacking",
    HalvedStackModelConfig.kind: "BHSM",
    RVFLModelConfig.kind: "RVFL",
    CompositeModelConfig.kind: "Composite",
}


def default_model_name(config: BaseConfig) -> str:
    """Default name of a model built from ``config``."""
    if config.kind not in DEFAULT_MODEL_NAMES:
        raise ConfigurationError(f"Unknown model configuration: {type(config).__name__}")
    return DEFAULT_MODEL_NAMES[config.kind]


def build_model(
    config: BaseConfig,
    task_kind: OutputTaskKind,
    output_feature_names: Sequence[str],
    training_data: SampleDataset,
    validation_data: SampleDataset | None = None,
    callbacks: Sequence[BuildCallback] | None = None,
    seed: int = 0,
    name: str | None = None,
) -> Model:
    """
    Build a finished model of the kind described by ``config``.

    Cross-validation, halved-stack and composite models derive their own
    validation folds from the training data and ignore ``validation_data``.

    Args:
        config: Model configuration of any kind.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        training_data: Training data.
        validation_data: Optional validation data.
        callbacks: Build callbacks observing every network build.
        seed: Seed of the build's random generator.
        name: Model name; the default name of the kind when None.

    Returns:
        The finished model.

    Raises:
        ConfigurationError: If the configuration kind is unknown.

    Example:
        >>> config = CrossValModelConfig(network=NetworkModelConfig(), fold_ratio=0.25)
        >>> model = build_model(config, OutputTaskKind.BINARY, ["y"], data, seed=7)
    """
    name = name or default_model_name(config)
    args = (task_kind, output_feature_names, training_data)
    options = {"callbacks": callbacks, "seed": seed, "name": name}
    match config:
        case NetworkModelConfig():
            return train_network(config, *args, validation_data, **options)
        case CrossValModelConfig():
            return build_kfold_ensemble(config, *args, **options)
        case StackingModelConfig():
            return build_stacked_ensemble(config, *args, validation_data, **options)
        case HalvedStackModelConfig():
            return build_halved_stack_ensemble(config, *args, **options)
        case RVFLModelConfig():
            return build_random_projection_model(config, *args, validation_data, **options)
        case CompositeModelConfig():
            return build_composite_ensemble(config, *args, **options)
        case _:
            raise ConfigurationError(f"Unknown model configuration: {type(config).__name__}")
