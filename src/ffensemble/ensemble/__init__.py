"""Ensembles, stacked and random-projection models, and generic model building."""

from .aggregation import aggregate, aggregate_batch, mix_probabilities, normalize_weights
from .base import (
    CompositeEnsemble,
    EnsembleBuilder,
    EnsembleModel,
    HalvedStackEnsemble,
    KFoldEnsemble,
    confidence_weights,
)
from .builder import DEFAULT_MODEL_NAMES, build_model, default_model_name
from .composite import build_composite_ensemble
from .config import (
    DEFAULT_FOLD_DATA_RATIO,
    CompositeModelConfig,
    CrossValModelConfig,
    HalvedStackModelConfig,
    RVFLModelConfig,
    RVFLPoolConfig,
    StackingModelConfig,
)
from .halved import HalvedStackModel, build_halved_stack_ensemble, build_halved_stack_model
from .kfold import build_kfold_ensemble, leave_out, make_folds
from .rvfl import (
    RandomPool,
    RandomProjection,
    RandomProjectionModel,
    build_random_projection_model,
)
from .stacking import StackedEnsemble, build_stacked_ensemble, stack_dataset

__all__ = [
    # Aggregation
    "aggregate",
    "aggregate_batch",
    "mix_probabilities",
    "normalize_weights",
    # Models
    "EnsembleModel",
    "KFoldEnsemble",
    "CompositeEnsemble",
    "HalvedStackEnsemble",
    "HalvedStackModel",
    "StackedEnsemble",
    "RandomPool",
    "RandomProjection",
    "RandomProjectionModel",
    "EnsembleBuilder",
    "confidence_weights",
    # Config
    "DEFAULT_FOLD_DATA_RATIO",
    "CrossValModelConfig",
    "StackingModelConfig",
    "HalvedStackModelConfig",
    "RVFLPoolConfig",
    "RVFLModelConfig",
    "CompositeModelConfig",
    # Builders
    "build_model",
    "default_model_name",
    "DEFAULT_MODEL_NAMES",
    "build_kfold_ensemble",
    "build_stacked_ensemble",
    "build_halved_stack_ensemble",
    "build_halved_stack_model",
    "build_random_projection_model",
    "build_composite_ensemble",
    "make_folds",
    "leave_out",
    "stack_dataset",
]
