"""
ffensemble - Confidence-weighted ensembles of feed-forward networks.

Simple Usage:
    from ffensemble import (
        CrossValModelConfig, NetworkModelConfig, OutputTaskKind, SampleDataset, build_model
    )

    data = SampleDataset.from_arrays(inputs, outputs)
    config = CrossValModelConfig(network=NetworkModelConfig(), fold_ratio=0.2)
    model = build_model(config, OutputTaskKind.BINARY, ["y"], data, seed=42)

    error_stat, computed = model.test(test_data)
    print(model.diagnostic_test(test_data).get_info_text())

Model kinds:
    - network: single network trained by the TrainingController
    - crossval: k-fold bagging of networks
    - stacking: stacked generalization with a meta-learner
    - halved_stack: bagging of halved stacks
    - rvfl: random projection followed by an end-model
    - composite: confidence-weighted composition of any models
"""

from .core import (
    BIN_DECISION_BORDER,
    EPSILON,
    MIN_REGRESSION_RMSE,
    ConfigurationError,
    FFEnsembleError,
    OutputTaskKind,
    ShapeMismatchError,
    StateError,
    TrainingError,
    UnsupportedOperationError,
    ValidationError,
)
from .core.config import BaseConfig, config_from_dict
from .data import FeatureFilter, Sample, SampleDataset
from .ensemble import (
    CompositeModelConfig,
    CrossValModelConfig,
    EnsembleBuilder,
    EnsembleModel,
    HalvedStackModelConfig,
    RandomProjectionModel,
    RVFLModelConfig,
    RVFLPoolConfig,
    StackedEnsemble,
    StackingModelConfig,
    aggregate,
    build_model,
    mix_probabilities,
)
from .models import ConfidenceMetrics, DiagnosticRecord, Model, NetworkModel
from .stats import (
    BasicStat,
    BinaryErrStat,
    CategoricalErrStat,
    ErrorStatistic,
    PrecisionErrStat,
    compute_error_stat,
    create_error_stat,
)
from .training import (
    BuildCallback,
    BuildProgress,
    HiddenLayerConfig,
    HistoryCallback,
    LoggingCallback,
    NetworkModelConfig,
    TrainingConfig,
    TrainingController,
    train_network,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Core
    "OutputTaskKind",
    "EPSILON",
    "BIN_DECISION_BORDER",
    "MIN_REGRESSION_RMSE",
    "BaseConfig",
    "config_from_dict",
    # Exceptions
    "FFEnsembleError",
    "ConfigurationError",
    "ShapeMismatchError",
    "StateError",
    "TrainingError",
    "UnsupportedOperationError",
    "ValidationError",
    # Data
    "Sample",
    "SampleDataset",
    "FeatureFilter",
    # Statistics
    "BasicStat",
    "ErrorStatistic",
    "PrecisionErrStat",
    "BinaryErrStat",
    "CategoricalErrStat",
    "create_error_stat",
    "compute_error_stat",
    # Models
    "Model",
    "NetworkModel",
    "ConfidenceMetrics",
    "DiagnosticRecord",
    "EnsembleModel",
    "StackedEnsemble",
    "RandomProjectionModel",
    "EnsembleBuilder",
    # Training
    "TrainingConfig",
    "HiddenLayerConfig",
    "NetworkModelConfig",
    "TrainingController",
    "train_network",
    "BuildCallback",
    "BuildProgress",
    "LoggingCallback",
    "HistoryCallback",
    # Ensembles
    "CrossValModelConfig",
    "StackingModelConfig",
    "HalvedStackModelConfig",
    "RVFLPoolConfig",
    "RVFLModelConfig",
    "CompositeModelConfig",
    "build_model",
    "aggregate",
    "mix_probabilities",
]
