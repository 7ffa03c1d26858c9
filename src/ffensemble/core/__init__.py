"""Core definitions shared by statistics, data, and models."""

from .exceptions import (
    ConfigurationError,
    FFEnsembleError,
    ShapeMismatchError,
    StateError,
    TrainingError,
    UnsupportedOperationError,
    ValidationError,
)
from .task import (
    BIN_DECISION_BORDER,
    EPSILON,
    MIN_REGRESSION_RMSE,
    OutputTaskKind,
    binary_value,
    clamp_probability,
    fixed_partitions,
    log_loss,
    same_binary_meaning,
)

__all__ = [
    # Exceptions
    "FFEnsembleError",
    "ConfigurationError",
    "ShapeMismatchError",
    "StateError",
    "TrainingError",
    "UnsupportedOperationError",
    "ValidationError",
    # Task
    "OutputTaskKind",
    "EPSILON",
    "BIN_DECISION_BORDER",
    "MIN_REGRESSION_RMSE",
    "binary_value",
    "same_binary_meaning",
    "clamp_probability",
    "log_loss",
    "fixed_partitions",
]
