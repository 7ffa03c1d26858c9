"""Descriptive and task-specific error statistics."""

from .basic import BasicStat
from .errstat import (
    BinaryErrStat,
    CategoricalErrStat,
    DecisionAccumulator,
    ErrorStatistic,
    PrecisionErrStat,
    compute_error_stat,
    create_error_stat,
)

__all__ = [
    "BasicStat",
    "ErrorStatistic",
    "PrecisionErrStat",
    "BinaryErrStat",
    "CategoricalErrStat",
    "DecisionAccumulator",
    "create_error_stat",
    "compute_error_stat",
]
