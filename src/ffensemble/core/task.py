"""Output task kinds and the numeric constants shared by statistics and models."""

from __future__ import annotations

import math
import os
from enum import Enum

EPSILON = 1e-8
"""Lower bound used to keep ratios and logarithms finite."""

BIN_DECISION_BORDER = 0.5
"""Values at or above the border have binary meaning 1."""

MIN_REGRESSION_RMSE = 1e-6
"""Training RMSE below this value is treated as an exact fit."""


class OutputTaskKind(Enum):
    """Kind of the task a model solves on its output features."""

    REGRESSION = "regression"
    BINARY = "binary"
    CATEGORICAL = "categorical"

    @property
    def is_classification(self) -> bool:
        return self is not OutputTaskKind.REGRESSION


def binary_value(value: float) -> int:
    """Return the binary meaning (0 or 1) of a value."""
    return 1 if value >= BIN_DECISION_BORDER else 0


def same_binary_meaning(value1: float, value2: float) -> bool:
    """Check whether two values fall on the same side of the decision border."""
    return binary_value(value1) == binary_value(value2)


def clamp_probability(p: float) -> float:
    """Clamp a probability into ``[EPSILON, 1 - EPSILON]``."""
    return min(max(p, EPSILON), 1.0 - EPSILON)


def log_loss(p: float, ideal: float) -> float:
    """Negative log of the probability assigned to the ideal outcome.

    Args:
        p: Predicted probability of the positive outcome.
        ideal: Ideal value; the positive outcome is implied when ``ideal >= 0.5``.

    Returns:
        Finite, non-negative log-loss.
    """
    p = clamp_probability(p)
    if ideal >= BIN_DECISION_BORDER:
        return -math.log(p)
    return -math.log(1.0 - p)


def default_num_partitions() -> int:
    """Number of worker partitions used by data-parallel operations."""
    return max(1, (os.cpu_count() or 1) - 1)


def fixed_partitions(count: int, num_partitions: int | None = None) -> list[tuple[int, int]]:
    """Split ``range(count)`` into contiguous, non-empty ``(start, stop)`` ranges.

    Args:
        count: Number of items to partition.
        num_partitions: Requested number of partitions. Defaults to the
            number of available hardware threads minus one.

    Returns:
        List of half-open index ranges covering ``0..count`` in order.
    """
    if count <= 0:
        return []
    if num_partitions is None:
        num_partitions = default_num_partitions()
    num_partitions = max(1, min(num_partitions, count))
    base, remainder = divmod(count, num_partitions)
    ranges: list[tuple[int, int]] = []
    start = 0
    for i in range(num_partitions):
        size = base + (1 if i < remainder else 0)
        ranges.append((start, start + size))
        start += size
    return ranges
