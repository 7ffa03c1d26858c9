"""Per-feature standardization filters."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from ffensemble.core.exceptions import ShapeMismatchError, StateError
from ffensemble.core.task import fixed_partitions
from ffensemble.stats.basic import BasicStat

logger = logging.getLogger(__name__)


class FeatureFilter:
    """
    Standardizes features to zero mean and unit deviation.

    Feature statistics are gathered by :meth:`fit` over contiguous row
    partitions processed in parallel. A feature with zero span maps to 0 and
    reverses to its mean.

    Example:
        >>> flt = FeatureFilter().fit(np.array([[1.0], [3.0]]))
        >>> flt.apply(np.array([3.0]))
        array([1.])
    """

    def __init__(self) -> None:
        self.feature_stats: list[BasicStat] = []
        self._mean = np.empty(0)
        self._std = np.empty(0)

    @property
    def is_fitted(self) -> bool:
        return bool(self.feature_stats)

    @property
    def num_features(self) -> int:
        return len(self.feature_stats)

    def fit(self, matrix: np.ndarray, num_partitions: int | None = None) -> FeatureFilter:
        """Gather per-feature statistics over the rows of ``matrix``."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] == 0:
            raise ShapeMismatchError("Filter requires a non-empty 2D matrix")
        num_features = matrix.shape[1]

        def _partition_stats(start: int, stop: int) -> list[BasicStat]:
            block = matrix[start:stop]
            return [BasicStat.of_array(block[:, i]) for i in range(num_features)]

        stats = [BasicStat() for _ in range(num_features)]
        ranges = fixed_partitions(matrix.shape[0], num_partitions)
        with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
            futures = [executor.submit(_partition_stats, start, stop) for start, stop in ranges]
            for future in futures:
                for stat, partial in zip(stats, future.result()):
                    stat.merge(partial)

        self.feature_stats = stats
        self._mean = np.array([s.mean for s in stats])
        self._std = np.array([s.std_dev if s.span > 0 else 0.0 for s in stats])
        return self

    def _check(self, values: np.ndarray) -> np.ndarray:
        if not self.is_fitted:
            raise StateError("FeatureFilter used before fit()")
        values = np.asarray(values, dtype=np.float64)
        if values.shape[-1] != self.num_features:
            raise ShapeMismatchError(
                "Filter feature count mismatch",
                expected=(self.num_features,),
                got=(values.shape[-1],),
            )
        return values

    def apply(self, values: np.ndarray) -> np.ndarray:
        """Standardize a vector or a matrix of row vectors."""
        values = self._check(values)
        safe_std = np.where(self._std > 0, self._std, 1.0)
        return np.where(self._std > 0, (values - self._mean) / safe_std, 0.0)

    def reverse(self, values: np.ndarray) -> np.ndarray:
        """Map standardized values back to the original feature scale."""
        values = self._check(values)
        return values * self._std + self._mean
