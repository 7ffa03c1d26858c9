"""Running descriptive statistic over a stream of scalar samples."""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

import numpy as np


def _add_exact(partials: list[float], value: float) -> None:
    """Add ``value`` to a list of non-overlapping partial sums without rounding.

    The partials always represent the exact real-valued sum of everything added,
    so ``math.fsum(partials)`` is the correctly rounded total regardless of the
    order in which values or partial lists were added.

    Raises:
        OverflowError: If the sum leaves the float range.
    """
    i = 0
    for partial in partials:
        if abs(value) < abs(partial):
            value, partial = partial, value
        high = value + partial
        if not math.isfinite(high):
            raise OverflowError("Sample sum out of float range")
        low = partial - (high - value)
        if low:
            partials[i] = low
            i += 1
        value = high
    partials[i:] = [value]


class BasicStat:
    """
    Accumulates count, sum, sum of squares, min and max of scalar samples.

    Sums are kept as exact partial sums and rounded only when read, so two
    statistics computed over disjoint sample sets combined with :meth:`merge`
    equal a single statistic fed with all samples, field for field.

    Example:
        >>> stat = BasicStat()
        >>> stat.add_samples([1.0, 2.0, 3.0])
        >>> stat.mean
        2.0
    """

    __slots__ = ("count", "_sum_partials", "_squares_partials", "min", "max")

    def __init__(self) -> None:
        self.count: int = 0
        self._sum_partials: list[float] = []
        self._squares_partials: list[float] = []
        self.min: float = math.inf
        self.max: float = -math.inf

    @classmethod
    def of(cls, values: Iterable[float]) -> BasicStat:
        """Create a statistic over the given values."""
        stat = cls()
        stat.add_samples(values)
        return stat

    @classmethod
    def of_array(cls, values: np.ndarray) -> BasicStat:
        """Create a statistic over a numpy array."""
        values = np.asarray(values, dtype=np.float64).reshape(-1)
        if not np.all(np.isfinite(values)):
            raise ValueError("Sample values must be finite")
        return cls.of(values.tolist())

    @property
    def sum(self) -> float:
        return math.fsum(self._sum_partials)

    @property
    def sum_of_squares(self) -> float:
        return math.fsum(self._squares_partials)

    def add_sample(self, value: float) -> None:
        """Add a single sample value."""
        value = float(value)
        if not math.isfinite(value):
            raise ValueError(f"Sample value must be finite, got {value}")
        square = value * value
        if not math.isfinite(square):
            raise OverflowError(f"Sample square out of float range: {value}")
        self.count += 1
        _add_exact(self._sum_partials, value)
        _add_exact(self._squares_partials, square)
        if value < self.min:
            self.min = value
        if value > self.max:
            self.max = value

    def add_samples(self, values: Iterable[float]) -> None:
        """Add sample values in order."""
        for value in values:
            self.add_sample(value)

    def merge(self, other: BasicStat) -> None:
        """Merge another statistic computed over a disjoint sample set."""
        self.count += other.count
        for partial in other._sum_partials:
            _add_exact(self._sum_partials, partial)
        for partial in other._squares_partials:
            _add_exact(self._squares_partials, partial)
        self.min = min(self.min, other.min)
        self.max = max(self.max, other.max)

    def copy(self) -> BasicStat:
        """Return an independent copy."""
        clone = BasicStat()
        clone.count = self.count
        clone._sum_partials = list(self._sum_partials)
        clone._squares_partials = list(self._squares_partials)
        clone.min = self.min
        clone.max = self.max
        return clone

    @property
    def mean(self) -> float:
        return self.sum / self.count if self.count else 0.0

    @property
    def mean_square(self) -> float:
        return self.sum_of_squares / self.count if self.count else 0.0

    @property
    def rms(self) -> float:
        return math.sqrt(self.mean_square)

    @property
    def variance(self) -> float:
        return max(0.0, self.mean_square - self.mean * self.mean)

    @property
    def std_dev(self) -> float:
        return math.sqrt(self.variance)

    @property
    def span(self) -> float:
        return self.max - self.min if self.count else 0.0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BasicStat):
            return NotImplemented
        return (
            self.count == other.count
            and self.sum == other.sum
            and self.sum_of_squares == other.sum_of_squares
            and self.min == other.min
            and self.max == other.max
        )

    def __repr__(self) -> str:
        return (
            f"BasicStat(count={self.count}, mean={self.mean:.5f}, rms={self.rms:.5f}, "
            f"min={self.min if self.count else 0.0:.5f}, "
            f"max={self.max if self.count else 0.0:.5f})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "sum": self.sum,
            "sum_of_squares": self.sum_of_squares,
            "min": self.min if self.count else None,
            "max": self.max if self.count else None,
        }
