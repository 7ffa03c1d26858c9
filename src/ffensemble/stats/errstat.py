"""Task-specific error statistics used to score and compare models.

Every statistic accumulates per-sample errors through :meth:`update` and can be
combined with another statistic over a disjoint sample set through
:meth:`merge`. :meth:`is_better_than` is the single comparator used by the
training controller and by diagnostics.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import ClassVar

import numpy as np

from ffensemble.core.exceptions import (
    ShapeMismatchError,
    UnsupportedOperationError,
    ValidationError,
)
from ffensemble.core.task import (
    EPSILON,
    OutputTaskKind,
    binary_value,
    fixed_partitions,
    log_loss,
)

from .basic import BasicStat

logger = logging.getLogger(__name__)

F_SCORE_BETA = 0.5
"""Beta of the F-score used as binary feature confidence (favours precision)."""


class ErrorStatistic(ABC):
    """Base class of the task-specific error statistics."""

    task_kind: ClassVar[OutputTaskKind]

    def __init__(self, feature_names: Sequence[str]):
        if len(feature_names) == 0:
            raise ValidationError("Error statistic requires at least one output feature")
        self.feature_names: tuple[str, ...] = tuple(feature_names)

    @property
    def num_features(self) -> int:
        return len(self.feature_names)

    @property
    @abstractmethod
    def num_of_samples(self) -> int:
        """Number of samples fed through :meth:`update`."""

    @property
    @abstractmethod
    def cost_stat(self) -> BasicStat:
        """Accumulator whose RMS is the cost indicator of the statistic."""

    @property
    @abstractmethod
    def total_rmse(self) -> float:
        """Root-mean-square of the absolute errors over all features."""

    @abstractmethod
    def update(self, computed: Sequence[float], ideal: Sequence[float]) -> None:
        """Accumulate one sample."""

    @abstractmethod
    def merge(self, other: ErrorStatistic) -> None:
        """Merge a statistic computed over a disjoint sample set."""

    @abstractmethod
    def is_better_than(self, other: ErrorStatistic) -> bool:
        """Return True when this statistic is strictly better than ``other``."""

    @abstractmethod
    def feature_confidence(self, feature_idx: int) -> float:
        """Finite, non-negative confidence of one output feature."""

    @abstractmethod
    def copy(self) -> ErrorStatistic:
        """Return an independent deep copy."""

    @abstractmethod
    def get_report_text(self, margin: int = 0) -> str:
        """Human readable summary."""

    def update_value(self, computed: float, ideal: float) -> None:
        """Accumulate one single-feature sample."""
        if self.num_features != 1:
            raise ShapeMismatchError(
                "Single value update requires exactly one output feature",
                expected=(1,),
                got=(self.num_features,),
            )
        self.update([computed], [ideal])

    def feature_confidences(self) -> tuple[float, ...]:
        return tuple(self.feature_confidence(i) for i in range(self.num_features))

    def _check_vectors(self, computed: Sequence[float], ideal: Sequence[float]) -> None:
        if len(computed) != self.num_features:
            raise ShapeMismatchError(
                "Computed vector length mismatch",
                expected=(self.num_features,),
                got=(len(computed),),
            )
        if len(ideal) != self.num_features:
            raise ShapeMismatchError(
                "Ideal vector length mismatch", expected=(self.num_features,), got=(len(ideal),)
            )

    def _check_compatible(self, other: ErrorStatistic) -> None:
        if type(other) is not type(self):
            raise ValidationError(
                f"Incompatible error statistics: {type(self).__name__} vs {type(other).__name__}"
            )
        if other.num_features != self.num_features:
            raise ValidationError(
                f"Different number of output features: {self.num_features} vs {other.num_features}"
            )


class PrecisionErrStat(ErrorStatistic):
    """Absolute error statistic of a regression task."""

    task_kind = OutputTaskKind.REGRESSION

    def __init__(self, feature_names: Sequence[str]):
        super().__init__(feature_names)
        self.feature_stats: list[BasicStat] = [BasicStat() for _ in self.feature_names]
        self.total: BasicStat = BasicStat()

    @property
    def num_of_samples(self) -> int:
        return self.total.count // self.num_features

    @property
    def cost_stat(self) -> BasicStat:
        return self.total

    @property
    def total_rmse(self) -> float:
        return self.total.rms

    def update(self, computed: Sequence[float], ideal: Sequence[float]) -> None:
        self._check_vectors(computed, ideal)
        for i in range(self.num_features):
            error = abs(float(ideal[i]) - float(computed[i]))
            self.feature_stats[i].add_sample(error)
            self.total.add_sample(error)

    def merge(self, other: ErrorStatistic) -> None:
        self._check_compatible(other)
        assert isinstance(other, PrecisionErrStat)
        for mine, theirs in zip(self.feature_stats, other.feature_stats):
            mine.merge(theirs)
        self.total.merge(other.total)

    def is_better_than(self, other: ErrorStatistic) -> bool:
        self._check_compatible(other)
        return self.total.rms < other.total_rmse

    def feature_confidence(self, feature_idx: int) -> float:
        stat = self.feature_stats[feature_idx]
        if stat.count == 0:
            return 0.0
        return 1.0 / (EPSILON + stat.rms)

    def copy(self) -> PrecisionErrStat:
        clone = PrecisionErrStat(self.feature_names)
        clone.merge(self)
        return clone

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        assert isinstance(other, PrecisionErrStat)
        return (
            self.feature_names == other.feature_names
            and self.feature_stats == other.feature_stats
            and self.total == other.total
        )

    def get_report_text(self, margin: int = 0) -> str:
        pad = " " * margin
        lines = [
            f"{pad}Number of samples: {self.num_of_samples}",
            f"{pad}Total RMSE: {self.total.rms:.5f}",
        ]
        for name, stat in zip(self.feature_names, self.feature_stats):
            lines.append(
                f"{pad}  [{name}] RMSE: {stat.rms:.5f}, avg abs error: {stat.mean:.5f}, "
                f"max abs error: {stat.max if stat.count else 0.0:.5f}"
            )
        return "\n".join(lines)


class DecisionAccumulator:
    """Binary decision accumulators of one feature (or of all features together)."""

    __slots__ = ("ideal", "false_flag", "wrong_decision", "log_loss")

    def __init__(self) -> None:
        self.ideal = BasicStat()
        # Indexed by the binary meaning of the ideal value.
        self.false_flag = (BasicStat(), BasicStat())
        self.wrong_decision = BasicStat()
        self.log_loss = BasicStat()

    def update(self, computed: float, ideal: float) -> None:
        ideal_bin = binary_value(ideal)
        wrong = 0.0 if binary_value(computed) == ideal_bin else 1.0
        self.ideal.add_sample(ideal_bin)
        self.false_flag[ideal_bin].add_sample(wrong)
        self.wrong_decision.add_sample(wrong)
        self.log_loss.add_sample(log_loss(computed, ideal))

    def merge(self, other: DecisionAccumulator) -> None:
        self.ideal.merge(other.ideal)
        self.false_flag[0].merge(other.false_flag[0])
        self.false_flag[1].merge(other.false_flag[1])
        self.wrong_decision.merge(other.wrong_decision)
        self.log_loss.merge(other.log_loss)

    def f_score(self) -> float:
        if self.wrong_decision.count == 0:
            return 0.0
        tp = self.ideal.sum - self.false_flag[1].sum
        fp = self.false_flag[0].sum
        fn = self.false_flag[1].sum
        precision = tp / (EPSILON + tp + fp)
        recall = tp / (EPSILON + tp + fn)
        beta_sq = F_SCORE_BETA * F_SCORE_BETA
        return (1.0 + beta_sq) * (precision * recall) / (beta_sq * precision + recall + EPSILON)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DecisionAccumulator):
            return NotImplemented
        return (
            self.ideal == other.ideal
            and self.false_flag == other.false_flag
            and self.wrong_decision == other.wrong_decision
            and self.log_loss == other.log_loss
        )


class BinaryErrStat(ErrorStatistic):
    """Decision statistic of a task with independent binary output features."""

    task_kind = OutputTaskKind.BINARY

    def __init__(self, feature_names: Sequence[str]):
        super().__init__(feature_names)
        self.precision = PrecisionErrStat(feature_names)
        self.feature_decisions: list[DecisionAccumulator] = [
            DecisionAccumulator() for _ in self.feature_names
        ]
        self.total_decisions = DecisionAccumulator()

    @property
    def num_of_samples(self) -> int:
        return self.precision.num_of_samples

    @property
    def cost_stat(self) -> BasicStat:
        return self.total_decisions.log_loss

    @property
    def wrong_stat(self) -> BasicStat:
        """0/1 wrong-decision samples used to derive binary accuracy."""
        return self.total_decisions.wrong_decision

    @property
    def total_rmse(self) -> float:
        return self.precision.total_rmse

    @property
    def binary_accuracy(self) -> float:
        return 1.0 - self.total_decisions.wrong_decision.mean

    def update(self, computed: Sequence[float], ideal: Sequence[float]) -> None:
        self.precision.update(computed, ideal)
        for i in range(self.num_features):
            c, d = float(computed[i]), float(ideal[i])
            self.feature_decisions[i].update(c, d)
            self.total_decisions.update(c, d)

    def merge(self, other: ErrorStatistic) -> None:
        self._check_compatible(other)
        assert isinstance(other, BinaryErrStat)
        self.precision.merge(other.precision)
        for mine, theirs in zip(self.feature_decisions, other.feature_decisions):
            mine.merge(theirs)
        self.total_decisions.merge(other.total_decisions)

    def is_better_than(self, other: ErrorStatistic) -> bool:
        self._check_compatible(other)
        assert isinstance(other, BinaryErrStat)
        mine = self.total_decisions
        theirs = other.total_decisions
        if mine.wrong_decision.sum != theirs.wrong_decision.sum:
            return mine.wrong_decision.sum < theirs.wrong_decision.sum
        return mine.log_loss.rms < theirs.log_loss.rms

    def feature_confidence(self, feature_idx: int) -> float:
        return self.feature_decisions[feature_idx].f_score()

    def copy(self) -> BinaryErrStat:
        clone = type(self)(self.feature_names)
        clone.merge(self)
        return clone

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        assert isinstance(other, BinaryErrStat)
        return (
            self.feature_names == other.feature_names
            and self.precision == other.precision
            and self.feature_decisions == other.feature_decisions
            and self.total_decisions == other.total_decisions
        )

    def get_report_text(self, margin: int = 0) -> str:
        pad = " " * margin
        total = self.total_decisions
        lines = [
            f"{pad}Number of samples: {self.num_of_samples}",
            f"{pad}Binary accuracy: {self.binary_accuracy:.5f}",
            f"{pad}Wrong decisions: {int(total.wrong_decision.sum)}",
            f"{pad}Log-loss RMS: {total.log_loss.rms:.5f}",
        ]
        for i, name in enumerate(self.feature_names):
            acc = self.feature_decisions[i]
            lines.append(
                f"{pad}  [{name}] wrong decisions: {int(acc.wrong_decision.sum)}, "
                f"F-score: {acc.f_score():.5f}, log-loss RMS: {acc.log_loss.rms:.5f}"
            )
        return "\n".join(lines)


class CategoricalErrStat(BinaryErrStat):
    """Classification statistic of a task with mutually exclusive class features."""

    task_kind = OutputTaskKind.CATEGORICAL

    def __init__(self, feature_names: Sequence[str]):
        super().__init__(feature_names)
        self.classification_log_loss = BasicStat()
        self.wrong_classification = BasicStat()
        self.low_probability = BasicStat()

    @property
    def cost_stat(self) -> BasicStat:
        return self.classification_log_loss

    @property
    def wrong_stat(self) -> BasicStat:
        return self.wrong_classification

    @property
    def classification_accuracy(self) -> float:
        return 1.0 - self.wrong_classification.mean

    def update(self, computed: Sequence[float], ideal: Sequence[float]) -> None:
        super().update(computed, ideal)
        computed_arr = np.asarray(computed, dtype=np.float64)
        ideal_arr = np.asarray(ideal, dtype=np.float64)
        for i in np.flatnonzero(ideal_arr >= 0.5):
            self.classification_log_loss.add_sample(log_loss(computed_arr[i], ideal_arr[i]))
        max_value = computed_arr.max()
        winner = int(np.argmax(computed_arr))
        num_winners = int(np.count_nonzero(computed_arr == max_value))
        if winner != int(np.argmax(ideal_arr)) or num_winners > 1:
            self.wrong_classification.add_sample(1.0)
        else:
            self.wrong_classification.add_sample(0.0)
            self.low_probability.add_sample(1.0 if max_value < 0.5 else 0.0)

    def update_value(self, computed: float, ideal: float) -> None:
        raise UnsupportedOperationError(
            "Categorical error statistic supports only vector updates"
        )

    def merge(self, other: ErrorStatistic) -> None:
        super().merge(other)
        assert isinstance(other, CategoricalErrStat)
        self.classification_log_loss.merge(other.classification_log_loss)
        self.wrong_classification.merge(other.wrong_classification)
        self.low_probability.merge(other.low_probability)

    def is_better_than(self, other: ErrorStatistic) -> bool:
        self._check_compatible(other)
        assert isinstance(other, CategoricalErrStat)
        if self.wrong_classification.sum != other.wrong_classification.sum:
            return self.wrong_classification.sum < other.wrong_classification.sum
        if self.low_probability.sum != other.low_probability.sum:
            return self.low_probability.sum < other.low_probability.sum
        return self.classification_log_loss.rms < other.classification_log_loss.rms

    def __eq__(self, other: object) -> bool:
        result = super().__eq__(other)
        if result is not True:
            return result
        assert isinstance(other, CategoricalErrStat)
        return (
            self.classification_log_loss == other.classification_log_loss
            and self.wrong_classification == other.wrong_classification
            and self.low_probability == other.low_probability
        )

    def get_report_text(self, margin: int = 0) -> str:
        pad = " " * margin
        lines = [
            f"{pad}Classification accuracy: {self.classification_accuracy:.5f}",
            f"{pad}Wrong classifications: {int(self.wrong_classification.sum)}",
            f"{pad}Low probability classifications: {int(self.low_probability.sum)}",
            f"{pad}Classification log-loss RMS: {self.classification_log_loss.rms:.5f}",
        ]
        return "\n".join([super().get_report_text(margin), *lines])


def create_error_stat(task_kind: OutputTaskKind, feature_names: Sequence[str]) -> ErrorStatistic:
    """Create an empty error statistic of the variant matching the task kind."""
    match task_kind:
        case OutputTaskKind.REGRESSION:
            return PrecisionErrStat(feature_names)
        case OutputTaskKind.BINARY:
            return BinaryErrStat(feature_names)
        case OutputTaskKind.CATEGORICAL:
            return CategoricalErrStat(feature_names)
    raise ValueError(f"Unknown task kind: {task_kind!r}")


def compute_error_stat(
    task_kind: OutputTaskKind,
    feature_names: Sequence[str],
    computed: np.ndarray,
    ideal: np.ndarray,
    num_partitions: int | None = None,
) -> ErrorStatistic:
    """
    Compute an error statistic over row-aligned computed and ideal matrices.

    Rows are split into contiguous partitions; each worker accumulates a
    private statistic and the partial results are merged in partition order,
    so the result does not depend on thread scheduling.

    Args:
        task_kind: Task kind selecting the statistic variant.
        feature_names: Output feature names.
        computed: Matrix of computed vectors, one row per sample.
        ideal: Matrix of ideal vectors, one row per sample.
        num_partitions: Optional number of partitions.

    Returns:
        Statistic over all rows.

    Raises:
        ShapeMismatchError: If the matrices have different shapes.
    """
    computed = np.asarray(computed, dtype=np.float64)
    ideal = np.asarray(ideal, dtype=np.float64)
    if computed.shape != ideal.shape:
        raise ShapeMismatchError(
            "Computed and ideal matrices differ", expected=ideal.shape, got=computed.shape
        )

    def _accumulate(start: int, stop: int) -> ErrorStatistic:
        partial = create_error_stat(task_kind, feature_names)
        for row in range(start, stop):
            partial.update(computed[row], ideal[row])
        return partial

    result = create_error_stat(task_kind, feature_names)
    ranges = fixed_partitions(len(computed), num_partitions)
    if not ranges:
        return result
    with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
        futures = [executor.submit(_accumulate, start, stop) for start, stop in ranges]
        for future in futures:
            result.merge(future.result())
    logger.debug(f"Computed {task_kind.value} error statistic over {len(computed)} samples")
    return result
