"""Confidence metrics derived from training and validation error statistics."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ffensemble.core.exceptions import ValidationError
from ffensemble.core.task import OutputTaskKind
from ffensemble.stats.basic import BasicStat
from ffensemble.stats.errstat import BinaryErrStat, CategoricalErrStat, ErrorStatistic

NO_VALIDATION_PENALTY = 0.05
"""Share by which feature confidences of models trained without validation are reduced."""

TRAINING_TO_VALIDATION_RATIO_COEFF = 1.0
"""Multiplier of the training/validation sample ratio weighting validation errors."""


def _wrong_decisions(stat: ErrorStatistic) -> BasicStat | None:
    if isinstance(stat, BinaryErrStat):
        return stat.total_decisions.wrong_decision
    return None


def _wrong_classifications(stat: ErrorStatistic) -> BasicStat | None:
    if isinstance(stat, CategoricalErrStat):
        return stat.wrong_classification
    return None


def _blend_accuracy(
    training: BasicStat | None, validation: BasicStat | None, weight: float
) -> float:
    if training is None or validation is None:
        return 0.0
    denominator = training.count + weight * validation.count
    if denominator == 0:
        return 0.0
    return 1.0 - (training.sum + weight * validation.sum) / denominator


@dataclass(frozen=True)
class ConfidenceMetrics:
    """
    Comparable quality indicators of a finished model.

    ``cost`` is the root-mean-square log-loss of classification tasks or the
    RMSE of regression tasks. Accuracies that don't apply to the task kind are
    0. ``feature_confidences`` holds one non-negative trust score per output
    feature and is used as the ensemble aggregation weight.

    Args:
        task_kind: Task kind of the model.
        num_of_samples: Number of samples the metrics were derived from.
        cost: Cost indicator (lower is better).
        categorical_accuracy: Share of correctly classified samples.
        binary_accuracy: Share of correct binary decisions.
        feature_confidences: Per output feature confidences.
    """

    task_kind: OutputTaskKind
    num_of_samples: int
    cost: float
    categorical_accuracy: float
    binary_accuracy: float
    feature_confidences: tuple[float, ...]

    @property
    def feature_confidences_stat(self) -> BasicStat:
        return BasicStat.of(self.feature_confidences)

    @classmethod
    def from_stats(
        cls,
        training: ErrorStatistic,
        validation: ErrorStatistic | None = None,
        *,
        ratio_coeff: float = TRAINING_TO_VALIDATION_RATIO_COEFF,
        penalty: float = NO_VALIDATION_PENALTY,
    ) -> ConfidenceMetrics:
        """
        Derive metrics from a training and an optional validation statistic.

        Without validation the values are read off the training statistic and
        every feature confidence is reduced by ``penalty``. With validation the
        validation statistic is weighted by
        ``ratio_coeff * training_samples / validation_samples`` and pooled with
        the training statistic: sums of squares and wrong decision counts are
        combined first, so the blended cost equals the RMS over the weighted
        virtual pool of samples.

        Raises:
            ValidationError: If the statistics are incompatible or the
                validation statistic is empty.
        """
        task_kind = training.task_kind
        if validation is None:
            return cls(
                task_kind=task_kind,
                num_of_samples=training.num_of_samples,
                cost=training.cost_stat.rms,
                categorical_accuracy=_blend_accuracy(
                    _wrong_classifications(training), BasicStat(), 0.0
                ),
                binary_accuracy=_blend_accuracy(_wrong_decisions(training), BasicStat(), 0.0),
                feature_confidences=tuple(
                    c * (1.0 - penalty) for c in training.feature_confidences()
                ),
            )

        if type(validation) is not type(training) or (
            validation.num_features != training.num_features
        ):
            raise ValidationError("Training and validation statistics are incompatible")
        if validation.num_of_samples == 0:
            raise ValidationError("Validation statistic contains no samples")

        weight = ratio_coeff * (training.num_of_samples / validation.num_of_samples)
        train_cost, val_cost = training.cost_stat, validation.cost_stat
        cost_denominator = train_cost.count + weight * val_cost.count
        pooled_ssq = train_cost.sum_of_squares + weight * val_cost.sum_of_squares
        cost = math.sqrt(pooled_ssq / cost_denominator) if cost_denominator > 0 else 0.0
        confidences = tuple(
            (t + weight * v) / (1.0 + weight)
            for t, v in zip(training.feature_confidences(), validation.feature_confidences())
        )
        return cls(
            task_kind=task_kind,
            num_of_samples=training.num_of_samples + validation.num_of_samples,
            cost=cost,
            categorical_accuracy=_blend_accuracy(
                _wrong_classifications(training), _wrong_classifications(validation), weight
            ),
            binary_accuracy=_blend_accuracy(
                _wrong_decisions(training), _wrong_decisions(validation), weight
            ),
            feature_confidences=confidences,
        )

    @classmethod
    def merge(cls, metrics: Sequence[ConfidenceMetrics]) -> ConfidenceMetrics:
        """
        Combine metrics of several models into one.

        Every scalar field and every feature confidence is averaged with
        weights proportional to the members' sample counts (uniform weights
        when no member reports samples).

        Raises:
            ValidationError: If no metrics are given or they are incompatible.
        """
        if not metrics:
            raise ValidationError("At least one metrics instance is required to merge")
        first = metrics[0]
        for item in metrics[1:]:
            if item.task_kind is not first.task_kind:
                raise ValidationError(
                    f"Cannot merge metrics of {item.task_kind.value} "
                    f"and {first.task_kind.value} tasks"
                )
            if len(item.feature_confidences) != len(first.feature_confidences):
                raise ValidationError("Cannot merge metrics with different number of features")
        total_samples = sum(m.num_of_samples for m in metrics)
        if total_samples > 0:
            weights = [m.num_of_samples / total_samples for m in metrics]
        else:
            weights = [1.0 / len(metrics)] * len(metrics)

        def _avg(values: Sequence[float]) -> float:
            return sum(w * v for w, v in zip(weights, values))

        return cls(
            task_kind=first.task_kind,
            num_of_samples=total_samples,
            cost=_avg([m.cost for m in metrics]),
            categorical_accuracy=_avg([m.categorical_accuracy for m in metrics]),
            binary_accuracy=_avg([m.binary_accuracy for m in metrics]),
            feature_confidences=tuple(
                _avg([m.feature_confidences[i] for m in metrics])
                for i in range(len(first.feature_confidences))
            ),
        )

    @staticmethod
    def compare(m1: ConfidenceMetrics, m2: ConfidenceMetrics) -> int:
        """Return -1 if ``m1`` is better, 1 if ``m2`` is better, otherwise 0."""
        if m1.task_kind is not m2.task_kind:
            raise ValidationError("Cannot compare metrics of different task kinds")
        if m1.task_kind is OutputTaskKind.CATEGORICAL:
            if m1.categorical_accuracy != m2.categorical_accuracy:
                return -1 if m1.categorical_accuracy > m2.categorical_accuracy else 1
        if m1.task_kind.is_classification:
            if m1.binary_accuracy != m2.binary_accuracy:
                return -1 if m1.binary_accuracy > m2.binary_accuracy else 1
        conf1 = m1.feature_confidences_stat.rms
        conf2 = m2.feature_confidences_stat.rms
        if conf1 != conf2:
            return -1 if conf1 > conf2 else 1
        if m1.cost != m2.cost:
            return -1 if m1.cost < m2.cost else 1
        return 0

    def is_better_than(self, other: ConfidenceMetrics) -> bool:
        return self.compare(self, other) < 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_kind": self.task_kind.value,
            "num_of_samples": self.num_of_samples,
            "cost": self.cost,
            "categorical_accuracy": self.categorical_accuracy,
            "binary_accuracy": self.binary_accuracy,
            "feature_confidences": list(self.feature_confidences),
        }

    def get_report_text(self, margin: int = 0) -> str:
        pad = " " * margin
        stat = self.feature_confidences_stat
        lines = [f"{pad}Cost: {self.cost:.5f}"]
        if self.task_kind is OutputTaskKind.CATEGORICAL:
            lines.append(f"{pad}Categorical accuracy: {self.categorical_accuracy:.5f}")
        if self.task_kind.is_classification:
            lines.append(f"{pad}Binary accuracy: {self.binary_accuracy:.5f}")
        lines.append(
            f"{pad}Feature confidences: avg {stat.mean:.5f}, min {stat.min:.5f}, max {stat.max:.5f}"
        )
        return "\n".join(lines)
