"""Tests for confidence metrics derivation, merging and comparison."""

import math

import pytest

from ffensemble.core.exceptions import ValidationError
from ffensemble.core.task import EPSILON, OutputTaskKind
from ffensemble.models import NO_VALIDATION_PENALTY, ConfidenceMetrics
from ffensemble.stats import BinaryErrStat, CategoricalErrStat, PrecisionErrStat


def _regression_stat(errors):
    stat = PrecisionErrStat(["y"])
    for error in errors:
        stat.update_value(0.0, error)
    return stat


def _binary_stat(num_right, num_wrong):
    stat = BinaryErrStat(["y"])
    for _ in range(num_right):
        stat.update([0.9], [1.0])
    for _ in range(num_wrong):
        stat.update([0.1], [1.0])
    return stat


def _metrics(
    task_kind=OutputTaskKind.BINARY, samples=10, cost=0.5, cat=0.0, binary=0.0, conf=(1.0,)
):
    return ConfidenceMetrics(task_kind, samples, cost, cat, binary, tuple(conf))


class TestFromStats:
    """Tests for ConfidenceMetrics.from_stats."""

    def test_training_only(self):
        metrics = ConfidenceMetrics.from_stats(_regression_stat([0.5, 0.5]))
        assert metrics.task_kind is OutputTaskKind.REGRESSION
        assert metrics.num_of_samples == 2
        assert metrics.cost == pytest.approx(0.5)
        assert metrics.binary_accuracy == 0.0
        assert metrics.categorical_accuracy == 0.0
        expected = (1.0 / (EPSILON + 0.5)) * (1.0 - NO_VALIDATION_PENALTY)
        assert metrics.feature_confidences == pytest.approx((expected,))

    def test_custom_penalty(self):
        stat = _regression_stat([0.5])
        plain = ConfidenceMetrics.from_stats(stat, penalty=0.0)
        assert plain.feature_confidences == pytest.approx(stat.feature_confidences())

    def test_blended_cost_pools_squared_errors(self):
        training = _regression_stat([1.0, 1.0, 1.0, 1.0])
        validation = _regression_stat([2.0, 2.0])
        metrics = ConfidenceMetrics.from_stats(training, validation)
        # validation weight = 4 / 2 = 2; pooled mean square = (4 + 2 * 8) / (4 + 2 * 2)
        assert metrics.cost == pytest.approx(math.sqrt(2.5))
        assert metrics.cost != pytest.approx((1.0 + 2.0 * 2.0) / 3.0)
        assert metrics.num_of_samples == 6

    def test_blended_feature_confidence(self):
        training = _regression_stat([1.0, 1.0, 1.0, 1.0])
        validation = _regression_stat([2.0, 2.0])
        metrics = ConfidenceMetrics.from_stats(training, validation)
        t = training.feature_confidence(0)
        v = validation.feature_confidence(0)
        assert metrics.feature_confidences[0] == pytest.approx((t + 2.0 * v) / 3.0)

    def test_blended_binary_accuracy(self):
        metrics = ConfidenceMetrics.from_stats(_binary_stat(3, 1), _binary_stat(1, 1))
        assert metrics.binary_accuracy == pytest.approx(1.0 - 3.0 / 8.0)

    def test_ratio_coefficient(self):
        training = _regression_stat([1.0, 1.0])
        validation = _regression_stat([3.0, 3.0])
        metrics = ConfidenceMetrics.from_stats(training, validation, ratio_coeff=3.0)
        assert metrics.cost == pytest.approx(math.sqrt((2.0 + 3.0 * 18.0) / (2.0 + 3.0 * 2.0)))

    def test_categorical_accuracy(self):
        stat = CategoricalErrStat(["a", "b"])
        stat.update([0.8, 0.2], [1.0, 0.0])
        stat.update([0.8, 0.2], [0.0, 1.0])
        metrics = ConfidenceMetrics.from_stats(stat)
        assert metrics.categorical_accuracy == pytest.approx(0.5)
        assert metrics.cost == pytest.approx(stat.classification_log_loss.rms)

    def test_empty_validation(self):
        with pytest.raises(ValidationError):
            ConfidenceMetrics.from_stats(_regression_stat([1.0]), PrecisionErrStat(["y"]))

    def test_incompatible_validation(self):
        with pytest.raises(ValidationError):
            ConfidenceMetrics.from_stats(_regression_stat([1.0]), _binary_stat(1, 0))


class TestMerge:
    """Tests for ConfidenceMetrics.merge."""

    def test_sample_weighted(self):
        merged = ConfidenceMetrics.merge(
            [
                _metrics(samples=30, cost=1.0, binary=1.0, conf=(2.0,)),
                _metrics(samples=10, cost=2.0, binary=0.5, conf=(6.0,)),
            ]
        )
        assert merged.num_of_samples == 40
        assert merged.cost == pytest.approx(1.25)
        assert merged.binary_accuracy == pytest.approx(0.875)
        assert merged.feature_confidences == pytest.approx((3.0,))

    def test_single_is_identity(self):
        metrics = _metrics(cost=0.3, binary=0.9, conf=(0.7, 0.2))
        assert ConfidenceMetrics.merge([metrics]) == metrics

    def test_errors(self):
        with pytest.raises(ValidationError):
            ConfidenceMetrics.merge([])
        with pytest.raises(ValidationError):
            ConfidenceMetrics.merge([_metrics(), _metrics(OutputTaskKind.REGRESSION)])
        with pytest.raises(ValidationError):
            ConfidenceMetrics.merge([_metrics(conf=(1.0,)), _metrics(conf=(1.0, 1.0))])


class TestCompare:
    """Tests for ConfidenceMetrics ordering."""

    def test_categorical_accuracy_first(self):
        a = _metrics(OutputTaskKind.CATEGORICAL, cat=0.9, binary=0.5, cost=2.0, conf=(0.1,))
        b = _metrics(OutputTaskKind.CATEGORICAL, cat=0.8, binary=0.9, cost=0.1, conf=(0.9,))
        assert ConfidenceMetrics.compare(a, b) == -1
        assert ConfidenceMetrics.compare(b, a) == 1

    def test_binary_accuracy_before_confidence(self):
        a = _metrics(binary=0.9, conf=(0.1,))
        b = _metrics(binary=0.8, conf=(0.9,))
        assert a.is_better_than(b)
        assert not b.is_better_than(a)

    def test_confidence_before_cost(self):
        a = _metrics(OutputTaskKind.REGRESSION, cost=5.0, conf=(2.0, 2.0))
        b = _metrics(OutputTaskKind.REGRESSION, cost=0.1, conf=(1.0, 1.0))
        assert a.is_better_than(b)

    def test_cost_breaks_tie(self):
        a = _metrics(cost=0.2)
        b = _metrics(cost=0.3)
        assert ConfidenceMetrics.compare(a, b) == -1

    def test_equal(self):
        a = _metrics()
        assert ConfidenceMetrics.compare(a, _metrics()) == 0
        assert not a.is_better_than(a)

    def test_different_task_kinds(self):
        with pytest.raises(ValidationError):
            ConfidenceMetrics.compare(_metrics(), _metrics(OutputTaskKind.REGRESSION))

    def test_report_text(self):
        text = _metrics(OutputTaskKind.CATEGORICAL, cat=0.75).get_report_text(margin=2)
        assert "Categorical accuracy: 0.75000" in text
        assert text.startswith("  Cost")
