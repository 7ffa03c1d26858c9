"""Tests for confidence-weighted aggregation and probability mixing."""

import numpy as np
import pytest

from ffensemble.core.exceptions import ShapeMismatchError, ValidationError
from ffensemble.core.task import OutputTaskKind
from ffensemble.ensemble import aggregate, aggregate_batch, mix_probabilities, normalize_weights


class TestNormalizeWeights:
    """Tests for normalize_weights."""

    def test_sum_to_one(self):
        np.testing.assert_allclose(normalize_weights([1.0, 3.0]), [0.25, 0.75])

    def test_all_zero_is_uniform(self):
        np.testing.assert_allclose(normalize_weights([0.0, 0.0, 0.0, 0.0]), [0.25] * 4)

    def test_rejects_negative(self):
        with pytest.raises(ValidationError):
            normalize_weights([1.0, -0.5])


class TestMixProbabilities:
    """Tests for log-odds probability mixing."""

    @pytest.mark.parametrize("p", [0.1, 0.5, 0.83])
    def test_equal_inputs(self, p):
        assert mix_probabilities([p, p, p], [1.0, 2.0, 5.0]) == pytest.approx(p)

    def test_not_a_linear_average(self):
        # Odds of 9 and 1 average to odds of 3 in log space.
        mixed = mix_probabilities([0.9, 0.5], [1.0, 1.0])
        assert mixed == pytest.approx(0.75)
        assert mixed != pytest.approx(0.7)

    def test_weight_scale_invariant(self):
        a = mix_probabilities([0.2, 0.7], [1.0, 3.0])
        b = mix_probabilities([0.2, 0.7], [100.0, 300.0])
        assert a == pytest.approx(b)

    def test_extremes_stay_finite(self):
        mixed = mix_probabilities([0.0, 1.0], [1.0, 1.0])
        assert 0.0 < mixed < 1.0
        assert mixed == pytest.approx(0.5)

    def test_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            mix_probabilities([0.2, 0.3], [1.0])


class TestAggregate:
    """Tests for aggregate and aggregate_batch."""

    def test_regression_weighted_average(self):
        out = aggregate(OutputTaskKind.REGRESSION, [[1.0], [3.0]], np.array([[1.0, 3.0]]))
        assert out == pytest.approx([2.5])

    def test_regression_zero_weights(self):
        out = aggregate(OutputTaskKind.REGRESSION, [[1.0], [3.0]], np.array([[0.0, 0.0]]))
        assert out == pytest.approx([2.0])

    def test_per_feature_weights(self):
        outputs = [[0.0, 10.0], [4.0, 20.0]]
        weights = np.array([[1.0, 1.0], [1.0, 0.0]])
        out = aggregate(OutputTaskKind.REGRESSION, outputs, weights)
        assert out == pytest.approx([2.0, 10.0])

    def test_binary_uses_probability_mixing(self):
        out = aggregate(OutputTaskKind.BINARY, [[0.9], [0.5]])
        assert out == pytest.approx([0.75])

    def test_categorical_sums_to_one(self):
        rng = np.random.default_rng(11)
        raw = rng.uniform(0.05, 1.0, size=(3, 4, 5))
        outputs = raw / raw.sum(axis=2, keepdims=True)
        weights = rng.uniform(0.1, 2.0, size=(5, 3))
        small = aggregate_batch(OutputTaskKind.CATEGORICAL, outputs, weights)
        large = aggregate_batch(OutputTaskKind.CATEGORICAL, outputs, weights * 1000.0)
        np.testing.assert_allclose(small.sum(axis=1), 1.0)
        np.testing.assert_allclose(small, large)

    def test_batch_matches_single(self):
        rng = np.random.default_rng(2)
        outputs = rng.uniform(size=(2, 6, 3))
        weights = rng.uniform(size=(3, 2))
        batch = aggregate_batch(OutputTaskKind.BINARY, outputs, weights)
        for n in range(6):
            single = aggregate(OutputTaskKind.BINARY, outputs[:, n, :], weights)
            np.testing.assert_allclose(batch[n], single)

    def test_shape_errors(self):
        with pytest.raises(ShapeMismatchError):
            aggregate_batch(OutputTaskKind.REGRESSION, np.zeros((2, 3)))
        with pytest.raises(ShapeMismatchError):
            aggregate_batch(OutputTaskKind.REGRESSION, np.zeros((2, 3, 1)), np.ones((1, 3)))
