"""Tests for samples, datasets, folds and feature filters."""

import numpy as np
import pytest

from ffensemble.core.exceptions import (
    ConfigurationError,
    ShapeMismatchError,
    StateError,
    ValidationError,
)
from ffensemble.core.task import OutputTaskKind
from ffensemble.data import FeatureFilter, SampleDataset


def _regression_data(count: int) -> SampleDataset:
    x = np.arange(count, dtype=float)
    return SampleDataset.from_arrays(x[:, np.newaxis], (2.0 * x)[:, np.newaxis])


def _assert_partition(folds, data):
    ids = sorted(i for fold in folds for i in fold.sample_ids)
    assert ids == sorted(data.sample_ids)


class TestSampleDataset:
    """Tests for SampleDataset."""

    def test_from_arrays(self):
        data = SampleDataset.from_arrays([[0, 0], [1, 1], [2, 2]], [[0], [1], [0]])
        assert len(data) == 3
        assert data.input_length == 2
        assert data.output_length == 1
        assert data.inputs.shape == (3, 2)
        assert data.outputs.shape == (3, 1)
        assert data.sample_ids == [0, 1, 2]

    def test_empty(self):
        data = SampleDataset()
        assert len(data) == 0
        assert data.input_length == 0
        assert data.inputs.shape == (0, 0)

    def test_row_count_mismatch(self):
        with pytest.raises(ValidationError):
            SampleDataset.from_arrays([[0], [1]], [[0]])

    def test_vector_length_mismatch(self):
        data = SampleDataset.from_arrays([[0, 0]], [[1]])
        with pytest.raises(ValidationError, match="input length"):
            data.add_sample([0, 0, 0], [1])
        with pytest.raises(ValidationError, match="output length"):
            data.add_sample([0, 0], [1, 0])

    def test_empty_vector(self):
        with pytest.raises(ValidationError):
            SampleDataset().add_sample([], [1.0])

    def test_vectors_are_read_only(self):
        data = SampleDataset.from_arrays([[0.0, 1.0]], [[1.0]])
        with pytest.raises(ValueError):
            data[0].input_vector[0] = 5.0

    def test_source_array_is_copied(self):
        row = np.array([1.0, 2.0])
        data = SampleDataset()
        data.add_sample(row, [0.0])
        row[0] = 9.0
        assert data[0].input_vector[0] == 1.0

    def test_shuffle_is_seeded_permutation(self):
        data = _regression_data(10)
        first = data.shuffle(np.random.default_rng(4))
        second = data.shuffle(np.random.default_rng(4))
        assert first.sample_ids == second.sample_ids
        assert sorted(first.sample_ids) == data.sample_ids
        assert data.sample_ids == list(range(10))

    def test_split(self):
        head, tail = _regression_data(10).split(0.3)
        assert len(head) == 3
        assert len(tail) == 7
        assert head.sample_ids == [0, 1, 2]

    def test_split_errors(self):
        with pytest.raises(ConfigurationError):
            _regression_data(10).split(1.0)
        with pytest.raises(ValidationError):
            _regression_data(2).split(0.1)

    def test_with_inputs(self):
        data = _regression_data(3)
        replaced = data.with_inputs(np.ones((3, 4)))
        assert replaced.input_length == 4
        np.testing.assert_array_equal(replaced.outputs, data.outputs)
        assert replaced.sample_ids == data.sample_ids
        with pytest.raises(ValidationError):
            data.with_inputs(np.ones((2, 4)))

    def test_concat(self):
        data = SampleDataset.concat([_regression_data(2), _regression_data(3)])
        assert len(data) == 5


class TestFolderize:
    """Tests for fold division."""

    def test_regression_folds(self):
        data = _regression_data(20)
        folds = data.folderize(0.25, OutputTaskKind.REGRESSION)
        assert [len(f) for f in folds] == [5, 5, 5, 5]
        _assert_partition(folds, data)

    def test_regression_remainder_is_distributed(self):
        data = _regression_data(10)
        folds = data.folderize(0.3, OutputTaskKind.REGRESSION)
        assert [len(f) for f in folds] == [4, 3, 3]
        _assert_partition(folds, data)

    def test_binary_folds_keep_both_classes(self):
        outputs = [[1.0]] * 6 + [[0.0]] * 6
        data = SampleDataset.from_arrays([[float(i)] for i in range(12)], outputs)
        folds = data.folderize(0.25, OutputTaskKind.BINARY)
        assert len(folds) == 4
        for fold in folds:
            assert set(fold.outputs[:, 0]) == {0.0, 1.0}
        _assert_partition(folds, data)

    def test_binary_folds_limited_by_minority_class(self):
        outputs = [[1.0]] * 2 + [[0.0]] * 10
        data = SampleDataset.from_arrays([[float(i)] for i in range(12)], outputs)
        folds = data.folderize(0.1, OutputTaskKind.BINARY)
        assert len(folds) == 2
        _assert_partition(folds, data)

    def test_binary_insufficient_class(self):
        outputs = [[1.0]] + [[0.0]] * 5
        data = SampleDataset.from_arrays([[float(i)] for i in range(6)], outputs)
        with pytest.raises(ValidationError):
            data.folderize(0.25, OutputTaskKind.BINARY)

    def test_categorical_folds_contain_every_class(self, categorical_clusters):
        folds = categorical_clusters.folderize(0.25, OutputTaskKind.CATEGORICAL)
        assert len(folds) == 4
        for fold in folds:
            assert sorted(np.argmax(fold.outputs, axis=1)) == [0, 1, 2]
        _assert_partition(folds, categorical_clusters)

    def test_categorical_missing_class(self):
        outputs = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]] * 3
        data = SampleDataset.from_arrays([[float(i)] for i in range(6)], outputs)
        with pytest.raises(ValidationError):
            data.folderize(0.5, OutputTaskKind.CATEGORICAL)

    def test_categorical_inconsistent_sample(self):
        outputs = [[1.0, 1.0], [0.0, 1.0], [1.0, 0.0], [0.0, 1.0]]
        data = SampleDataset.from_arrays([[float(i)] for i in range(4)], outputs)
        with pytest.raises(ValidationError, match="Inconsistent"):
            data.folderize(0.5, OutputTaskKind.CATEGORICAL)

    @pytest.mark.parametrize("ratio", [0.0, -0.1, 0.51, 1.0])
    def test_fold_ratio_range(self, ratio):
        with pytest.raises(ConfigurationError):
            _regression_data(10).folderize(ratio, OutputTaskKind.REGRESSION)

    def test_too_few_samples(self):
        with pytest.raises(ValidationError):
            _regression_data(1).folderize(0.5, OutputTaskKind.REGRESSION)


class TestFeatureFilter:
    """Tests for FeatureFilter."""

    def test_apply_and_reverse(self):
        flt = FeatureFilter().fit(np.array([[1.0, 10.0], [3.0, 10.0]]))
        np.testing.assert_allclose(flt.apply(np.array([3.0, 10.0])), [1.0, 0.0])
        np.testing.assert_allclose(flt.reverse(np.array([1.0, 0.0])), [3.0, 10.0])

    def test_constant_feature_reverses_to_mean(self):
        flt = FeatureFilter().fit(np.array([[4.0], [4.0], [4.0]]))
        np.testing.assert_allclose(flt.apply(np.array([[7.0]])), [[0.0]])
        np.testing.assert_allclose(flt.reverse(np.array([[2.0]])), [[4.0]])

    def test_partitions_match_single_pass(self):
        matrix = np.random.default_rng(0).normal(size=(41, 3))
        single = FeatureFilter().fit(matrix, num_partitions=1)
        parallel = FeatureFilter().fit(matrix, num_partitions=6)
        for a, b in zip(single.feature_stats, parallel.feature_stats):
            assert a.count == b.count
            assert a.mean == pytest.approx(b.mean)
            assert a.std_dev == pytest.approx(b.std_dev)
        np.testing.assert_allclose(single.apply(matrix), parallel.apply(matrix))

    def test_standardized_matrix(self):
        matrix = np.random.default_rng(1).normal(loc=5.0, scale=3.0, size=(100, 2))
        out = FeatureFilter().fit(matrix).apply(matrix)
        np.testing.assert_allclose(out.mean(axis=0), 0.0, atol=1e-9)
        np.testing.assert_allclose(out.std(axis=0), 1.0, atol=1e-9)

    def test_errors(self):
        with pytest.raises(StateError):
            FeatureFilter().apply(np.zeros(2))
        flt = FeatureFilter().fit(np.zeros((2, 2)))
        with pytest.raises(ShapeMismatchError):
            flt.apply(np.zeros(3))
        with pytest.raises(ShapeMismatchError):
            FeatureFilter().fit(np.zeros((0, 2)))
