"""Sample and dataset containers with shuffle, fold and split operations."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

import numpy as np

from ffensemble.core.exceptions import ConfigurationError, ValidationError
from ffensemble.core.task import BIN_DECISION_BORDER, OutputTaskKind

logger = logging.getLogger(__name__)

MAX_FOLD_DATA_RATIO = 0.5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _frozen_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    vector = np.array(values, dtype=np.float64).reshape(-1)
    vector.setflags(write=False)
    return vector


@dataclass(frozen=True, eq=False)
class Sample:
    """A single input/ideal-output pair. Vectors are read-only."""

    sample_id: int
    input_vector: np.ndarray = field(repr=False)
    output_vector: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_vector", _frozen_vector(self.input_vector))
        object.__setattr__(self, "output_vector", _frozen_vector(self.output_vector))


class SampleDataset:
    """
    Ordered collection of samples sharing one input and one output length.

    The collection only grows through :meth:`add_sample`. Shuffle, fold and
    split operations return new datasets referencing the same samples.

    Example:
        >>> data = SampleDataset.from_arrays([[0, 0], [1, 1]], [[0], [1]])
        >>> len(data)
        2
    """

    def __init__(self, samples: Iterable[Sample] = ()):
        self._samples: list[Sample] = []
        for sample in samples:
            self.append(sample)

    @classmethod
    def from_arrays(
        cls,
        inputs: Sequence[Sequence[float]] | np.ndarray,
        outputs: Sequence[Sequence[float]] | np.ndarray,
    ) -> SampleDataset:
        """Create a dataset from row-aligned input and output matrices."""
        if len(inputs) != len(outputs):
            raise ValidationError(
                f"Inputs and outputs have different row counts: {len(inputs)} vs {len(outputs)}"
            )
        dataset = cls()
        for input_vector, output_vector in zip(inputs, outputs):
            dataset.add_sample(input_vector, output_vector)
        return dataset

    @classmethod
    def concat(cls, datasets: Iterable[SampleDataset]) -> SampleDataset:
        """Concatenate datasets in order."""
        result = cls()
        for dataset in datasets:
            for sample in dataset:
                result.append(sample)
        return result

    def add_sample(
        self,
        input_vector: Sequence[float] | np.ndarray,
        output_vector: Sequence[float] | np.ndarray,
        sample_id: int | None = None,
    ) -> Sample:
        """Create and append a new sample.

        Raises:
            ValidationError: If vector lengths differ from the existing samples.
        """
        sample = Sample(
            sample_id=len(self._samples) if sample_id is None else sample_id,
            input_vector=input_vector,
            output_vector=output_vector,
        )
        self.append(sample)
        return sample

    def append(self, sample: Sample) -> None:
        """Append an existing sample.

        Raises:
            ValidationError: If vector lengths differ from the existing samples.
        """
        if len(sample.input_vector) == 0 or len(sample.output_vector) == 0:
            raise ValidationError(f"Sample {sample.sample_id} has an empty vector")
        if self._samples:
            if len(sample.input_vector) != self.input_length:
                raise ValidationError(
                    f"Sample {sample.sample_id} input length {len(sample.input_vector)} "
                    f"differs from dataset input length {self.input_length}"
                )
            if len(sample.output_vector) != self.output_length:
                raise ValidationError(
                    f"Sample {sample.sample_id} output length {len(sample.output_vector)} "
                    f"differs from dataset output length {self.output_length}"
                )
        self._samples.append(sample)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __getitem__(self, index: int) -> Sample:
        return self._samples[index]

    @property
    def input_length(self) -> int:
        return len(self._samples[0].input_vector) if self._samples else 0

    @property
    def output_length(self) -> int:
        return len(self._samples[0].output_vector) if self._samples else 0

    @property
    def inputs(self) -> np.ndarray:
        """Input matrix with one row per sample."""
        if not self._samples:
            return np.empty((0, 0), dtype=np.float64)
        return np.stack([s.input_vector for s in self._samples])

    @property
    def outputs(self) -> np.ndarray:
        """Ideal output matrix with one row per sample."""
        if not self._samples:
            return np.empty((0, 0), dtype=np.float64)
        return np.stack([s.output_vector for s in self._samples])

    @property
    def sample_ids(self) -> list[int]:
        return [s.sample_id for s in self._samples]

    def with_inputs(self, inputs: np.ndarray) -> SampleDataset:
        """Return a dataset pairing new input rows with the ideal outputs of this one."""
        if len(inputs) != len(self._samples):
            raise ValidationError(
                f"Expected {len(self._samples)} input rows, got {len(inputs)}"
            )
        result = SampleDataset()
        for sample, row in zip(self._samples, inputs):
            result.add_sample(row, sample.output_vector, sample.sample_id)
        return result

    def shuffle(self, rng: np.random.Generator) -> SampleDataset:
        """Return a new dataset with the samples in random order."""
        order = rng.permutation(len(self._samples))
        return SampleDataset(self._samples[i] for i in order)

    def split(self, ratio: float) -> tuple[SampleDataset, SampleDataset]:
        """Split into a leading part of ``ratio`` share and the remaining samples.

        Raises:
            ConfigurationError: If ratio is not in (0, 1).
            ValidationError: If either part would be empty.
        """
        if not (0.0 < ratio < 1.0):
            raise ConfigurationError(f"split ratio must be in (0, 1), got {ratio}")
        boundary = _round_half_up(len(self._samples) * ratio)
        if boundary <= 0 or boundary >= len(self._samples):
            raise ValidationError(
                f"Split of {len(self._samples)} samples at ratio {ratio} leaves an empty part"
            )
        return SampleDataset(self._samples[:boundary]), SampleDataset(self._samples[boundary:])

    def folderize(self, fold_ratio: float, task_kind: OutputTaskKind) -> list[SampleDataset]:
        """
        Divide the samples into folds of roughly ``fold_ratio`` share each.

        Regression data (and binary data with several outputs) is split into
        contiguous folds. Single-output binary data keeps the 0/1 proportion in
        every fold and categorical data deals every class round-robin over the
        folds, so each fold contains each class. Every sample is placed into
        exactly one fold.

        Args:
            fold_ratio: Requested share of one fold, in (0, 0.5].
            task_kind: Task kind of the output features.

        Returns:
            List of folds.

        Raises:
            ConfigurationError: If fold_ratio is out of range.
            ValidationError: If the samples can't be folded for the task kind.
        """
        if not (0.0 < fold_ratio <= MAX_FOLD_DATA_RATIO):
            raise ConfigurationError(
                f"fold_ratio must be in (0, {MAX_FOLD_DATA_RATIO}], got {fold_ratio}"
            )
        count = len(self._samples)
        if count < 2:
            raise ValidationError(f"Insufficient number of samples ({count}), minimum is 2")
        fold_size = max(1, _round_half_up(count * fold_ratio))
        num_folds = max(1, _round_half_up(count / fold_size))

        if task_kind is OutputTaskKind.REGRESSION or (
            task_kind is OutputTaskKind.BINARY and self.output_length > 1
        ):
            folds = self._contiguous_folds(num_folds, fold_size)
        elif task_kind is OutputTaskKind.BINARY:
            folds = self._stratified_binary_folds(num_folds)
        else:
            folds = self._categorical_folds(num_folds)
        logger.debug(f"Folderized {count} samples into {len(folds)} folds")
        return folds

    def _contiguous_folds(self, num_folds: int, fold_size: int) -> list[SampleDataset]:
        folds = [SampleDataset() for _ in range(num_folds)]
        position = 0
        for fold in folds:
            for _ in range(fold_size):
                if position >= len(self._samples):
                    break
                fold.append(self._samples[position])
                position += 1
        for i, sample in enumerate(self._samples[position:]):
            folds[i % num_folds].append(sample)
        return [fold for fold in folds if len(fold) > 0]

    def _stratified_binary_folds(self, num_folds: int) -> list[SampleDataset]:
        bins: tuple[list[Sample], list[Sample]] = ([], [])
        for sample in self._samples:
            bins[1 if sample.output_vector[0] >= BIN_DECISION_BORDER else 0].append(sample)
        min01 = min(len(bins[0]), len(bins[1]))
        if min01 < 2:
            raise ValidationError("Insufficient bin 0 or bin 1 samples (less than 2)")
        num_folds = min(num_folds, min01)
        folds = [SampleDataset() for _ in range(num_folds)]
        for bin_samples in bins:
            per_fold = max(1, len(bin_samples) // num_folds)
            position = 0
            for fold in folds:
                for sample in bin_samples[position : position + per_fold]:
                    fold.append(sample)
                position += per_fold
            for i, sample in enumerate(bin_samples[position:]):
                folds[i % num_folds].append(sample)
        return folds

    def _categorical_folds(self, num_folds: int) -> list[SampleDataset]:
        num_classes = self.output_length
        class_members: list[list[Sample]] = [[] for _ in range(num_classes)]
        for sample in self._samples:
            hot = np.flatnonzero(sample.output_vector >= BIN_DECISION_BORDER)
            if len(hot) != 1:
                raise ValidationError(
                    f"Inconsistent categorical sample {sample.sample_id}: "
                    f"{len(hot)} output features have binary value 1"
                )
            class_members[int(hot[0])].append(sample)
        count = len(self._samples)
        max_folds = min(min(len(members), count - len(members)) for members in class_members)
        num_folds = min(num_folds, max_folds)
        if num_folds < 1:
            raise ValidationError(
                "Categorical folds require every class to be present and not universal"
            )
        folds = [SampleDataset() for _ in range(num_folds)]
        for members in class_members:
            for i, sample in enumerate(members):
                folds[i % num_folds].append(sample)
        return folds
