"""Base class of finished models and their test operations."""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from ffensemble.core.exceptions import ShapeMismatchError, ValidationError
from ffensemble.core.task import OutputTaskKind, fixed_partitions
from ffensemble.data.dataset import SampleDataset
from ffensemble.stats.errstat import ErrorStatistic, create_error_stat

from .confidence import ConfidenceMetrics
from .diagnostics import DiagnosticRecord

logger = logging.getLogger(__name__)


class Model(ABC):
    """
    Base class for finished, immutable models.

    Subclasses implement :meth:`compute`; ensembles additionally expose their
    sub-models through :meth:`children`.

    Args:
        name: Model name, used as the context path in reports.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        metrics: Confidence metrics of the finished model.
    """

    def __init__(
        self,
        name: str,
        task_kind: OutputTaskKind,
        output_feature_names: Sequence[str],
        metrics: ConfidenceMetrics,
    ):
        if not output_feature_names:
            raise ValidationError("Model requires at least one output feature")
        if metrics.task_kind is not task_kind:
            raise ValidationError(
                f"Metrics task kind {metrics.task_kind.value} differs from model task kind "
                f"{task_kind.value}"
            )
        if len(metrics.feature_confidences) != len(output_feature_names):
            raise ValidationError(
                f"Metrics cover {len(metrics.feature_confidences)} features, "
                f"model has {len(output_feature_names)}"
            )
        self.name = name
        self.task_kind = task_kind
        self.output_feature_names: tuple[str, ...] = tuple(output_feature_names)
        self.metrics = metrics

    @property
    def num_output_features(self) -> int:
        return len(self.output_feature_names)

    @abstractmethod
    def compute(self, input_vector: np.ndarray) -> np.ndarray:
        """Compute the output vector for one input vector."""

    def compute_batch(self, matrix: np.ndarray) -> np.ndarray:
        """Compute output vectors for a matrix of input rows."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if len(matrix) == 0:
            return np.empty((0, self.num_output_features))
        return np.stack([self.compute(row) for row in matrix])

    def children(self) -> tuple[Model, ...]:
        """Sub-models consuming the same input vectors as this model."""
        return ()

    def deep_clone(self) -> Model:
        """Return an independent deep copy of the model."""
        return copy.deepcopy(self)

    def test(
        self, data: SampleDataset, num_partitions: int | None = None
    ) -> tuple[ErrorStatistic, SampleDataset]:
        """
        Compute the model over a dataset and measure its error.

        Outputs are computed in one batch. Samples are then split into
        contiguous partitions, each accumulating a private error statistic in
        parallel, and the partial statistics are merged in partition order.

        Args:
            data: Testing data.
            num_partitions: Optional number of partitions.

        Returns:
            Tuple of the error statistic and a dataset holding the input
            vectors with the computed output vectors.

        Raises:
            ShapeMismatchError: If the data output length differs from the model.
        """
        if data.output_length != self.num_output_features:
            raise ShapeMismatchError(
                "Testing data output length mismatch",
                expected=(self.num_output_features,),
                got=(data.output_length,),
            )
        ideals = data.outputs
        computed = self.compute_batch(data.inputs) if len(data) else np.empty((0, 0))

        def _partition(start: int, stop: int) -> ErrorStatistic:
            stat = create_error_stat(self.task_kind, self.output_feature_names)
            for row in range(start, stop):
                stat.update(computed[row], ideals[row])
            return stat

        error_stat = create_error_stat(self.task_kind, self.output_feature_names)
        result = SampleDataset()
        ranges = fixed_partitions(len(data), num_partitions)
        if ranges:
            with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
                futures = [executor.submit(_partition, start, stop) for start, stop in ranges]
                for future in futures:
                    error_stat.merge(future.result())
            for sample, output_vector in zip(data, computed):
                result.add_sample(sample.input_vector, output_vector, sample.sample_id)
        return error_stat, result

    def diagnostic_test(self, data: SampleDataset) -> DiagnosticRecord:
        """Test the model and its sub-models and return the finalized diagnostic tree."""
        error_stat, _ = self.test(data)
        record = DiagnosticRecord(self.name, error_stat)
        for child_record in self._child_diagnostics(data):
            record.add_child(child_record)
        record.finalize()
        return record

    def _child_diagnostics(self, data: SampleDataset) -> list[DiagnosticRecord]:
        return [child.diagnostic_test(data) for child in self.children()]

    def _info_header(self, margin: int) -> list[str]:
        pad = " " * margin
        return [
            f"{pad}Model {self.name} ({type(self).__name__}, {self.task_kind.value})",
            f"{pad}    Output features: {', '.join(self.output_feature_names)}",
            self.metrics.get_report_text(margin + 4),
        ]

    def get_info_text(self, detail: bool = False, margin: int = 0) -> str:
        """Human readable description of the model and its metrics."""
        lines = self._info_header(margin)
        if detail:
            for child in self.children():
                lines.append(child.get_info_text(detail=True, margin=margin + 4))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, task_kind={self.task_kind.value})"
