"""Single trained feed-forward network model."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np

from ffensemble.core.exceptions import ShapeMismatchError
from ffensemble.core.task import OutputTaskKind
from ffensemble.data.filters import FeatureFilter
from ffensemble.stats.errstat import ErrorStatistic

from .base import Model
from .confidence import ConfidenceMetrics

if TYPE_CHECKING:
    from ffensemble.training.engine import MLPEngine

logger = logging.getLogger(__name__)


class NetworkModel(Model):
    """
    A network snapshot taken by the training controller.

    The model owns its engine snapshot together with the input filter (and,
    for regression, the output filter) fitted on the training data. Training
    and validation error statistics are stored as copies and the confidence
    metrics are derived from them.

    Args:
        name: Model name.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        engine: Engine snapshot, owned by the model.
        input_filter: Fitted input feature filter.
        output_filter: Fitted output filter for regression, otherwise None.
        training_error_stat: Error statistic over the training data.
        validation_error_stat: Optional error statistic over the validation data.
    """

    def __init__(
        self,
        name: str,
        task_kind: OutputTaskKind,
        output_feature_names: Sequence[str],
        engine: MLPEngine,
        input_filter: FeatureFilter,
        output_filter: FeatureFilter | None,
        training_error_stat: ErrorStatistic,
        validation_error_stat: ErrorStatistic | None = None,
    ):
        super().__init__(
            name,
            task_kind,
            output_feature_names,
            ConfidenceMetrics.from_stats(training_error_stat, validation_error_stat),
        )
        self.engine = engine
        self.input_filter = input_filter
        self.output_filter = output_filter
        self.training_error_stat = training_error_stat.copy()
        self.validation_error_stat = (
            validation_error_stat.copy() if validation_error_stat is not None else None
        )

    @property
    def input_length(self) -> int:
        return self.input_filter.num_features

    def compute(self, input_vector: np.ndarray) -> np.ndarray:
        input_vector = np.asarray(input_vector, dtype=np.float64)
        if input_vector.shape != (self.input_length,):
            raise ShapeMismatchError(
                "Input vector length mismatch",
                expected=(self.input_length,),
                got=input_vector.shape,
            )
        return self.compute_batch(input_vector[np.newaxis, :])[0]

    def compute_batch(self, matrix: np.ndarray) -> np.ndarray:
        outputs = self.engine.compute_batch(self.input_filter.apply(matrix))
        if self.output_filter is not None:
            outputs = self.output_filter.reverse(outputs)
        return outputs

    def get_info_text(self, detail: bool = False, margin: int = 0) -> str:
        pad = " " * margin
        lines = self._info_header(margin)
        weights = self.engine.weights_stat()
        lines.append(
            f"{pad}    Weights: count {weights.count}, avg {weights.mean:.5f}, "
            f"min {weights.min:.5f}, max {weights.max:.5f}"
        )
        if detail:
            lines.append(f"{pad}    Training error statistic")
            lines.append(self.training_error_stat.get_report_text(margin + 8))
            if self.validation_error_stat is not None:
                lines.append(f"{pad}    Validation error statistic")
                lines.append(self.validation_error_stat.get_report_text(margin + 8))
        return "\n".join(lines)
