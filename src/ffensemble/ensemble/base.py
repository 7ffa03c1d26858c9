"""Weighted ensemble model and the builder collecting its members."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from ffensemble.core.exceptions import ShapeMismatchError, StateError, ValidationError
from ffensemble.core.task import OutputTaskKind
from ffensemble.models.base import Model
from ffensemble.models.confidence import ConfidenceMetrics

from .aggregation import aggregate_batch

logger = logging.getLogger(__name__)


def confidence_weights(members: Sequence[Model]) -> np.ndarray:
    """Per feature member weights (``features x members``) from member confidences."""
    return np.array([m.metrics.feature_confidences for m in members], dtype=np.float64).T


def child_seed(rng: np.random.Generator) -> int:
    """Draw the seed of a nested build from the parent build's generator."""
    return int(rng.integers(0, 2**31 - 1))


class EnsembleModel(Model):
    """
    Ensemble aggregating the outputs of its members.

    Args:
        name: Model name.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.
        members: Member models.
        weights: Per feature member weights of shape ``(features, members)``.
        metrics: Confidence metrics of the ensemble.
    """

    def __init__(
        self,
        name: str,
        task_kind: OutputTaskKind,
        output_feature_names: Sequence[str],
        members: Sequence[Model],
        weights: np.ndarray,
        metrics: ConfidenceMetrics,
    ):
        super().__init__(name, task_kind, output_feature_names, metrics)
        weights = np.array(weights, dtype=np.float64)
        if weights.shape != (len(output_feature_names), len(members)):
            raise ShapeMismatchError(
                "Ensemble weights shape mismatch",
                expected=(len(output_feature_names), len(members)),
                got=weights.shape,
            )
        weights.setflags(write=False)
        self.members: tuple[Model, ...] = tuple(members)
        self.weights = weights

    def children(self) -> tuple[Model, ...]:
        return self.members

    def compute(self, input_vector: np.ndarray) -> np.ndarray:
        return self.compute_batch(np.asarray(input_vector, dtype=np.float64)[np.newaxis, :])[0]

    def compute_batch(self, matrix: np.ndarray) -> np.ndarray:
        outputs = np.stack([member.compute_batch(matrix) for member in self.members])
        return aggregate_batch(self.task_kind, outputs, self.weights)


class KFoldEnsemble(EnsembleModel):
    """Networks trained on k-fold splits, each validated on its held-out fold."""


class CompositeEnsemble(EnsembleModel):
    """Sub-models of arbitrary kinds trained on the same data."""


class HalvedStackEnsemble(EnsembleModel):
    """Halved stacks built over repeated random half splits."""


class EnsembleBuilder:
    """
    Collects ensemble members and produces the finished ensemble.

    Every member must match the ensemble's task kind and number of output
    features. The ensemble is created only by :meth:`build`, once all members
    are known.

    Args:
        name: Name of the ensemble.
        task_kind: Task kind of the output features.
        output_feature_names: Names of the output features.

    Example:
        >>> builder = EnsembleBuilder("CVM", OutputTaskKind.BINARY, ["y"])
        >>> builder.add_member(member)
        >>> ensemble = builder.build(KFoldEnsemble)
    """

    def __init__(
        self, name: str, task_kind: OutputTaskKind, output_feature_names: Sequence[str]
    ):
        self.name = name
        self.task_kind = task_kind
        self.output_feature_names = tuple(output_feature_names)
        self.members: list[Model] = []

    def add_member(self, member: Model) -> None:
        """Add a finished member.

        Raises:
            ValidationError: If the member's task kind or feature count differs.
        """
        if member.task_kind is not self.task_kind:
            raise ValidationError(
                f"Member {member.name} solves a {member.task_kind.value} task, "
                f"ensemble {self.name} a {self.task_kind.value} task"
            )
        if member.num_output_features != len(self.output_feature_names):
            raise ValidationError(
                f"Member {member.name} has {member.num_output_features} output features, "
                f"ensemble {self.name} expects {len(self.output_feature_names)}"
            )
        self.members.append(member)

    def build(
        self,
        model_cls: type[EnsembleModel] = EnsembleModel,
        metrics: ConfidenceMetrics | None = None,
    ) -> EnsembleModel:
        """
        Create the ensemble.

        Args:
            model_cls: Ensemble class to instantiate.
            metrics: Ensemble metrics; merged from the members when None.

        Raises:
            StateError: If no member was added.
        """
        if not self.members:
            raise StateError(f"Ensemble {self.name} has no members")
        if metrics is None:
            metrics = ConfidenceMetrics.merge([m.metrics for m in self.members])
        logger.info(f"[{self.name}] built {model_cls.__name__} of {len(self.members)} members")
        return model_cls(
            self.name,
            self.task_kind,
            self.output_feature_names,
            self.members,
            confidence_weights(self.members),
            metrics,
        )
