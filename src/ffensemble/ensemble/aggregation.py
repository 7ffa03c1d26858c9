"""Confidence-weighted aggregation of member outputs.

Regression outputs are averaged with normalized weights. Probabilities of
binary and categorical tasks are mixed in log-odds space instead of being
averaged linearly, and categorical outputs are rescaled to sum to one.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from ffensemble.core.exceptions import ShapeMismatchError, ValidationError
from ffensemble.core.task import EPSILON, OutputTaskKind


def normalize_weights(weights: Sequence[float] | np.ndarray) -> np.ndarray:
    """Scale non-negative weights to sum to one (uniform when they sum to zero)."""
    w = np.asarray(weights, dtype=np.float64)
    if np.any(w < 0) or not np.all(np.isfinite(w)):
        raise ValidationError(f"Weights must be finite and non-negative, got {w}")
    total = w.sum()
    if total <= 0:
        return np.full_like(w, 1.0 / len(w))
    return w / total


def _logit(p: np.ndarray) -> np.ndarray:
    p = np.clip(p, EPSILON, 1.0 - EPSILON)
    return np.log(p) - np.log1p(-p)


def mix_probabilities(
    probabilities: Sequence[float] | np.ndarray, weights: Sequence[float] | np.ndarray
) -> float:
    """
    Mix probabilities as a weighted average of their log-odds.

    Args:
        probabilities: Member probabilities of one outcome.
        weights: Member weights; normalized internally.

    Returns:
        Mixed probability in ``[EPSILON, 1 - EPSILON]``.
    """
    p = np.asarray(probabilities, dtype=np.float64)
    w = normalize_weights(weights)
    if p.shape != w.shape:
        raise ShapeMismatchError("Probabilities and weights differ", expected=w.shape, got=p.shape)
    return float(1.0 / (1.0 + np.exp(-np.dot(w, _logit(p)))))


def aggregate_batch(
    task_kind: OutputTaskKind,
    member_outputs: np.ndarray,
    weights: np.ndarray | None = None,
) -> np.ndarray:
    """
    Aggregate member outputs for many samples at once.

    Args:
        task_kind: Task kind of the output features.
        member_outputs: Array of shape ``(members, samples, features)``.
        weights: Per feature member weights of shape ``(features, members)``;
            uniform when None.

    Returns:
        Aggregated outputs of shape ``(samples, features)``.
    """
    outputs = np.asarray(member_outputs, dtype=np.float64)
    if outputs.ndim != 3 or outputs.shape[0] == 0:
        raise ShapeMismatchError("member_outputs must have shape (members, samples, features)")
    num_members, _, num_features = outputs.shape
    if weights is None:
        weights = np.ones((num_features, num_members))
    weights = np.asarray(weights, dtype=np.float64)
    if weights.shape != (num_features, num_members):
        raise ShapeMismatchError(
            "Weights shape mismatch", expected=(num_features, num_members), got=weights.shape
        )
    norm = np.stack([normalize_weights(w) for w in weights])

    if task_kind is OutputTaskKind.REGRESSION:
        return np.einsum("fm,mnf->nf", norm, outputs)

    mixed = 1.0 / (1.0 + np.exp(-np.einsum("fm,mnf->nf", norm, _logit(outputs))))
    if task_kind is OutputTaskKind.CATEGORICAL:
        mixed = mixed / mixed.sum(axis=1, keepdims=True)
    return mixed


def aggregate(
    task_kind: OutputTaskKind,
    member_outputs: Sequence[Sequence[float]] | np.ndarray,
    weights: np.ndarray | None = None,
) -> np.ndarray:
    """Aggregate the output vectors of members for one sample.

    Args:
        task_kind: Task kind of the output features.
        member_outputs: Array of shape ``(members, features)``.
        weights: Per feature member weights of shape ``(features, members)``.

    Returns:
        Aggregated output vector.
    """
    outputs = np.asarray(member_outputs, dtype=np.float64)
    return aggregate_batch(task_kind, outputs[:, np.newaxis, :], weights)[0]
