"""Configurations of ensemble and random-projection models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ffensemble.core.config import BaseConfig, config_from_dict
from ffensemble.core.exceptions import ConfigurationError
from ffensemble.data.dataset import MAX_FOLD_DATA_RATIO
from ffensemble.training.config import SUPPORTED_ACTIVATIONS, NetworkModelConfig

DEFAULT_FOLD_DATA_RATIO = 0.1


def _check_model_config(value: Any, field_name: str, config_name: str) -> None:
    if not isinstance(value, BaseConfig) or not value.kind:
        raise ConfigurationError(
            f"{field_name} must be a model configuration, got {type(value).__name__}",
            config_name=config_name,
        )


def _check_fold_ratio(fold_ratio: float, config_name: str) -> None:
    if not (0.0 < fold_ratio <= MAX_FOLD_DATA_RATIO):
        raise ConfigurationError(
            f"fold_ratio must be in (0, {MAX_FOLD_DATA_RATIO}], got {fold_ratio}",
            config_name=config_name,
        )


def _check_stack(stack: list[NetworkModelConfig], config_name: str) -> None:
    if not stack:
        raise ConfigurationError("stack must contain at least one network", config_name)
    for item in stack:
        if not isinstance(item, NetworkModelConfig):
            raise ConfigurationError(
                f"stack must contain NetworkModelConfig, got {type(item).__name__}", config_name
            )


@dataclass
class CrossValModelConfig(BaseConfig):
    """
    K-fold bagging of networks.

    Args:
        network: Configuration of every member network.
        fold_ratio: Share of the data held out by one fold, in (0, 0.5].
    """

    kind = "crossval"

    network: NetworkModelConfig = field(default_factory=NetworkModelConfig)
    fold_ratio: float = DEFAULT_FOLD_DATA_RATIO

    def _validate(self) -> None:
        _check_fold_ratio(self.fold_ratio, self.kind)
        _check_model_config(self.network, "network", self.kind)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CrossValModelConfig:
        d = cls._strip_kind(d)
        return cls(network=NetworkModelConfig.from_dict(d.pop("network", {})), **d)


@dataclass
class StackingModelConfig(BaseConfig):
    """
    Stacked generalization: hold-out predictions of a network stack feed a meta-learner.

    Args:
        stack: Configurations of the stacked networks.
        meta_learner: Configuration of the meta-learner (any model kind).
        fold_ratio: Share of the data held out by one fold, in (0, 0.5].
        route_input: Whether the meta-learner also receives the original input.
    """

    kind = "stacking"

    stack: list[NetworkModelConfig]
    meta_learner: BaseConfig
    fold_ratio: float = DEFAULT_FOLD_DATA_RATIO
    route_input: bool = False

    def _validate(self) -> None:
        _check_stack(self.stack, self.kind)
        _check_model_config(self.meta_learner, "meta_learner", self.kind)
        _check_fold_ratio(self.fold_ratio, self.kind)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> StackingModelConfig:
        d = cls._strip_kind(d)
        return cls(
            stack=[NetworkModelConfig.from_dict(s) for s in d.pop("stack", [])],
            meta_learner=config_from_dict(d.pop("meta_learner")),
            **d,
        )


@dataclass
class HalvedStackModelConfig(BaseConfig):
    """
    Bagging of halved stacks.

    Every repetition splits the data into two halves and builds two stacks,
    each trained on one half and validated on the other; the meta-learner of
    a stack is trained on the stack outputs over the validation half.

    Args:
        stack: Configurations of the stacked networks.
        meta_learner: Configuration of the meta-learner (any model kind).
        repetitions: Number of random half splits.
        route_input: Whether the meta-learner also receives the original input.
    """

    kind = "halved_stack"

    stack: list[NetworkModelConfig]
    meta_learner: BaseConfig
    repetitions: int = 1
    route_input: bool = False

    def _validate(self) -> None:
        _check_stack(self.stack, self.kind)
        _check_model_config(self.meta_learner, "meta_learner", self.kind)
        if self.repetitions <= 0:
            raise ConfigurationError(
                f"repetitions must be positive, got {self.repetitions}", self.kind
            )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> HalvedStackModelConfig:
        d = cls._strip_kind(d)
        return cls(
            stack=[NetworkModelConfig.from_dict(s) for s in d.pop("stack", [])],
            meta_learner=config_from_dict(d.pop("meta_learner")),
            **d,
        )


@dataclass
class RVFLPoolConfig(BaseConfig):
    """A pool of randomly connected neurons within a random-projection layer."""

    neurons: int
    activation: str = "tanh"
    use_output: bool = True

    def _validate(self) -> None:
        if self.neurons <= 0:
            raise ConfigurationError(f"neurons must be positive, got {self.neurons}", "rvfl")
        if self.activation not in SUPPORTED_ACTIVATIONS:
            raise ConfigurationError(
                f"activation must be one of {SUPPORTED_ACTIVATIONS}, got '{self.activation}'",
                "rvfl",
            )


@dataclass
class RVFLModelConfig(BaseConfig):
    """
    Random vector functional link model.

    Fixed random layers project the standardized input; outputs of the pools
    marked ``use_output`` (and optionally the input itself) train the end-model.

    Args:
        layers: Layers in input-to-output order, each a list of pools.
        end_model: Configuration of the end-model (any model kind).
        scale_factor: Range of the uniformly drawn weights and biases.
        route_input: Whether the end-model also receives the standardized input.
    """

    kind = "rvfl"

    layers: list[list[RVFLPoolConfig]]
    end_model: BaseConfig
    scale_factor: float = 1.0
    route_input: bool = False

    def _validate(self) -> None:
        if not self.layers or any(len(layer) == 0 for layer in self.layers):
            raise ConfigurationError("every layer must contain at least one pool", self.kind)
        _check_model_config(self.end_model, "end_model", self.kind)
        if self.scale_factor <= 0:
            raise ConfigurationError(
                f"scale_factor must be positive, got {self.scale_factor}", self.kind
            )
        if not self.route_input and not any(
            pool.use_output for layer in self.layers for pool in layer
        ):
            raise ConfigurationError(
                "at least one pool must use its output when the input is not routed", self.kind
            )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RVFLModelConfig:
        d = cls._strip_kind(d)
        return cls(
            layers=[[RVFLPoolConfig.from_dict(p) for p in layer] for layer in d.pop("layers", [])],
            end_model=config_from_dict(d.pop("end_model")),
            **d,
        )


@dataclass
class CompositeModelConfig(BaseConfig):
    """
    Confidence-weighted composition of arbitrary sub-models.

    Args:
        members: Configurations of the sub-models (any model kind).
    """

    kind = "composite"

    members: list[BaseConfig]

    def _validate(self) -> None:
        if not self.members:
            raise ConfigurationError("members must contain at least one model", self.kind)
        for member in self.members:
            _check_model_config(member, "members", self.kind)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CompositeModelConfig:
        d = cls._strip_kind(d)
        return cls(members=[config_from_dict(m) for m in d.pop("members", [])], **d)
