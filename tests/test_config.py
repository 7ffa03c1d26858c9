"""Tests for training and model configurations."""

import pytest

from ffensemble.core.config import config_from_dict
from ffensemble.core.exceptions import ConfigurationError
from ffensemble.ensemble import (
    CompositeModelConfig,
    CrossValModelConfig,
    HalvedStackModelConfig,
    RVFLModelConfig,
    RVFLPoolConfig,
    StackingModelConfig,
)
from ffensemble.training import (
    BATCH_SIZE_AUTO,
    BATCH_SIZE_FULL,
    HiddenLayerConfig,
    NetworkModelConfig,
    TrainingConfig,
)


@pytest.fixture
def network() -> NetworkModelConfig:
    return NetworkModelConfig(
        hidden_layers=[HiddenLayerConfig(8), HiddenLayerConfig(4, activation="relu")],
        training=TrainingConfig(attempts=2, attempt_epochs=50),
    )


class TestTrainingConfig:
    """Tests for TrainingConfig."""

    def test_defaults(self):
        config = TrainingConfig()
        assert config.attempts == 1
        assert config.batch_size == BATCH_SIZE_AUTO
        assert config.patience == 0.25
        assert config.fine_tune is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"attempts": 0},
            {"attempt_epochs": 0},
            {"batch_size": -2},
            {"learning_rate": 0.0},
            {"optimizer": "rmsprop"},
            {"weight_decay": -0.1},
            {"grad_clip": -1.0},
            {"patience": 0.0},
            {"patience": 1.5},
        ],
    )
    def test_validation(self, kwargs):
        with pytest.raises(ConfigurationError):
            TrainingConfig(**kwargs)

    def test_resolve_batch_size(self):
        assert TrainingConfig(batch_size=BATCH_SIZE_FULL).resolve_batch_size(500) == 500
        assert TrainingConfig(batch_size=BATCH_SIZE_AUTO).resolve_batch_size(10) == 10
        assert TrainingConfig(batch_size=BATCH_SIZE_AUTO).resolve_batch_size(1000) == 32
        assert TrainingConfig(batch_size=BATCH_SIZE_AUTO).resolve_batch_size(20000) == 128
        assert TrainingConfig(batch_size=64).resolve_batch_size(20) == 20

    def test_with_updates(self):
        config = TrainingConfig(attempts=2)
        updated = config.with_updates(attempts=5, patience=0.5)
        assert updated.attempts == 5
        assert updated.patience == 0.5
        assert config.attempts == 2
        with pytest.raises(ConfigurationError):
            config.with_updates(attempts=0)

    def test_save_load(self, tmp_path):
        config = TrainingConfig(attempts=3, optimizer="sgd", learning_rate=0.01)
        path = tmp_path / "training.json"
        config.save(path)
        assert TrainingConfig.load(path) == config


class TestNetworkModelConfig:
    """Tests for NetworkModelConfig and HiddenLayerConfig."""

    def test_hidden_layer_validation(self):
        with pytest.raises(ConfigurationError):
            HiddenLayerConfig(0)
        with pytest.raises(ConfigurationError):
            HiddenLayerConfig(4, activation="softsign")

    def test_rejects_raw_layers(self):
        with pytest.raises(ConfigurationError):
            NetworkModelConfig(hidden_layers=[8])

    def test_dict_round_trip(self, network):
        d = network.to_dict()
        assert d["kind"] == "network"
        assert d["hidden_layers"][1] == {"neurons": 4, "activation": "relu"}
        assert NetworkModelConfig.from_dict(d) == network
        assert config_from_dict(d) == network

    def test_wrong_kind(self, network):
        d = network.to_dict()
        d["kind"] = "crossval"
        with pytest.raises(ConfigurationError):
            NetworkModelConfig.from_dict(d)


class TestEnsembleConfigs:
    """Tests for ensemble and random-projection configurations."""

    @pytest.mark.parametrize("ratio", [0.0, 0.6, -0.1])
    def test_fold_ratio(self, network, ratio):
        with pytest.raises(ConfigurationError):
            CrossValModelConfig(network=network, fold_ratio=ratio)
        with pytest.raises(ConfigurationError):
            StackingModelConfig(stack=[network], meta_learner=network, fold_ratio=ratio)

    def test_fold_ratio_upper_bound_is_inclusive(self, network):
        assert CrossValModelConfig(network=network, fold_ratio=0.5).fold_ratio == 0.5

    def test_stacking_validation(self, network):
        with pytest.raises(ConfigurationError):
            StackingModelConfig(stack=[], meta_learner=network)
        with pytest.raises(ConfigurationError):
            StackingModelConfig(stack=[network], meta_learner=TrainingConfig())
        with pytest.raises(ConfigurationError):
            StackingModelConfig(stack=[CrossValModelConfig()], meta_learner=network)

    def test_halved_stack_validation(self, network):
        with pytest.raises(ConfigurationError):
            HalvedStackModelConfig(stack=[network], meta_learner=network, repetitions=0)

    def test_rvfl_validation(self, network):
        unused = [[RVFLPoolConfig(8, use_output=False)]]
        with pytest.raises(ConfigurationError):
            RVFLModelConfig(layers=unused, end_model=network)
        assert RVFLModelConfig(layers=unused, end_model=network, route_input=True)
        with pytest.raises(ConfigurationError):
            RVFLModelConfig(layers=[[]], end_model=network)
        with pytest.raises(ConfigurationError):
            RVFLModelConfig(layers=[[RVFLPoolConfig(8)]], end_model=network, scale_factor=0.0)
        with pytest.raises(ConfigurationError):
            RVFLPoolConfig(0)

    def test_composite_validation(self):
        with pytest.raises(ConfigurationError):
            CompositeModelConfig(members=[])

    def test_nested_json_round_trip(self, network, tmp_path):
        config = CompositeModelConfig(
            members=[
                StackingModelConfig(
                    stack=[network, network],
                    meta_learner=CrossValModelConfig(network=network, fold_ratio=0.2),
                    route_input=True,
                ),
                HalvedStackModelConfig(stack=[network], meta_learner=network, repetitions=2),
                RVFLModelConfig(
                    layers=[[RVFLPoolConfig(16), RVFLPoolConfig(8, "relu", False)]],
                    end_model=network,
                    scale_factor=0.5,
                ),
            ]
        )
        path = tmp_path / "nested" / "composite.json"
        config.save(path)
        loaded = CompositeModelConfig.load(path)
        assert loaded == config
        assert isinstance(loaded.members[0].meta_learner, CrossValModelConfig)
        assert isinstance(loaded.members[2].layers[0][1], RVFLPoolConfig)

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError):
            config_from_dict({"kind": "forest"})
        with pytest.raises(ConfigurationError):
            config_from_dict({})
