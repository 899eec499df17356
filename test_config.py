import math

import pytest

from config import SimulationConfig
from errors import ConfigurationError
from run_detection import parse_args


def test_defaults_match_reference_scenario():
    config = SimulationConfig().validate()
    assert config.num_nodes == 27
    assert config.watchdog_ids == list(range(24))
    assert (config.greyhole_id, config.source_id, config.sink_id) == (25, 24, 26)
    assert config.drop_probability == 0.05
    assert config.max_ticks == 10
    assert config.threshold == 1.0


@pytest.mark.parametrize("overrides", [
    {"drop_probability": 1.5},
    {"drop_probability": -0.1},
    {"threshold": -1.0},
    {"threshold": math.nan},
    {"num_nodes": 0},
    {"num_watchdogs": 0},
    {"greyhole_id": 3},
    {"sink_id": 25},
    {"source_id": 40},
    {"tick_period": 0.0},
    {"max_ticks": 0},
    {"packet_interval": 0.0},
    {"stop_time": 0.5},
])
def test_invalid_parameters_are_rejected(overrides):
    with pytest.raises(ConfigurationError):
        SimulationConfig(**overrides).validate()


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        SimulationConfig(drop_probability=2.0).validate()


def test_replace_returns_validated_copy():
    base = SimulationConfig()
    changed = base.replace(seed=9, drop_probability=0.5)
    assert changed.seed == 9
    assert base.seed == 1
    with pytest.raises(ConfigurationError):
        base.replace(max_ticks=-3)


def test_from_args_keeps_defaults_for_unset_flags():
    args = parse_args(["--drop", "0.3", "--max-ticks", "4", "--seed", "5"])
    config = SimulationConfig.from_args(args)
    assert config.drop_probability == 0.3
    assert config.max_ticks == 4
    assert config.seed == 5
    assert config.num_nodes == 27


if __name__ == "__main__":
    test_defaults_match_reference_scenario()
    print("Config tests passed")
