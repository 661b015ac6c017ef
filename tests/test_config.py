"""YAML-backed engine configuration."""

from pathlib import Path

import pytest

import ironplan
from ironplan.config import DEFAULT_CONFIG_PATH, AutoregulationConfig, EngineConfig, load_config_yaml
from ironplan.errors import ConfigurationError


def test_missing_file_gives_defaults(tmp_path):
    config = EngineConfig.from_yaml(tmp_path / "absent.yaml")
    assert config.autoregulation == AutoregulationConfig()
    assert config.lifecycle.accumulation_session_threshold == 12


def test_partial_sections_override(tmp_path):
    path = tmp_path / "ironplan.yaml"
    path.write_text(
        "autoregulation:\n"
        "  aggressiveness: aggressive\n"
        "  staleness_hours: 12\n"
        "  not_a_setting: 1\n"
        "lifecycle:\n"
        "  deload_session_threshold: 2\n"
    )

    config = EngineConfig.from_yaml(path)

    assert config.autoregulation.aggressiveness == "aggressive"
    assert config.autoregulation.staleness_hours == 12
    assert config.autoregulation.max_load_reduction == 0.10
    assert config.lifecycle.deload_session_threshold == 2
    assert config.lifecycle.accumulation_session_threshold == 12


def test_env_var_selects_file(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("selection:\n  default_exercise_count: 5\n")
    monkeypatch.setenv("IRONPLAN_CONFIG", str(path))
    assert EngineConfig.from_yaml().selection.default_exercise_count == 5


def test_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config_yaml(path) == {}


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("autoregulation: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_config_yaml(path)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- one\n- two\n")
    with pytest.raises(ConfigurationError):
        EngineConfig.from_yaml(path)


def test_packaged_defaults_ship_with_the_module(monkeypatch):
    monkeypatch.delenv("IRONPLAN_CONFIG", raising=False)
    assert DEFAULT_CONFIG_PATH.parent.parent == Path(ironplan.__file__).parent
    assert DEFAULT_CONFIG_PATH.exists()
    assert load_config_yaml()["volume_ramp"]["deload_fraction"] == 0.45
