"""Tests for configuration loading and validation."""
import copy
from pathlib import Path
from datetime import date
from typing import Dict, Any

import pytest
import yaml

from teamrace.config import Config, DataConfig, RaceConfig, load_config, _from_dict

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config" / "example.yaml"

# A complete and valid dictionary that can be used to construct a Config object.
FULL_CONFIG_DICT: Dict[str, Any] = {
    "run": {"name": "test_run", "output_dir": "test_output"},
    "data": {
        "snapshot_dir": "test_snapshots", "latest_file": "stocks-latest.json",
        "metadata_file": "metadata.json", "lookback_years": 5, "interval": "1d",
        "retry_attempts": 3, "retry_delay_seconds": 0.0, "batch_size": 5, "batch_delay_seconds": 0.0,
    },
    "race": {"top_n": 20, "time_range": "1Y", "start_date": "2024-01-01", "end_date": "2024-06-30"},
    "filters": {"team": "all", "sectors": []},
    "playback": {"base_frame_duration_ms": 500, "default_speed": 0.5, "speeds": [0.2, 0.5, 1.0], "tick_interval_ms": 16},
}


def _write(tmp_path: Path, config_dict: Dict[str, Any]) -> Path:
    config_path = tmp_path / "config.yaml"
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config_dict, f)
    return config_path


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Pytest fixture to create a temporary, valid config file."""
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["data"]["snapshot_dir"] = str(tmp_path)
    return _write(tmp_path, config_dict)


def test_load_valid_config(temp_config_file: Path) -> None:
    """Test loading a valid configuration file returns a Config object."""
    config = load_config(temp_config_file)
    assert isinstance(config, Config)
    assert config.run.name == "test_run"
    assert config.race.start_date == date(2024, 1, 1)
    assert isinstance(config.data.snapshot_dir, Path)


def test_load_example_config_file() -> None:
    """Test that the shipped example config file is valid."""
    config = load_config(EXAMPLE_CONFIG)
    assert isinstance(config, Config)
    assert config.race.start_date is None
    assert config.race.top_n == 20


def test_optional_sections_use_defaults(tmp_path: Path) -> None:
    config_path = _write(tmp_path, {"run": FULL_CONFIG_DICT["run"], "data": {"snapshot_dir": "data"}})
    config = load_config(config_path)
    assert config.data == DataConfig(snapshot_dir=Path("data"))
    assert config.race == RaceConfig()
    assert config.playback.speeds == [0.2, 0.5, 1.0]
    assert config.filters.team == "all"


def test_missing_config_file() -> None:
    """Test error handling for missing config file."""
    with pytest.raises(FileNotFoundError):
        load_config(Path("nonexistent.yaml"))


def test_invalid_yaml_syntax(tmp_path: Path) -> None:
    """Test error handling for invalid YAML syntax."""
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text("run: { name: test")
    with pytest.raises(ValueError, match="Invalid YAML syntax"):
        load_config(config_path)


def test_missing_section_fails(tmp_path: Path) -> None:
    config_path = _write(tmp_path, {"run": FULL_CONFIG_DICT["run"]})
    with pytest.raises(ValueError, match="Missing required section: data"):
        load_config(config_path)


def test_race_date_validation_fails(tmp_path: Path) -> None:
    """Test that validation fails if end_date is before start_date."""
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["race"]["start_date"] = "2024-06-01"
    invalid_config["race"]["end_date"] = "2024-01-01"
    with pytest.raises(ValueError, match="race.start_date must not be after race.end_date"):
        load_config(_write(tmp_path, invalid_config))


def test_race_date_format_fails(tmp_path: Path) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["race"]["start_date"] = "01/01/2024"
    with pytest.raises(ValueError, match="YYYY-MM-DD"):
        load_config(_write(tmp_path, invalid_config))


@pytest.mark.parametrize(
    "section,key,value,message",
    [
        ("data", "retry_attempts", 0, "retry_attempts"),
        ("data", "batch_size", 0, "batch_size"),
        ("race", "top_n", 0, "top_n"),
        ("race", "time_range", "2W", "time_range"),
        ("filters", "team", "red", "filters.team"),
        ("playback", "default_speed", 3.0, "default_speed"),
    ],
)
def test_invalid_values_fail(tmp_path: Path, section: str, key: str, value: Any, message: str) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config[section][key] = value
    with pytest.raises(ValueError, match=message):
        load_config(_write(tmp_path, invalid_config))


def test_unknown_key_fails(tmp_path: Path) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["data"]["colour"] = "blue"
    with pytest.raises(ValueError, match="missing or invalid key"):
        load_config(_write(tmp_path, invalid_config))


def test_from_dict_conversion() -> None:
    """Tests the internal _from_dict helper for creating nested dataclasses."""
    config = _from_dict(Config, copy.deepcopy(FULL_CONFIG_DICT))
    assert isinstance(config, Config)
    assert isinstance(config.race, RaceConfig)
    assert config.race.end_date == date(2024, 6, 30)
    assert config.run.output_dir == Path("test_output")
