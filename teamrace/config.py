"""
Configuration loading and validation for the team-race application.

This module uses standard library dataclasses for configuration objects,
built from YAML by a small recursive helper and checked by explicit, pure
validation functions.
"""

import yaml
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Literal, Dict, Any, Optional, Type, cast

__all__ = ["load_config", "Config", "TIME_RANGES"]

TIME_RANGES = ("1M", "3M", "6M", "1Y", "3Y", "5Y")


# §1. Nested Configuration Dataclasses
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class RunConfig:
    name: str
    output_dir: Path


@dataclass(frozen=True)
class DataConfig:
    snapshot_dir: Path
    latest_file: str = "stocks-latest.json"
    metadata_file: str = "metadata.json"
    lookback_years: int = 5
    interval: Literal["1d", "1wk", "1mo"] = "1d"
    retry_attempts: int = 3
    retry_delay_seconds: float = 2.0
    batch_size: int = 5
    batch_delay_seconds: float = 1.0


@dataclass(frozen=True)
class RaceConfig:
    top_n: int = 20
    time_range: Literal["1M", "3M", "6M", "1Y", "3Y", "5Y"] = "1Y"
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class FiltersConfig:
    team: Literal["all", "blue", "white"] = "all"
    sectors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PlaybackConfig:
    base_frame_duration_ms: float = 500.0
    default_speed: float = 0.5
    speeds: List[float] = field(default_factory=lambda: [0.2, 0.5, 1.0])
    tick_interval_ms: float = 16.0


# §2. Top-Level Configuration
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Config:
    """The root configuration object, composing all nested sections."""
    run: RunConfig
    data: DataConfig
    race: RaceConfig = field(default_factory=RaceConfig)
    filters: FiltersConfig = field(default_factory=FiltersConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)


# §3. Validation and Loading
# --------------------------------------------------------------------------------------


def _from_dict(data_class: Type[Any], data: Any) -> Any:
    """Recursively creates nested dataclasses from a dictionary."""
    if isinstance(data, dict) and hasattr(data_class, "__dataclass_fields__"):
        field_types = {f.name: f.type for f in data_class.__dataclass_fields__.values()}

        kwargs = {}
        for k, v in data.items():
            if v is None:
                continue
            field_type = field_types.get(k)
            # Unknown keys pass through so the dataclass constructor raises
            # a TypeError for them, which load_config reports.
            kwargs[k] = _from_dict(field_type, v) if field_type else v
        return data_class(**kwargs)

    if isinstance(data, str) and data_class in (date, Optional[date]):
        return date.fromisoformat(data)
    if isinstance(data, str) and data_class is Path:
        return Path(data)
    return data


def _validate_config(cfg: Dict[str, Any]) -> None:
    """
    Performs simple, explicit validation checks on the raw config dictionary.
    Fail fast on any logical inconsistencies.
    """
    if not isinstance(cfg, dict):
        raise ValueError("Configuration must be a YAML object.")

    for section in ("run", "data"):
        if not isinstance(cfg.get(section), dict):
            raise ValueError(f"Missing required section: {section}")

    data_cfg = cfg["data"]
    if data_cfg.get("retry_attempts", 1) < 1:
        raise ValueError("data.retry_attempts must be at least 1")
    if data_cfg.get("batch_size", 1) < 1:
        raise ValueError("data.batch_size must be at least 1")

    race_cfg = cfg.get("race") or {}
    if race_cfg.get("top_n", 1) < 1:
        raise ValueError("race.top_n must be at least 1")
    if race_cfg.get("time_range", "1Y") not in TIME_RANGES:
        raise ValueError(f"race.time_range must be one of {', '.join(TIME_RANGES)}")

    # yaml.safe_load already turns unquoted ISO dates into date objects.
    start = race_cfg.get("start_date")
    end = race_cfg.get("end_date")
    try:
        start = date.fromisoformat(start) if isinstance(start, str) else start
        end = date.fromisoformat(end) if isinstance(end, str) else end
    except ValueError as e:
        raise ValueError(f"race dates must be in YYYY-MM-DD format: {e}") from e
    if start and end and start > end:
        raise ValueError("race.start_date must not be after race.end_date")

    filters_cfg = cfg.get("filters") or {}
    if filters_cfg.get("team", "all") not in ("all", "blue", "white"):
        raise ValueError("filters.team must be one of all, blue, white")

    playback_cfg = cfg.get("playback") or {}
    speeds = playback_cfg.get("speeds", PlaybackConfig().speeds)
    if playback_cfg.get("default_speed", PlaybackConfig.default_speed) not in speeds:
        raise ValueError("playback.default_speed must be one of playback.speeds")
    if any(s <= 0 for s in speeds):
        raise ValueError("playback.speeds must all be positive")


# impure
def load_config(config_path: Path) -> Config:
    """
    Loads and validates a YAML configuration file into a Config object.
    #impure: Reads from the filesystem.
    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {config_path}: {e}") from e

    _validate_config(raw_config)

    try:
        # _from_dict is too dynamic for mypy to track types.
        return cast(Config, _from_dict(Config, raw_config))
    except (TypeError, KeyError) as e:
        raise ValueError(f"Configuration validation failed: missing or invalid key. Details: {e}") from e
