"""
Tests for CLI interface.
"""
import copy
import json
from pathlib import Path
from typing import Any, Dict

import yaml
from typer.testing import CliRunner

from cli import app
from teamrace.types import FinancialMetrics, HistoricalDataPoint, StockData

# Default CliRunner mixes stderr and stdout into the .output attribute,
# which is what we want for testing console output.
runner = CliRunner()

FULL_CONFIG_DICT: Dict[str, Any] = {
    "run": {"name": "test_cli_run", "output_dir": ""},
    "data": {
        "snapshot_dir": "", "latest_file": "stocks-latest.json", "metadata_file": "metadata.json",
        "retry_attempts": 1, "retry_delay_seconds": 0.0, "batch_size": 5, "batch_delay_seconds": 0.0,
    },
    "race": {"top_n": 20, "time_range": "1Y", "start_date": "2024-01-01", "end_date": "2024-01-31"},
    "filters": {"team": "all", "sectors": []},
    "playback": {"base_frame_duration_ms": 500, "default_speed": 0.5, "speeds": [0.2, 0.5, 1.0], "tick_interval_ms": 16},
}


def _stock(ticker: str, team: str, sector: str, closes, error=None) -> StockData:
    return StockData(
        ticker=ticker,
        name=f"{ticker} Inc",
        sector=sector,
        team=team,
        category="test",
        history=[
            HistoricalDataPoint(date=d, open=c, high=c, low=c, close=c, volume=100, adj_close=c)
            for d, c in closes.items()
        ],
        financials=FinancialMetrics(last_updated="2024-01-31"),
        error=error,
    )


STOCKS = [
    _stock("NVDA", "blue", "AI & Cloud", {"2024-01-02": 100.0, "2024-01-03": 110.0, "2024-01-04": 120.0}),
    _stock("JPM", "white", "Banking", {"2024-01-02": 50.0, "2024-01-03": 52.0, "2024-01-04": 51.0}),
]


def create_temp_config(tmp_path: Path, **overrides: Dict[str, Any]) -> Path:
    """Creates a temporary, valid YAML config file for testing."""
    config_path = tmp_path / "test_config.yaml"
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["data"]["snapshot_dir"] = str(tmp_path / "data")
    config_dict["run"]["output_dir"] = str(tmp_path / "run")
    for section, values in overrides.items():
        config_dict[section].update(values)
    config_path.write_text(yaml.dump(config_dict))
    return config_path


def write_snapshot(tmp_path: Path) -> Path:
    path = tmp_path / "data" / "stocks-latest.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([s.model_dump(by_alias=True) for s in STOCKS]))
    return path


def test_cli_help() -> None:
    """Test CLI --help flag."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Chart race" in result.output


def test_cli_frames_with_missing_config_file() -> None:
    result = runner.invoke(app, ["frames", "--config", "nonexistent.yaml"])
    assert result.exit_code == 2
    assert "does not exist" in result.output


def test_cli_invalid_config(tmp_path: Path) -> None:
    config_path = create_temp_config(tmp_path, filters={"team": "red"})
    result = runner.invoke(app, ["frames", "--config", str(config_path)])
    assert result.exit_code == 1
    assert "Configuration Error" in result.output


def test_cli_refresh_data(mocker, tmp_path: Path) -> None:
    """Tests that refresh-data fetches the catalog and writes snapshots."""
    m_fetch = mocker.patch("cli.fetch_all", return_value=STOCKS)
    config_path = create_temp_config(tmp_path)

    result = runner.invoke(app, ["refresh-data", "--config", str(config_path)])

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    assert "Data refresh completed." in result.output
    m_fetch.assert_called_once()
    assert (tmp_path / "data" / "stocks-latest.json").exists()
    assert (tmp_path / "data" / "metadata.json").exists()


def test_cli_refresh_data_reports_failures(mocker, tmp_path: Path) -> None:
    failed = _stock("XOM", "white", "Traditional Energy", {}, error="Failed to fetch historical data")
    mocker.patch("cli.fetch_all", return_value=STOCKS + [failed])
    config_path = create_temp_config(tmp_path)

    result = runner.invoke(app, ["refresh-data", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "XOM" in result.output
    # The snapshot is still written.
    assert (tmp_path / "data" / "stocks-latest.json").exists()


def test_cli_frames_writes_reports(tmp_path: Path) -> None:
    write_snapshot(tmp_path)
    config_path = create_temp_config(tmp_path)
    out = tmp_path / "out"

    result = runner.invoke(app, ["frames", "--config", str(config_path), "--output", str(out)])

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    assert "Prepared 3 frames." in result.output
    frames = json.loads((out / "frames.json").read_text())
    assert [s["ticker"] for s in frames[-1]["stocks"]] == ["NVDA", "JPM"]
    assert (out / "summary.md").exists()


def test_cli_frames_without_snapshot(tmp_path: Path) -> None:
    config_path = create_temp_config(tmp_path)
    result = runner.invoke(app, ["frames", "--config", str(config_path)])
    assert result.exit_code == 1
    assert "refresh-data" in result.output


def test_cli_race_plays_frames(mocker, tmp_path: Path) -> None:
    write_snapshot(tmp_path)
    mocker.patch("cli.Live")
    m_loop = mocker.patch("cli.PlaybackLoop")
    config_path = create_temp_config(tmp_path)

    result = runner.invoke(app, ["race", "--config", str(config_path), "--speed", "1.0"])

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    m_loop.return_value.run.assert_called_once()
    driver = m_loop.call_args.args[0]
    assert driver.state.speed == 1.0
    assert driver.total_frames == 3


def test_cli_race_stops_after_max_frames(mocker, tmp_path: Path) -> None:
    write_snapshot(tmp_path)
    mocker.patch("cli.Live")
    config_path = create_temp_config(tmp_path)

    result = runner.invoke(app, ["race", "--config", str(config_path), "--speed", "1.0", "--max-frames", "1"])

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    assert "Stopped at frame 2/3" in result.output


def test_cli_race_rejects_unknown_speed(tmp_path: Path) -> None:
    write_snapshot(tmp_path)
    config_path = create_temp_config(tmp_path)
    result = runner.invoke(app, ["race", "--config", str(config_path), "--speed", "3"])
    assert result.exit_code == 1
    assert "Unsupported speed" in result.output


def test_cli_race_with_nothing_to_play(mocker, tmp_path: Path) -> None:
    write_snapshot(tmp_path)
    m_loop = mocker.patch("cli.PlaybackLoop")
    config_path = create_temp_config(tmp_path, filters={"sectors": ["Space Technology"]})

    result = runner.invoke(app, ["race", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "Nothing to play" in result.output
    m_loop.assert_not_called()


def test_cli_summary(tmp_path: Path) -> None:
    write_snapshot(tmp_path)
    config_path = create_temp_config(tmp_path)

    result = runner.invoke(app, ["summary", "--config", str(config_path)])

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    assert "+20.00%" in result.output
    assert "+2.00%" in result.output


def test_cli_prefs_are_saved_and_used(mocker, tmp_path: Path) -> None:
    write_snapshot(tmp_path)
    prefs_path = tmp_path / "prefs.json"

    result = runner.invoke(
        app, ["prefs", "--prefs", str(prefs_path), "--team", "white", "--sector", "Banking", "--speed", "0.2"]
    )
    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    saved = json.loads(prefs_path.read_text())
    assert saved["filters"]["team"] == "white"
    assert saved["filters"]["sectors"] == ["Banking"]
    assert saved["speed"] == 0.2

    mocker.patch("cli.Live")
    m_loop = mocker.patch("cli.PlaybackLoop")
    config_path = create_temp_config(tmp_path)
    result = runner.invoke(app, ["race", "--config", str(config_path), "--prefs", str(prefs_path)])

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    driver = m_loop.call_args.args[0]
    assert driver.state.speed == 0.2
    assert {s.ticker for f in driver.frames for s in f.stocks} == {"JPM"}


def test_cli_prefs_rejects_unknown_team(tmp_path: Path) -> None:
    result = runner.invoke(app, ["prefs", "--prefs", str(tmp_path / "p.json"), "--team", "red"])
    assert result.exit_code == 1
    assert "Unknown team filter" in result.output


def test_cli_stock_count_ignores_stocks_without_data_in_range(tmp_path: Path) -> None:
    stale = _stock("XOM", "white", "Traditional Energy", {"2020-01-02": 80.0, "2020-01-03": 81.0})
    path = tmp_path / "data" / "stocks-latest.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([s.model_dump(by_alias=True) for s in STOCKS + [stale]]))
    config_path = create_temp_config(tmp_path)

    result = runner.invoke(app, ["frames", "--config", str(config_path), "--output", str(tmp_path / "out")])

    assert result.exit_code == 0, f"CLI exited with error: {result.output}"
    assert "Using 2 of 3 stocks" in result.output
    assert "white: 1" in result.output


def test_cli_prefs_requires_both_range_ends(tmp_path: Path) -> None:
    prefs_path = tmp_path / "prefs.json"
    result = runner.invoke(app, ["prefs", "--prefs", str(prefs_path), "--start", "2024-01-01"])
    assert result.exit_code == 1
    assert "--start and --end must be given together" in result.output
    assert not prefs_path.exists()


def test_cli_prefs_rejects_unknown_speed(tmp_path: Path) -> None:
    prefs_path = tmp_path / "prefs.json"
    result = runner.invoke(app, ["prefs", "--prefs", str(prefs_path), "--speed", "3"])
    assert result.exit_code == 1
    assert "Unsupported speed" in result.output
    assert not prefs_path.exists()


def test_cli_race_with_invalid_saved_prefs(tmp_path: Path) -> None:
    write_snapshot(tmp_path)
    prefs_path = tmp_path / "prefs.json"
    prefs_path.write_text(json.dumps({"filters": {"team": "red"}, "speed": 0.5}))
    config_path = create_temp_config(tmp_path)

    result = runner.invoke(app, ["race", "--config", str(config_path), "--prefs", str(prefs_path)])

    assert result.exit_code == 1
    assert "Unreadable preferences" in result.output
