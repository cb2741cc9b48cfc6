"""
CLI entry point for the team-race application.
"""
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.table import Table

from teamrace.adapters.yfinance_api import fetch_all, fetch_date_range
from teamrace.catalog import ALL_TICKERS
from teamrace.config import Config, load_config
from teamrace.data import build_metadata, load_latest, save_snapshot
from teamrace.filters import filter_history_by_range, filter_stats, filter_stocks
from teamrace.frames import prepare_frames
from teamrace.metrics import team_comparison
from teamrace.playback import SPEEDS, PlaybackDriver, PlaybackLoop
from teamrace.render import format_percentage, render_frame
from teamrace.reporting import generate_all_reports
from teamrace.state import FilterState, Preferences, load_preferences, resolve_date_range, save_preferences
from teamrace.types import DateRange, RaceFilters

# Console is created once and passed down. Log to stderr to keep stdout for data.
app = typer.Typer(pretty_exceptions_show_locals=False, help="Chart race of blue-team vs white-team stocks.")
console = Console(stderr=True)

CONFIG_OPTION = typer.Option(..., "--config", "-c", help="Path to the YAML configuration file.", exists=True)
PREFS_OPTION = typer.Option(None, "--prefs", help="Path to a saved preferences JSON file.")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config_or_exit(config_path: Path) -> Config:
    """Helper to load config and exit on failure."""
    try:
        return load_config(config_path)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        raise typer.Exit(code=1)


def _selection(config: Config, prefs_path: Optional[Path]) -> tuple:
    """Filters, date range and speed from config, overridden by saved preferences."""
    filters = RaceFilters(team=config.filters.team, selected_sectors=list(config.filters.sectors))
    date_range = resolve_date_range(config)
    speed = config.playback.default_speed
    if prefs_path is not None and prefs_path.is_file():
        prefs = load_preferences(prefs_path, config.playback.speeds)
        filters = prefs.filters.to_filters()
        date_range = prefs.filters.to_date_range() or date_range
        speed = prefs.speed
    return filters, date_range, speed


def _prepare(config: Config, filters: RaceFilters, date_range: DateRange):
    stocks = load_latest(config)
    filtered = filter_stocks(stocks, filters)
    stats = filter_stats(stocks, filter_history_by_range(filtered, date_range))
    console.print(
        f"Using {stats['filtered']} of {stats['total']} stocks "
        f"(blue: {stats['by_team']['blue']}, white: {stats['by_team']['white']}) "
        f"from {date_range.start} to {date_range.end}."
    )
    frames = prepare_frames(stocks, date_range, filters, top_n=config.race.top_n)
    return stocks, filtered, frames


@app.command(name="refresh-data")
def refresh_data(config_path: Path = CONFIG_OPTION) -> None:
    """Fetch history and financials for every catalog ticker and write snapshots."""
    config = _load_config_or_exit(config_path)
    date_range = fetch_date_range(config.data.lookback_years)
    console.rule("[bold]Stock Data Refresh[/bold]")
    console.print(f"Total stocks to fetch: {len(ALL_TICKERS)}")
    console.print(f"Date range: {date_range.start} to {date_range.end}")

    stocks = fetch_all(ALL_TICKERS, date_range, config)
    metadata = build_metadata(stocks, date_range, total_stocks=len(ALL_TICKERS))
    paths = save_snapshot(stocks, metadata, config)

    console.print(f"Successful: {metadata.successful_stocks}/{metadata.total_stocks}")
    console.print(f"Saved to: [cyan]{paths['latest']}[/cyan]")

    failed = [s for s in stocks if s.error]
    if failed:
        console.print(f"[bold yellow]Warning:[/bold yellow] Failed to fetch data for {len(failed)} symbols:")
        for stock in failed:
            console.print(f" - {stock.ticker}: {stock.error}")
        raise typer.Exit(code=1)

    console.print("[bold green]Data refresh completed.[/bold green]")


@app.command()
def frames(
    config_path: Path = CONFIG_OPTION,
    prefs_path: Optional[Path] = PREFS_OPTION,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Directory for frames.json and summary.md."),
) -> None:
    """Build the ranked frames and write them with a summary."""
    config = _load_config_or_exit(config_path)
    try:
        filters, date_range, _ = _selection(config, prefs_path)
        _, filtered, race_frames = _prepare(config, filters, date_range)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    if not race_frames:
        console.print("[yellow]Warning: No frames for the selected filters and date range.[/yellow]")

    run_dir = output or Path(config.run.output_dir)
    console.print(f"Run artifacts will be saved to: [cyan]{run_dir}[/cyan]")
    if race_frames:
        comparison = team_comparison(filtered, race_frames[0].date, race_frames[-1].date)
    else:
        comparison = team_comparison(filtered, date_range.start, date_range.end)
    generate_all_reports(race_frames, comparison, run_dir, console)
    console.print(f"[bold green]Prepared {len(race_frames)} frames.[/bold green]")


@app.command()
def race(
    config_path: Path = CONFIG_OPTION,
    prefs_path: Optional[Path] = PREFS_OPTION,
    speed: Optional[float] = typer.Option(None, "--speed", "-s", help="Playback speed multiplier."),
    start_index: int = typer.Option(0, "--start", help="Frame index to start from."),
    max_frames: Optional[int] = typer.Option(None, "--max-frames", help="Stop after this many frame advances."),
) -> None:
    """Play the chart race in the terminal."""
    config = _load_config_or_exit(config_path)
    try:
        filters, date_range, saved_speed = _selection(config, prefs_path)
        _, _, race_frames = _prepare(config, filters, date_range)
        driver = PlaybackDriver(
            race_frames,
            base_frame_duration_ms=config.playback.base_frame_duration_ms,
            speeds=config.playback.speeds,
            default_speed=config.playback.default_speed,
        )
        driver.set_speed(speed if speed is not None else saved_speed)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    if not race_frames:
        console.print("[yellow]Nothing to play: no frames for the selected filters and date range.[/yellow]")
        raise typer.Exit()

    driver.seek(start_index)
    advanced = 0
    with Live(render_frame(driver.current_frame), console=console, refresh_per_second=30) as live:

        def on_frame(frame) -> None:
            nonlocal advanced
            live.update(render_frame(frame))
            advanced += 1
            if max_frames is not None and advanced >= max_frames:
                loop.cancel()

        loop = PlaybackLoop(driver, on_frame=on_frame, interval_ms=config.playback.tick_interval_ms)
        with loop:
            try:
                loop.run()
            except KeyboardInterrupt:
                console.print("[yellow]Playback stopped.[/yellow]")

    console.print(f"Stopped at frame {driver.state.current_index + 1}/{driver.total_frames} ({driver.state.current_date}).")


@app.command()
def summary(config_path: Path = CONFIG_OPTION, prefs_path: Optional[Path] = PREFS_OPTION) -> None:
    """Print the team comparison for the configured date range."""
    config = _load_config_or_exit(config_path)
    try:
        filters, date_range, _ = _selection(config, prefs_path)
        _, filtered, race_frames = _prepare(config, filters, date_range)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    if not race_frames:
        console.print("[yellow]No data in the selected date range.[/yellow]")
        raise typer.Exit()

    comparison = team_comparison(filtered, race_frames[0].date, race_frames[-1].date)
    table = Table(title=f"Team comparison {race_frames[0].date} to {race_frames[-1].date}")
    table.add_column("Team")
    table.add_column("Stocks", justify="right")
    table.add_column("Average return", justify="right")
    for team, stats in comparison.items():
        table.add_row(team, str(stats["count"]), format_percentage(stats["avg_return"], show_sign=True))
    Console().print(table)


@app.command()
def prefs(
    prefs_path: Path = typer.Option(..., "--prefs", help="Path to the preferences JSON file."),
    team: Optional[str] = typer.Option(None, "--team", help="all, blue or white."),
    sector: List[str] = typer.Option([], "--sector", help="Toggle a sector; repeatable."),
    clear_sectors: bool = typer.Option(False, "--clear-sectors", help="Remove every sector filter."),
    start: Optional[str] = typer.Option(None, "--start", help="Range start, YYYY-MM-DD."),
    end: Optional[str] = typer.Option(None, "--end", help="Range end, YYYY-MM-DD."),
    speed: Optional[float] = typer.Option(None, "--speed", help="Playback speed multiplier."),
    reset: bool = typer.Option(False, "--reset", help="Restore the defaults."),
) -> None:
    """Update and save filter and playback preferences."""
    try:
        current = Preferences() if reset else load_preferences(prefs_path)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    state: FilterState = current.filters
    if team is not None:
        if team not in ("all", "blue", "white"):
            console.print(f"[bold red]Error:[/bold red] Unknown team filter: {team}")
            raise typer.Exit(code=1)
        state = state.set_team(team)
    if clear_sectors:
        state = state.clear_sectors()
    for name in sector:
        state = state.toggle_sector(name)
    if (start is None) != (end is None):
        console.print("[bold red]Error:[/bold red] --start and --end must be given together.")
        raise typer.Exit(code=1)
    if start is not None and end is not None:
        state = state.set_date_range(DateRange(start=start, end=end))

    if speed is not None and speed not in SPEEDS:
        console.print(f"[bold red]Error:[/bold red] Unsupported speed {speed}; choose one of {list(SPEEDS)}")
        raise typer.Exit(code=1)

    updated = Preferences(filters=state, speed=current.speed if speed is None else speed)
    save_preferences(prefs_path, updated)
    console.print(
        f"Saved preferences: team={state.team}, sectors={list(state.sectors) or 'all'}, "
        f"range={state.date_range or 'config'}, speed={updated.speed}"
    )


if __name__ == "__main__":
    app()
