"""
Generating output artifacts from a prepared frame sequence.
"""
import json
from pathlib import Path
from typing import Dict, List

from rich.console import Console

from teamrace.frames import get_first_frame, get_last_frame
from teamrace.render import format_percentage
from teamrace.types import ChartRaceFrame

__all__ = ["write_frames_json", "write_summary_markdown", "generate_all_reports"]


# impure
def write_frames_json(frames: List[ChartRaceFrame], path: Path) -> None:
    """Writes the frame sequence using the snapshot field names."""
    payload = [frame.model_dump(mode="json", by_alias=True) for frame in frames]
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


# impure
def write_summary_markdown(
    frames: List[ChartRaceFrame], comparison: Dict[str, Dict[str, float]], path: Path
) -> None:
    """Writes a human-readable summary of the race."""
    first = get_first_frame(frames)
    last = get_last_frame(frames)

    md = "# Team Race Summary\n\n"
    if first is None or last is None:
        md += "No frames were produced for the selected filters and date range.\n"
        path.write_text(md)
        return

    md += f"- **Frames**: {len(frames)}\n"
    md += f"- **Period**: {first.date} to {last.date}\n"
    leader = last.stocks[0]
    md += (
        f"- **Leader**: {leader.ticker} ({leader.name}, {leader.team}) at "
        f"{format_percentage(leader.cumulative_return - 1.0, show_sign=True)}\n"
    )

    md += "\n## Teams\n\n"
    md += "| Team | Stocks | Average return |\n|---|---|---|\n"
    for team, stats in comparison.items():
        md += f"| {team} | {stats['count']} | {format_percentage(stats['avg_return'], show_sign=True)} |\n"

    md += f"\n## Final standings ({last.date})\n\n"
    for stock in last.stocks:
        md += f"{stock.rank}. {stock.ticker}: {stock.cumulative_return:.4f}\n"

    path.write_text(md)


# impure
def generate_all_reports(
    frames: List[ChartRaceFrame],
    comparison: Dict[str, Dict[str, float]],
    run_dir: Path,
    console: Console,
) -> None:
    """
    Orchestrates the generation of all output reports.
    #impure: Writes to the filesystem.
    """
    run_dir.mkdir(parents=True, exist_ok=True)

    console.print("Writing frames JSON...")
    write_frames_json(frames, run_dir / "frames.json")

    console.print("Writing summary Markdown...")
    write_summary_markdown(frames, comparison, run_dir / "summary.md")

    console.print("All reports generated.")
