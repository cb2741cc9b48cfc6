"""
Terminal rendering of chart race frames.

`layout_bars` computes bar geometry for a frame: a linear scale over the
frame's returns that always includes the 1.0 baseline, bars growing from the
baseline towards each stock's value, one row per rank. `render_frame` draws
that layout as a rich Table.
"""
import math
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from rich.table import Table
from rich.text import Text

from teamrace.types import ChartRaceFrame

__all__ = [
    "Bar",
    "return_domain",
    "layout_bars",
    "render_frame",
    "format_percentage",
    "format_date",
    "format_compact_number",
    "format_currency",
]

TEAM_COLORS = {
    # (gain, loss)
    "blue": ("rgb(59,130,246)", "rgb(37,99,235)"),
    "white": ("rgb(107,114,128)", "rgb(75,85,99)"),
}


@dataclass(frozen=True)
class Bar:
    ticker: str
    team: str
    row: int
    start: float
    length: float
    negative: bool


def return_domain(frame: ChartRaceFrame) -> Tuple[float, float]:
    """Padded [min, max] of the frame's cumulative returns, always covering 1.0."""
    if not frame.stocks:
        return (1.0, 1.0)
    values = [s.cumulative_return for s in frame.stocks]
    return (min(min(values) * 0.95, 1.0), max(max(values) * 1.05, 1.0))


def layout_bars(frame: ChartRaceFrame, width: float) -> List[Bar]:
    """
    Positions one bar per stock.

    `start` and `length` are in the same units as `width`. Bars for returns
    below 1.0 start at their value and end at the baseline.
    """
    low, high = return_domain(frame)
    span = high - low

    def scale(value: float) -> float:
        return 0.0 if span == 0 else (value - low) / span * width

    baseline = scale(1.0)
    bars = []
    for stock in frame.stocks:
        x = scale(stock.cumulative_return)
        negative = stock.cumulative_return < 1.0
        bars.append(
            Bar(
                ticker=stock.ticker,
                team=stock.team,
                row=stock.rank - 1,
                start=x if negative else baseline,
                length=abs(x - baseline),
                negative=negative,
            )
        )
    return bars


def _bar_text(bar: Bar, width: int) -> Text:
    gain, loss = TEAM_COLORS.get(bar.team, TEAM_COLORS["white"])
    start = int(round(bar.start))
    length = max(1, int(round(bar.length))) if bar.length > 0 else 0
    text = Text(" " * start)
    text.append("█" * length, style=loss if bar.negative else gain)
    text.pad_right(max(0, width - len(text)))
    return text


def render_frame(frame: ChartRaceFrame, width: int = 40, title: Optional[str] = None) -> Table:
    """Renders a frame as a table of ranked bars."""
    table = Table(title=title or format_date(frame.date), expand=False)
    table.add_column("#", justify="right", style="bold")
    table.add_column("Ticker")
    table.add_column("Race", no_wrap=True)
    table.add_column("Return", justify="right")
    table.add_column("Δ", justify="right")

    for bar, stock in zip(layout_bars(frame, width), frame.stocks):
        change_style = "green" if stock.percent_change > 0 else "red" if stock.percent_change < 0 else "dim"
        table.add_row(
            str(stock.rank),
            Text(stock.ticker, style="blue" if stock.team == "blue" else "white"),
            _bar_text(bar, width),
            format_percentage(stock.cumulative_return - 1.0, show_sign=True),
            Text(f"{stock.percent_change:+.2f}%", style=change_style),
        )
    return table


# Formatters
# --------------------------------------------------------------------------------------


def format_percentage(value: float, decimals: int = 2, show_sign: bool = False) -> str:
    """0.1234 -> '12.34%'."""
    if not math.isfinite(value):
        return "0%"
    formatted = f"{value * 100:.{decimals}f}%"
    return f"+{formatted}" if show_sign and value > 0 else formatted


def format_date(day: str, fmt: str = "%b %-d, %Y") -> str:
    """'2024-01-15' -> 'Jan 15, 2024'."""
    try:
        parsed = date.fromisoformat(day)
    except (TypeError, ValueError):
        return "Invalid date"
    return parsed.strftime(fmt.replace("%-d", str(parsed.day)))


def format_compact_number(value: float) -> str:
    if not math.isfinite(value):
        return "0"
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    for threshold, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K")):
        if magnitude >= threshold:
            return f"{sign}{magnitude / threshold:.1f}{suffix}"
    return f"{value:g}"


def format_currency(value: float, compact: bool = False) -> str:
    if not math.isfinite(value):
        return "$0"
    if compact:
        sign = "-" if value < 0 else ""
        magnitude = abs(value)
        for threshold, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K")):
            if magnitude >= threshold:
                return f"{sign}${magnitude / threshold:.2f}{suffix}"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"
