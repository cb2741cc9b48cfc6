"""
Frame preparation for the chart race.

Turns raw per-stock price histories into an ordered sequence of ranked,
per-day snapshots. Each frame carries every visible stock's cumulative return
relative to the first trading day of the range and its change since the
previous frame.

The functions here are pure: inputs are never mutated and every call to
`prepare_frames` starts from a clean slate.
"""
import logging
from typing import Dict, List, Optional, Tuple

import pandas as pd

from teamrace.filters import filter_stocks, is_valid_date_range
from teamrace.types import ChartRaceFrame, ChartRaceStock, DateRange, RaceFilters, StockData

__all__ = [
    "TOP_N",
    "prepare_frames",
    "extract_trading_dates",
    "price_panel",
    "cumulative_returns",
    "rank_frame_stocks",
    "get_frame_by_index",
    "get_frame_by_date",
    "get_first_frame",
    "get_last_frame",
    "get_total_frames",
]

log = logging.getLogger(__name__)

TOP_N = 20


def extract_trading_dates(stocks: List[StockData], date_range: DateRange) -> List[str]:
    """Sorted union of the history dates falling inside the inclusive range."""
    dates = {
        point.date
        for stock in stocks
        for point in stock.history
        if date_range.start <= point.date <= date_range.end
    }
    return sorted(dates)


def price_panel(stocks: List[StockData], trading_dates: List[str]) -> pd.DataFrame:
    """
    Adjusted closes indexed by trading date, one column per stock.

    Columns are the stocks' positions in `stocks`, which keeps input order and
    tolerates repeated tickers. Days without a data point are NaN.
    """
    columns = {}
    for position, stock in enumerate(stocks):
        # Reversed so that the first point wins if a date is repeated.
        closes = {point.date: point.adj_close for point in reversed(stock.history)}
        columns[position] = pd.Series(closes, dtype=float)
    return pd.DataFrame(columns, index=pd.Index(trading_dates, name="date"))


def cumulative_returns(prices: pd.DataFrame, baseline_date: str) -> pd.DataFrame:
    """
    Divides every price by the same stock's price on `baseline_date`.

    A stock with no point on the baseline date, or a baseline price of 0, is
    pinned at 1.0 on every day it trades. Days it does not trade stay NaN.
    """
    baseline = prices.loc[baseline_date]
    has_baseline = baseline > 0
    returns = prices.div(baseline.where(has_baseline), axis="columns")
    return returns.mask(prices.notna() & ~has_baseline, 1.0)


def _percent_change(current: float, previous: Optional[float]) -> float:
    if previous is None or previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


def rank_frame_stocks(
    stocks: List[StockData],
    day_returns: pd.Series,
    previous: Dict[str, float],
    top_n: int = TOP_N,
) -> List[ChartRaceStock]:
    """
    Ranks the stocks that traded on one day.

    `day_returns` is one row of `cumulative_returns`; NaN entries (no data
    that day) are skipped. `previous` maps ticker to cumulative return in the
    previously emitted frame. Ties keep input order.
    """
    entries: List[Tuple[StockData, float, float]] = []
    for position, value in day_returns.items():
        if pd.isna(value):
            continue
        stock = stocks[position]
        cumulative = float(value)
        entries.append((stock, cumulative, _percent_change(cumulative, previous.get(stock.ticker))))

    # sorted() is stable, including with reverse=True.
    ranked = sorted(entries, key=lambda entry: entry[1], reverse=True)[:top_n]
    return [
        ChartRaceStock(
            ticker=stock.ticker,
            name=stock.name,
            cumulative_return=cumulative,
            rank=rank,
            team=stock.team,
            sector=stock.sector,
            percent_change=change,
        )
        for rank, (stock, cumulative, change) in enumerate(ranked, start=1)
    ]


def prepare_frames(
    stocks: List[StockData],
    date_range: DateRange,
    filters: RaceFilters,
    top_n: int = TOP_N,
) -> List[ChartRaceFrame]:
    """
    Builds one ranked frame per trading day in the date range.

    Args:
        stocks: Raw stock records, as loaded from a snapshot.
        date_range: Inclusive YYYY-MM-DD range. An invalid or inverted range
            yields no frames.
        filters: Team and sector selection.
        top_n: Maximum number of stocks kept per frame.

    Returns:
        Frames in ascending date order. Empty when nothing survives filtering
        or no stock has data inside the range.
    """
    if not is_valid_date_range(date_range):
        log.debug(f"Invalid date range {date_range}; no frames produced.")
        return []

    working = [stock for stock in filter_stocks(stocks, filters) if stock.history]
    if not working:
        return []

    trading_dates = extract_trading_dates(working, date_range)
    if not trading_dates:
        return []

    # Fixed for the whole run, not recomputed per frame.
    baseline_date = trading_dates[0]
    returns = cumulative_returns(price_panel(working, trading_dates), baseline_date)

    frames: List[ChartRaceFrame] = []
    previous: Dict[str, float] = {}
    for day, day_returns in returns.iterrows():
        frame_stocks = rank_frame_stocks(working, day_returns, previous, top_n)
        if not frame_stocks:
            continue
        frames.append(ChartRaceFrame(date=day, stocks=frame_stocks))
        previous = {s.ticker: s.cumulative_return for s in frame_stocks}

    log.info(
        f"Prepared {len(frames)} frames for {len(working)} stocks "
        f"from {trading_dates[0]} to {trading_dates[-1]}."
    )
    return frames


# Accessors
# --------------------------------------------------------------------------------------


def get_frame_by_index(frames: List[ChartRaceFrame], index: int) -> Optional[ChartRaceFrame]:
    if 0 <= index < len(frames):
        return frames[index]
    return None


def get_frame_by_date(frames: List[ChartRaceFrame], day: str) -> Optional[ChartRaceFrame]:
    return next((frame for frame in frames if frame.date == day), None)


def get_first_frame(frames: List[ChartRaceFrame]) -> Optional[ChartRaceFrame]:
    return frames[0] if frames else None


def get_last_frame(frames: List[ChartRaceFrame]) -> Optional[ChartRaceFrame]:
    return frames[-1] if frames else None


def get_total_frames(frames: List[ChartRaceFrame]) -> int:
    return len(frames)
