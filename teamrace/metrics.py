"""
Performance metrics over raw stock series.

These complement the frame pipeline with whole-period figures: total return,
cumulative return curves, annualised volatility and a per-team comparison.
"""
from typing import Dict, List

import numpy as np
import pandas as pd

from teamrace.types import HistoricalDataPoint, StockData

__all__ = [
    "TRADING_DAYS_PER_YEAR",
    "history_to_frame",
    "calculate_return",
    "calculate_cumulative_returns",
    "calculate_volatility",
    "team_comparison",
    "sector_counts",
    "latest_data_points",
]

TRADING_DAYS_PER_YEAR = 252


def history_to_frame(history: List[HistoricalDataPoint]) -> pd.DataFrame:
    """
    Converts a history into a DataFrame indexed by date, sorted ascending.

    Args:
        history: Data points in any order.

    Returns:
        A DataFrame with open/high/low/close/volume/adj_close columns, or an
        empty DataFrame if the history is empty.
    """
    if not history:
        return pd.DataFrame()
    df = pd.DataFrame([point.model_dump() for point in history])
    return df.set_index("date").sort_index()


def calculate_return(stock: StockData, start_date: str, end_date: str) -> float:
    """
    Close-to-close fractional return between two exact dates.

    Returns 0.0 if either date has no data point or the start close is zero.
    """
    closes = {point.date: point.close for point in stock.history}
    start_price = closes.get(start_date)
    end_price = closes.get(end_date)
    if start_price is None or end_price is None or start_price == 0:
        return 0.0
    return (end_price - start_price) / start_price


def calculate_cumulative_returns(history: List[HistoricalDataPoint]) -> pd.Series:
    """Closes indexed to 1.0 at the earliest date. All 1.0 if that close is zero."""
    df = history_to_frame(history)
    if df.empty:
        return pd.Series(dtype=float)
    base = df["close"].iloc[0]
    if base == 0:
        return pd.Series(1.0, index=df.index)
    return df["close"] / base


def calculate_volatility(history: List[HistoricalDataPoint]) -> float:
    """
    Annualised volatility of daily close-to-close returns.

    Uses the population standard deviation. Returns from a zero close are
    skipped.
    """
    if len(history) < 2:
        return 0.0
    closes = history_to_frame(history)["close"]
    previous = closes.shift(1)
    returns = ((closes - previous) / previous)[previous > 0]
    if returns.empty:
        return 0.0
    return float(returns.std(ddof=0) * np.sqrt(TRADING_DAYS_PER_YEAR))


def team_comparison(stocks: List[StockData], start_date: str, end_date: str) -> Dict[str, Dict[str, float]]:
    """Average close-to-close return and stock count for each team."""
    comparison = {}
    for team in ("blue", "white"):
        returns = [calculate_return(s, start_date, end_date) for s in stocks if s.team == team]
        comparison[team] = {
            "avg_return": float(np.mean(returns)) if returns else 0.0,
            "count": len(returns),
        }
    return comparison


def sector_counts(stocks: List[StockData]) -> Dict[str, int]:
    if not stocks:
        return {}
    return pd.Series([s.sector for s in stocks]).value_counts(sort=False).to_dict()


def latest_data_points(stocks: List[StockData]) -> Dict[str, HistoricalDataPoint]:
    """Most recent data point per ticker. Stocks without history are left out."""
    return {
        stock.ticker: max(stock.history, key=lambda point: point.date)
        for stock in stocks
        if stock.history
    }
