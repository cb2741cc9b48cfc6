"""
Team, sector and date-range predicates over raw stock series.

All functions are pure and run in a single pass over the input.
"""
import re
from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional

from teamrace.types import DateRange, RaceFilters, StockData

__all__ = [
    "filter_stocks",
    "is_valid_date_range",
    "is_date_in_range",
    "filter_history_by_range",
    "filter_stats",
]

_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def filter_stocks(stocks: List[StockData], filters: RaceFilters) -> List[StockData]:
    """
    Keeps the stocks matching the team and sector filters.

    ``team == "all"`` passes every team and an empty sector selection passes
    every sector. Stocks carrying an error marker are always dropped.
    """
    sectors = set(filters.selected_sectors)
    return [
        stock
        for stock in stocks
        if (filters.team == "all" or stock.team == filters.team)
        and (not sectors or stock.sector in sectors)
        and not stock.error
    ]


def _is_date_key(value: Optional[str]) -> bool:
    if not value or not _DATE_KEY.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_date_range(date_range: Optional[DateRange]) -> bool:
    """True when both ends are real YYYY-MM-DD days and start <= end."""
    if date_range is None:
        return False
    if not (_is_date_key(date_range.start) and _is_date_key(date_range.end)):
        return False
    # Zero-padded keys order the same way as the days they name.
    return date_range.start <= date_range.end


def is_date_in_range(day: str, date_range: Optional[DateRange]) -> bool:
    if not is_valid_date_range(date_range) or not _is_date_key(day):
        return False
    return date_range.start <= day <= date_range.end


def filter_history_by_range(stocks: List[StockData], date_range: Optional[DateRange]) -> List[StockData]:
    """
    Returns copies of the stocks whose history is restricted to the range.
    Stocks left without any data point are dropped.
    """
    trimmed = []
    for stock in stocks:
        history = [point for point in stock.history if is_date_in_range(point.date, date_range)]
        if history:
            trimmed.append(stock.model_copy(update={"history": history}))
    return trimmed


def filter_stats(stocks: List[StockData], filtered: List[StockData]) -> Dict[str, Any]:
    """Counts of the filtered set by team and by sector, next to the total."""
    teams = Counter(stock.team for stock in filtered)
    return {
        "total": len(stocks),
        "filtered": len(filtered),
        "by_team": {"blue": teams.get("blue", 0), "white": teams.get("white", 0)},
        "by_sector": dict(Counter(stock.sector for stock in filtered)),
    }
