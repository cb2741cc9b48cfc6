"""
Data fetching from yfinance.

Fetches daily OHLCV history and a few financial ratios per ticker. A ticker
that cannot be fetched is recorded with an error marker and an empty history
instead of aborting the batch.
"""
import logging
import time
from datetime import date
from typing import Callable, List, Optional, TypeVar

import pandas as pd
import yfinance as yf
from dateutil.relativedelta import relativedelta

from teamrace.config import Config
from teamrace.types import DateRange, FinancialMetrics, HistoricalDataPoint, StockData, StockTicker

__all__ = [
    "fetch_with_retry",
    "fetch_historical_data",
    "fetch_financial_metrics",
    "fetch_stock_data",
    "fetch_all",
    "fetch_date_range",
]

log = logging.getLogger(__name__)

T = TypeVar("T")


def fetch_date_range(lookback_years: int, today: Optional[date] = None) -> DateRange:
    today = today or date.today()
    start = today - relativedelta(years=lookback_years)
    return DateRange(start=start.isoformat(), end=today.isoformat())


def fetch_with_retry(
    fn: Callable[[], T],
    ticker: str,
    attempts: int = 3,
    delay_seconds: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[T]:  # impure
    """
    Calls `fn` up to `attempts` times with a fixed delay in between.
    Returns None once every attempt has failed.
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as e:
            log.warning(f"[{ticker}] Attempt {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                sleep(delay_seconds)
    log.error(f"[{ticker}] All retry attempts failed")
    return None


def _value(row: pd.Series, column: str) -> float:
    value = row.get(column)
    return 0.0 if value is None or pd.isna(value) else float(value)


def _to_points(history: pd.DataFrame) -> List[HistoricalDataPoint]:
    points = []
    for ts, row in history.iterrows():
        close = _value(row, "Close")
        points.append(
            HistoricalDataPoint(
                date=ts.strftime("%Y-%m-%d"),
                open=_value(row, "Open"),
                high=_value(row, "High"),
                low=_value(row, "Low"),
                close=close,
                volume=_value(row, "Volume"),
                adj_close=_value(row, "Adj Close") or close,
            )
        )
    return points


def fetch_historical_data(
    ticker: str, date_range: DateRange, config: Config
) -> Optional[List[HistoricalDataPoint]]:  # impure
    def _download() -> pd.DataFrame:
        return yf.Ticker(ticker).history(
            start=date_range.start,
            end=date_range.end,
            interval=config.data.interval,
            auto_adjust=False,
            prepost=False,
            actions=False,
        )

    history = fetch_with_retry(
        _download, ticker, config.data.retry_attempts, config.data.retry_delay_seconds
    )
    if history is None or history.empty:
        return None

    points = _to_points(history)
    log.info(f"[{ticker}] Fetched {len(points)} data points")
    return points


def fetch_financial_metrics(ticker: str, config: Config, today: Optional[date] = None) -> FinancialMetrics:  # impure
    last_updated = (today or date.today()).isoformat()
    info = fetch_with_retry(
        lambda: yf.Ticker(ticker).info,
        ticker,
        config.data.retry_attempts,
        config.data.retry_delay_seconds,
    )
    if not info:
        return FinancialMetrics(last_updated=last_updated)
    return FinancialMetrics(
        debt_to_equity=info.get("debtToEquity"),
        current_ratio=info.get("currentRatio"),
        market_cap=info.get("marketCap"),
        last_updated=last_updated,
    )


def fetch_stock_data(entry: StockTicker, date_range: DateRange, config: Config) -> StockData:  # impure
    """Fetches one catalog entry. Never raises for provider failures."""
    log.info(f"Fetching data for {entry.ticker} ({entry.name})")
    base = entry.model_dump()
    try:
        history = fetch_historical_data(entry.ticker, date_range, config)
        if history is None:
            raise ValueError("Failed to fetch historical data")
        financials = fetch_financial_metrics(entry.ticker, config)
        return StockData(**base, history=history, financials=financials)
    except Exception as e:
        log.warning(f"[{entry.ticker}] Error: {e}")
        return StockData(
            **base,
            history=[],
            financials=FinancialMetrics(last_updated=date.today().isoformat()),
            error=str(e) or "Unknown error",
        )


def fetch_all(
    entries: List[StockTicker],
    date_range: DateRange,
    config: Config,
    sleep: Callable[[float], None] = time.sleep,
) -> List[StockData]:  # impure
    """Fetches every entry in fixed-size batches with a pause between batches."""
    batch_size = config.data.batch_size
    total_batches = (len(entries) + batch_size - 1) // batch_size
    results: List[StockData] = []

    for start in range(0, len(entries), batch_size):
        batch = entries[start:start + batch_size]
        log.info(f"Processing batch {start // batch_size + 1}/{total_batches}")
        results.extend(fetch_stock_data(entry, date_range, config) for entry in batch)
        if start + batch_size < len(entries):
            sleep(config.data.batch_delay_seconds)

    failed = [s.ticker for s in results if s.error]
    if failed:
        log.warning(f"Failed to fetch data for {len(failed)} symbols: {failed}")
    return results
