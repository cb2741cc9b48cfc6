"""
Shared data structures for the application.

Field aliases follow the JSON snapshot format (camelCase) so records can be
validated straight from the files the fetch job writes.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "Team",
    "TeamFilter",
    "StockTicker",
    "HistoricalDataPoint",
    "FinancialMetrics",
    "StockData",
    "StockMetadata",
    "ChartRaceStock",
    "ChartRaceFrame",
    "DateRange",
    "RaceFilters",
]

Team = Literal["blue", "white"]
TeamFilter = Literal["all", "blue", "white"]


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class StockTicker(_Record):
    """A catalog entry. Defined once, never mutated."""

    ticker: str = Field(..., description="The stock symbol.")
    name: str
    sector: str
    team: Team
    category: str


class HistoricalDataPoint(_Record):
    """One trading day of OHLCV data."""

    date: str = Field(..., description="Calendar day key, YYYY-MM-DD.")
    open: float = Field(..., ge=0)
    high: float = Field(..., ge=0)
    low: float = Field(..., ge=0)
    close: float = Field(..., ge=0)
    volume: float = Field(..., ge=0)
    adj_close: float = Field(..., ge=0, alias="adjClose")


class FinancialMetrics(_Record):
    debt_to_equity: Optional[float] = Field(None, alias="debtToEquity")
    current_ratio: Optional[float] = Field(None, alias="currentRatio")
    market_cap: Optional[float] = Field(None, alias="marketCap")
    last_updated: str = Field(..., alias="lastUpdated")


class StockData(_Record):
    """
    A catalog entry joined with its price history and financials.

    A stock with an ``error`` marker or an empty history is never used for
    frame construction.
    """

    ticker: str
    name: str
    sector: str
    team: Team
    category: str
    history: List[HistoricalDataPoint] = Field(default_factory=list)
    financials: FinancialMetrics
    error: Optional[str] = None


class DateRange(_Record):
    """Inclusive range of YYYY-MM-DD keys. Not validated on construction."""

    start: str
    end: str


class StockMetadata(_Record):
    """Companion document written next to each snapshot."""

    last_updated: str = Field(..., alias="lastUpdated")
    date_range: DateRange = Field(..., alias="dateRange")
    total_stocks: int = Field(..., ge=0, alias="totalStocks")
    successful_stocks: int = Field(..., ge=0, alias="successfulStocks")
    failed_stocks: int = Field(..., ge=0, alias="failedStocks")
    blue_team_count: int = Field(..., ge=0, alias="blueTeamCount")
    white_team_count: int = Field(..., ge=0, alias="whiteTeamCount")


class ChartRaceStock(_Record):
    """A stock's standing in a single frame."""

    ticker: str
    name: str
    cumulative_return: float = Field(
        ..., alias="cumulativeReturn", description="Price relative to the baseline date; 1.0 is unchanged."
    )
    rank: int = Field(..., ge=1)
    team: Team
    sector: str
    percent_change: float = Field(
        ..., alias="percentChange", description="Change vs. the previous frame, in percent."
    )


class ChartRaceFrame(_Record):
    """One trading day's ranked snapshot, sorted by rank."""

    date: str
    stocks: List[ChartRaceStock]


class RaceFilters(_Record):
    team: TeamFilter = "all"
    selected_sectors: List[str] = Field(default_factory=list, alias="selectedSectors")
