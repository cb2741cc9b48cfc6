"""
Static registry of the stocks competing in the race.

Blue team: future-focused sectors. White team: traditional sectors.
"""
from typing import List, Optional

from teamrace.types import StockTicker, Team

__all__ = [
    "BLUE_TEAM",
    "WHITE_TEAM",
    "ALL_TICKERS",
    "get_all_ticker_symbols",
    "get_team_ticker_symbols",
    "get_category_ticker_symbols",
    "get_stock_by_ticker",
    "get_team_by_ticker",
    "get_all_sectors",
    "get_all_categories",
    "get_stocks_by_sector",
    "is_valid_ticker",
]


def _entries(team: Team, sector: str, category: str, *pairs: tuple) -> List[StockTicker]:
    return [
        StockTicker(ticker=ticker, name=name, sector=sector, team=team, category=category)
        for ticker, name in pairs
    ]


BLUE_TEAM: List[StockTicker] = [
    *_entries("blue", "Quantum Computing", "quantum",
              ("IONQ", "IonQ Inc"), ("RGTI", "Rigetti Computing")),
    *_entries("blue", "Aerospace & Defense", "aerospace",
              ("LMT", "Lockheed Martin"), ("NOC", "Northrop Grumman"),
              ("RTX", "RTX Corporation"), ("LHX", "L3Harris Technologies")),
    *_entries("blue", "Longevity Biotech", "longevity",
              ("NTLA", "Intellia Therapeutics"), ("CRSP", "CRISPR Therapeutics")),
    *_entries("blue", "AI & Cloud", "ai",
              ("GOOGL", "Alphabet Inc"), ("MSFT", "Microsoft Corporation"),
              ("NVDA", "NVIDIA Corporation"), ("META", "Meta Platforms"), ("AMZN", "Amazon.com")),
    *_entries("blue", "Semiconductors", "semiconductors",
              ("TSM", "Taiwan Semiconductor"), ("ASML", "ASML Holding"), ("AMD", "Advanced Micro Devices")),
    *_entries("blue", "Robotics & EV", "robotics",
              ("TSLA", "Tesla Inc")),
]

WHITE_TEAM: List[StockTicker] = [
    *_entries("white", "Traditional Energy", "traditional-energy",
              ("XOM", "Exxon Mobil"), ("CVX", "Chevron Corporation"), ("COP", "ConocoPhillips")),
    *_entries("white", "Future Energy", "future-energy",
              ("NEE", "NextEra Energy"), ("ENPH", "Enphase Energy"), ("FSLR", "First Solar")),
    *_entries("white", "Industrials", "industrials",
              ("CAT", "Caterpillar Inc"), ("DE", "Deere & Company"), ("GE", "General Electric")),
    *_entries("white", "Banking", "banks",
              ("JPM", "JPMorgan Chase"), ("BAC", "Bank of America"), ("WFC", "Wells Fargo")),
    *_entries("white", "Consumer Goods", "consumer-goods",
              ("PG", "Procter & Gamble"), ("KO", "Coca-Cola Company"), ("PEP", "PepsiCo Inc")),
]

ALL_TICKERS: List[StockTicker] = BLUE_TEAM + WHITE_TEAM

_BY_SYMBOL = {entry.ticker: entry for entry in ALL_TICKERS}


def get_all_ticker_symbols() -> List[str]:
    return [entry.ticker for entry in ALL_TICKERS]


def get_team_ticker_symbols(team: Team) -> List[str]:
    entries = BLUE_TEAM if team == "blue" else WHITE_TEAM
    return [entry.ticker for entry in entries]


def get_category_ticker_symbols(category: str) -> List[str]:
    return [entry.ticker for entry in ALL_TICKERS if entry.category == category]


def get_stock_by_ticker(ticker: str) -> Optional[StockTicker]:
    return _BY_SYMBOL.get(ticker)


def get_team_by_ticker(ticker: str) -> Optional[Team]:
    entry = get_stock_by_ticker(ticker)
    return entry.team if entry else None


def get_all_sectors() -> List[str]:
    """Unique sectors, in catalog order."""
    return list(dict.fromkeys(entry.sector for entry in ALL_TICKERS))


def get_all_categories() -> List[str]:
    return list(dict.fromkeys(entry.category for entry in ALL_TICKERS))


def get_stocks_by_sector(sector: str) -> List[StockTicker]:
    return [entry for entry in ALL_TICKERS if entry.sector == sector]


def is_valid_ticker(ticker: str) -> bool:
    return ticker in _BY_SYMBOL

