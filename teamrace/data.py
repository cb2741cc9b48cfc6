"""
Snapshot management for raw stock series.

Snapshots are JSON documents: an array of stock records (``stocks-latest.json``
plus one dated copy per refresh) and a companion metadata document.
"""
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from teamrace.config import Config
from teamrace.types import DateRange, StockData, StockMetadata

__all__ = [
    "load_stock_data",
    "load_metadata",
    "load_latest",
    "save_snapshot",
    "build_metadata",
]

log = logging.getLogger(__name__)


def _read_json(path: Path) -> Any:
    if not path.is_file():
        raise FileNotFoundError(f"Snapshot not found: {path}. Run 'refresh-data' first.")
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e


def _write_json(payload: Any, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


# impure
def load_stock_data(path: Path) -> List[StockData]:
    """
    Loads an array of stock records from a snapshot file.
    #impure: Reads from the filesystem.
    """
    raw = _read_json(path)
    if not isinstance(raw, list):
        raise ValueError(f"Snapshot {path} must contain a JSON array of stock records.")

    stocks = []
    for i, record in enumerate(raw):
        try:
            stocks.append(StockData.model_validate(record))
        except ValidationError as e:
            ticker = record.get("ticker", "?") if isinstance(record, dict) else "?"
            raise ValueError(f"Invalid stock record #{i} ({ticker}) in {path}: {e}") from e

    log.info(f"Loaded {len(stocks)} stock records from {path}.")
    return stocks


# impure
def load_metadata(path: Path) -> StockMetadata:
    """#impure: Reads from the filesystem."""
    raw = _read_json(path)
    try:
        return StockMetadata.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid metadata document {path}: {e}") from e


# impure
def load_latest(config: Config) -> List[StockData]:
    """Loads the latest snapshot named by the data config."""
    return load_stock_data(config.data.snapshot_dir / config.data.latest_file)


def build_metadata(
    stocks: List[StockData],
    date_range: DateRange,
    total_stocks: Optional[int] = None,
    last_updated: Optional[str] = None,
) -> StockMetadata:
    """Summarises a fetch run. Team counts cover successful stocks only."""
    successful = [s for s in stocks if not s.error]
    return StockMetadata(
        last_updated=last_updated or date.today().isoformat(),
        date_range=date_range,
        total_stocks=len(stocks) if total_stocks is None else total_stocks,
        successful_stocks=len(successful),
        failed_stocks=len(stocks) - len(successful),
        blue_team_count=sum(1 for s in successful if s.team == "blue"),
        white_team_count=sum(1 for s in successful if s.team == "white"),
    )


# impure
def save_snapshot(
    stocks: List[StockData],
    metadata: StockMetadata,
    config: Config,
    snapshot_date: Optional[date] = None,
) -> Dict[str, Path]:
    """
    Writes the dated snapshot, overwrites the latest one and writes metadata.
    Returns the written paths keyed by kind.
    #impure: Writes to the filesystem.
    """
    snapshot_dir = config.data.snapshot_dir
    day = (snapshot_date or date.today()).isoformat()
    records = [stock.model_dump(by_alias=True, exclude_none=False) for stock in stocks]
    # The error marker is only present on failed records.
    for record in records:
        if record.get("error") is None:
            record.pop("error", None)

    paths = {
        "dated": snapshot_dir / f"stocks-{day}.json",
        "latest": snapshot_dir / config.data.latest_file,
        "metadata": snapshot_dir / config.data.metadata_file,
    }
    _write_json(records, paths["dated"])
    _write_json(records, paths["latest"])
    _write_json(metadata.model_dump(by_alias=True), paths["metadata"])

    for kind, path in paths.items():
        log.debug(f"Saved {kind} snapshot to {path}")
    return paths
