"""
User preference state: filters, date range and playback speed.

States are frozen dataclasses; every transition returns a new state. The
preferences file is plain JSON.
"""
import json
import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Optional, Sequence, Tuple, get_args

from dateutil.relativedelta import relativedelta

from teamrace.config import Config
from teamrace.playback import SPEEDS
from teamrace.types import DateRange, RaceFilters, TeamFilter

__all__ = [
    "FilterState",
    "Preferences",
    "resolve_time_range",
    "resolve_date_range",
    "load_preferences",
    "save_preferences",
]

log = logging.getLogger(__name__)

_TIME_RANGE_DELTAS = {
    "1M": relativedelta(months=1),
    "3M": relativedelta(months=3),
    "6M": relativedelta(months=6),
    "1Y": relativedelta(years=1),
    "3Y": relativedelta(years=3),
    "5Y": relativedelta(years=5),
}


def resolve_time_range(preset: str, today: Optional[date] = None) -> DateRange:
    """Converts a preset such as ``3M`` into a range ending today."""
    if preset not in _TIME_RANGE_DELTAS:
        raise ValueError(f"Unknown time range preset: {preset}")
    today = today or date.today()
    start = today - _TIME_RANGE_DELTAS[preset]
    return DateRange(start=start.isoformat(), end=today.isoformat())


def resolve_date_range(config: Config, today: Optional[date] = None) -> DateRange:
    """Explicit race dates win; a missing end defaults to today, a missing start to the preset."""
    race = config.race
    if race.start_date is None:
        return resolve_time_range(race.time_range, race.end_date or today)
    end = race.end_date or today or date.today()
    return DateRange(start=race.start_date.isoformat(), end=end.isoformat())


@dataclass(frozen=True)
class FilterState:
    team: TeamFilter = "all"
    sectors: Tuple[str, ...] = ()
    date_range: Optional[Tuple[str, str]] = None

    def set_team(self, team: TeamFilter) -> "FilterState":
        return replace(self, team=team)

    def set_sectors(self, sectors) -> "FilterState":
        return replace(self, sectors=tuple(sectors))

    def toggle_sector(self, sector: str) -> "FilterState":
        if sector in self.sectors:
            return replace(self, sectors=tuple(s for s in self.sectors if s != sector))
        return replace(self, sectors=self.sectors + (sector,))

    def clear_sectors(self) -> "FilterState":
        return replace(self, sectors=())

    def set_date_range(self, date_range: Optional[DateRange]) -> "FilterState":
        value = (date_range.start, date_range.end) if date_range else None
        return replace(self, date_range=value)

    def reset(self) -> "FilterState":
        return FilterState()

    def to_filters(self) -> RaceFilters:
        return RaceFilters(team=self.team, selected_sectors=list(self.sectors))

    def to_date_range(self) -> Optional[DateRange]:
        if self.date_range is None:
            return None
        return DateRange(start=self.date_range[0], end=self.date_range[1])


@dataclass(frozen=True)
class Preferences:
    filters: FilterState = field(default_factory=FilterState)
    speed: float = 0.5


# impure
def load_preferences(path: Path, speeds: Sequence[float] = SPEEDS) -> Preferences:
    """
    Reads saved preferences. A missing file gives the defaults.
    The saved team must be a team filter and the speed one of `speeds`.
    #impure: Reads from the filesystem.
    """
    if not path.is_file():
        return Preferences()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        filters = raw.get("filters", {})
        date_range = filters.get("date_range")
        team = filters.get("team", "all")
        if team not in get_args(TeamFilter):
            raise ValueError(f"unknown team filter {team!r}")
        speed = float(raw.get("speed", 0.5))
        if speed not in speeds:
            raise ValueError(f"speed {speed} is not one of {list(speeds)}")
        return Preferences(
            filters=FilterState(
                team=team,
                sectors=tuple(filters.get("sectors", ())),
                date_range=tuple(date_range) if date_range else None,
            ),
            speed=speed,
        )
    except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
        raise ValueError(f"Unreadable preferences file {path}: {e}") from e


# impure
def save_preferences(path: Path, preferences: Preferences) -> None:
    """#impure: Writes to the filesystem."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(preferences), indent=2), encoding="utf-8")
    log.debug(f"Saved preferences to {path}")
