"""
Playback of a prepared frame sequence.

`PlaybackState` holds the playback position and its pure transitions.
`PlaybackDriver` binds a state to a frame sequence and advances it from
wall-clock ticks. `PlaybackLoop` is the repeating tick task; used as a context
manager it is always cancelled on exit.
"""
import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from teamrace.types import ChartRaceFrame

__all__ = [
    "SPEEDS",
    "BASE_FRAME_DURATION_MS",
    "PlaybackState",
    "PlaybackDriver",
    "PlaybackLoop",
]

log = logging.getLogger(__name__)

SPEEDS = (0.2, 0.5, 1.0)
DEFAULT_SPEED = 0.5
# Duration of one frame at 1x speed.
BASE_FRAME_DURATION_MS = 500.0


@dataclass(frozen=True)
class PlaybackState:
    is_playing: bool = False
    speed: float = DEFAULT_SPEED
    current_index: int = 0
    current_date: Optional[str] = None

    def play(self) -> "PlaybackState":
        return replace(self, is_playing=True)

    def pause(self) -> "PlaybackState":
        return replace(self, is_playing=False)

    def toggle(self) -> "PlaybackState":
        return replace(self, is_playing=not self.is_playing)

    def set_speed(self, speed: float) -> "PlaybackState":
        return replace(self, speed=speed)

    def seek(self, index: int, current_date: Optional[str] = None) -> "PlaybackState":
        """Scrubbing always pauses."""
        return replace(self, current_index=index, current_date=current_date, is_playing=False)

    def next_frame(self, current_date: Optional[str] = None) -> "PlaybackState":
        return replace(self, current_index=self.current_index + 1, current_date=current_date)

    def previous_frame(self, current_date: Optional[str] = None) -> "PlaybackState":
        return replace(self, current_index=max(0, self.current_index - 1), current_date=current_date)


class PlaybackDriver:
    """
    Advances a frame index over time.

    While playing, each `tick` measures the time since the last advance and
    moves forward exactly one frame once `base_frame_duration_ms / speed` has
    elapsed. Reaching the last frame pauses playback; there is no wraparound.
    """

    def __init__(
        self,
        frames: Sequence[ChartRaceFrame],
        base_frame_duration_ms: float = BASE_FRAME_DURATION_MS,
        speeds: Sequence[float] = SPEEDS,
        default_speed: float = DEFAULT_SPEED,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_speed not in speeds:
            raise ValueError(f"Default speed {default_speed} is not one of {list(speeds)}")
        self.frames = frames
        self.base_frame_duration_ms = base_frame_duration_ms
        self.speeds = tuple(speeds)
        self.default_speed = default_speed
        self._clock = clock
        self._last_advance: Optional[float] = None
        self.state = self._initial_state()

    def _initial_state(self) -> PlaybackState:
        return PlaybackState(speed=self.default_speed, current_date=self._date_at(0))

    def _date_at(self, index: int) -> Optional[str]:
        return self.frames[index].date if 0 <= index < len(self.frames) else None

    @property
    def total_frames(self) -> int:
        return len(self.frames)

    @property
    def current_frame(self) -> Optional[ChartRaceFrame]:
        index = self.state.current_index
        return self.frames[index] if 0 <= index < len(self.frames) else None

    @property
    def frame_duration_ms(self) -> float:
        return self.base_frame_duration_ms / self.state.speed

    @property
    def at_end(self) -> bool:
        return self.state.current_index >= self.total_frames - 1

    def play(self) -> None:
        if not self.frames:
            return
        self.state = self.state.play()
        self._last_advance = self._clock()

    def pause(self) -> None:
        self.state = self.state.pause()
        self._last_advance = None

    def toggle(self) -> None:
        if self.state.is_playing:
            self.pause()
        else:
            self.play()

    def set_speed(self, speed: float) -> None:
        if speed not in self.speeds:
            raise ValueError(f"Unsupported speed {speed}; choose one of {list(self.speeds)}")
        self.state = self.state.set_speed(speed)

    def seek(self, index: int) -> None:
        """Jumps to a frame, clamped to the sequence, and pauses."""
        index = max(0, min(index, self.total_frames - 1))
        self.state = self.state.seek(index, self._date_at(index))
        self._last_advance = None

    def step_back(self) -> None:
        index = max(0, self.state.current_index - 1)
        self.state = self.state.previous_frame(self._date_at(index))

    def reset(self) -> None:
        self.state = self._initial_state()
        self._last_advance = None

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Advances at most one frame. Returns True if the index moved.
        `now` is in seconds, on the same clock the driver was built with.
        """
        if not self.state.is_playing or not self.frames:
            return False
        if self.at_end:
            self.pause()
            return False

        now = self._clock() if now is None else now
        if self._last_advance is None:
            self._last_advance = now
        elapsed_ms = (now - self._last_advance) * 1000
        if elapsed_ms < self.frame_duration_ms:
            return False

        index = self.state.current_index + 1
        self.state = self.state.next_frame(self._date_at(index))
        self._last_advance = now
        if self.at_end:
            log.debug(f"Reached last frame {self.state.current_date}; pausing.")
            self.pause()
        return True


class PlaybackLoop:
    """
    Repeating tick task for a driver.

    `run` ticks the driver every `interval_ms` until playback stops or the
    loop is cancelled. Leaving the `with` block cancels the loop and pauses
    the driver, so no tick can fire after teardown.
    """

    def __init__(
        self,
        driver: PlaybackDriver,
        on_frame: Optional[Callable[[ChartRaceFrame], None]] = None,
        interval_ms: float = 16.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.driver = driver
        self.on_frame = on_frame
        self.interval_ms = interval_ms
        self._sleep = sleep
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self.driver.pause()

    def run(self, max_ticks: Optional[int] = None) -> int:
        """Blocks until playback stops. Returns the number of ticks taken."""
        ticks = 0
        if not self._cancelled:
            self.driver.play()
        while not self._cancelled and self.driver.state.is_playing:
            if max_ticks is not None and ticks >= max_ticks:
                break
            advanced = self.driver.tick()
            ticks += 1
            if advanced and self.on_frame is not None and self.driver.current_frame is not None:
                self.on_frame(self.driver.current_frame)
            self._sleep(self.interval_ms / 1000)
        return ticks

    def __enter__(self) -> "PlaybackLoop":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()
