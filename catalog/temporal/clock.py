"""
Logical Clock
=============

Injectable clock so every timestamp the core stamps is reproducible.

GUARANTEES:
- Never reads system time implicitly in replay mode
- All live ticks are recorded so a run can be replayed
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional


class ClockExhausted(Exception):
    """Raised when replay clock runs out of ticks."""
    pass


@dataclass
class LogicalClock:
    """
    Injectable clock for deterministic execution.

    MODES:
    ======
    1. LIVE mode: Uses real system time, logs all ticks
    2. REPLAY mode: Uses pre-recorded tick sequence
    """
    _ticks: List[datetime] = field(default_factory=list)
    _current_index: int = 0
    _is_live: bool = True

    def now(self) -> datetime:
        """
        Get current logical time.

        In LIVE mode: reads system time and logs it
        In REPLAY mode: returns next tick from recorded sequence
        """
        if self._is_live:
            current = datetime.now(timezone.utc)
            self._ticks.append(current)
            self._current_index = len(self._ticks)
            return current

        if self._current_index >= len(self._ticks):
            raise ClockExhausted(
                f"Replay clock exhausted at index {self._current_index}. "
                f"Recorded sequence had {len(self._ticks)} ticks."
            )
        tick = self._ticks[self._current_index]
        self._current_index += 1
        return tick

    def now_ms(self) -> int:
        """Current logical time as epoch milliseconds (store wire format)."""
        return int(self.now().timestamp() * 1000)

    def tick_count(self) -> int:
        """Number of ticks recorded/consumed."""
        return self._current_index

    def is_live(self) -> bool:
        return self._is_live

    def recorded_ticks(self) -> List[datetime]:
        return list(self._ticks)

    @classmethod
    def live(cls) -> 'LogicalClock':
        """Create clock in LIVE mode (uses system time)."""
        return cls(_is_live=True)

    @classmethod
    def replay(cls, ticks: Iterable[datetime]) -> 'LogicalClock':
        """Create clock in REPLAY mode from a recorded tick sequence."""
        normalized = [
            t if t.tzinfo is not None else t.replace(tzinfo=timezone.utc)
            for t in ticks
        ]
        return cls(_ticks=normalized, _current_index=0, _is_live=False)

    @classmethod
    def from_millis(cls, ticks: Iterable[int]) -> 'LogicalClock':
        """Create a REPLAY clock from epoch-millisecond ticks."""
        return cls.replay(
            datetime.fromtimestamp(ms / 1000, tz=timezone.utc) for ms in ticks
        )

    def __repr__(self) -> str:
        mode = "LIVE" if self._is_live else "REPLAY"
        return f"LogicalClock({mode}, ticks={len(self._ticks)}, index={self._current_index})"


def resolve_clock(clock: Optional[LogicalClock]) -> LogicalClock:
    return clock if clock is not None else LogicalClock.live()
