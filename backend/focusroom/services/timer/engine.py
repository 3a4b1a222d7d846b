"""Pure room timer state machine.

Every operation takes the current ``TimerSnapshot`` (plus settings, the
observation instant and any command input) and returns a new snapshot.
Nothing here touches the database or the network; ``service.py`` wraps
these functions with load/authorize/persist/broadcast.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .errors import InvalidMode


class TimerMode(str, Enum):
    FOCUS = 'focus'
    SHORT_BREAK = 'shortBreak'
    LONG_BREAK = 'longBreak'

    @classmethod
    def parse(cls, value: Any) -> 'TimerMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (ValueError, TypeError):
            raise InvalidMode() from None


DEFAULT_DURATIONS: Dict[TimerMode, int] = {
    TimerMode.FOCUS: 25 * 60,
    TimerMode.SHORT_BREAK: 5 * 60,
    TimerMode.LONG_BREAK: 15 * 60,
}

# Every Nth completed focus interval earns a long break
LONG_BREAK_EVERY = 4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a stored timestamp; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimerSettings:
    """Per-room duration overrides in seconds. ``None`` means default."""
    focus_duration: Optional[int] = None
    short_break_duration: Optional[int] = None
    long_break_duration: Optional[int] = None

    def duration_for(self, mode: TimerMode) -> int:
        overrides = {
            TimerMode.FOCUS: self.focus_duration,
            TimerMode.SHORT_BREAK: self.short_break_duration,
            TimerMode.LONG_BREAK: self.long_break_duration,
        }
        return overrides[mode] or DEFAULT_DURATIONS[mode]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'focus_duration': self.duration_for(TimerMode.FOCUS),
            'short_break_duration': self.duration_for(TimerMode.SHORT_BREAK),
            'long_break_duration': self.duration_for(TimerMode.LONG_BREAK),
        }


@dataclass(frozen=True)
class TimerSnapshot:
    """Authoritative timer state of one room.

    ``time_remaining`` is measured as of ``started_at`` while running; use
    ``reconcile`` to get the value for "now". ``started_at`` is set exactly
    when ``is_running`` is true.
    """
    mode: TimerMode = TimerMode.FOCUS
    time_remaining: int = DEFAULT_DURATIONS[TimerMode.FOCUS]
    is_running: bool = False
    started_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    cycle_count: int = 0

    @classmethod
    def initial(cls, settings: Optional[TimerSettings] = None) -> 'TimerSnapshot':
        settings = settings or TimerSettings()
        return cls(mode=TimerMode.FOCUS, time_remaining=settings.duration_for(TimerMode.FOCUS))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode.value,
            'time_remaining': self.time_remaining,
            'is_running': self.is_running,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'paused_at': self.paused_at.isoformat() if self.paused_at else None,
            'cycle_count': self.cycle_count,
        }


@dataclass(frozen=True)
class Completion:
    """Outcome of acknowledging a finished interval."""
    state: TimerSnapshot
    completed_mode: TimerMode
    suggested_next_mode: TimerMode
    duplicate: bool = False

    @property
    def cycle_count(self) -> int:
        return self.state.cycle_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'completed_mode': self.completed_mode.value,
            'suggested_next_mode': self.suggested_next_mode.value,
            'cycle_count': self.cycle_count,
            'timer_state': self.state.to_dict(),
        }


def elapsed_seconds(started_at: datetime, now: datetime) -> int:
    # Clamped so a backwards clock step never adds time back
    delta = (now - started_at).total_seconds()
    return max(0, math.floor(delta))


def reconcile(state: TimerSnapshot, now: datetime) -> TimerSnapshot:
    """Return ``state`` with ``time_remaining`` as observed at ``now``."""
    if not state.is_running or state.started_at is None:
        return state
    remaining = max(0, state.time_remaining - elapsed_seconds(state.started_at, now))
    return replace(state, time_remaining=remaining)


def _stopped(state: TimerSnapshot, **changes) -> TimerSnapshot:
    return replace(state, is_running=False, started_at=None, **changes)


def start(state: TimerSnapshot, now: datetime) -> TimerSnapshot:
    # A second start rebases started_at; time elapsed before it is dropped
    return replace(state, is_running=True, started_at=now)


def pause(state: TimerSnapshot, now: datetime, suggested: Optional[int] = None) -> TimerSnapshot:
    # Capped even when already stopped: a client value can lower the stored
    # time, never raise it
    current = reconcile(state, now).time_remaining
    claimed = state.time_remaining if suggested is None else suggested
    remaining = max(0, min(claimed, current))
    return _stopped(state, time_remaining=remaining, paused_at=now)


def reset(state: TimerSnapshot, settings: TimerSettings) -> TimerSnapshot:
    return _stopped(state, time_remaining=settings.duration_for(state.mode), paused_at=None)


def change_mode(state: TimerSnapshot, settings: TimerSettings, mode: Any) -> TimerSnapshot:
    target = TimerMode.parse(mode)
    cycle_count = state.cycle_count
    if target is not TimerMode.FOCUS and state.mode is TimerMode.FOCUS:
        cycle_count += 1
    return _stopped(
        state,
        mode=target,
        time_remaining=settings.duration_for(target),
        paused_at=None,
        cycle_count=cycle_count,
    )


def suggest_next_mode(mode: TimerMode, cycle_count: int) -> TimerMode:
    """Pomodoro policy; ``cycle_count`` already includes the finished focus."""
    if mode is not TimerMode.FOCUS:
        return TimerMode.FOCUS
    if cycle_count % LONG_BREAK_EVERY == LONG_BREAK_EVERY - 1:
        return TimerMode.LONG_BREAK
    return TimerMode.SHORT_BREAK


def is_completed(state: TimerSnapshot) -> bool:
    # Stored time is as of started_at, so a timer restarted at zero is still
    # the interval that already finished
    return state.time_remaining == 0


def complete(state: TimerSnapshot) -> Completion:
    if is_completed(state):
        # Repeated acknowledgment of the same finished interval
        return Completion(
            state=state,
            completed_mode=state.mode,
            suggested_next_mode=suggest_next_mode(state.mode, state.cycle_count),
            duplicate=True,
        )
    cycle_count = state.cycle_count
    if state.mode is TimerMode.FOCUS:
        cycle_count += 1
    stopped = _stopped(state, time_remaining=0, paused_at=None, cycle_count=cycle_count)
    return Completion(
        state=stopped,
        completed_mode=state.mode,
        suggested_next_mode=suggest_next_mode(state.mode, cycle_count),
    )
