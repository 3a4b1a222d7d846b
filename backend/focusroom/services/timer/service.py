"""Timer command runner.

Each command runs as one unit: load the room (locked), check the host,
apply the pure engine function, persist, then broadcast. Any failure
before the commit discards the loaded row, so the stored timer is left
exactly as it was and nothing is broadcast.
"""

import logging
from typing import Callable, Optional, Union

from . import engine
from .engine import Completion, TimerSnapshot
from .errors import RoomNotFound, TimerError, UnexpectedFailure
from .guard import authorize
from .store import RoomRecord

EVENT_STARTED = 'timer_started'
EVENT_PAUSED = 'timer_paused'
EVENT_RESET = 'timer_reset'
EVENT_MODE_CHANGED = 'timer_mode_changed'
EVENT_COMPLETED = 'timer_completed'

Outcome = Union[TimerSnapshot, Completion]


class TimerService:

    def __init__(self, store, broadcaster, clock: Callable = engine.utcnow, logger: Optional[logging.Logger] = None):
        self.store = store
        self.broadcaster = broadcaster
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def start(self, room_id, requester_id) -> TimerSnapshot:
        return self._execute(
            'start', EVENT_STARTED, room_id, requester_id,
            lambda record, now: engine.start(record.timer, now),
        )

    def pause(self, room_id, requester_id, time_remaining: Optional[int] = None) -> TimerSnapshot:
        return self._execute(
            'pause', EVENT_PAUSED, room_id, requester_id,
            lambda record, now: engine.pause(record.timer, now, time_remaining),
        )

    def reset(self, room_id, requester_id) -> TimerSnapshot:
        return self._execute(
            'reset', EVENT_RESET, room_id, requester_id,
            lambda record, now: engine.reset(record.timer, record.settings),
        )

    def change_mode(self, room_id, requester_id, mode) -> TimerSnapshot:
        return self._execute(
            'mode', EVENT_MODE_CHANGED, room_id, requester_id,
            lambda record, now: engine.change_mode(record.timer, record.settings, mode),
        )

    def complete(self, room_id, requester_id) -> Completion:
        return self._execute(
            'complete', EVENT_COMPLETED, room_id, requester_id,
            lambda record, now: engine.complete(record.timer),
        )

    def current_state(self, room_id) -> TimerSnapshot:
        """Reconciled timer for display; never writes."""
        try:
            record = self.store.load_room(room_id, for_update=False)
        finally:
            self.store.discard()
        if record is None:
            raise RoomNotFound()
        return engine.reconcile(record.timer, self.clock())

    def _execute(self, action: str, event: str, room_id, requester_id,
                 operation: Callable[[RoomRecord, object], Outcome]) -> Outcome:
        try:
            record = self.store.load_room(room_id)
            if record is None:
                raise RoomNotFound()
            authorize(record.host_id, requester_id)
            outcome = operation(record, self.clock())
            if getattr(outcome, 'duplicate', False):
                # Already-acknowledged completion: nothing to write
                self.store.discard()
            else:
                self.store.save_timer(record.room_id, getattr(outcome, 'state', outcome))
        except TimerError as exc:
            self.store.discard()
            self.logger.info(f"[timer-{action}] room={room_id} user={requester_id} rejected: {exc.message}")
            raise
        except Exception as exc:
            self.store.discard()
            self.logger.exception(f"[timer-{action}] room={room_id} user={requester_id} unexpected failure")
            raise UnexpectedFailure() from exc

        state = getattr(outcome, 'state', outcome)
        self.logger.info(
            f"[timer-{action}] room={record.room_id} mode={state.mode.value} "
            f"remaining={state.time_remaining}s running={state.is_running} cycle={state.cycle_count}"
        )
        try:
            self.broadcaster.broadcast(record.room_id, event, outcome.to_dict())
        except Exception:
            self.logger.warning(f"[timer-{action}] room={record.room_id} broadcast of {event} failed", exc_info=True)
        return outcome
