import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from focusroom.models import TimerState
from .engine import TimerSettings, TimerSnapshot
from .errors import StorageFailure


@dataclass(frozen=True)
class RoomRecord:
    """What the timer service needs to know about a room."""
    room_id: int
    host_id: int
    timer: TimerSnapshot
    settings: TimerSettings


class SqlAlchemyRoomStore:
    """Room store backed by the ``timer_state`` row of each room.

    ``load_room(for_update=True)`` locks that row (SELECT ... FOR UPDATE on
    backends that support it) until ``save_timer`` commits or ``discard``
    rolls back, so each command is one atomic read-modify-write.
    """

    def __init__(self, session, logger: Optional[logging.Logger] = None):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)
        self._rows: Dict[int, TimerState] = {}

    def load_room(self, room_id, for_update: bool = True) -> Optional[RoomRecord]:
        try:
            key = int(room_id)
        except (TypeError, ValueError):
            return None
        try:
            query = self.session.query(TimerState).filter_by(room_id=key)
            if for_update:
                query = query.with_for_update()
            row = query.first()
            if row is None or row.room is None:
                return None
            record = RoomRecord(
                room_id=row.room_id,
                host_id=row.room.host_id,
                timer=row.to_snapshot(),
                settings=row.room.timer_settings,
            )
        except SQLAlchemyError as exc:
            self.session.rollback()
            self.logger.exception(f"[store-load] room={room_id} failed")
            raise StorageFailure() from exc
        self._rows[key] = row
        return record

    def save_timer(self, room_id, snapshot: TimerSnapshot) -> None:
        row = self._rows.pop(int(room_id), None)
        try:
            if row is None:
                row = self.session.query(TimerState).filter_by(room_id=int(room_id)).first()
            if row is None:
                raise StorageFailure()
            row.apply_snapshot(snapshot)
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            self.logger.exception(f"[store-save] room={room_id} failed")
            raise StorageFailure() from exc

    def discard(self) -> None:
        self._rows.clear()
        self.session.rollback()
