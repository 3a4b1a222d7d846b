"""Shared test doubles for the timer service."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from focusroom.services.timer.engine import TimerSettings, TimerSnapshot
from focusroom.services.timer.errors import StorageFailure
from focusroom.services.timer.store import RoomRecord

T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock; call ``advance`` to move time forward."""

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


class InMemoryRoomStore:
    """Room store double that counts writes and rollbacks."""

    def __init__(self):
        self.records = {}
        self.saves = 0
        self.discards = 0
        self.fail_saves = False

    def add(self, room_id, host_id, timer=None, settings=None):
        settings = settings or TimerSettings()
        self.records[str(room_id)] = RoomRecord(
            room_id=room_id,
            host_id=host_id,
            timer=timer or TimerSnapshot.initial(settings),
            settings=settings,
        )

    def timer(self, room_id):
        return self.records[str(room_id)].timer

    def load_room(self, room_id, for_update=True):
        return self.records.get(str(room_id))

    def save_timer(self, room_id, snapshot):
        if self.fail_saves:
            raise StorageFailure()
        key = str(room_id)
        self.records[key] = replace(self.records[key], timer=snapshot)
        self.saves += 1

    def discard(self):
        self.discards += 1


class RecordingBroadcaster:
    def __init__(self):
        self.events = []

    def broadcast(self, room_id, event, payload):
        self.events.append((room_id, event, payload))

    def names(self):
        return [event for _, event, _ in self.events]


class FailingBroadcaster:
    def broadcast(self, room_id, event, payload):
        raise ConnectionError('socket server unavailable')


def events_named(received, name):
    """Payloads of Socket.IO test-client packets with the given event name."""
    return [pkt['args'][0] for pkt in received if pkt['name'] == name]
