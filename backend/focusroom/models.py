from focusroom import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
from focusroom.services.timer.engine import (
    TimerMode,
    TimerSettings,
    TimerSnapshot,
    as_utc,
)


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class RoomMember(db.Model):
    __tablename__ = 'room_member'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    user = db.relationship('User')

    __table_args__ = (db.UniqueConstraint('room_id', 'user_id', name='uq_room_member'),)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'joined_at': as_utc(self.joined_at).isoformat() if self.joined_at else None,
        }


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    host_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    # Custom durations (seconds); NULL falls back to the defaults
    focus_duration = db.Column(db.Integer, nullable=True)
    short_break_duration = db.Column(db.Integer, nullable=True)
    long_break_duration = db.Column(db.Integer, nullable=True)

    host = db.relationship('User', foreign_keys=[host_id])
    members = db.relationship('RoomMember', backref='room', cascade='all, delete-orphan', lazy='select')
    timer_state = db.relationship('TimerState', back_populates='room', uselist=False, cascade='all, delete-orphan')

    @property
    def timer_settings(self) -> TimerSettings:
        return TimerSettings(
            focus_duration=self.focus_duration,
            short_break_duration=self.short_break_duration,
            long_break_duration=self.long_break_duration,
        )

    def is_member(self, user_id) -> bool:
        return any(str(m.user_id) == str(user_id) for m in self.members)

    def add_member(self, user):
        if any(m.user is user for m in self.members) or self.is_member(user.id):
            return None
        member = RoomMember(user=user)
        self.members.append(member)
        return member

    def remove_member(self, user_id) -> bool:
        for m in list(self.members):
            if str(m.user_id) == str(user_id):
                self.members.remove(m)
                return True
        return False

    def to_dict(self, include_members=True):
        data = {
            'id': self.id,
            'name': self.name,
            'host_id': self.host_id,
            'member_count': len(self.members),
            'created_at': as_utc(self.created_at).isoformat() if self.created_at else None,
            'timer_settings': self.timer_settings.to_dict(),
        }
        if include_members:
            data['members'] = [m.to_dict() for m in self.members]
        return data


class TimerState(db.Model):
    """Persisted timer of a room; mutated only through the timer service."""
    __tablename__ = 'timer_state'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id', ondelete='CASCADE'), nullable=False, unique=True)
    mode = db.Column(db.String(16), nullable=False, default=TimerMode.FOCUS.value)
    time_remaining = db.Column(db.Integer, nullable=False)
    is_running = db.Column(db.Boolean, nullable=False, default=False)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paused_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cycle_count = db.Column(db.Integer, nullable=False, default=0)

    room = db.relationship('Room', back_populates='timer_state')

    def to_snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            mode=TimerMode.parse(self.mode),
            time_remaining=int(self.time_remaining),
            is_running=bool(self.is_running),
            started_at=as_utc(self.started_at),
            paused_at=as_utc(self.paused_at),
            cycle_count=int(self.cycle_count or 0),
        )

    def apply_snapshot(self, snapshot: TimerSnapshot) -> None:
        self.mode = snapshot.mode.value
        self.time_remaining = snapshot.time_remaining
        self.is_running = snapshot.is_running
        self.started_at = snapshot.started_at
        self.paused_at = snapshot.paused_at
        self.cycle_count = snapshot.cycle_count


def create_room(name, host, settings=None):
    """Create a room hosted by ``host`` with a fresh focus timer.

    The caller owns the session commit.
    """
    settings = settings or TimerSettings()
    room = Room(
        name=name,
        host=host,
        focus_duration=settings.focus_duration,
        short_break_duration=settings.short_break_duration,
        long_break_duration=settings.long_break_duration,
    )
    room.add_member(host)
    timer = TimerState()
    timer.apply_snapshot(TimerSnapshot.initial(settings))
    room.timer_state = timer
    db.session.add(room)
    return room
