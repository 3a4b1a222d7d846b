from flask_socketio import join_room, leave_room, emit, ConnectionRefusedError
from flask import current_app, request
from flask_login import current_user
from focusroom import socketio, db
from focusroom.models import Room
from focusroom.services.chat import ChatError, build_chat_message
from focusroom.services.timer.broadcaster import SocketIOBroadcaster, WS_NAMESPACE, room_channel
from focusroom.services.timer.errors import StorageFailure, TimerError, UnexpectedFailure
from focusroom.services.timer.service import TimerService
from focusroom.services.timer.store import SqlAlchemyRoomStore
from typing import Optional


def build_timer_service() -> TimerService:
    logger = current_app.logger
    return TimerService(
        SqlAlchemyRoomStore(db.session, logger=logger),
        SocketIOBroadcaster(socketio, namespace=WS_NAMESPACE),
        logger=logger,
    )


def _load_room(room_id) -> Optional[Room]:
    try:
        return db.session.get(Room, int(room_id))
    except (TypeError, ValueError):
        return None


def _parse_seconds(value) -> Optional[int]:
    """Client-suggested remaining time; anything non-numeric counts as absent."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None


def handle_connect(auth=None):
    if not current_user.is_authenticated:
        raise ConnectionRefusedError('unauthorized')
    emit('connected', {'message': 'Connected to /ws', 'user': current_user.to_dict()})


def handle_disconnect(reason=None):
    # Flask-SocketIO drops the sid from every room it joined
    current_app.logger.info(f"[ws] sid={request.sid} user={current_user.get_id()} disconnected")


def handle_join_room(data):
    room_id = (data or {}).get('room_id')
    if room_id is None:
        emit('error', {'message': 'room_id is required'})
        return
    room = _load_room(room_id)
    if not room:
        emit('error', {'message': 'Room not found'})
        return
    if not room.is_member(current_user.id):
        emit('error', {'message': 'You are not in this room'})
        return
    join_room(room_channel(room.id))
    try:
        state = build_timer_service().current_state(room.id)
    except TimerError as exc:
        emit('error', {'message': exc.message})
        return
    emit('room_joined', {
        'room_id': room.id,
        'host_id': room.host_id,
        'timer_settings': room.timer_settings.to_dict(),
        'timer_state': state.to_dict(),
    })


def handle_leave_room(data):
    room_id = (data or {}).get('room_id')
    if room_id is None:
        emit('error', {'message': 'room_id is required'})
        return
    leave_room(room_channel(room_id))
    emit('room_left', {'room_id': room_id})


def _timer_command(data, label, call):
    room_id = (data or {}).get('room_id')
    try:
        call(build_timer_service(), room_id, current_user.id)
    except (StorageFailure, UnexpectedFailure):
        emit('error', {'message': f'Failed to {label}'})
    except TimerError as exc:
        emit('error', {'message': exc.message})


def handle_start_timer(data):
    _timer_command(data, 'start timer', lambda svc, room_id, uid: svc.start(room_id, uid))


def handle_pause_timer(data):
    suggested = _parse_seconds((data or {}).get('time_remaining'))
    _timer_command(data, 'pause timer', lambda svc, room_id, uid: svc.pause(room_id, uid, suggested))


def handle_reset_timer(data):
    _timer_command(data, 'reset timer', lambda svc, room_id, uid: svc.reset(room_id, uid))


def handle_change_timer_mode(data):
    mode = (data or {}).get('mode')
    _timer_command(data, 'change timer mode', lambda svc, room_id, uid: svc.change_mode(room_id, uid, mode))


def handle_complete_timer(data):
    _timer_command(data, 'complete timer', lambda svc, room_id, uid: svc.complete(room_id, uid))


def handle_sync_timer(data):
    room = _load_room((data or {}).get('room_id'))
    if not room:
        emit('error', {'message': 'Room not found'})
        return
    if not room.is_member(current_user.id):
        emit('error', {'message': 'You are not in this room'})
        return
    try:
        state = build_timer_service().current_state(room.id)
    except (StorageFailure, UnexpectedFailure):
        emit('error', {'message': 'Failed to sync timer'})
        return
    except TimerError as exc:
        emit('error', {'message': exc.message})
        return
    emit('timer_sync', state.to_dict())


def handle_send_message(data):
    data = data or {}
    room_id = data.get('room_id')
    if room_id is None or not data.get('message'):
        emit('error', {'message': 'Room ID and message are required'})
        return
    try:
        payload = build_chat_message(
            _load_room(room_id),
            current_user,
            data.get('message'),
            max_length=current_app.config.get('CHAT_MAX_MESSAGE_LENGTH', 500),
        )
    except ChatError as exc:
        emit('error', {'message': exc.message})
        return
    current_app.logger.info(f"[chat] room={payload['room_id']} user={current_user.id} len={len(payload['message'])}")
    emit('new_message', payload, to=room_channel(payload['room_id']))


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_room': handle_join_room,
        'leave_room': handle_leave_room,
        'start_timer': handle_start_timer,
        'pause_timer': handle_pause_timer,
        'reset_timer': handle_reset_timer,
        'change_timer_mode': handle_change_timer_mode,
        'complete_timer': handle_complete_timer,
        'sync_timer': handle_sync_timer,
        'send_message': handle_send_message,
    }
    for event, handler in handlers.items():
        socketio.on_event(event, handler, namespace=WS_NAMESPACE)
