from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from focusroom import db, socketio
from focusroom.models import Room, create_room
from focusroom.services.timer.broadcaster import WS_NAMESPACE, room_channel
from focusroom.services.timer.engine import TimerSettings, reconcile, utcnow
from focusroom.services.timer.guard import is_host

rooms = Blueprint('rooms', __name__)

DURATION_FIELDS = ('focus_duration', 'short_break_duration', 'long_break_duration')


def _parse_durations(data: dict) -> dict:
    """Pick duration overrides out of a request body.

    Returns only the fields present; ``None`` clears an override. Raises
    ValueError with a client-facing message on bad input.
    """
    max_sec = int(current_app.config.get('MAX_DURATION_SEC', 24 * 60 * 60))
    parsed = {}
    for field in DURATION_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if value is None:
            parsed[field] = None
            continue
        if isinstance(value, bool) or not isinstance(value, int) or not (1 <= value <= max_sec):
            raise ValueError(f'{field} must be an integer between 1 and {max_sec} seconds')
        parsed[field] = value
    return parsed


def _room_payload(room: Room) -> dict:
    payload = room.to_dict()
    payload['timer_state'] = reconcile(room.timer_state.to_snapshot(), utcnow()).to_dict()
    return payload


@rooms.route('', methods=['POST'])
@login_required
def create_room_route():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip() or f"{current_user.username}'s room"
    try:
        durations = _parse_durations(data)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400

    room = create_room(name=name[:120], host=current_user._get_current_object(), settings=TimerSettings(**durations))
    db.session.commit()
    current_app.logger.info(f"[room-create] room={room.id} host={current_user.id}")
    return jsonify(_room_payload(room)), 201


@rooms.route('', methods=['GET'])
@login_required
def list_rooms():
    all_rooms = Room.query.order_by(Room.created_at.desc()).all()
    return jsonify([r.to_dict(include_members=False) for r in all_rooms])


@rooms.route('/<int:room_id>', methods=['GET'])
@login_required
def get_room(room_id):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(_room_payload(room))


@rooms.route('/<int:room_id>/join', methods=['POST'])
@login_required
def join_room_route(room_id):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify({'error': 'Room not found'}), 404
    if room.add_member(current_user._get_current_object()) is not None:
        db.session.commit()
        current_app.logger.info(f"[room-join] room={room.id} user={current_user.id}")
        socketio.emit('member_joined', {'room_id': room.id, 'user': current_user.to_dict()},
                      to=room_channel(room.id), namespace=WS_NAMESPACE)
    return jsonify(_room_payload(room))


@rooms.route('/<int:room_id>/leave', methods=['POST'])
@login_required
def leave_room_route(room_id):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify({'error': 'Room not found'}), 404
    if is_host(room.host_id, current_user.id):
        return jsonify({'error': 'Host cannot leave the room; delete it instead'}), 400
    if not room.remove_member(current_user.id):
        return jsonify({'error': 'You are not in this room'}), 400
    db.session.commit()
    socketio.emit('member_left', {'room_id': room.id, 'user_id': current_user.id},
                  to=room_channel(room.id), namespace=WS_NAMESPACE)
    return jsonify({'message': 'Left room'})


@rooms.route('/<int:room_id>', methods=['DELETE'])
@login_required
def delete_room(room_id):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify({'error': 'Room not found'}), 404
    if not is_host(room.host_id, current_user.id):
        return jsonify({'error': 'Only host can delete the room'}), 403
    db.session.delete(room)
    db.session.commit()
    current_app.logger.info(f"[room-delete] room={room_id} host={current_user.id}")
    socketio.emit('room_deleted', {'room_id': room_id}, to=room_channel(room_id), namespace=WS_NAMESPACE)
    return jsonify({'message': 'Room deleted'})


@rooms.route('/<int:room_id>/settings', methods=['PATCH'])
@login_required
def update_settings(room_id):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify({'error': 'Room not found'}), 404
    if not is_host(room.host_id, current_user.id):
        return jsonify({'error': 'Only host can change timer settings'}), 403
    try:
        durations = _parse_durations(request.get_json(silent=True) or {})
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400

    for field, value in durations.items():
        setattr(room, field, value)
    db.session.commit()
    settings = room.timer_settings.to_dict()
    socketio.emit('timer_settings_updated', {'room_id': room.id, 'timer_settings': settings},
                  to=room_channel(room.id), namespace=WS_NAMESPACE)
    return jsonify(_room_payload(room))
