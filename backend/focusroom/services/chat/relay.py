"""Chat relay: validate a message and shape the broadcast payload."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ChatError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def build_chat_message(room, user, raw_message: Any, max_length: int = 500,
                       now: Optional[datetime] = None) -> Dict[str, Any]:
    """Return the ``new_message`` payload or raise ``ChatError``.

    ``room`` is the loaded Room (or None when the lookup failed).
    """
    if not isinstance(raw_message, str):
        raise ChatError('Room ID and message are required')
    text = raw_message.strip()
    if not text:
        raise ChatError('Message cannot be empty')
    if len(text) > max_length:
        raise ChatError(f'Message too long (max {max_length} characters)')
    if room is None:
        raise ChatError('Room not found')
    if not room.is_member(user.id):
        raise ChatError('You are not in this room')

    now = now or datetime.now(timezone.utc)
    return {
        'id': f"{int(now.timestamp() * 1000)}-{user.id}",
        'room_id': room.id,
        'user_id': user.id,
        'name': user.username or 'Unknown User',
        'message': text,
        'timestamp': now.isoformat(),
        'type': 'user',
    }
