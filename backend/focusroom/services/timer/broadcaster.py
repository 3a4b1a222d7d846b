WS_NAMESPACE = '/ws'


def room_channel(room_id) -> str:
    return f"room:{room_id}"


class SocketIOBroadcaster:
    """Delivers an event to every socket subscribed to a room."""

    def __init__(self, socketio, namespace: str = WS_NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def broadcast(self, room_id, event: str, payload) -> None:
        self.socketio.emit(event, payload, to=room_channel(room_id), namespace=self.namespace)
