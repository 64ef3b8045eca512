"""Outbound channel from the session engine to connected participants."""

from datetime import datetime, timezone

NAMESPACE = '/ws'


def system_message(message: str, kind: str = 'system') -> dict:
    return {
        'sender': 'System',
        'message': message,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'type': kind,
    }


class Broadcaster:
    """Interface the session engine talks to. Transport lives elsewhere."""

    def to_room(self, room_id: str, event: str, payload=None) -> None:
        raise NotImplementedError

    def to_player(self, sid: str, event: str, payload=None) -> None:
        raise NotImplementedError

    def subscribe(self, sid: str, room_id: str) -> None:
        raise NotImplementedError

    def unsubscribe(self, sid: str, room_id: str) -> None:
        raise NotImplementedError

    def disconnect(self, sid: str) -> None:
        raise NotImplementedError

    def system_chat(self, room_id: str, message: str, kind: str = 'system') -> None:
        self.to_room(room_id, 'chat_message', system_message(message, kind))


class SocketIOBroadcaster(Broadcaster):
    def __init__(self, socketio, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def to_room(self, room_id, event, payload=None):
        # socketio.emit (not flask_socketio.emit) so this works from background tasks
        self.socketio.emit(event, payload if payload is not None else {}, to=room_id, namespace=self.namespace)

    def to_player(self, sid, event, payload=None):
        self.socketio.emit(event, payload if payload is not None else {}, to=sid, namespace=self.namespace)

    def subscribe(self, sid, room_id):
        self.socketio.server.enter_room(sid, room_id, namespace=self.namespace)

    def unsubscribe(self, sid, room_id):
        self.socketio.server.leave_room(sid, room_id, namespace=self.namespace)

    def disconnect(self, sid):
        self.socketio.server.disconnect(sid, namespace=self.namespace)
