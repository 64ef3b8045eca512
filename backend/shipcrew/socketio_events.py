from functools import wraps
from datetime import datetime, timezone

from flask import current_app, request
from flask_socketio import emit

from shipcrew import socketio
from shipcrew.broadcast import NAMESPACE
from shipcrew.exceptions import ShipGameError


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _session():
    return current_app.extensions['shipcrew']


def _field(data, key, bare_ok=False):
    """Read ``key`` from a dict payload; some events may also send the bare value."""
    if isinstance(data, dict):
        return data.get(key)
    if bare_ok and data is not None:
        return data
    return None


def request_boundary(event_name):
    """Report game errors to the sender; log anything unexpected and keep going."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args):
            try:
                return fn(*args)
            except ShipGameError as exc:
                current_app.logger.info(f"[{event_name}-rejected] sid={_get_sid()} code={exc.code}")
                emit('error', exc.to_dict())
            except Exception:
                current_app.logger.exception(f"[{event_name}-fail] sid={_get_sid()}")
                emit('error', {'code': 'OperationFailed', 'message': f'{event_name} failed'})
        return wrapper
    return decorator


def handle_connect():
    emit('connected', {
        'sid': _get_sid(),
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@request_boundary('disconnect')
def handle_disconnect(*_args):
    _session().disconnect(_get_sid())


@request_boundary('create_room')
def handle_create_room(data=None):
    _session().create_room(_get_sid(), _field(data, 'name'))


@request_boundary('join_room')
def handle_join_room(data=None):
    _session().join_room(_get_sid(), _field(data, 'room_id'), _field(data, 'name'))


@request_boundary('start_game')
def handle_start_game(data=None):
    _session().start_game(_get_sid())


@request_boundary('use_secret_action')
def handle_use_secret_action(data=None):
    _session().use_secret_action(_get_sid(), _field(data, 'action', bare_ok=True))


@request_boundary('repair_system')
def handle_repair_system(data=None):
    _session().repair_system(_get_sid(), _field(data, 'system', bare_ok=True))


@request_boundary('cast_vote')
def handle_cast_vote(data=None):
    _session().cast_vote(_get_sid(), _field(data, 'target_id'))


@request_boundary('send_chat')
def handle_send_chat(data=None):
    _session().send_chat(_get_sid(), _field(data, 'text', bare_ok=True))


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('create_room', handle_create_room, namespace=NAMESPACE)
    socketio.on_event('join_room', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('start_game', handle_start_game, namespace=NAMESPACE)
    socketio.on_event('use_secret_action', handle_use_secret_action, namespace=NAMESPACE)
    socketio.on_event('repair_system', handle_repair_system, namespace=NAMESPACE)
    socketio.on_event('cast_vote', handle_cast_vote, namespace=NAMESPACE)
    socketio.on_event('send_chat', handle_send_chat, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
