from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify


rooms = Blueprint('rooms', __name__)


def _session():
    return current_app.extensions['shipcrew']


@rooms.route('/health', methods=['GET'])
def health():
    payload = {'status': 'ok', 'timestamp': datetime.now(timezone.utc).isoformat()}
    payload.update(_session().status())
    return jsonify(payload)


@rooms.route('/rooms/<string:room_id>', methods=['GET'])
def get_room_state(room_id):
    state = _session().get_room_state(room_id.upper())
    if state is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(state)
