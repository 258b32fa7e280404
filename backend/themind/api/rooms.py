from flask import Blueprint, current_app, jsonify

from themind.services.games.registry import normalize_code

rooms = Blueprint('rooms', __name__)


def _registry():
    return current_app.extensions['room_registry']


@rooms.route('', methods=['GET'])
def list_rooms():
    """
    Returns the public lobby: rooms still waiting for players.
    """
    registry = _registry()
    with registry.lock:
        summaries = [s.to_dict() for s in registry.list_public_rooms()]
    return jsonify({'rooms': summaries})


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room(room_code):
    registry = _registry()
    with registry.lock:
        room = registry.get_room(room_code)
        if room is None:
            return jsonify({'error': f'Room {normalize_code(room_code)} not found'}), 404
        return jsonify(room.summary().to_dict())
