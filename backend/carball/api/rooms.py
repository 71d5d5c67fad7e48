from flask import Blueprint, jsonify

from carball import hub, registry
from carball.protocol import normalize_code

rooms = Blueprint('rooms', __name__)


@rooms.route('', methods=['GET'])
def list_rooms():
    return jsonify(registry.summaries())


@rooms.route('/stats', methods=['GET'])
def get_stats():
    return jsonify({
        'rooms': len(registry.rooms),
        'sessions': len(registry.sessions),
        'connections': len(hub.connections),
        'registry': dict(registry.stats),
        'outbox': dict(hub.stats),
    })


@rooms.route('/<string:code>', methods=['GET'])
def get_room(code):
    room = registry.get(normalize_code(code))
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    with room.lock:
        data = room.summary()
        data['roster'] = room.roster()
    return jsonify(data)
