from flask import Blueprint, jsonify

from carball.protocol import PROTOCOL_VERSION

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({
        'message': 'Welcome to the Carball arena server!',
        'protocol': PROTOCOL_VERSION,
        'namespace': '/ws',
    })
