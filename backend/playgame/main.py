from flask import Blueprint, jsonify
from playgame.services.games import get_registry

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the playgame server!'})

@main.route('/health')
def health():
    store = get_registry().store
    return jsonify({
        'ok': True,
        'session_active': get_registry().current() is not None,
        'store_error': store.last_error if store else None,
    })
