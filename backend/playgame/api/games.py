import re
from flask import Blueprint, jsonify, request, current_app
from playgame.services.games import get_registry
from playgame.services.games.errors import GameError
from playgame.services.games.scheduler import schedule_session_timers
from playgame.services.games.scoring import MESSAGE, TICK_KINDS, is_qualifying_message
from playgame.socketio_events import broadcast_state

games = Blueprint('games', __name__)

_MENTION_RE = re.compile(r'^<@([^|>]+)(?:\|[^>]*)?>$')


@games.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify(exc.to_dict()), exc.status


def _player_id(data, field='player_id'):
    value = (data or {}).get(field)
    return str(value).strip() if value is not None else ''


def _mention_to_id(text):
    """Turn a chat mention (``<@U123>``, ``<@U123|name>``) into the bare id."""
    match = _MENTION_RE.match(text)
    return match.group(1) if match else text


@games.route('/kinds', methods=['GET'])
def list_kinds():
    return jsonify({'kinds': get_registry().describe_kinds()})


@games.route('/state', methods=['GET'])
def get_state():
    return jsonify(get_registry().snapshot())


@games.route('/start', methods=['POST'])
def start_game():
    """
    Starts a session of the requested kind; the founder becomes host and "it".
    """
    data = request.get_json() or {}
    founder = _player_id(data)
    if not founder:
        return jsonify({'error': 'player_id is required', 'code': 'bad_request'}), 400
    registry = get_registry()
    game = registry.create_session(data.get('kind'), founder, channel=data.get('channel'))
    schedule_session_timers(current_app._get_current_object(), registry, game.session_id)
    broadcast_state(registry, f'Game started by <@{founder}>!')
    return jsonify(registry.snapshot()), 201


@games.route('/join', methods=['POST'])
def join_game():
    data = request.get_json() or {}
    player = _player_id(data)
    if not player:
        return jsonify({'error': 'player_id is required', 'code': 'bad_request'}), 400
    registry = get_registry()
    registry.join(player)
    broadcast_state(registry, f'<@{player}> has joined the game!')
    return jsonify(registry.snapshot())


@games.route('/leave', methods=['POST'])
def leave_game():
    data = request.get_json() or {}
    player = _player_id(data)
    registry = get_registry()
    game, old_host = registry.leave(player)
    if not game.active:
        text = f'<@{player}> has left the game. No players remain, so the game is over.'
    elif old_host == player:
        text = f'<@{player}> has left the game. The new host is <@{game.host}>.'
    else:
        text = f'<@{player}> has left the game.'
    broadcast_state(registry, text)
    return jsonify(registry.snapshot())


@games.route('/tag', methods=['POST'])
def tag_player():
    """
    The current "it" tags another player. Target ids may be given as chat
    mentions (``<@U123>`` or ``<@U123|name>``).
    """
    data = request.get_json() or {}
    actor = _player_id(data)
    target = _mention_to_id(_player_id(data, 'target_id'))
    registry = get_registry()
    result = registry.tag(actor, target)
    broadcast_state(registry, f"<@{result['tagger']}> tagged <@{result['tagged']}>!")
    return jsonify({'result': result, 'state': registry.snapshot()})


@games.route('/stop', methods=['POST'])
def stop_game():
    data = request.get_json() or {}
    requester = _player_id(data)
    registry = get_registry()
    registry.stop(requester)
    broadcast_state(registry, f'Game stopped by <@{requester}>.')
    return jsonify(registry.snapshot())


@games.route('/tick', methods=['POST'])
def tick():
    data = request.get_json() or {}
    kind = (data.get('kind') or '').strip().lower()
    if kind not in TICK_KINDS:
        return jsonify({'error': f'kind must be one of {list(TICK_KINDS)}', 'code': 'bad_request'}), 400
    registry = get_registry()
    applied = registry.tick(kind)
    if applied:
        broadcast_state(registry)
    return jsonify({'applied': applied, 'state': registry.snapshot()})


@games.route('/events/message', methods=['POST'])
def message_event():
    """
    Chat message forwarded by the bot. Only plain messages in public
    channels score; subtypes (joins, edits, bot posts) are ignored.
    """
    event = request.get_json() or {}
    if not is_qualifying_message(event):
        return jsonify({'applied': False})
    registry = get_registry()
    applied = registry.tick(MESSAGE)
    if applied:
        broadcast_state(registry)
    return jsonify({'applied': applied})
