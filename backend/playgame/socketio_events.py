from flask_socketio import join_room, leave_room, emit
from playgame import socketio
from playgame.services.games import get_registry
from playgame.services.games.scoring import MESSAGE, is_qualifying_message
from typing import Optional

SESSION_ROOM = 'game:session'


def broadcast_state(registry, text: Optional[str] = None) -> None:
    """Push the current snapshot (and an optional announcement) to subscribers."""
    # Use socketio.emit since this may be called from a background task
    if text:
        socketio.emit('game_event', {'text': text}, to=SESSION_ROOM, namespace='/ws')
    socketio.emit('state_update', registry.snapshot(), to=SESSION_ROOM, namespace='/ws')


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_session(data=None):
    join_room(SESSION_ROOM)
    emit('joined', {'room': SESSION_ROOM})
    emit('state_update', get_registry().snapshot())


def handle_leave_session(data=None):
    leave_room(SESSION_ROOM)
    emit('left', {'room': SESSION_ROOM})


def handle_chat_message(data):
    """A chat message seen by the bot; plain public messages drive the message tick."""
    if not is_qualifying_message(data):
        return
    registry = get_registry()
    if registry.tick(MESSAGE):
        broadcast_state(registry)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'chat_message': handle_chat_message,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
