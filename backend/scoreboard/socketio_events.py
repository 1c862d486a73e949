from flask_socketio import emit
from scoreboard import socketio
from scoreboard.stores import get_store


def _board_payload():
    return get_store().load().to_dict()


def handle_connect():
    payload = {'message': 'Connected to /ws'}
    payload.update(_board_payload())
    emit('connected', payload)


def handle_request_scores(_data=None):
    emit('scores', _board_payload())


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'.

    Clients get the board on connect and can ask for it again; the scores
    API pushes 'scores_updated' to every connected client after each write.
    """
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('request_scores', handle_request_scores, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')
