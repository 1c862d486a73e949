from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user
from scoreboard import socketio
from scoreboard.errors import ScoreboardError, Unauthorized
from scoreboard.services.auth import check_password
from scoreboard.services.scores.scoring import apply_delta
from scoreboard.stores import get_store


scores = Blueprint('scores', __name__)


def _require_auth(data: dict) -> None:
    if not current_app.config.get('REQUIRE_PASSWORD', True):
        return
    # Bearer token first; the plaintext body password is still accepted for older clients
    if current_user.is_authenticated:
        return
    if check_password(data.get('password')):
        return
    raise Unauthorized()


@scores.route('', methods=['GET', 'POST', 'OPTIONS'])
def scores_endpoint():
    if request.method == 'OPTIONS':
        return '', 200
    if request.method == 'GET':
        return get_scores()
    return update_score()


def get_scores():
    board = get_store().load()
    payload = {'success': True}
    payload.update(board.to_dict())
    return jsonify(payload)


def update_score():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400
    cfg = current_app.config
    try:
        _require_auth(data)
        result = apply_delta(
            get_store(),
            data.get('player'),
            data.get('change'),
            cfg['PLAYERS'],
            max_change=int(cfg.get('MAX_SCORE_CHANGE', 100)),
            attempts=int(cfg.get('UPDATE_ATTEMPTS', 5)),
        )
    except ScoreboardError as exc:
        log = current_app.logger.error if exc.status_code >= 500 else current_app.logger.info
        log(f"[update] rejected player={data.get('player')!r} change={data.get('change')!r}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    current_app.logger.info(f"[update] {result.message}")
    board = result.board.to_dict()
    socketio.emit('scores_updated', {
        'scores': board['scores'],
        'lastUpdated': board['lastUpdated'],
        'player': result.player,
        'oldScore': result.old_score,
        'newScore': result.new_score,
    }, namespace='/ws')
    return jsonify({
        'success': True,
        'message': result.message,
        'scores': board['scores'],
        'lastUpdated': board['lastUpdated'],
        'oldScore': result.old_score,
        'newScore': result.new_score,
    })
