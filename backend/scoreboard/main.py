from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from scoreboard.services.auth import check_password, issue_token
from scoreboard.services.scores.board import utc_now_iso

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the squad scoreboard server!'})


@main.route('/api/test', methods=['GET', 'OPTIONS'])
def api_test():
    if request.method == 'OPTIONS':
        return '', 200
    return jsonify({
        'success': True,
        'message': 'API is working!',
        'timestamp': utc_now_iso(),
        'environment': current_app.config.get('ENVIRONMENT', 'development'),
    })


@main.route('/api/auth', methods=['POST', 'OPTIONS'])
def auth():
    if request.method == 'OPTIONS':
        return '', 200
    data = request.get_json(silent=True) or {}
    if check_password(data.get('password')):
        current_app.logger.info("[auth] password verified, token issued")
        return jsonify({
            'success': True,
            'message': 'Password verified',
            'token': issue_token(),
            'expiresIn': int(current_app.config.get('AUTH_TOKEN_TTL_SEC', 3600)),
        })
    current_app.logger.info("[auth] invalid password")
    return jsonify({'success': False, 'error': 'Invalid password'}), 401


@main.route('/api/auth/check', methods=['GET', 'OPTIONS'])
def check_auth():
    if request.method == 'OPTIONS':
        return '', 200
    if current_user.is_authenticated:
        return jsonify({'success': True})
    return jsonify({'success': False, 'error': 'Invalid or expired token'}), 401
