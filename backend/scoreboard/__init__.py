from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(cors_allowed_origins='*', async_mode=None)


def _parse_origins(raw):
    if not raw or raw == '*':
        return '*'
    return [o.strip() for o in raw.split(',') if o.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    origins = _parse_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # Only the hash of the shared password is kept around
    flask_app.config['SCOREBOARD_PASSWORD_HASH'] = bcrypt.generate_password_hash(
        flask_app.config['SCOREBOARD_PASSWORD']
    )

    from scoreboard.stores import create_store
    store = create_store(flask_app)
    flask_app.extensions['score_store'] = store
    flask_app.logger.info(f"[startup] score store backend={store.name} players={store.players}")

    from scoreboard.main import main
    flask_app.register_blueprint(main)

    from scoreboard.api.scores import scores
    flask_app.register_blueprint(scores, url_prefix='/api/scores')

    from scoreboard.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from scoreboard.services.auth import member_from_request

    @login_manager.request_loader
    def load_member_from_request(req):
        return member_from_request(req)

    @flask_app.errorhandler(404)
    def not_found(_exc):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @flask_app.errorhandler(405)
    def method_not_allowed(_exc):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @click.command('scores-reset')
    def scores_reset_command():
        """Resets every player's score to zero in the active store."""
        with flask_app.app_context():
            board = store.reset()
            print(f'Scores have been reset: {board.scores}')

    flask_app.cli.add_command(scores_reset_command)

    return flask_app
