from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import json
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # The registry owns the one live session; handlers reach it via get_registry()
    from playgame.services.games.registry import GameRegistry
    from playgame.services.games.scoring import ScoringRules
    from playgame.services.games.store import SessionStore
    from playgame.services.games.tag import TagGame

    registry = GameRegistry(
        store=SessionStore(flask_app),
        rules=ScoringRules.from_config(flask_app.config),
        logger=flask_app.logger,
    )
    registry.register(TagGame)
    flask_app.extensions['game_registry'] = registry

    # Import and register blueprints here
    from playgame.main import main
    flask_app.register_blueprint(main)

    from playgame.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers
    from playgame.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    if flask_app.config.get('RESUME_ON_START') and not flask_app.config.get('TESTING'):
        from sqlalchemy.exc import SQLAlchemyError
        from playgame.services.games.scheduler import schedule_session_timers
        with flask_app.app_context():
            try:
                db.create_all()
            except SQLAlchemyError as exc:
                flask_app.logger.error(f"[store-init-failed] {exc}")
        game = registry.resume()
        if game is not None:
            schedule_session_timers(flask_app, registry, game.session_id)

    @click.command('session-show')
    def session_show_command():
        """Prints the stored session snapshot."""
        stored = registry.store.load()
        if stored is None:
            click.echo('No stored session.')
            return
        kind, record = stored
        click.echo(json.dumps({'kind': kind, 'record': record}, indent=2))

    @click.command('session-reset')
    def session_reset_command():
        """Deletes the stored session snapshot."""
        with flask_app.app_context():
            db.create_all()
        registry.store.synchronous = True
        registry.store.clear()
        click.echo('Stored session has been cleared.')

    flask_app.cli.add_command(session_show_command)
    flask_app.cli.add_command(session_reset_command)

    return flask_app
