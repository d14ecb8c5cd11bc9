from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click

from fakeso.config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Connection membership lives with the app, not in module globals
    from fakeso.services.rooms import RoomRegistry
    from fakeso.services.broadcaster import Broadcaster
    registry = RoomRegistry()
    flask_app.extensions['fakeso.rooms'] = registry
    flask_app.extensions['fakeso.broadcaster'] = Broadcaster(
        socketio, registry, namespace=namespace, logger=flask_app.logger
    )

    from fakeso.errors import FakeSOError

    @flask_app.errorhandler(FakeSOError)
    def handle_fakeso_error(exc):
        if exc.status_code >= 500:
            flask_app.logger.error(f"[error] {exc.kind}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    # Import and register blueprints here
    from fakeso.main import main
    flask_app.register_blueprint(main)

    from fakeso.api.chat import chat
    flask_app.register_blueprint(chat, url_prefix='/api/chat')

    from fakeso.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers
    from fakeso.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from fakeso.models import User
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            for u in ['user1', 'user2', 'user3']:
                db.session.add(User(username=u))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
