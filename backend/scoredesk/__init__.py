from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def _allowed_origins(value):
    if not value or value == '*':
        return '*'
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = _allowed_origins(flask_app.config.get('CORS_ORIGINS', '*'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Import and register blueprints here
    from scoredesk.main import main
    flask_app.register_blueprint(main)

    from scoredesk.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Importing here binds the handlers to the initialized socketio instance
    from scoredesk.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        import scoredesk.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('prune-rooms')
    def prune_rooms_command():
        """Deletes rooms whose expiry has passed."""
        from scoredesk.ledger import utcnow
        from scoredesk.services.rooms import SqlRoomStore
        with flask_app.app_context():
            removed = SqlRoomStore().prune_expired(utcnow())
            flask_app.logger.info(f"[prune] removed={removed}")
            print(f'Removed {removed} expired room(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(prune_rooms_command)

    return flask_app
