from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config
from gradeboard.room import GradingRoom

socketio = SocketIO(async_mode=None)
room = GradingRoom()


def _origins(config):
    raw = config.get('CORS_ORIGINS') or '*'
    if raw == '*':
        return '*'
    return [o.strip() for o in raw.split(',') if o.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = _origins(flask_app.config)

    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    room.init_app(flask_app, socketio)

    from gradeboard.routes import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    from gradeboard.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('addresses')
    def addresses_command():
        """Lists the URLs participants can use to reach this server."""
        room.refresh_addresses()
        for addr in room.store.state.available_addresses:
            print(f'[{addr.name}]: {addr.url}')

    flask_app.cli.add_command(addresses_command)

    return flask_app
