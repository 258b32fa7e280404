import random

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or ['*']
    if '*' in allowed_origins:
        allowed_origins = '*'
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry per app instance; nothing game-related lives at module level
    from themind.services.games.registry import RoomRegistry
    seed = flask_app.config.get('DEAL_SEED')
    registry = RoomRegistry(
        expiry_sec=int(flask_app.config.get('ROOM_EXPIRY_SEC', 6 * 60 * 60)),
        max_players=int(flask_app.config.get('MAX_PLAYERS', 4)),
        rng=random.Random(seed),
        logger=flask_app.logger,
    )
    flask_app.extensions['room_registry'] = registry

    from themind.main import main
    flask_app.register_blueprint(main)

    from themind.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Register Socket.IO event handlers against this app's registry
    from themind.socketio_events import SessionGateway, register_socketio_handlers
    gateway = SessionGateway(flask_app, registry, namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))
    register_socketio_handlers(gateway)
    flask_app.extensions['session_gateway'] = gateway

    from themind.services.games.scheduler import start_room_sweeper
    # Call .stop() on this before discarding the app
    flask_app.extensions['room_sweeper'] = start_room_sweeper(flask_app, registry, gateway.on_rooms_expired)

    return flask_app
