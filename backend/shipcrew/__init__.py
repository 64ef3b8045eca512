from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def _allowed_origins(raw):
    if not raw or raw.strip() == '*':
        return '*'
    return [o.strip() for o in raw.split(',') if o.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Session engine: one per app, holding every room and player in memory
    from shipcrew.broadcast import SocketIOBroadcaster
    from shipcrew.services.games.scheduler import TickScheduler
    from shipcrew.services.games.session import SessionManager

    testing = flask_app.config.get('TESTING', False)
    scheduler = TickScheduler(
        socketio.start_background_task,
        socketio.sleep,
        interval=float(flask_app.config.get('TICK_INTERVAL_SEC', 1)),
        enabled=not testing or bool(flask_app.config.get('ENABLE_SCHEDULER_IN_TESTS')),
        logger=flask_app.logger,
    )
    flask_app.extensions['shipcrew'] = SessionManager.from_config(
        flask_app.config,
        SocketIOBroadcaster(socketio),
        scheduler,
        logger=flask_app.logger,
    )

    # Import and register blueprints here
    from shipcrew.main import main
    flask_app.register_blueprint(main)

    from shipcrew.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    # Register Socket.IO event handlers
    from shipcrew.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    return flask_app
