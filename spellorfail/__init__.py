"""
Spell or Fail Game Server Application Package

This package contains the word-puzzle game server: the scoring core, the
two-replica record store, statistics and the HTTP/WebSocket surface.
"""

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from .config import Config


def create_app(config_class=Config):
    """
    Application factory pattern for creating Flask app instances.

    Services are initialized before the app is created; when the record
    store and stats service exist, remote saves push stats to clients.

    Args:
        config_class: Configuration class to use

    Returns:
        Tuple of (Flask application, SocketIO instance)
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    CORS(app)
    socketio = SocketIO(app, cors_allowed_origins="*", logger=False, engineio_logger=False)

    # Register blueprints
    from .controllers.game_controller import game_bp
    from .controllers.progress_controller import progress_bp
    from .controllers.stats_controller import stats_bp

    app.register_blueprint(game_bp, url_prefix='/api')
    app.register_blueprint(progress_bp, url_prefix='/api')
    app.register_blueprint(stats_bp, url_prefix='/api')

    # Register WebSocket handlers
    from .websocket.handlers import register_websocket_handlers, register_stats_push
    register_websocket_handlers(socketio)

    from .services.record_store import get_record_store
    from .services.stats_service import get_stats_service
    record_store = get_record_store()
    stats_service = get_stats_service()
    if record_store is not None and stats_service is not None:
        register_stats_push(socketio, record_store, stats_service)

    # Store socketio instance for use in other modules
    app.socketio = socketio

    return app, socketio
