"""
Spell or Fail Game Server - Main Entry Point

This is the main entry point for the game server.
It initializes all services and starts the Flask-SocketIO application.
"""

import threading
import time

from spellorfail import create_app
from spellorfail.config import Config
from spellorfail.exceptions import RemotePersistenceError
from spellorfail.services.game_service import get_game_service, initialize_game_service
from spellorfail.services.puzzle_service import initialize_puzzle_provider
from spellorfail.services.record_store import connect_database, initialize_record_store
from spellorfail.services.stats_service import initialize_stats_service
from spellorfail.utils.clock import SystemClock
from spellorfail.utils.game_logger import game_logger


def session_cleanup_worker(app):
    """
    Background worker that periodically drops game sessions left idle.
    Their progress is already saved, so nothing is lost.
    """
    print("Session cleanup worker started")
    while True:
        try:
            with app.app_context():
                game_service = get_game_service()

                if game_service:
                    cleanup_result = game_service.cleanup_expired_sessions(Config.SESSION_IDLE_TIMEOUT)

                    if cleanup_result["cleaned_count"] > 0:
                        game_logger.logger.info(
                            f"Session cleanup: Removed {cleanup_result['cleaned_count']} idle sessions"
                        )
        except Exception as e:
            game_logger.logger.error(f"Error in session cleanup worker: {e}")

        time.sleep(Config.SESSION_CLEANUP_INTERVAL)


def connect_remote():
    """Connect to MongoDB when configured. The server runs local-only otherwise."""
    if not Config.MONGO_URI:
        print("✗ MongoDB URI not configured - running with the local cache only")
        return None

    try:
        database = connect_database(Config.MONGO_URI, Config.MONGO_DB_NAME, Config.MONGO_TIMEOUT_MS)
    except RemotePersistenceError as e:
        print(f"✗ {e} - running with the local cache only")
        game_logger.logger.warning(f"Remote store unavailable at startup: {e}")
        return None

    print("✓ Connected to MongoDB")
    return database


def main():
    """Main function to initialize services and start the server."""
    record_store = None
    try:
        # Initialize all services
        print("Initializing services...")
        clock = SystemClock()

        puzzle_provider = initialize_puzzle_provider(Config.PUZZLE_FILE, clock)
        puzzle_provider.validate_puzzle_pool()
        print(f"✓ Puzzle provider loaded {len(puzzle_provider.pool)} puzzles")

        database = connect_remote()

        record_store = initialize_record_store(
            Config.LOCAL_CACHE_DIR, database, background=Config.REMOTE_SYNC_BACKGROUND
        )
        print("✓ Record store initialized successfully")

        initialize_stats_service(record_store, database, clock)
        print("✓ Stats service initialized successfully")

        initialize_game_service(puzzle_provider, record_store, clock)
        print("✓ Game service initialized successfully")

        # Create Flask app
        print("Creating Flask application...")
        app, socketio = create_app(Config)
        print("✓ Flask application created successfully")

        # Start session cleanup worker in background thread
        cleanup_thread = threading.Thread(target=session_cleanup_worker, args=(app,), daemon=True)
        cleanup_thread.start()
        print(f"✓ Session cleanup worker started - checking every {Config.SESSION_CLEANUP_INTERVAL} seconds")

        game_logger.logger.info("Spell or Fail Server Starting")

        print(f"\nStarting Spell or Fail Game Server on {Config.HOST}:{Config.PORT}")
        print(f"Debug mode: {Config.DEBUG}")
        print(f"Remote store available: {record_store.remote_available}")
        print("=" * 50)

        # Start the server
        socketio.run(app, host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)

    except KeyboardInterrupt:
        print("\nServer shutting down...")
        game_logger.logger.info("Spell or Fail Server shutting down (KeyboardInterrupt)")
    except Exception as e:
        print(f"Error starting server: {e}")
        game_logger.logger.error(f"Error starting server: {e}")
        raise
    finally:
        if record_store is not None:
            record_store.flush(timeout=Config.MONGO_TIMEOUT_MS / 1000)


if __name__ == '__main__':
    main()
