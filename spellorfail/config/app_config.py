"""
Configuration Management Module

Centralized configuration management following the 12-factor app methodology.
All configuration is loaded from environment variables with sensible defaults.
"""

import os
from dotenv import load_dotenv

# Load environment variables from config.env
load_dotenv('spellorfail/config/config.env')


class Config:
    """Base configuration class with all settings."""

    # Flask Settings
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

    # Server Settings
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 5000))

    # Remote Store Settings
    MONGO_URI = os.getenv('MONGO_URI')
    MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'spellorfail')
    MONGO_TIMEOUT_MS = int(os.getenv('MONGO_TIMEOUT_MS', 5000))
    REMOTE_SYNC_BACKGROUND = os.getenv('REMOTE_SYNC_BACKGROUND', 'True').lower() == 'true'

    # Local Cache Settings
    LOCAL_CACHE_DIR = os.getenv('LOCAL_CACHE_DIR', 'cache')

    # Session Settings
    SESSION_IDLE_TIMEOUT = int(os.getenv('SESSION_IDLE_TIMEOUT', 3600))
    SESSION_CLEANUP_INTERVAL = int(os.getenv('SESSION_CLEANUP_INTERVAL', 60))

    # Puzzle Settings
    PUZZLE_FILE = os.getenv(
        'PUZZLE_FILE',
        os.path.join(os.path.dirname(os.path.abspath(__file__)), 'puzzles.json')
    )

    # Logging Settings
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    REMOTE_SYNC_BACKGROUND = False


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
