"""
Configuration Package

Contains all configuration-related files and settings.

This package separates two types of configuration:
- app_config.py: Flask application configuration (environment-based)
- game_settings.py: Scoring rules, rank table and puzzle loading (business logic)
"""

from .app_config import Config, DevelopmentConfig, ProductionConfig, TestingConfig, config
from .game_settings import (
    MIN_WORD_LENGTH, PANGRAM_BONUS, OUTER_LETTER_COUNT, HISTORY_LIMIT,
    RANK_ORDER, BEGINNER_RANK, PERFECT_RANK
)

__all__ = [
    # App configuration
    'Config', 'DevelopmentConfig', 'ProductionConfig', 'TestingConfig', 'config',
    # Game rules
    'MIN_WORD_LENGTH', 'PANGRAM_BONUS', 'OUTER_LETTER_COUNT', 'HISTORY_LIMIT',
    'RANK_ORDER', 'BEGINNER_RANK', 'PERFECT_RANK'
]
