"""
Utilities Package

Contains the clock helpers and the game logger.
"""

from .clock import FixedClock, SystemClock
from .game_logger import game_logger

__all__ = ['FixedClock', 'SystemClock', 'game_logger']
