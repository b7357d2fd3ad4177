"""
Data Models Package

Contains all data models and schemas used throughout the application.
"""

from .game import Accepted, Rejected, RejectionReason, SessionSnapshot, SessionState, Verdict
from .puzzle import PuzzleDescriptor
from .record import GameRecord, UserStats, parse_day

__all__ = [
    'Accepted', 'Rejected', 'RejectionReason', 'SessionSnapshot', 'SessionState', 'Verdict',
    'PuzzleDescriptor', 'GameRecord', 'UserStats', 'parse_day'
]
