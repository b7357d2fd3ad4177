"""
Services Package

Contains all business logic and service classes.
"""

from .game_service import GameService, GameSession, get_game_service
from .puzzle_service import JsonPuzzleProvider, get_puzzle_provider
from .record_store import GameRecordStore, LocalRecordCache, MongoRecordRepository, get_record_store
from .scorer import get_rank, score_word
from .stats_service import StatsAggregator, StatsService, get_stats_service, merge_records, reconcile

__all__ = [
    'GameService', 'GameSession', 'get_game_service',
    'JsonPuzzleProvider', 'get_puzzle_provider',
    'GameRecordStore', 'LocalRecordCache', 'MongoRecordRepository', 'get_record_store',
    'get_rank', 'score_word',
    'StatsAggregator', 'StatsService', 'get_stats_service', 'merge_records', 'reconcile'
]
