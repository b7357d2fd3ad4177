"""
Stats Service

Derives per-user statistics from game records and reconciles the local
and remote replicas before they are shown.
"""

import dataclasses
import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from pymongo.errors import PyMongoError

from ..config.game_settings import BEGINNER_RANK, HISTORY_LIMIT
from ..exceptions import LocalPersistenceError, RecordValidationError, RemotePersistenceError
from ..models.record import GameRecord, UserStats, parse_day
from ..utils.clock import SystemClock
from ..utils.game_logger import game_logger
from .scorer import higher_rank


class StatsAggregator:
    """
    Pure reducer from a user's game records to a UserStats snapshot.

    Streaks count consecutive calendar days with at least one record.
    Several records on one day count as a single day. The current streak
    survives only while the last played day is today or yesterday.
    """

    def __init__(self, clock=None):
        self.clock = clock or SystemClock()

    def aggregate(self, user_id: str, records: Iterable[GameRecord]) -> UserStats:
        records = list(records)
        if not records:
            return UserStats(user_id=user_id)

        dated: List[Tuple[datetime.date, GameRecord]] = []
        for record in records:
            try:
                dated.append((parse_day(record.game_date), record))
            except ValueError:
                game_logger.logger.warning(
                    f"Excluding record {record.user_id}/{record.puzzle_id} from streaks: "
                    f"bad game_date {record.game_date!r}"
                )
        dated.sort(key=lambda item: item[0])

        run_length = 0
        best_streak = 0
        previous_day: Optional[datetime.date] = None
        for day, _ in dated:
            if previous_day is None:
                run_length = 1
            else:
                gap = (day - previous_day).days
                if gap == 1:
                    run_length += 1
                elif gap > 1:
                    run_length = 1
                # gap == 0: same day, nothing changes
            best_streak = max(best_streak, run_length)
            previous_day = day

        current_streak = 0
        if previous_day is not None:
            today = self.clock.today()
            if previous_day in (today, today - datetime.timedelta(days=1)):
                current_streak = run_length

        best_rank = BEGINNER_RANK
        for record in records:
            best_rank = higher_rank(best_rank, record.rank)

        games_played = len({record.puzzle_id for record in records})
        total_score = sum(record.score for record in records)

        return UserStats(
            user_id=user_id,
            games_played=games_played,
            current_streak=current_streak,
            best_streak=best_streak,
            best_rank=best_rank,
            last_played_date=previous_day,
            total_score=total_score,
            average_score=_rounded_mean(total_score, len(records))
        )


def _rounded_mean(total: int, count: int) -> int:
    if count == 0:
        return 0
    # Half-up, matching what players see elsewhere
    return int(total / count + 0.5)


def _completeness(stats: UserStats):
    return (stats.games_played, stats.last_played_date or datetime.date.min)


def reconcile(local: Optional[UserStats], remote: Optional[UserStats]) -> Optional[UserStats]:
    """
    Merge two snapshots of the same user's stats field by field.

    Counts and streaks take the larger value, best rank the higher rank,
    and the remaining fields come from whichever side has seen more
    games. This never loses a higher number, but it can overstate counts
    when the two sides saw different puzzles; prefer merge_records when
    the records themselves are available.
    """
    if local is None:
        return remote
    if remote is None:
        return local

    fuller = remote if _completeness(remote) > _completeness(local) else local

    return UserStats(
        user_id=local.user_id,
        games_played=max(local.games_played, remote.games_played),
        current_streak=max(local.current_streak, remote.current_streak),
        best_streak=max(local.best_streak, remote.best_streak),
        best_rank=higher_rank(local.best_rank, remote.best_rank),
        last_played_date=fuller.last_played_date,
        total_score=max(local.total_score, remote.total_score),
        average_score=fuller.average_score
    )


def merge_records(local: Iterable[GameRecord], remote: Iterable[GameRecord]) -> List[GameRecord]:
    """
    Union two record sets keyed by (user, puzzle).

    On a key clash the higher score wins, then the later update.
    """
    merged: Dict[Tuple[str, str], GameRecord] = {}
    for record in list(local) + list(remote):
        current = merged.get(record.key)
        if current is None or (record.score, record.updated_at) > (current.score, current.updated_at):
            merged[record.key] = record
    return list(merged.values())


class MongoStatsRepository:
    """Remote stats boundary: get_stats, upsert_stats."""

    def __init__(self, database):
        self.collection = database.stats
        self.collection.create_index("user_id", unique=True)

    def get_stats(self, user_id: str) -> Optional[UserStats]:
        try:
            doc = self.collection.find_one({"user_id": user_id}, {"_id": 0})
        except PyMongoError as e:
            raise RemotePersistenceError(f"Failed to read stats: {e}") from e
        if doc is None:
            return None
        try:
            return UserStats.from_dict(doc)
        except RecordValidationError as e:
            game_logger.logger.warning(f"Ignoring malformed remote stats for {user_id}: {e}")
            return None

    def upsert_stats(self, stats: UserStats) -> None:
        try:
            self.collection.replace_one({"user_id": stats.user_id}, stats.to_dict(), upsert=True)
        except PyMongoError as e:
            raise RemotePersistenceError(f"Failed to upsert stats: {e}") from e


class StatsService:
    """
    Statistics read path and snapshot maintenance.

    Reads merge the local and remote record sets, recompute from the
    merged set, then fold in the stored remote snapshot.
    """

    def __init__(self, record_store, stats_repository=None, clock=None):
        self.record_store = record_store
        self.stats_repository = stats_repository
        self.aggregator = StatsAggregator(clock)

    def attach(self) -> None:
        """Keep snapshots current after every local and remote save."""
        self.record_store.add_local_listener(lambda record: self.refresh_local_stats(record.user_id))
        if self.stats_repository is not None:
            self.record_store.add_remote_listener(
                lambda record: self.refresh_remote_stats(record.user_id), name='stats_refresh'
            )

    def _remote_records(self, user_id: str) -> List[GameRecord]:
        if not self.record_store.remote_available:
            return []
        try:
            return self.record_store.list_remote_records(user_id)
        except RemotePersistenceError as e:
            game_logger.log_persistence_event('remote_list', user_id, success=False, error=str(e))
            return []

    def _remote_snapshot(self, user_id: str) -> Optional[UserStats]:
        if self.stats_repository is None:
            return None
        try:
            return self.stats_repository.get_stats(user_id)
        except RemotePersistenceError as e:
            game_logger.log_persistence_event('remote_stats_load', user_id, success=False, error=str(e))
            return None

    def merged_records(self, user_id: str) -> List[GameRecord]:
        return merge_records(self.record_store.list_local_records(user_id), self._remote_records(user_id))

    def get_stats(self, user_id: str) -> UserStats:
        """Stats for display: record-level merge, recompute, then snapshot reconcile."""
        computed = self.aggregator.aggregate(user_id, self.merged_records(user_id))

        try:
            self.record_store.local_cache.write_stats(computed)
        except LocalPersistenceError as e:
            game_logger.log_persistence_event('local_stats_save', user_id, success=False, error=str(e))

        reconciled = reconcile(computed, self._remote_snapshot(user_id))
        # A stored snapshot's streak was live on the day it was written; only
        # the recomputed streak reflects today
        return dataclasses.replace(reconciled, current_streak=computed.current_streak)

    def refresh_local_stats(self, user_id: str) -> UserStats:
        """
        Recompute the local snapshot from local records only.

        Raises:
            LocalPersistenceError: If the snapshot cannot be written
        """
        stats = self.aggregator.aggregate(user_id, self.record_store.list_local_records(user_id))
        self.record_store.local_cache.write_stats(stats)
        return stats

    def refresh_remote_stats(self, user_id: str) -> UserStats:
        """
        Recompute the remote snapshot from remote records.

        Raises:
            RemotePersistenceError: If records cannot be listed or the snapshot stored
        """
        if self.stats_repository is None:
            raise RemotePersistenceError("Remote stats store is not configured")
        stats = self.aggregator.aggregate(user_id, self.record_store.list_remote_records(user_id))
        self.stats_repository.upsert_stats(stats)
        game_logger.log_persistence_event(
            'remote_stats_upsert', user_id, games_played=stats.games_played,
            current_streak=stats.current_streak
        )
        return stats

    def get_history(self, user_id: str, limit: int = HISTORY_LIMIT) -> List[GameRecord]:
        """Merged records, most recently updated first."""
        records = sorted(self.merged_records(user_id), key=lambda record: record.updated_at, reverse=True)
        return records[:limit]


# Global service instance
_stats_service = None


def get_stats_service() -> Optional[StatsService]:
    """Get the global stats service instance."""
    return _stats_service


def initialize_stats_service(record_store, database=None, clock=None) -> StatsService:
    """Initialize the global stats service instance and hook it to the record store."""
    global _stats_service
    stats_repository = MongoStatsRepository(database) if database is not None else None
    _stats_service = StatsService(record_store, stats_repository, clock)
    _stats_service.attach()
    return _stats_service
