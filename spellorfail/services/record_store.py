"""
Game Record Store

Persists one record per (user, puzzle) in two replicas: a local JSON-file
cache written synchronously, and a MongoDB collection updated best-effort
in the background. On load the copy with more progress wins, so a remote
row that fell behind never rolls back the local cache.
"""

import dataclasses
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, Hashable, List, Optional, Set, Tuple
from urllib.parse import quote

from pymongo import ASCENDING
from pymongo.errors import PyMongoError
from pymongo.mongo_client import MongoClient
from pymongo.server_api import ServerApi

from ..exceptions import LocalPersistenceError, PersistenceError, RecordValidationError, RemotePersistenceError
from ..models.record import GameRecord, UserStats
from ..utils.game_logger import game_logger


def _safe_name(value: str) -> str:
    """Encode an id so it is a single, non-special path component."""
    return quote(value, safe='').replace('.', '%2E')


class LocalRecordCache:
    """
    JSON-file replica of a user's records and last stats snapshot.

    Layout::

        <cache_dir>/<user>/games/<puzzle>.json
        <cache_dir>/<user>/stats.json
    """

    def __init__(self, cache_dir: str):
        self.cache_dir = Path(cache_dir)

    def _user_dir(self, user_id: str) -> Path:
        return self.cache_dir / _safe_name(user_id)

    def _record_path(self, user_id: str, puzzle_id: str) -> Path:
        return self._user_dir(user_id) / 'games' / f"{_safe_name(puzzle_id)}.json"

    def _stats_path(self, user_id: str) -> Path:
        return self._user_dir(user_id) / 'stats.json'

    def _read(self, path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        try:
            with path.open('r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            game_logger.logger.warning(f"Unreadable cache file {path}: {e}")
            return None

    def _write(self, path: Path, data: dict) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise LocalPersistenceError(f"Could not write {path}: {e}") from e

    def get_record(self, user_id: str, puzzle_id: str) -> Optional[GameRecord]:
        data = self._read(self._record_path(user_id, puzzle_id))
        if data is None:
            return None
        try:
            return GameRecord.from_dict(data)
        except RecordValidationError as e:
            game_logger.logger.warning(f"Ignoring malformed cached record {user_id}/{puzzle_id}: {e}")
            return None

    def write_record(self, record: GameRecord) -> None:
        self._write(self._record_path(record.user_id, record.puzzle_id), record.to_dict())

    def list_records(self, user_id: str) -> List[GameRecord]:
        games_dir = self._user_dir(user_id) / 'games'
        if not games_dir.is_dir():
            return []

        records = []
        for path in sorted(games_dir.glob('*.json')):
            data = self._read(path)
            if data is None:
                continue
            try:
                records.append(GameRecord.from_dict(data))
            except RecordValidationError as e:
                game_logger.logger.warning(f"Skipping malformed cached record {path.name}: {e}")
        return records

    def get_stats(self, user_id: str) -> Optional[UserStats]:
        data = self._read(self._stats_path(user_id))
        if data is None:
            return None
        try:
            return UserStats.from_dict(data)
        except RecordValidationError as e:
            game_logger.logger.warning(f"Ignoring malformed cached stats for {user_id}: {e}")
            return None

    def write_stats(self, stats: UserStats) -> None:
        self._write(self._stats_path(stats.user_id), stats.to_dict())


def connect_database(mongo_uri: str, db_name: str, timeout_ms: int = 5000):
    """
    Open the remote MongoDB database and verify it answers.

    Raises:
        RemotePersistenceError: If the server cannot be reached
    """
    client = MongoClient(mongo_uri, server_api=ServerApi('1'), serverSelectionTimeoutMS=timeout_ms)
    try:
        client.admin.command('ping')
    except PyMongoError as e:
        client.close()
        raise RemotePersistenceError(f"MongoDB connection error: {e}") from e
    game_logger.logger.info(f"Connected to MongoDB database '{db_name}'")
    return client[db_name]


class MongoRecordRepository:
    """Remote record boundary: get_record, upsert_record, list_records."""

    def __init__(self, database):
        self.collection = database.games
        # One row per (user, puzzle)
        self.collection.create_index(
            [("user_id", ASCENDING), ("puzzle_id", ASCENDING)], unique=True
        )
        self.collection.create_index("user_id")

    def get_record(self, user_id: str, puzzle_id: str) -> Optional[GameRecord]:
        try:
            doc = self.collection.find_one({"user_id": user_id, "puzzle_id": puzzle_id}, {"_id": 0})
        except PyMongoError as e:
            raise RemotePersistenceError(f"Failed to read record: {e}") from e
        if doc is None:
            return None
        try:
            return GameRecord.from_dict(doc)
        except RecordValidationError as e:
            game_logger.logger.warning(f"Ignoring malformed remote record {user_id}/{puzzle_id}: {e}")
            return None

    def upsert_record(self, record: GameRecord) -> None:
        """Replace the row for this (user, puzzle) with the given values."""
        try:
            self.collection.replace_one(
                {"user_id": record.user_id, "puzzle_id": record.puzzle_id},
                record.to_dict(),
                upsert=True
            )
        except PyMongoError as e:
            raise RemotePersistenceError(f"Failed to upsert record: {e}") from e

    def list_records(self, user_id: str) -> List[GameRecord]:
        try:
            docs = list(self.collection.find({"user_id": user_id}, {"_id": 0}))
        except PyMongoError as e:
            raise RemotePersistenceError(f"Failed to list records: {e}") from e

        records = []
        for doc in docs:
            try:
                records.append(GameRecord.from_dict(doc))
            except RecordValidationError as e:
                game_logger.logger.warning(f"Skipping malformed remote record for {user_id}: {e}")
        return records


RecordListener = Callable[[GameRecord], None]


def _progress(record: GameRecord):
    """Ordering of two saves of the same puzzle: higher score, then later update."""
    return (record.score, record.updated_at)


class GameRecordStore:
    """
    Load and save game records across the local and remote replicas.

    This class handles:
    - Monotonic saves: a lower score never overwrites a cached record
    - Synchronous local writes; failures raise LocalPersistenceError
    - Fire-and-forget remote upserts, ordered per key; failures are logged, never retried
    - Listener hooks after local and remote saves (stats refresh, pushes)
    """

    def __init__(self, local_cache: LocalRecordCache, remote=None, background: bool = True):
        self.local_cache = local_cache
        self.remote = remote
        self.background = background
        self._local_listeners: List[RecordListener] = []
        self._remote_listeners: Dict[Hashable, RecordListener] = {}
        self._pending: Set[threading.Thread] = set()
        self._pending_lock = threading.Lock()
        # Per-key upsert ordering
        self._key_locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._synced: Dict[Tuple[str, str], tuple] = {}

    @property
    def remote_available(self) -> bool:
        return self.remote is not None

    def add_local_listener(self, listener: RecordListener) -> None:
        self._local_listeners.append(listener)

    def add_remote_listener(self, listener: RecordListener, name: Optional[str] = None) -> None:
        """Run a callback after each remote upsert. A named listener replaces any earlier one of that name."""
        self._remote_listeners[name if name is not None else id(listener)] = listener

    def load(self, user_id: str, puzzle_id: str) -> Optional[GameRecord]:
        """
        Returns the saved record for a puzzle, or None.

        The remote copy wins when it has more progress (higher score, then
        later update) and is written back to the local cache. A local copy
        that is ahead is returned and pushed to the remote again.
        """
        local_record = self.local_cache.get_record(user_id, puzzle_id)

        if self.remote is None:
            return local_record

        try:
            remote_record = self.remote.get_record(user_id, puzzle_id)
        except RemotePersistenceError as e:
            game_logger.log_persistence_event(
                'remote_load', user_id, puzzle_id, success=False, error=str(e)
            )
            return local_record

        if remote_record is None:
            return local_record

        if local_record is not None and _progress(local_record) >= _progress(remote_record):
            if _progress(local_record) > _progress(remote_record):
                # Remote fell behind, e.g. a lost or late upsert
                game_logger.log_persistence_event(
                    'remote_behind', user_id, puzzle_id,
                    local_score=local_record.score, remote_score=remote_record.score
                )
                self._dispatch_remote(local_record)
            return local_record

        try:
            self.local_cache.write_record(remote_record)
        except LocalPersistenceError as e:
            game_logger.log_persistence_event(
                'local_refresh', user_id, puzzle_id, success=False, error=str(e)
            )
        return remote_record

    def save(self, record: GameRecord) -> GameRecord:
        """
        Save a record locally, then start the remote upsert.

        Returns:
            The record now held in the local cache

        Raises:
            LocalPersistenceError: If the local write fails
        """
        existing = self.local_cache.get_record(record.user_id, record.puzzle_id)
        if existing is not None:
            if record.score < existing.score:
                game_logger.log_persistence_event(
                    'local_save_skipped', record.user_id, record.puzzle_id,
                    reason='lower_score', cached_score=existing.score, attempted_score=record.score
                )
                return existing
            record = dataclasses.replace(record, game_date=existing.game_date)

        self.local_cache.write_record(record)
        game_logger.log_persistence_event(
            'local_save', record.user_id, record.puzzle_id,
            score=record.score, words=len(record.words_found)
        )

        for listener in self._local_listeners:
            try:
                listener(record)
            except PersistenceError as e:
                game_logger.log_persistence_event(
                    'local_listener', record.user_id, record.puzzle_id, success=False, error=str(e)
                )

        if self.remote is not None:
            self._dispatch_remote(record)

        return record

    def list_local_records(self, user_id: str) -> List[GameRecord]:
        return self.local_cache.list_records(user_id)

    def list_remote_records(self, user_id: str) -> List[GameRecord]:
        """
        Raises:
            RemotePersistenceError: If no remote is configured or the read fails
        """
        if self.remote is None:
            raise RemotePersistenceError("Remote store is not configured")
        return self.remote.list_records(user_id)

    def _dispatch_remote(self, record: GameRecord) -> None:
        if not self.background:
            self._sync_remote(record)
            return

        worker = threading.Thread(target=self._run_sync, args=(record,), daemon=True)
        with self._pending_lock:
            self._pending.add(worker)
        worker.start()

    def _run_sync(self, record: GameRecord) -> None:
        try:
            self._sync_remote(record)
        finally:
            with self._pending_lock:
                self._pending.discard(threading.current_thread())

    def _key_lock(self, key: Tuple[str, str]) -> threading.Lock:
        with self._pending_lock:
            return self._key_locks.setdefault(key, threading.Lock())

    def _sync_remote(self, record: GameRecord) -> None:
        # Upserts for one key run one at a time, and a save that lost the
        # race to a newer one is dropped instead of overwriting it
        with self._key_lock(record.key):
            last_synced = self._synced.get(record.key)
            if last_synced is not None and _progress(record) < last_synced:
                game_logger.log_persistence_event(
                    'remote_upsert_skipped', record.user_id, record.puzzle_id,
                    reason='stale', score=record.score
                )
                return

            try:
                self.remote.upsert_record(record)
            except RemotePersistenceError as e:
                game_logger.log_persistence_event(
                    'remote_upsert', record.user_id, record.puzzle_id, success=False, error=str(e)
                )
                return
            self._synced[record.key] = _progress(record)

        game_logger.log_persistence_event(
            'remote_upsert', record.user_id, record.puzzle_id, score=record.score
        )

        for listener in list(self._remote_listeners.values()):
            try:
                listener(record)
            except PersistenceError as e:
                game_logger.log_persistence_event(
                    'remote_listener', record.user_id, record.puzzle_id, success=False, error=str(e)
                )

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight remote upserts, used at shutdown."""
        with self._pending_lock:
            pending = list(self._pending)
        for worker in pending:
            worker.join(timeout)


# Global service instance
_record_store = None


def get_record_store() -> Optional[GameRecordStore]:
    """Get the global record store instance."""
    return _record_store


def initialize_record_store(cache_dir: str, database=None, background: bool = True) -> GameRecordStore:
    """Initialize the global record store instance."""
    global _record_store
    remote = MongoRecordRepository(database) if database is not None else None
    _record_store = GameRecordStore(LocalRecordCache(cache_dir), remote, background)
    return _record_store
