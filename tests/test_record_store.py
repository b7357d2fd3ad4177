import datetime
import time

import pytest

from spellorfail.exceptions import LocalPersistenceError, RemotePersistenceError
from spellorfail.services.record_store import GameRecordStore, LocalRecordCache, MongoRecordRepository

DAY = datetime.date(2024, 1, 4)


class BrokenRemote:
    """Remote replica that is always unreachable."""

    def get_record(self, user_id, puzzle_id):
        raise RemotePersistenceError("connection refused")

    def upsert_record(self, record):
        raise RemotePersistenceError("connection refused")

    def list_records(self, user_id):
        raise RemotePersistenceError("connection refused")


def test_save_then_load_locally(local_store, make_record):
    local_store.save(make_record('p1', DAY, score=5))
    loaded = local_store.load('alice', 'p1')
    assert loaded.score == 5
    assert loaded.game_date == DAY


def test_load_missing_record(local_store):
    assert local_store.load('alice', 'nope') is None


def test_lower_score_does_not_overwrite(local_store, make_record):
    local_store.save(make_record('p1', DAY, score=10, words=['graph', 'graphic']))
    kept = local_store.save(make_record('p1', DAY, score=3))
    assert kept.score == 10
    assert local_store.load('alice', 'p1').score == 10


def test_resave_keeps_first_game_date(local_store, make_record):
    local_store.save(make_record('p1', DAY, score=5))
    saved = local_store.save(make_record('p1', DAY + datetime.timedelta(days=2), score=19))
    assert saved.game_date == DAY
    assert local_store.load('alice', 'p1').score == 19


def test_idempotent_save_is_one_record(local_store, make_record):
    record = make_record('p1', DAY)
    local_store.save(record)
    local_store.save(record)
    assert len(local_store.list_local_records('alice')) == 1


def test_ids_cannot_escape_the_cache(cache_dir, make_record):
    cache = LocalRecordCache(str(cache_dir))
    cache.write_record(make_record('../../etc', DAY, user_id='..'))
    written = [path for path in cache_dir.rglob('*.json')]
    assert len(written) == 1
    assert cache_dir in written[0].parents
    assert cache.get_record('..', '../../etc').puzzle_id == '../../etc'


def test_malformed_cache_file_is_skipped(local_store, cache_dir, make_record):
    local_store.save(make_record('p1', DAY))
    bad = cache_dir / 'alice' / 'games' / 'bad.json'
    bad.write_text('{"user_id": "alice"}')
    records = local_store.list_local_records('alice')
    assert [record.puzzle_id for record in records] == ['p1']


def test_local_write_failure_raises(tmp_path, make_record):
    blocker = tmp_path / 'blocked'
    blocker.write_text('')
    store = GameRecordStore(LocalRecordCache(str(blocker)), background=False)
    with pytest.raises(LocalPersistenceError):
        store.save(make_record('p1', DAY))


def test_save_reaches_remote(record_store, mongo_db, make_record):
    record_store.save(make_record('p1', DAY, score=5))
    doc = mongo_db.games.find_one({'user_id': 'alice', 'puzzle_id': 'p1'})
    assert doc['score'] == 5
    assert mongo_db.games.count_documents({}) == 1


def test_background_sync_finishes_on_flush(cache_dir, mongo_db, make_record):
    store = GameRecordStore(LocalRecordCache(str(cache_dir)), MongoRecordRepository(mongo_db), background=True)
    store.save(make_record('p1', DAY))
    store.flush(timeout=5)
    assert mongo_db.games.count_documents({'user_id': 'alice'}) == 1


def test_remote_failure_does_not_fail_save(cache_dir, make_record):
    store = GameRecordStore(LocalRecordCache(str(cache_dir)), BrokenRemote(), background=False)
    saved = store.save(make_record('p1', DAY, score=7))
    assert saved.score == 7
    # Unreachable remote on load falls back to the local copy
    assert store.load('alice', 'p1').score == 7


def test_remote_record_wins_and_refreshes_cache(record_store, mongo_db, make_record):
    record_store.save(make_record('p1', DAY, score=5))

    other_device = make_record('p1', DAY, score=12, words=['graph', 'graphic'])
    MongoRecordRepository(mongo_db).upsert_record(other_device)

    loaded = record_store.load('alice', 'p1')
    assert loaded.score == 12
    assert record_store.local_cache.get_record('alice', 'p1').score == 12


def test_remote_listener_runs_after_upsert(record_store, make_record):
    seen = []
    record_store.add_remote_listener(lambda record: seen.append(record.puzzle_id))
    record_store.save(make_record('p1', DAY))
    assert seen == ['p1']


def test_list_remote_without_remote(local_store):
    with pytest.raises(RemotePersistenceError):
        local_store.list_remote_records('alice')


class SlowRemote(MongoRecordRepository):
    """Mongo replica whose low-score upserts arrive late."""

    def __init__(self, database):
        super().__init__(database)
        self.upserted = []

    def upsert_record(self, record):
        if record.score < 10:
            time.sleep(0.2)
        super().upsert_record(record)
        self.upserted.append(record.score)


def test_late_upsert_never_overwrites_newer_progress(cache_dir, mongo_db, make_record):
    remote = SlowRemote(mongo_db)
    store = GameRecordStore(LocalRecordCache(str(cache_dir)), remote, background=True)
    store.save(make_record('p1', DAY, score=5))
    store.save(make_record('p1', DAY, score=19, words=['graph', 'graphic']))
    store.flush(timeout=5)

    assert remote.upserted[-1] == 19
    assert mongo_db.games.find_one({'user_id': 'alice', 'puzzle_id': 'p1'})['score'] == 19


def test_local_record_ahead_of_remote_wins_on_load(record_store, mongo_db, make_record):
    record_store.save(make_record('p1', DAY, score=19, words=['graph', 'graphic']))

    # A stale copy lands on the remote after the newer one
    MongoRecordRepository(mongo_db).upsert_record(make_record('p1', DAY, score=5))

    loaded = record_store.load('alice', 'p1')
    assert loaded.score == 19
    assert record_store.local_cache.get_record('alice', 'p1').score == 19
    # The remote is repaired from the local copy
    assert mongo_db.games.find_one({'user_id': 'alice', 'puzzle_id': 'p1'})['score'] == 19


def test_named_remote_listener_registers_once(record_store, make_record):
    seen = []
    record_store.add_remote_listener(lambda record: seen.append('first'), name='push')
    record_store.add_remote_listener(lambda record: seen.append('second'), name='push')
    record_store.save(make_record('p1', DAY))
    assert seen == ['second']
