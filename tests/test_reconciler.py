import datetime

from spellorfail.models import UserStats
from spellorfail.services.record_store import MongoRecordRepository
from spellorfail.services.stats_service import MongoStatsRepository, merge_records, reconcile

DAY = datetime.date(2024, 1, 4)


def test_reconcile_takes_the_larger_numbers():
    local = UserStats('alice', games_played=3, current_streak=1, best_streak=4, best_rank='Genius',
                      last_played_date=DAY, total_score=30, average_score=10)
    remote = UserStats('alice', games_played=5, current_streak=2, best_streak=2, best_rank='Nice',
                       last_played_date=DAY - datetime.timedelta(days=1), total_score=40, average_score=8)

    merged = reconcile(local, remote)
    assert merged.games_played == 5
    assert merged.current_streak == 2
    assert merged.best_streak == 4
    assert merged.best_rank == 'Genius'
    assert merged.total_score == 40
    # More games played on the remote side
    assert merged.last_played_date == DAY - datetime.timedelta(days=1)
    assert merged.average_score == 8


def test_reconcile_tie_goes_to_later_play():
    local = UserStats('alice', games_played=2, last_played_date=DAY, average_score=3)
    remote = UserStats('alice', games_played=2, last_played_date=DAY - datetime.timedelta(days=3), average_score=9)
    assert reconcile(local, remote).average_score == 3


def test_reconcile_with_missing_side():
    stats = UserStats('alice', games_played=1)
    assert reconcile(stats, None) is stats
    assert reconcile(None, stats) is stats
    assert reconcile(None, None) is None


def test_merge_records_prefers_higher_score(make_record):
    local = [make_record('p1', DAY, score=5), make_record('p2', DAY, score=1)]
    remote = [make_record('p1', DAY, score=9), make_record('p3', DAY, score=4)]
    merged = {record.puzzle_id: record.score for record in merge_records(local, remote)}
    assert merged == {'p1': 9, 'p2': 1, 'p3': 4}


def test_merge_records_tie_goes_to_later_update(make_record):
    early = datetime.datetime(2024, 1, 4, 8, tzinfo=datetime.timezone.utc)
    late = early + datetime.timedelta(hours=2)
    local = [make_record('p1', DAY, score=5, words=['graph'], updated_at=late)]
    remote = [make_record('p1', DAY, score=5, words=['crag'], updated_at=early)]
    (winner,) = merge_records(local, remote)
    assert winner.words_found == ['graph']


def test_stats_merge_does_not_double_count_across_devices(stats_service, record_store, mongo_db, make_record):
    # This device played p1; another device played p1 and p2 straight to the remote
    record_store.save(make_record('p1', DAY, score=5))
    remote = MongoRecordRepository(mongo_db)
    remote.upsert_record(make_record('p2', DAY - datetime.timedelta(days=1), score=8))

    stats = stats_service.get_stats('alice')
    assert stats.games_played == 2
    assert stats.best_streak == 2
    assert stats.current_streak == 2
    assert stats.total_score == 13


def test_remote_snapshot_is_refreshed_after_save(stats_service, record_store, mongo_db, make_record):
    record_store.save(make_record('p1', DAY, score=5))
    snapshot = MongoStatsRepository(mongo_db).get_stats('alice')
    assert snapshot.games_played == 1
    assert snapshot.current_streak == 1


def test_local_snapshot_is_written_after_save(stats_service, record_store, make_record):
    record_store.save(make_record('p1', DAY, score=5))
    snapshot = record_store.local_cache.get_stats('alice')
    assert snapshot.games_played == 1
    assert snapshot.last_played_date == DAY


def test_history_is_newest_first(stats_service, record_store, make_record):
    base = datetime.datetime(2024, 1, 4, tzinfo=datetime.timezone.utc)
    for hour, puzzle_id in enumerate(['p1', 'p2', 'p3']):
        record_store.save(make_record(puzzle_id, DAY, updated_at=base + datetime.timedelta(hours=hour)))

    history = stats_service.get_history('alice', limit=2)
    assert [record.puzzle_id for record in history] == ['p3', 'p2']


def test_old_snapshot_streak_does_not_outlive_a_gap(stats_service, record_store, mongo_db, clock, make_record):
    last_week = datetime.date(2023, 12, 25)
    for n in range(5):
        clock.day = last_week + datetime.timedelta(days=n)
        record_store.save(make_record(f'p{n}', clock.day))
    assert MongoStatsRepository(mongo_db).get_stats('alice').current_streak == 5

    clock.day = DAY
    stats = stats_service.get_stats('alice')
    assert stats.current_streak == 0
    assert stats.best_streak == 5
