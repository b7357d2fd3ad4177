import datetime

import mongomock
import pytest

from spellorfail import create_app
from spellorfail.config import TestingConfig
from spellorfail.models import GameRecord, PuzzleDescriptor
from spellorfail.services.game_service import initialize_game_service
from spellorfail.services import puzzle_service
from spellorfail.services.puzzle_service import JsonPuzzleProvider
from spellorfail.services.record_store import initialize_record_store
from spellorfail.services.stats_service import initialize_stats_service
from spellorfail.utils.clock import FixedClock

TODAY = datetime.date(2024, 1, 4)


@pytest.fixture()
def clock():
    return FixedClock(TODAY)


@pytest.fixture()
def graph_puzzle():
    """Two-word puzzle; its max_score undercounts the points on offer."""
    return PuzzleDescriptor(
        puzzle_id=TODAY.isoformat(),
        center_letter='g',
        outer_letters=('r', 'a', 'p', 'h', 'i', 'c'),
        valid_words=frozenset({'graph', 'graphic'}),
        pangrams=frozenset({'graphic'}),
        max_score=15
    )


@pytest.fixture()
def cache_dir(tmp_path):
    return tmp_path / 'cache'


@pytest.fixture()
def mongo_db():
    return mongomock.MongoClient().spellorfail


@pytest.fixture()
def local_store(cache_dir):
    """Record store with no remote replica."""
    return initialize_record_store(str(cache_dir), None, background=False)


@pytest.fixture()
def record_store(cache_dir, mongo_db):
    return initialize_record_store(str(cache_dir), mongo_db, background=False)


@pytest.fixture()
def stats_service(record_store, mongo_db, clock):
    return initialize_stats_service(record_store, mongo_db, clock)


@pytest.fixture()
def puzzle_provider(graph_puzzle, clock, monkeypatch):
    provider = JsonPuzzleProvider([graph_puzzle], clock)
    monkeypatch.setattr(puzzle_service, '_puzzle_provider', provider)
    return provider


@pytest.fixture()
def game_service(record_store, stats_service, puzzle_provider, clock):
    return initialize_game_service(puzzle_provider, record_store, clock)


@pytest.fixture()
def flask_app(game_service):
    application, socketio = create_app(TestingConfig)
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = flask_app.socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client()
    )
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()


@pytest.fixture()
def make_record():
    def _make(puzzle_id, game_date, score=5, user_id='alice', words=None, rank='Good Start', updated_at=None):
        record = GameRecord(
            user_id=user_id,
            puzzle_id=puzzle_id,
            score=score,
            words_found=list(words or ['graph']),
            pangrams_found=[],
            rank=rank,
            game_date=game_date
        )
        if updated_at is not None:
            record.updated_at = updated_at
        return record
    return _make
