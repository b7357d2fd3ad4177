import datetime
import random

from spellorfail.models import Accepted, RejectionReason, SessionState
from spellorfail.services.game_service import GameService, GameSession
from spellorfail.services.puzzle_service import JsonPuzzleProvider


def type_word(session, word):
    for letter in word:
        session.append_letter(letter)


def test_buffer_state_machine(graph_puzzle, clock):
    session = GameSession(graph_puzzle, 'alice', clock=clock)
    assert session.state is SessionState.EMPTY

    assert session.append_letter('G')
    assert session.state is SessionState.COMPOSING
    assert session.current_word == 'g'

    session.delete_last()
    assert session.state is SessionState.EMPTY

    # Deleting from an empty buffer is a no-op
    session.delete_last()
    assert session.current_word == ''

    type_word(session, 'gra')
    session.clear()
    assert session.state is SessionState.EMPTY


def test_non_letters_are_ignored(graph_puzzle, clock):
    session = GameSession(graph_puzzle, 'alice', clock=clock)
    assert not session.append_letter('1')
    assert not session.append_letter('ab')
    assert not session.append_letter('')
    assert session.current_word == ''


def test_empty_submit_does_nothing(graph_puzzle, clock):
    session = GameSession(graph_puzzle, 'alice', clock=clock)
    assert session.submit() is None
    assert session.score == 0


def test_rejected_word_clears_buffer_only(graph_puzzle, clock):
    session = GameSession(graph_puzzle, 'alice', clock=clock)
    type_word(session, 'gra')
    verdict = session.submit()
    assert verdict.reason is RejectionReason.TOO_SHORT
    assert session.state is SessionState.EMPTY
    assert session.words_found == []


def test_full_scenario_scores_and_ranks(graph_puzzle, clock):
    session = GameSession(graph_puzzle, 'alice', clock=clock)

    type_word(session, 'graph')
    assert session.submit() == Accepted('graph', 5, False)

    type_word(session, 'graphic')
    assert session.submit() == Accepted('graphic', 14, True)

    type_word(session, 'graph')
    assert session.submit().reason is RejectionReason.ALREADY_FOUND

    assert session.score == 19
    assert session.words_found == ['graph', 'graphic']
    assert session.pangrams_found == ['graphic']
    assert session.rank == 'Perfect!'


def test_accepted_word_is_persisted(graph_puzzle, clock, local_store):
    session = GameSession(graph_puzzle, 'alice', local_store, clock)
    type_word(session, 'graph')
    session.submit()

    saved = local_store.load('alice', graph_puzzle.puzzle_id)
    assert saved.score == 5
    assert saved.words_found == ['graph']
    assert saved.game_date == clock.today()
    assert session.save_error is None


def test_local_save_failure_keeps_the_word(graph_puzzle, clock, tmp_path):
    from spellorfail.services.record_store import GameRecordStore, LocalRecordCache

    blocker = tmp_path / 'blocked'
    blocker.write_text('not a directory')
    store = GameRecordStore(LocalRecordCache(str(blocker)), background=False)

    session = GameSession(graph_puzzle, 'alice', store, clock)
    type_word(session, 'graph')
    verdict = session.submit()

    assert verdict.accepted
    assert session.score == 5
    assert session.save_error


def test_game_date_is_first_save_day(graph_puzzle, clock, local_store):
    session = GameSession(graph_puzzle, 'alice', local_store, clock)
    type_word(session, 'graph')
    session.submit()

    clock.advance()
    type_word(session, 'graphic')
    session.submit()

    saved = local_store.load('alice', graph_puzzle.puzzle_id)
    assert saved.score == 19
    assert saved.game_date == datetime.date(2024, 1, 4)


def test_shuffle_keeps_letters(graph_puzzle, clock):
    session = GameSession(graph_puzzle, 'alice', clock=clock)
    shuffled = session.shuffle(random.Random(3))
    assert sorted(shuffled) == sorted(graph_puzzle.outer_letters)
    assert session.puzzle.outer_letters == graph_puzzle.outer_letters


def test_reset_and_restore(graph_puzzle, clock, local_store):
    session = GameSession(graph_puzzle, 'alice', local_store, clock)
    type_word(session, 'graph')
    session.submit()

    other = graph_puzzle.with_id('forced-1')
    session.reset(other)
    assert session.score == 0
    assert session.words_found == []
    assert local_store.load('alice', graph_puzzle.puzzle_id).score == 5

    session.reset(graph_puzzle)
    session.restore(local_store.load('alice', graph_puzzle.puzzle_id))
    assert session.words_found == ['graph']
    assert session.score == 5


def test_service_restores_progress_on_start(graph_puzzle, clock, local_store):
    service = GameService(JsonPuzzleProvider([graph_puzzle], clock), local_store, clock)
    first = service.start_session('alice')
    service.submit_word(first.session_id, 'graph')

    second = service.start_session('alice')
    assert second.session_id != first.session_id
    assert second.words_found == ['graph']
    assert second.score == 5


def test_service_submit_with_word_replaces_buffer(graph_puzzle, clock):
    service = GameService(JsonPuzzleProvider([graph_puzzle], clock), None, clock)
    session = service.start_session('alice')
    service.append_letter(session.session_id, 'x')

    verdict, session = service.submit_word(session.session_id, 'GRAPHIC')
    assert verdict.is_pangram
    assert session.current_word == ''


def test_service_new_puzzle_and_end(graph_puzzle, clock):
    service = GameService(JsonPuzzleProvider([graph_puzzle], clock), None, clock)
    session = service.start_session('alice')
    service.submit_word(session.session_id, 'graph')

    session = service.new_puzzle(session.session_id)
    assert session.puzzle.puzzle_id != graph_puzzle.puzzle_id
    assert session.score == 0

    assert service.end_session(session.session_id)
    assert not service.end_session(session.session_id)
    assert service.get_session(session.session_id) is None


def test_service_submit_keeps_stray_characters(graph_puzzle, clock):
    service = GameService(JsonPuzzleProvider([graph_puzzle], clock), None, clock)
    session = service.start_session('alice')

    for word in ('gra-ph', 'g r a p h', 'graph!', 'gr4ph'):
        verdict, session = service.submit_word(session.session_id, word)
        assert verdict.reason is RejectionReason.NOT_IN_WORD_LIST
    assert session.words_found == []
    assert session.score == 0

    verdict, session = service.submit_word(session.session_id, ' Graph ')
    assert verdict == Accepted('graph', 5, False)


def test_restore_recomputes_score_from_words(graph_puzzle, clock, make_record):
    session = GameSession(graph_puzzle, 'alice', clock=clock)
    session.restore(make_record(graph_puzzle.puzzle_id, clock.today(), score=500, words=['graph', 'zebra']))
    assert session.words_found == ['graph']
    assert session.score == 5


def test_idle_sessions_expire(graph_puzzle, clock, local_store):
    service = GameService(JsonPuzzleProvider([graph_puzzle], clock), local_store, clock)
    idle = service.start_session('alice')
    service.submit_word(idle.session_id, 'graph')
    active = service.start_session('bob')

    idle.last_activity -= 7200
    result = service.cleanup_expired_sessions(3600)

    assert result == {'cleaned_count': 1, 'session_ids': [idle.session_id]}
    assert service.get_session(idle.session_id) is None
    assert service.get_session(active.session_id) is active

    # Saved progress comes back with the next session
    assert service.start_session('alice').score == 5


def test_input_keeps_a_session_alive(graph_puzzle, clock):
    service = GameService(JsonPuzzleProvider([graph_puzzle], clock), None, clock)
    session = service.start_session('alice')
    session.last_activity -= 7200

    service.append_letter(session.session_id, 'g')
    assert service.cleanup_expired_sessions(3600)['cleaned_count'] == 0
    assert service.get_session(session.session_id) is session


def test_forced_puzzle_resolves_by_id(graph_puzzle, clock):
    provider = JsonPuzzleProvider([graph_puzzle], clock)
    forced = provider.get_forced_puzzle(random.Random(1))
    assert provider.get_puzzle(forced.puzzle_id) is forced
