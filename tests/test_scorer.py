import dataclasses

import pytest

from spellorfail.models import Accepted, Rejected, RejectionReason
from spellorfail.services.scorer import get_rank, higher_rank, rank_index, rescore_record, score_word, word_score


def test_five_letter_word_scores_its_length(graph_puzzle):
    verdict = score_word('graph', graph_puzzle)
    assert verdict == Accepted(word='graph', score=5, is_pangram=False)


def test_pangram_scores_length_plus_bonus(graph_puzzle):
    verdict = score_word('graphic', graph_puzzle)
    assert verdict == Accepted(word='graphic', score=14, is_pangram=True)


def test_four_letter_word_scores_one(graph_puzzle):
    puzzle = dataclasses.replace(graph_puzzle, valid_words=frozenset({'crag', 'graph'}))
    assert word_score('crag', puzzle) == 1
    assert score_word('crag', puzzle).score == 1


def test_input_is_normalized(graph_puzzle):
    verdict = score_word('  GRAPH ', graph_puzzle)
    assert isinstance(verdict, Accepted)
    assert verdict.word == 'graph'


@pytest.mark.parametrize('word, reason', [
    ('gra', RejectionReason.TOO_SHORT),
    ('', RejectionReason.TOO_SHORT),
    ('chip', RejectionReason.MISSING_CENTER_LETTER),
    ('grip', RejectionReason.NOT_IN_WORD_LIST),
])
def test_rejections(graph_puzzle, word, reason):
    verdict = score_word(word, graph_puzzle)
    assert isinstance(verdict, Rejected)
    assert verdict.reason is reason
    assert verdict.accepted is False


def test_already_found_is_checked_before_word_list(graph_puzzle):
    verdict = score_word('graph', graph_puzzle, ['graph'])
    assert verdict.reason is RejectionReason.ALREADY_FOUND


def test_short_word_wins_over_missing_center(graph_puzzle):
    # Both rules fail; length is checked first
    assert score_word('ach', graph_puzzle).reason is RejectionReason.TOO_SHORT


@pytest.mark.parametrize('score, max_score, rank', [
    (0, 100, 'Beginner'),
    (1, 100, 'Good Start'),
    (7, 100, 'Moving Up'),
    (15, 100, 'Good'),
    (25, 100, 'Solid'),
    (35, 100, 'Nice'),
    (45, 100, 'Great'),
    (55, 100, 'Amazing'),
    (65, 100, 'Genius'),
    (85, 100, 'Queen Bee'),
    (99, 100, 'Queen Bee'),
    (100, 100, 'Perfect!'),
    (19, 15, 'Perfect!'),
    (10, 0, 'Beginner'),
])
def test_rank_thresholds(score, max_score, rank):
    assert get_rank(score, max_score) == rank


def test_higher_rank():
    assert higher_rank('Good', 'Genius') == 'Genius'
    assert higher_rank('Perfect!', 'Beginner') == 'Perfect!'
    assert higher_rank('Nice', 'Nice') == 'Nice'


def test_unknown_rank_sorts_lowest():
    assert rank_index('Grand Master') == -1
    assert rank_index('Beginner') == 0
    assert higher_rank('Grand Master', 'Beginner') == 'Beginner'


def test_rescore_record_trusts_only_listed_words(graph_puzzle, make_record):
    claimed = make_record(graph_puzzle.puzzle_id, graph_puzzle.puzzle_id, score=500,
                          words=['graphic', 'zebra', 'GRAPH'], rank='Perfect!')
    rescored = rescore_record(claimed, graph_puzzle)
    assert rescored.words_found == ['graphic', 'graph']
    assert rescored.pangrams_found == ['graphic']
    assert rescored.score == 19
    assert rescored.rank == 'Perfect!'

    empty = rescore_record(make_record(graph_puzzle.puzzle_id, graph_puzzle.puzzle_id, score=80,
                                       words=['zebra'], rank='Genius'), graph_puzzle)
    assert (empty.score, empty.rank, empty.words_found) == (0, 'Beginner', [])
