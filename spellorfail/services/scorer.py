"""
Scorer

Pure word validation and scoring against a puzzle descriptor, plus the
score-to-rank mapping shared by sessions and statistics.
"""

import dataclasses
from typing import Iterable

from ..config.game_settings import (
    MIN_WORD_LENGTH, PANGRAM_BONUS, RANK_THRESHOLDS, RANK_ORDER, BEGINNER_RANK, PERFECT_RANK
)
from ..models.game import Accepted, Rejected, RejectionReason, Verdict
from ..models.puzzle import PuzzleDescriptor
from ..models.record import GameRecord, unique_words


def word_score(word: str, puzzle: PuzzleDescriptor) -> int:
    """
    Points for a valid word.

    Four-letter words score 1, pangrams score their length plus the
    bonus, every other word scores its length.
    """
    if len(word) == MIN_WORD_LENGTH:
        return 1
    if word in puzzle.pangrams:
        return len(word) + PANGRAM_BONUS
    return len(word)


def score_word(word: str, puzzle: PuzzleDescriptor, found_words: Iterable[str] = ()) -> Verdict:
    """
    Validate a submitted word and score it.

    The word list supplied with the puzzle is the only source of validity.

    Args:
        word: Raw submitted text, any case
        puzzle: Active puzzle
        found_words: Words already found in this session

    Returns:
        Accepted(word, score, is_pangram) or Rejected(word, reason)
    """
    normalized = (word or "").strip().lower()

    if len(normalized) < MIN_WORD_LENGTH:
        return Rejected(normalized, RejectionReason.TOO_SHORT)

    if puzzle.center_letter not in normalized:
        return Rejected(normalized, RejectionReason.MISSING_CENTER_LETTER)

    if normalized in set(found_words):
        return Rejected(normalized, RejectionReason.ALREADY_FOUND)

    if normalized not in puzzle.valid_words:
        return Rejected(normalized, RejectionReason.NOT_IN_WORD_LIST)

    return Accepted(
        word=normalized,
        score=word_score(normalized, puzzle),
        is_pangram=normalized in puzzle.pangrams
    )


def get_rank(score: int, max_score: int) -> str:
    """
    Rank name for a score as a share of the puzzle's maximum.

    The percentage can exceed 100 when the provider's max_score is lower
    than the points actually available; anything at or above 100 is
    the top rank.
    """
    if max_score <= 0:
        return BEGINNER_RANK

    percentage = (score / max_score) * 100
    if percentage == 0:
        return BEGINNER_RANK

    for name, upper_bound in RANK_THRESHOLDS:
        if percentage < upper_bound:
            return name
    return PERFECT_RANK


def rank_index(rank: str) -> int:
    """Position of a rank in the rank order, -1 when unknown."""
    try:
        return RANK_ORDER.index(rank)
    except ValueError:
        return -1


def higher_rank(first: str, second: str) -> str:
    """Return whichever rank sits higher in the rank order."""
    return second if rank_index(second) > rank_index(first) else first


def rescore_record(record: GameRecord, puzzle: PuzzleDescriptor) -> GameRecord:
    """
    Rebuild a client-supplied record from its words alone.

    Words outside the puzzle's list are dropped; score, pangrams and rank
    are recomputed, so a record can never claim more than its words earn.
    """
    words = [word for word in unique_words(record.words_found) if word in puzzle.valid_words]
    score = sum(word_score(word, puzzle) for word in words)
    return dataclasses.replace(
        record,
        words_found=words,
        pangrams_found=[word for word in words if word in puzzle.pangrams],
        score=score,
        rank=get_rank(score, puzzle.max_score)
    )
