"""
Record Data Models

Durable per-puzzle game records and the statistics derived from them.
Both types validate their payloads when read back from storage, so a
malformed document never reaches the statistics code.
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config.game_settings import BEGINNER_RANK, RANK_ORDER
from ..exceptions import RecordValidationError


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def parse_day(value: Any) -> datetime.date:
    """
    Normalize a date-like value to a calendar day.

    Accepts ``date`` objects, ``datetime`` objects (aware ones are
    converted to UTC first) and ISO-8601 strings.

    Raises:
        ValueError: If the value cannot be read as a calendar day
    """
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        return datetime.date.fromisoformat(value[:10])
    raise ValueError(f"Not a calendar date: {value!r}")


def _parse_timestamp(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        timestamp = value
    elif isinstance(value, str):
        timestamp = datetime.datetime.fromisoformat(value.replace('Z', '+00:00'))
    else:
        raise ValueError(f"Not a timestamp: {value!r}")
    if timestamp.tzinfo is None:
        # Mongo hands back naive UTC datetimes
        timestamp = timestamp.replace(tzinfo=datetime.timezone.utc)
    return timestamp


def _require_text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise RecordValidationError(f"Field '{key}' must be a non-empty string")
    return value


def _require_count(data: Dict[str, Any], key: str, default: Optional[int] = None) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RecordValidationError(f"Field '{key}' must be a non-negative integer")
    return value


def _word_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(word, str) for word in value):
        raise RecordValidationError(f"Field '{key}' must be a list of strings")
    return unique_words(value)


def unique_words(words) -> List[str]:
    """Lowercase and de-duplicate words, keeping first-seen order."""
    seen = []
    for word in words:
        normalized = word.strip().lower()
        if normalized and normalized not in seen:
            seen.append(normalized)
    return seen


@dataclass
class GameRecord:
    """One user's attempt at one puzzle. Keyed by (user_id, puzzle_id)."""
    user_id: str
    puzzle_id: str
    score: int
    words_found: List[str]
    pangrams_found: List[str]
    rank: str
    game_date: datetime.date
    updated_at: datetime.datetime = field(default_factory=utcnow)

    @property
    def key(self):
        return (self.user_id, self.puzzle_id)

    def to_dict(self) -> Dict[str, Any]:
        """Document form used by the local cache, the remote store and the API."""
        return {
            'user_id': self.user_id,
            'puzzle_id': self.puzzle_id,
            'score': self.score,
            'words_found': list(self.words_found),
            'pangrams_found': list(self.pangrams_found),
            'rank': self.rank,
            'game_date': self.game_date.isoformat() if isinstance(self.game_date, datetime.date) else self.game_date,
            'updated_at': self.updated_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameRecord':
        """
        Validate and build a record from a stored or submitted document.

        Raises:
            RecordValidationError: If any required field is missing or malformed
        """
        if not isinstance(data, dict):
            raise RecordValidationError("Game record must be an object")

        user_id = _require_text(data, 'user_id')
        puzzle_id = _require_text(data, 'puzzle_id')
        score = _require_count(data, 'score')
        words_found = _word_list(data, 'words_found')
        pangrams_found = _word_list(data, 'pangrams_found')

        stray = [word for word in pangrams_found if word not in words_found]
        if stray:
            raise RecordValidationError(f"Pangrams not in words_found: {stray}")

        rank = data.get('rank', BEGINNER_RANK)
        if rank not in RANK_ORDER:
            raise RecordValidationError(f"Unknown rank: {rank!r}")

        try:
            game_date = parse_day(data.get('game_date'))
        except ValueError as e:
            raise RecordValidationError(f"Field 'game_date' is invalid: {e}")

        try:
            updated_at = _parse_timestamp(data['updated_at']) if data.get('updated_at') else utcnow()
        except ValueError as e:
            raise RecordValidationError(f"Field 'updated_at' is invalid: {e}")

        return cls(
            user_id=user_id,
            puzzle_id=puzzle_id,
            score=score,
            words_found=words_found,
            pangrams_found=pangrams_found,
            rank=rank,
            game_date=game_date,
            updated_at=updated_at
        )


@dataclass
class UserStats:
    """Statistics derived from a user's full record history."""
    user_id: str
    games_played: int = 0
    current_streak: int = 0
    best_streak: int = 0
    best_rank: str = BEGINNER_RANK
    last_played_date: Optional[datetime.date] = None
    total_score: int = 0
    average_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'games_played': self.games_played,
            'current_streak': self.current_streak,
            'best_streak': self.best_streak,
            'best_rank': self.best_rank,
            'last_played_date': self.last_played_date.isoformat() if self.last_played_date else None,
            'total_score': self.total_score,
            'average_score': self.average_score
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserStats':
        """
        Validate and build a stats snapshot from a stored document.

        Raises:
            RecordValidationError: If any field is missing or malformed
        """
        if not isinstance(data, dict):
            raise RecordValidationError("Stats snapshot must be an object")

        best_rank = data.get('best_rank') or BEGINNER_RANK
        if best_rank not in RANK_ORDER:
            raise RecordValidationError(f"Unknown rank: {best_rank!r}")

        last_played = data.get('last_played_date')
        try:
            last_played_date = parse_day(last_played) if last_played else None
        except ValueError as e:
            raise RecordValidationError(f"Field 'last_played_date' is invalid: {e}")

        return cls(
            user_id=_require_text(data, 'user_id'),
            games_played=_require_count(data, 'games_played', 0),
            current_streak=_require_count(data, 'current_streak', 0),
            best_streak=_require_count(data, 'best_streak', 0),
            best_rank=best_rank,
            last_played_date=last_played_date,
            total_score=_require_count(data, 'total_score', 0),
            average_score=_require_count(data, 'average_score', 0)
        )
