"""
Game Service

Contains the live game session state machine and the registry of
active sessions.
"""

import random
import threading
import time
import uuid
from typing import Dict, List, Optional, Tuple

from ..exceptions import LocalPersistenceError
from ..models.game import Accepted, SessionSnapshot, SessionState, Verdict
from ..models.puzzle import PuzzleDescriptor
from ..models.record import GameRecord, unique_words
from ..utils.clock import SystemClock
from ..utils.game_logger import game_logger
from .scorer import get_rank, score_word, word_score


class GameSession:
    """
    One player's attempt at one puzzle.

    The buffer is EMPTY until a letter is typed and COMPOSING afterwards.
    Submitting always returns the buffer to EMPTY. Accepted words update
    the found list and score and are persisted straight away.
    """

    def __init__(self, puzzle: PuzzleDescriptor, user_id: str, record_store=None, clock=None,
                 session_id: Optional[str] = None):
        self.session_id = session_id
        self.user_id = user_id
        self.record_store = record_store
        self.clock = clock or SystemClock()
        self.lock = threading.Lock()
        self.save_error: Optional[str] = None
        self.last_activity = time.time()
        self._start(puzzle)

    def _start(self, puzzle: PuzzleDescriptor) -> None:
        self.puzzle = puzzle
        self.outer_letters: List[str] = list(puzzle.outer_letters)
        self.current_word = ""
        self.words_found: List[str] = []
        self.score = 0
        self.game_date = None
        self.save_error = None

    @property
    def state(self) -> SessionState:
        return SessionState.COMPOSING if self.current_word else SessionState.EMPTY

    @property
    def pangrams_found(self) -> List[str]:
        return [word for word in self.words_found if word in self.puzzle.pangrams]

    @property
    def rank(self) -> str:
        return get_rank(self.score, self.puzzle.max_score)

    def append_letter(self, letter: str) -> bool:
        """Add one letter to the buffer. Anything but a single letter is ignored."""
        if not isinstance(letter, str) or len(letter) != 1 or not letter.isalpha():
            return False
        self.current_word += letter.lower()
        return True

    def delete_last(self) -> None:
        self.current_word = self.current_word[:-1]

    def clear(self) -> None:
        self.current_word = ""

    def replace_word(self, word: str) -> None:
        """
        Put a whole typed word in the buffer as-is, apart from case and
        surrounding whitespace. Stray characters are left for the scorer
        to reject.
        """
        self.current_word = str(word).strip().lower()

    def submit(self) -> Optional[Verdict]:
        """
        Score the buffer and clear it.

        Returns:
            None for an empty buffer, otherwise the scorer's verdict
        """
        word = self.current_word
        self.current_word = ""

        if not word:
            return None

        verdict = score_word(word, self.puzzle, self.words_found)
        if isinstance(verdict, Accepted):
            self.words_found.append(verdict.word)
            self.score += verdict.score
            self._persist()
        return verdict

    def shuffle(self, rng: Optional[random.Random] = None) -> List[str]:
        """Reorder the outer letters for display. Puzzle and progress are untouched."""
        (rng or random).shuffle(self.outer_letters)
        return list(self.outer_letters)

    def reset(self, puzzle: PuzzleDescriptor) -> None:
        """Switch to another puzzle. The previous puzzle's record is left as saved."""
        self._start(puzzle)

    def restore(self, record: GameRecord) -> None:
        """Continue from a saved record for this puzzle."""
        self.words_found = [word for word in unique_words(record.words_found) if word in self.puzzle.valid_words]
        self.score = sum(word_score(word, self.puzzle) for word in self.words_found)
        self.game_date = record.game_date

    def to_record(self) -> GameRecord:
        if self.game_date is None:
            self.game_date = self.clock.today()
        return GameRecord(
            user_id=self.user_id,
            puzzle_id=self.puzzle.puzzle_id,
            score=self.score,
            words_found=list(self.words_found),
            pangrams_found=self.pangrams_found,
            rank=self.rank,
            game_date=self.game_date
        )

    def _persist(self) -> None:
        if self.record_store is None:
            return
        try:
            saved = self.record_store.save(self.to_record())
        except LocalPersistenceError as e:
            self.save_error = str(e)
            game_logger.log_persistence_event(
                'local_save', self.user_id, self.puzzle.puzzle_id, success=False, error=str(e)
            )
            return
        self.save_error = None
        self.game_date = saved.game_date

    def snapshot(self) -> SessionSnapshot:
        puzzle = self.puzzle.to_public_dict()
        puzzle['outer_letters'] = list(self.outer_letters)
        return SessionSnapshot(
            session_id=self.session_id,
            user_id=self.user_id,
            puzzle=puzzle,
            state=self.state.value,
            current_word=self.current_word,
            words_found=list(self.words_found),
            pangrams_found=self.pangrams_found,
            score=self.score,
            rank=self.rank
        )


class GameService:
    """
    Core game service managing multiple game sessions.

    This class handles:
    - Session management with unique session IDs
    - Puzzle lookup through the puzzle provider
    - Restoring saved progress when a session starts
    - Serialising input per session
    - Expiring sessions left idle
    """

    def __init__(self, puzzle_provider, record_store=None, clock=None):
        self.puzzle_provider = puzzle_provider
        self.record_store = record_store
        self.clock = clock or SystemClock()
        self.sessions: Dict[str, GameSession] = {}

    def start_session(self, user_id: str, puzzle_id: Optional[str] = None) -> GameSession:
        """
        Creates a session on a puzzle (today's when no id is given) and
        restores any saved progress for it.

        Raises:
            PuzzleNotFoundError: If the provider cannot supply the puzzle
        """
        puzzle = self.puzzle_provider.get_puzzle(puzzle_id)
        session_id = str(uuid.uuid4())
        session = GameSession(puzzle, user_id, self.record_store, self.clock, session_id)
        self._restore(session)
        self.sessions[session_id] = session

        game_logger.log_game_event(
            puzzle.puzzle_id, 'puzzle_started', user_id,
            session_id=session_id, restored_words=len(session.words_found)
        )
        return session

    def _restore(self, session: GameSession) -> None:
        if self.record_store is None:
            return
        saved = self.record_store.load(session.user_id, session.puzzle.puzzle_id)
        if saved is not None:
            session.restore(saved)

    def get_session(self, session_id: str) -> Optional[GameSession]:
        return self.sessions.get(session_id)

    def _require(self, session_id: str) -> GameSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise KeyError(session_id)
        session.last_activity = time.time()
        return session

    def append_letter(self, session_id: str, letter: str) -> Tuple[bool, GameSession]:
        session = self._require(session_id)
        with session.lock:
            return session.append_letter(letter), session

    def delete_last(self, session_id: str) -> GameSession:
        session = self._require(session_id)
        with session.lock:
            session.delete_last()
        return session

    def clear(self, session_id: str) -> GameSession:
        session = self._require(session_id)
        with session.lock:
            session.clear()
        return session

    def submit_word(self, session_id: str, word: Optional[str] = None) -> Tuple[Optional[Verdict], GameSession]:
        """
        Submit the buffer, or a whole typed word when one is given.

        Returns:
            Tuple of (verdict or None for an empty submission, session)
        """
        session = self._require(session_id)
        with session.lock:
            if word is not None:
                session.replace_word(word)
            verdict = session.submit()

        if isinstance(verdict, Accepted):
            event = 'pangram_found' if verdict.is_pangram else 'word_found'
            game_logger.log_game_event(
                session.puzzle.puzzle_id, event, session.user_id,
                word=verdict.word, points=verdict.score, total_score=session.score
            )
        return verdict, session

    def shuffle(self, session_id: str) -> GameSession:
        session = self._require(session_id)
        with session.lock:
            session.shuffle()
        return session

    def new_puzzle(self, session_id: str) -> GameSession:
        """Move a session onto a forced random puzzle with a fresh id."""
        session = self._require(session_id)
        puzzle = self.puzzle_provider.get_forced_puzzle()
        with session.lock:
            session.reset(puzzle)
        game_logger.log_game_event(
            puzzle.puzzle_id, 'puzzle_forced', session.user_id, session_id=session_id
        )
        return session

    def end_session(self, session_id: str) -> bool:
        """
        Removes a session from memory. Saved records are kept.

        Returns:
            bool: True if the session was removed, False if not found
        """
        return self.sessions.pop(session_id, None) is not None

    def cleanup_expired_sessions(self, max_idle_seconds: float, now: Optional[float] = None) -> Dict:
        """
        Drops sessions with no input for longer than max_idle_seconds.
        Their progress is already saved, so a new session picks it up.

        Returns:
            Dict with cleaned_count and the removed session ids
        """
        now = time.time() if now is None else now
        expired = [
            session_id for session_id, session in list(self.sessions.items())
            if now - session.last_activity > max_idle_seconds
        ]
        for session_id in expired:
            session = self.sessions.pop(session_id, None)
            if session is not None:
                game_logger.log_game_event(
                    session.puzzle.puzzle_id, 'session_expired', session.user_id,
                    session_id=session_id, idle_seconds=round(now - session.last_activity, 1)
                )
        return {'cleaned_count': len(expired), 'session_ids': expired}


# Global service instance
_game_service = None


def get_game_service() -> Optional[GameService]:
    """Get the global game service instance."""
    return _game_service


def initialize_game_service(puzzle_provider, record_store=None, clock=None) -> GameService:
    """Initialize the global game service instance."""
    global _game_service
    _game_service = GameService(puzzle_provider, record_store, clock)
    return _game_service
