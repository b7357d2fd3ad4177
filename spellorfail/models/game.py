"""
Game Data Models

Contains session states, scorer verdicts and the session snapshot
returned to clients.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union


class SessionState(Enum):
    """Input buffer state of a live game session."""
    EMPTY = "EMPTY"
    COMPOSING = "COMPOSING"


class RejectionReason(Enum):
    """Why the scorer refused a word, in the order the checks run."""
    TOO_SHORT = "TOO_SHORT"
    MISSING_CENTER_LETTER = "MISSING_CENTER_LETTER"
    ALREADY_FOUND = "ALREADY_FOUND"
    NOT_IN_WORD_LIST = "NOT_IN_WORD_LIST"

    @property
    def message(self) -> str:
        return _REJECTION_MESSAGES[self]


_REJECTION_MESSAGES = {
    RejectionReason.TOO_SHORT: "Word must be at least 4 letters!",
    RejectionReason.MISSING_CENTER_LETTER: "Word must contain the center letter!",
    RejectionReason.ALREADY_FOUND: "Already found!",
    RejectionReason.NOT_IN_WORD_LIST: "Not in word list!",
}


@dataclass(frozen=True)
class Accepted:
    word: str
    score: int
    is_pangram: bool

    accepted = True

    def to_dict(self) -> Dict:
        return {
            'accepted': True,
            'word': self.word,
            'score': self.score,
            'is_pangram': self.is_pangram
        }


@dataclass(frozen=True)
class Rejected:
    word: str
    reason: RejectionReason

    accepted = False

    def to_dict(self) -> Dict:
        return {
            'accepted': False,
            'word': self.word,
            'reason': self.reason.value,
            'message': self.reason.message
        }


Verdict = Union[Accepted, Rejected]


@dataclass
class SessionSnapshot:
    """Server-side session state representation (no word list)."""
    session_id: Optional[str]
    user_id: str
    puzzle: Dict
    state: str
    current_word: str
    words_found: List[str]
    pangrams_found: List[str]
    score: int
    rank: str
