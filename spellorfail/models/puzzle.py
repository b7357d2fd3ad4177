"""
Puzzle Data Models

Read-only description of one puzzle as supplied by the puzzle provider.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Tuple

from ..exceptions import RecordValidationError


@dataclass(frozen=True)
class PuzzleDescriptor:
    """One day's (or one forced instance's) letter set and word list."""
    puzzle_id: str
    center_letter: str
    outer_letters: Tuple[str, ...]
    valid_words: FrozenSet[str]
    pangrams: FrozenSet[str]
    max_score: int

    @property
    def letters(self) -> Tuple[str, ...]:
        """All seven letters, center first."""
        return (self.center_letter,) + self.outer_letters

    def with_id(self, puzzle_id: str) -> 'PuzzleDescriptor':
        """Return the same letters and words under a different puzzle id."""
        return PuzzleDescriptor(
            puzzle_id=puzzle_id,
            center_letter=self.center_letter,
            outer_letters=self.outer_letters,
            valid_words=self.valid_words,
            pangrams=self.pangrams,
            max_score=self.max_score
        )

    def to_public_dict(self) -> Dict[str, Any]:
        """Client-facing view. The word list stays on the server."""
        return {
            'puzzle_id': self.puzzle_id,
            'center_letter': self.center_letter,
            'outer_letters': list(self.outer_letters),
            'max_score': self.max_score,
            'word_count': len(self.valid_words),
            'pangram_count': len(self.pangrams)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PuzzleDescriptor':
        """
        Build a descriptor from a stored puzzle object.

        Raises:
            RecordValidationError: If a required field is missing or mistyped
        """
        if not isinstance(data, dict):
            raise RecordValidationError("Puzzle must be an object")

        try:
            puzzle_id = str(data['puzzle_id'])
            center_letter = str(data['center_letter']).lower()
            outer_letters = tuple(str(letter).lower() for letter in data['outer_letters'])
            valid_words = frozenset(str(word).lower() for word in data['valid_words'])
            pangrams = frozenset(str(word).lower() for word in data.get('pangrams', []))
            max_score = int(data['max_score'])
        except KeyError as e:
            raise RecordValidationError(f"Puzzle is missing field {e}")
        except (TypeError, ValueError) as e:
            raise RecordValidationError(f"Puzzle has an invalid field: {e}")

        return cls(
            puzzle_id=puzzle_id,
            center_letter=center_letter,
            outer_letters=outer_letters,
            valid_words=valid_words,
            pangrams=pangrams,
            max_score=max_score
        )
