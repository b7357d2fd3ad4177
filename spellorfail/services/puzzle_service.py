"""
Puzzle Service

Loads pre-built puzzle descriptors and hands them out by date key.
Daily puzzles are deterministic per key; forced puzzles get an id that
no calendar date can produce.
"""

import datetime
import hashlib
import random
import time
from typing import Dict, List, Optional

from ..config.game_settings import MIN_WORD_LENGTH, OUTER_LETTER_COUNT, load_puzzle_pool
from ..exceptions import PuzzleNotFoundError
from ..models.puzzle import PuzzleDescriptor
from ..utils.clock import SystemClock


class JsonPuzzleProvider:
    """
    Puzzle provider backed by a JSON file of descriptors.

    This class handles:
    - Lookup of a stored puzzle by its id
    - Deterministic assignment of a pool puzzle to a calendar date
    - Minting of non-colliding ids for forced puzzles
    """

    def __init__(self, descriptors: List[PuzzleDescriptor], clock=None):
        self.clock = clock or SystemClock()
        self.pool: List[PuzzleDescriptor] = list(descriptors)
        self.by_id: Dict[str, PuzzleDescriptor] = {puzzle.puzzle_id: puzzle for puzzle in self.pool}

    @classmethod
    def from_file(cls, puzzle_file: str, clock=None) -> 'JsonPuzzleProvider':
        """Load every descriptor stored in a puzzle file."""
        descriptors = [PuzzleDescriptor.from_dict(raw) for raw in load_puzzle_pool(puzzle_file)]
        return cls(descriptors, clock)

    def today_key(self) -> str:
        return self.clock.today().isoformat()

    def get_puzzle(self, date_key: Optional[str] = None) -> PuzzleDescriptor:
        """
        Returns the puzzle for a date key (today when omitted).

        A key stored in the file returns that descriptor. Any other key
        maps to a pool entry chosen by hashing the key, re-keyed to the
        requested id, so the same key always yields the same puzzle.

        Raises:
            PuzzleNotFoundError: If the pool is empty
        """
        key = date_key or self.today_key()

        if key in self.by_id:
            return self.by_id[key]

        if not self.pool:
            raise PuzzleNotFoundError(f"No puzzle available for {key}")

        digest = hashlib.sha256(key.encode('utf-8')).hexdigest()
        chosen = self.pool[int(digest, 16) % len(self.pool)]
        return chosen.with_id(key)

    def get_forced_puzzle(self, rng: Optional[random.Random] = None) -> PuzzleDescriptor:
        """
        Returns a random puzzle under a freshly minted id.

        The id has the shape ``YYYY-MM-DD-<epoch ms>-<hex>``, which a plain
        calendar key can never take.
        """
        if not self.pool:
            raise PuzzleNotFoundError("No puzzle available")

        rng = rng or random.Random()
        offset = rng.randint(1, 365)
        day = self.clock.today() + datetime.timedelta(days=offset)
        puzzle_id = f"{day.isoformat()}-{int(time.time() * 1000)}-{rng.getrandbits(16):04x}"

        chosen = rng.choice(self.pool).with_id(puzzle_id)
        # Later lookups by id, e.g. a saved record for this puzzle, must resolve to it
        self.by_id[puzzle_id] = chosen
        return chosen

    def validate_puzzle_pool(self) -> bool:
        """
        Validates the integrity of every descriptor in the pool.

        Checks that:
        1. Outer letters are distinct, do not repeat the center, and number six
        2. Every valid word contains the center letter and is long enough
        3. Every valid word uses only puzzle letters
        4. Pangrams are valid words that use all seven letters

        Raises:
            ValueError: If any check fails, naming the puzzle and the problem
        """
        for puzzle in self.pool:
            letters = set(puzzle.letters)
            if len(puzzle.outer_letters) != OUTER_LETTER_COUNT or len(letters) != OUTER_LETTER_COUNT + 1:
                raise ValueError(f"Puzzle {puzzle.puzzle_id} must have 7 distinct letters")

            for word in puzzle.valid_words:
                if len(word) < MIN_WORD_LENGTH:
                    raise ValueError(f"Puzzle {puzzle.puzzle_id}: '{word}' is too short")
                if puzzle.center_letter not in word:
                    raise ValueError(f"Puzzle {puzzle.puzzle_id}: '{word}' lacks the center letter")
                if not set(word) <= letters:
                    raise ValueError(f"Puzzle {puzzle.puzzle_id}: '{word}' uses letters outside the puzzle")

            for pangram in puzzle.pangrams:
                if pangram not in puzzle.valid_words:
                    raise ValueError(f"Puzzle {puzzle.puzzle_id}: pangram '{pangram}' is not a valid word")
                if set(pangram) != letters:
                    raise ValueError(f"Puzzle {puzzle.puzzle_id}: '{pangram}' does not use all letters")

        return True


# Global service instance
_puzzle_provider = None


def get_puzzle_provider() -> Optional[JsonPuzzleProvider]:
    """Get the global puzzle provider instance."""
    return _puzzle_provider


def initialize_puzzle_provider(puzzle_file: str, clock=None) -> JsonPuzzleProvider:
    """Initialize the global puzzle provider instance."""
    global _puzzle_provider
    _puzzle_provider = JsonPuzzleProvider.from_file(puzzle_file, clock)
    return _puzzle_provider
