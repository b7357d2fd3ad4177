"""
Game Configuration Constants Module

Scoring rules, the rank table and the puzzle pool loader. All game
parameters are centralized here so the scorer, the session and the
statistics code agree on the same numbers.
"""

import json
import os
from typing import Dict, Final, List, Tuple

# Core scoring constants
MIN_WORD_LENGTH: Final[int] = 4
"""
Shortest word accepted by the scorer. Words of exactly this length score 1.
"""

PANGRAM_BONUS: Final[int] = 7
"""
Bonus added to the letter count of a pangram.
"""

OUTER_LETTER_COUNT: Final[int] = 6

HISTORY_LIMIT: Final[int] = 50

# Rank table, lowest first. Each rank applies while the score percentage
# is below its upper bound; the last rank has no upper bound.
RANK_THRESHOLDS: Final[Tuple[Tuple[str, float], ...]] = (
    ("Good Start", 5),
    ("Moving Up", 10),
    ("Good", 20),
    ("Solid", 30),
    ("Nice", 40),
    ("Great", 50),
    ("Amazing", 60),
    ("Genius", 70),
    ("Queen Bee", 100),
)

BEGINNER_RANK: Final[str] = "Beginner"
PERFECT_RANK: Final[str] = "Perfect!"

RANK_ORDER: Final[Tuple[str, ...]] = (
    (BEGINNER_RANK,) + tuple(name for name, _ in RANK_THRESHOLDS) + (PERFECT_RANK,)
)


def load_puzzle_pool(json_file_path: str) -> List[Dict]:
    """
    Load raw puzzle descriptors from a JSON file.

    Returns:
        List[Dict]: Puzzle objects exactly as stored in the file

    Raises:
        FileNotFoundError: If the puzzle file is not found
        ValueError: If the JSON is malformed or not a non-empty array
    """
    try:
        with open(json_file_path, 'r', encoding='utf-8') as f:
            pool = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Puzzle file not found: {json_file_path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {os.path.basename(json_file_path)}: {e}")

    if not isinstance(pool, list):
        raise ValueError("Puzzle file must contain an array of puzzles")

    if not pool:
        raise ValueError("Puzzle pool cannot be empty")

    return pool
