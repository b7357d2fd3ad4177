class SpellOrFailError(Exception):
    """Base exception for the Spell or Fail server."""


class PersistenceError(SpellOrFailError):
    """Raised when a game record or stats snapshot cannot be stored or read."""


class LocalPersistenceError(PersistenceError):
    """Raised when the local cache cannot be written. Fatal to that save."""


class RemotePersistenceError(PersistenceError):
    """Raised when the remote store rejects or cannot be reached for an operation."""


class RecordValidationError(SpellOrFailError):
    """Raised when a record or stats payload is missing fields or has bad types."""


class PuzzleNotFoundError(SpellOrFailError):
    """Raised when the puzzle provider cannot resolve a puzzle id."""
