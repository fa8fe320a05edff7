"""Custom exceptions for Pairwise Elo.

Most core operations never raise: lookups on unknown cohorts or items return
empty results, and persistence failures are logged. The exceptions here mark
the few places where a caller (or the persistence layer itself) needs to
react to a failure.
"""

from __future__ import annotations


class PairwiseEloError(Exception):
    """Base exception for all Pairwise Elo errors."""

    pass


class ConfigError(PairwiseEloError):
    """Error in configuration.

    Raised when a settings file is unreadable or contains invalid values.
    """

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        full_message = message
        if field:
            full_message = f"Configuration error in '{field}': {message}"
        super().__init__(full_message)


class SnapshotError(PairwiseEloError):
    """Persisted snapshot could not be decoded.

    Raised while decoding stored bytes that are not valid JSON or do not match
    the expected shape. The store catches it and falls back to an empty
    store.
    """

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        full_message = f"Malformed snapshot: {message}"
        if source:
            full_message += f"\nSource: {source}"
        super().__init__(full_message)


class PersistenceError(PairwiseEloError):
    """Writing a snapshot to durable storage failed.

    Raised by snapshot backends. The persistence gateway logs it and keeps
    the in-memory store as the source of truth.
    """

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        full_message = f"Could not persist snapshot: {message}"
        if path:
            full_message += f"\nPath: {path}"
        super().__init__(full_message)


class UnknownCohortKindError(PairwiseEloError):
    """Unsupported cohort kind requested.

    Raised when building a cohort definition for a kind that has no
    parameter variant.
    """

    def __init__(self, kind: str, supported: list[str]):
        self.kind = kind
        self.supported = supported
        message = (
            f"Unknown cohort kind '{kind}'.\n"
            f"Supported kinds: {', '.join(sorted(supported))}"
        )
        super().__init__(message)
