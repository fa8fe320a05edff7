"""Storage module for Pairwise Elo.

Provides the rating store and its persistence:
- RatingStore: Player records per cohort, undo, ranks, cohort rename/merge
- PersistenceGateway: Debounced, strictly ordered snapshot writes
- JsonFileBackend / MemoryBackend: Where snapshots live

Example:
    ```python
    from pairwise_elo.storage import JsonFileBackend, PersistenceGateway, RatingStore

    store = RatingStore()
    gateway = PersistenceGateway(store, JsonFileBackend("./elo.json"))
    await gateway.load()
    ```
"""

from .backends import BaseSnapshotBackend, JsonFileBackend, MemoryBackend
from .gateway import PersistenceGateway, SaveState
from .store import PersistedData, RatingStore


def get_backend(name: str, **kwargs) -> BaseSnapshotBackend:
    """Factory function to get a snapshot backend by name.

    Args:
        name: Backend name. One of:
            - "json-file": JSON file on disk (requires ``path``)
            - "memory": In-process bytes
        **kwargs: Additional arguments passed to the backend constructor.

    Returns:
        Initialized backend instance.

    Raises:
        ValueError: If backend name is not recognized.
    """
    backends = {
        "json-file": JsonFileBackend,
        "memory": MemoryBackend,
    }

    if name not in backends:
        valid = list(backends.keys())
        raise ValueError(f"Unknown backend '{name}'. Valid backends: {valid}")

    return backends[name](**kwargs)


__all__ = [
    # Store
    "RatingStore",
    "PersistedData",
    # Persistence
    "PersistenceGateway",
    "SaveState",
    # Backends
    "BaseSnapshotBackend",
    "JsonFileBackend",
    "MemoryBackend",
    # Factory
    "get_backend",
]
