"""Pairwise Elo - Rank collections by repeated "which is better" judgments.

Keeps a persistent Elo rating per item per cohort, picks the next pair to
compare, supports exact undo of recent judgments and persists the store with
coalesced, strictly ordered writes.

Example:
    ```python
    from pairwise_elo import (
        ArenaSession, FolderParams, JsonFileBackend, MatchOutcome,
        PersistenceGateway, RatingStore, create_definition,
    )

    store = RatingStore()
    gateway = PersistenceGateway(store, JsonFileBackend("./elo.json"))
    await gateway.load()

    session = ArenaSession(store, resolve_members=list_notes, gateway=gateway)
    session.start(create_definition(FolderParams(path="notes")))
    session.choose(MatchOutcome.FIRST_WINS)
    print(session.ranks())
    ```
"""

from ._version import __version__
from .cohorts import (
    create_definition,
    definition_from_key,
    make_cohort_key,
    make_params,
    normalise_tag,
    parse_cohort_key,
    pretty_cohort_label,
)
from .config import (
    DecaySettings,
    DrawGapBoostSettings,
    EloHeuristics,
    LowMatchesBiasSettings,
    MatchmakingSettings,
    PersistenceSettings,
    ProvisionalSettings,
    Settings,
    SimilarRatingsSettings,
    UpsetBoostSettings,
    UpsetProbesSettings,
)
from .exceptions import (
    ConfigError,
    PairwiseEloError,
    PersistenceError,
    SnapshotError,
    UnknownCohortKindError,
)
from .matchmaking import (
    MatchmakingSelector,
    pair_signature,
    pick_anchor_index,
    pick_next_pair,
    pick_opponent_index,
    reservoir_sample,
    weighted_choice,
)
from .models import (
    BaseParams,
    CohortData,
    CohortDefinition,
    EloStore,
    FolderParams,
    FolderRecursiveParams,
    ManualParams,
    MatchApplied,
    MatchOutcome,
    PairPick,
    PlayerRecord,
    PlayerSnapshot,
    RatingStats,
    RatingUpdate,
    TagAllParams,
    TagAnyParams,
    UndoFrame,
    VaultAllParams,
)
from .rating import RatingEngine
from .reporter import TextReporter, print_leaderboard
from .session import ArenaSession
from .storage import (
    BaseSnapshotBackend,
    JsonFileBackend,
    MemoryBackend,
    PersistedData,
    PersistenceGateway,
    RatingStore,
    SaveState,
    get_backend,
)

__all__ = [
    "__version__",
    # Main entry point
    "ArenaSession",
    # Configuration
    "Settings",
    "EloHeuristics",
    "ProvisionalSettings",
    "DecaySettings",
    "UpsetBoostSettings",
    "DrawGapBoostSettings",
    "MatchmakingSettings",
    "LowMatchesBiasSettings",
    "SimilarRatingsSettings",
    "UpsetProbesSettings",
    "PersistenceSettings",
    # Core models
    "MatchOutcome",
    "PlayerRecord",
    "PlayerSnapshot",
    "UndoFrame",
    "CohortData",
    "CohortDefinition",
    "EloStore",
    # Cohort parameters
    "VaultAllParams",
    "FolderParams",
    "FolderRecursiveParams",
    "TagAnyParams",
    "TagAllParams",
    "ManualParams",
    "BaseParams",
    # Result models
    "RatingStats",
    "RatingUpdate",
    "MatchApplied",
    "PairPick",
    # Rating
    "RatingEngine",
    # Matchmaking
    "MatchmakingSelector",
    "pair_signature",
    "pick_anchor_index",
    "pick_opponent_index",
    "pick_next_pair",
    "weighted_choice",
    "reservoir_sample",
    # Cohorts
    "create_definition",
    "definition_from_key",
    "make_cohort_key",
    "make_params",
    "normalise_tag",
    "parse_cohort_key",
    "pretty_cohort_label",
    # Storage
    "RatingStore",
    "PersistedData",
    "PersistenceGateway",
    "SaveState",
    "BaseSnapshotBackend",
    "JsonFileBackend",
    "MemoryBackend",
    "get_backend",
    # Reporter
    "TextReporter",
    "print_leaderboard",
    # Exceptions
    "PairwiseEloError",
    "ConfigError",
    "SnapshotError",
    "PersistenceError",
    "UnknownCohortKindError",
]
