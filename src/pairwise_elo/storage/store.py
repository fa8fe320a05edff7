"""Rating store: per-cohort player records, undo and cohort identity.

The store exclusively owns the ``EloStore`` aggregate. Every rating change
goes through ``apply_match``, which returns an ``UndoFrame`` holding full
pre-match snapshots; ``revert`` copies those snapshots back, so undo is exact
no matter how nonlinear the effective K-factor is.

Lookups on unknown cohorts or items never raise: they return ``False``,
``None`` or an empty result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import ValidationError

from ..cohorts.definitions import now_ms
from ..config import Settings
from ..exceptions import SnapshotError
from ..models import (
    CamelModel,
    CohortData,
    CohortDefinition,
    EloStore,
    MatchApplied,
    MatchOutcome,
    PlayerRecord,
    PlayerSnapshot,
    RatingStats,
    UndoFrame,
)
from ..rating import RatingEngine

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class PersistedData(CamelModel):
    """Root of the persisted snapshot: ``{version, settings, store}``."""

    version: int = SNAPSHOT_VERSION
    settings: Settings | None = None
    store: EloStore | None = None


class _RawSnapshot(CamelModel):
    """Snapshot envelope whose sections are validated one at a time."""

    version: int = SNAPSHOT_VERSION
    settings: Any = None
    store: dict[str, Any] | None = None


def _snapshot(player_id: str, player: PlayerRecord) -> PlayerSnapshot:
    return PlayerSnapshot(
        id=player_id,
        rating=player.rating,
        matches=player.matches,
        wins=player.wins,
    )


class RatingStore:
    """Owns player records for every cohort plus the cohort definitions.

    Example:
        ```python
        store = RatingStore(Settings(k_factor=24))
        applied = store.apply_match("folder:notes", "a", "b", MatchOutcome.FIRST_WINS)
        store.get_player("folder:notes", "a").rating  # 1512.0

        store.revert(applied.undo)
        store.get_player("folder:notes", "a").rating  # 1500.0
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: EloStore | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the store.

        Args:
            settings: Rating settings (K-factor and heuristics).
            store: Existing aggregate to own. Defaults to an empty store.
            clock: Returns the current time in epoch milliseconds.
        """
        self.settings = settings or Settings()
        self.store = store or EloStore()
        self._clock = clock

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def ensure_player(self, cohort_key: str, item_id: str) -> PlayerRecord:
        """Return the player record, creating it with defaults if absent."""
        cohort = self.store.cohorts.setdefault(cohort_key, CohortData())
        player = cohort.players.get(item_id)
        if player is None:
            player = PlayerRecord()
            cohort.players[item_id] = player
        return player

    def get_cohort(self, cohort_key: str) -> CohortData | None:
        return self.store.cohorts.get(cohort_key)

    def get_player(self, cohort_key: str, item_id: str) -> PlayerRecord | None:
        cohort = self.store.cohorts.get(cohort_key)
        if cohort is None:
            return None
        return cohort.players.get(item_id)

    def get_stats(self, cohort_key: str, item_id: str) -> RatingStats:
        """Rating and match count for matchmaking; unknown items look fresh."""
        player = self.get_player(cohort_key, item_id)
        if player is None:
            return RatingStats()
        return RatingStats(rating=player.rating, matches=player.matches)

    def apply_match(
        self,
        cohort_key: str,
        id_a: str,
        id_b: str,
        outcome: MatchOutcome,
    ) -> MatchApplied:
        """Record one comparison and update both players.

        Args:
            cohort_key: Cohort the comparison belongs to.
            id_a: Identity of the first (left) item.
            id_b: Identity of the second (right) item.
            outcome: Result from the first item's point of view.

        Returns:
            MatchApplied with the winner's id (``None`` on a draw) and the
            frame that reverses this match.
        """
        a = self.ensure_player(cohort_key, id_a)
        b = self.ensure_player(cohort_key, id_b)

        undo = UndoFrame(
            cohort_key=cohort_key,
            a=_snapshot(id_a, a),
            b=_snapshot(id_b, b),
            result=outcome,
            ts=self._clock(),
        )

        update = RatingEngine.update_ratings(
            a.rating,
            b.rating,
            a.matches,
            b.matches,
            outcome,
            self.settings.k_factor,
            self.settings.heuristics,
        )
        a.rating = update.new_a
        b.rating = update.new_b

        a.matches += 1
        b.matches += 1

        winner_id: str | None = None
        if outcome is MatchOutcome.FIRST_WINS:
            a.wins += 1
            winner_id = id_a
        elif outcome is MatchOutcome.SECOND_WINS:
            b.wins += 1
            winner_id = id_b

        logger.debug(
            f"Applied {outcome.value} in '{cohort_key}': "
            f"{id_a} {undo.a.rating:.1f}->{a.rating:.1f}, "
            f"{id_b} {undo.b.rating:.1f}->{b.rating:.1f}"
        )
        return MatchApplied(winner_id=winner_id, undo=undo)

    def revert(self, frame: UndoFrame) -> bool:
        """Restore both players to their pre-match snapshots.

        Returns:
            ``True`` on success, ``False`` (with nothing changed) when the
            cohort or either player no longer exists.
        """
        cohort = self.store.cohorts.get(frame.cohort_key)
        if cohort is None:
            logger.warning(f"Cannot revert: cohort '{frame.cohort_key}' not found")
            return False

        a = cohort.players.get(frame.a.id)
        b = cohort.players.get(frame.b.id)
        if a is None or b is None:
            logger.warning(
                f"Cannot revert in '{frame.cohort_key}': "
                f"player {frame.a.id if a is None else frame.b.id} not found"
            )
            return False

        a.rating = frame.a.rating
        a.matches = frame.a.matches
        a.wins = frame.a.wins

        b.rating = frame.b.rating
        b.matches = frame.b.matches
        b.wins = frame.b.wins

        return True

    def reconcile_players(self, cohort_key: str, present_ids: Iterable[str]) -> list[str]:
        """Remove players whose items are no longer members of the cohort.

        Args:
            cohort_key: Cohort to reconcile.
            present_ids: Identities of the cohort's current members.

        Returns:
            The removed identities (empty if the cohort is unknown).
        """
        cohort = self.store.cohorts.get(cohort_key)
        if cohort is None:
            return []

        keep = set(present_ids)
        removed = [item_id for item_id in cohort.players if item_id not in keep]
        for item_id in removed:
            del cohort.players[item_id]

        if removed:
            logger.info(f"Removed {len(removed)} stale players from '{cohort_key}'")
        return removed

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    @staticmethod
    def compute_rank(cohort: CohortData) -> dict[str, int]:
        """Standard competition ranking ("1224") by descending rating.

        Tied ratings share a rank; the next distinct rating is ranked one
        past the number of players above it.
        """
        ordered = sorted(cohort.players.items(), key=lambda kv: kv[1].rating, reverse=True)

        ranks: dict[str, int] = {}
        last_rating: float | None = None
        rank = 0
        for position, (item_id, player) in enumerate(ordered, start=1):
            if last_rating is None or player.rating != last_rating:
                rank = position
                last_rating = player.rating
            ranks[item_id] = rank
        return ranks

    def rank_cohort(self, cohort_key: str) -> dict[str, int]:
        cohort = self.store.cohorts.get(cohort_key)
        if cohort is None:
            return {}
        return self.compute_rank(cohort)

    # ------------------------------------------------------------------
    # Cohort definitions
    # ------------------------------------------------------------------

    def list_cohort_defs(self) -> list[CohortDefinition]:
        return list(self.store.cohort_defs.values())

    def get_cohort_def(self, key: str) -> CohortDefinition | None:
        return self.store.cohort_defs.get(key)

    def upsert_cohort_def(self, definition: CohortDefinition) -> CohortDefinition:
        """Insert or replace a definition, bumping its ``updated_at``."""
        definition = definition.model_copy(update={"updated_at": self._clock()})
        self.store.cohort_defs[definition.key] = definition
        return definition

    def set_last_used_cohort_key(self, key: str | None) -> None:
        self.store.last_used_cohort_key = key

    def delete_cohort(self, key: str) -> bool:
        """Delete a cohort's ratings and definition.

        Returns:
            ``True`` if anything was deleted.
        """
        had_data = self.store.cohorts.pop(key, None) is not None
        had_def = self.store.cohort_defs.pop(key, None) is not None
        if self.store.last_used_cohort_key == key:
            self.store.last_used_cohort_key = None
        if had_data or had_def:
            logger.info(f"Deleted cohort '{key}'")
        return had_data or had_def

    def rename_cohort_key(self, old_key: str, new_definition: CohortDefinition) -> None:
        """Move a cohort's ratings to a new key after its parameters changed.

        If the new key already holds ratings, they win: only players missing
        under the new key are copied across from the old one.

        Args:
            old_key: Key the ratings are stored under today.
            new_definition: Updated definition carrying the new key.
        """
        new_key = new_definition.key
        if new_key == old_key:
            self.upsert_cohort_def(new_definition)
            return

        cohorts = self.store.cohorts
        old_data = cohorts.get(old_key)
        new_data = cohorts.get(new_key)

        if old_data is not None and new_data is None:
            cohorts[new_key] = old_data
        elif old_data is not None and new_data is not None:
            copied = 0
            for item_id, player in old_data.players.items():
                if item_id not in new_data.players:
                    new_data.players[item_id] = player
                    copied += 1
            logger.info(
                f"Merged cohort '{old_key}' into '{new_key}' "
                f"({copied} players copied, {len(old_data.players) - copied} kept)"
            )

        cohorts.pop(old_key, None)
        self.store.cohort_defs.pop(old_key, None)
        self.upsert_cohort_def(new_definition)

        if self.store.last_used_cohort_key == old_key:
            self.store.last_used_cohort_key = new_key

        logger.info(f"Renamed cohort '{old_key}' -> '{new_key}'")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self) -> bytes:
        """Encode settings and store as one consistent JSON snapshot."""
        payload = PersistedData(
            version=SNAPSHOT_VERSION,
            settings=self.settings,
            store=self.store,
        )
        return payload.model_dump_json(by_alias=True).encode("utf-8")

    @staticmethod
    def decode(data: bytes | str) -> PersistedData:
        """Decode a persisted snapshot.

        Settings and store are validated separately. Invalid settings are
        dropped (``settings`` comes back ``None``) so they never cost the
        stored ratings.

        Raises:
            SnapshotError: If the data is not a JSON object or the store
                section has the wrong shape.
        """
        try:
            raw = _RawSnapshot.model_validate_json(data)
        except ValidationError as e:
            raise SnapshotError(str(e)) from e

        try:
            store = EloStore.model_validate(raw.store) if raw.store is not None else None
        except ValidationError as e:
            raise SnapshotError(str(e)) from e

        settings: Settings | None = None
        if raw.settings is not None:
            try:
                settings = Settings.model_validate(raw.settings)
            except ValidationError as e:
                logger.warning(f"Ignoring invalid persisted settings, using defaults: {e}")

        return PersistedData(version=raw.version, settings=settings, store=store)

    def restore(self, data: bytes | str | None) -> bool:
        """Replace settings and store with a persisted snapshot.

        A missing or malformed snapshot yields default settings and an empty
        store. Missing or invalid settings fall back to defaults while the
        stored ratings are kept.

        Returns:
            ``True`` when a fresh baseline should be persisted right away
            (the snapshot was missing, malformed, incomplete or carried
            invalid settings).
        """
        if data is None or not data:
            self.settings = Settings()
            self.store = EloStore()
            return True

        try:
            payload = self.decode(data)
        except SnapshotError as e:
            logger.warning(f"Falling back to an empty store: {e}")
            self.settings = Settings()
            self.store = EloStore()
            return True

        self.settings = payload.settings or Settings()
        self.store = payload.store or EloStore()
        return payload.settings is None or payload.store is None
