"""Comparison session for Pairwise Elo.

This module provides ArenaSession, the root object of one rating session. It
wires the rating store, the persistence gateway and the matchmaking selector
together and keeps the session's undo stack and last-pair signature. There
are no module-level singletons: everything a session needs is owned here or
injected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .cohorts import definition_from_key
from .matchmaking import MatchmakingSelector
from .models import CohortDefinition, MatchApplied, MatchOutcome, PairPick, UndoFrame

if TYPE_CHECKING:
    from .storage import PersistenceGateway, RatingStore

logger = logging.getLogger(__name__)

MemberResolver = Callable[[CohortDefinition], list[str]]


class ArenaSession:
    """One pairwise comparison session over a single cohort.

    The external item resolver is called before every pair selection and
    its result is never cached, so membership changes between judgments are
    picked up immediately.

    Example:
        ```python
        store = RatingStore()
        gateway = PersistenceGateway(store, JsonFileBackend("elo.json"))
        await gateway.load()

        session = ArenaSession(store, resolve_members=list_notes, gateway=gateway)
        session.start(create_definition(FolderParams(path="notes")))

        left, right = session.current_pair
        session.choose(MatchOutcome.FIRST_WINS)
        session.undo()

        await session.close()
        ```
    """

    def __init__(
        self,
        store: RatingStore,
        resolve_members: MemberResolver,
        gateway: PersistenceGateway | None = None,
        selector: MatchmakingSelector | None = None,
    ):
        """Initialize the session.

        Args:
            store: Rating store holding every cohort.
            resolve_members: Returns the current item identities of a cohort.
            gateway: Persistence for the store. ``None`` keeps changes in memory.
            selector: Pair selector. Defaults to an unseeded selector.
        """
        self.store = store
        self.gateway = gateway
        self.selector = selector or MatchmakingSelector()
        self._resolve_members = resolve_members

        self.cohort_key: str | None = None
        self.undo_stack: list[UndoFrame] = []
        self.last_pair_sig: str | None = None
        self.current_pair: tuple[str, str] | None = None

    @property
    def definition(self) -> CohortDefinition | None:
        if self.cohort_key is None:
            return None
        return self.store.get_cohort_def(self.cohort_key)

    def start(self, definition: CohortDefinition) -> tuple[str, str] | None:
        """Begin comparing items of a cohort.

        Registers the definition if it is new, marks it as last used, clears
        the undo stack and picks the first pair.

        Returns:
            The first pair, or ``None`` if the cohort has fewer than two items.
        """
        if self.store.get_cohort_def(definition.key) is None:
            self.store.upsert_cohort_def(definition)
        self.store.set_last_used_cohort_key(definition.key)

        self.cohort_key = definition.key
        self.undo_stack = []
        self.last_pair_sig = None
        self.current_pair = None

        logger.info(f"Session started for cohort '{definition.key}'")
        self._schedule_save()
        return self.next_pair()

    def resume(self) -> tuple[str, str] | None:
        """Start the last used cohort again, if it is still known."""
        key = self.store.store.last_used_cohort_key
        if key is None:
            return None
        definition = self.store.get_cohort_def(key) or definition_from_key(key)
        if definition is None:
            logger.warning(f"Last used cohort '{key}' cannot be resumed")
            return None
        return self.start(definition)

    def next_pair(self) -> tuple[str, str] | None:
        """Select the next pair to show.

        Returns:
            ``(left_id, right_id)``, or ``None`` with fewer than two items.
        """
        definition = self.definition
        if definition is None:
            self.current_pair = None
            return None

        cohort_key = definition.key
        candidates = self._resolve_members(definition)
        pick: PairPick = self.selector.next_pair(
            candidates,
            lambda item_id: self.store.get_stats(cohort_key, item_id),
            self.last_pair_sig,
            settings=self.store.settings.matchmaking,
        )
        if not pick.is_pair:
            self.current_pair = None
            return None

        self.current_pair = (candidates[pick.left_index], candidates[pick.right_index])
        self.last_pair_sig = pick.pair_sig
        logger.debug(f"Next pair in '{cohort_key}': {self.current_pair}")
        return self.current_pair

    def choose(self, outcome: MatchOutcome) -> MatchApplied | None:
        """Record a judgment for the current pair and move on.

        Args:
            outcome: Result from the left item's point of view.

        Returns:
            MatchApplied, or ``None`` if no pair is being shown.
        """
        if self.cohort_key is None or self.current_pair is None:
            return None

        left_id, right_id = self.current_pair
        applied = self.store.apply_match(self.cohort_key, left_id, right_id, outcome)
        self.undo_stack.append(applied.undo)

        if self.store.settings.show_toasts:
            if applied.winner_id is not None:
                logger.info(f"Winner: {applied.winner_id}")
            else:
                logger.info("Draw")

        self._schedule_save()
        self.next_pair()
        return applied

    def undo(self) -> UndoFrame | None:
        """Reverse the most recent judgment of this session.

        Returns:
            The popped frame, or ``None`` if there was nothing to undo. The
            frame is discarded even when its players no longer exist.
        """
        if not self.undo_stack:
            logger.info("Nothing to undo")
            return None

        frame = self.undo_stack.pop()
        if self.store.revert(frame):
            logger.info(f"Undid match {frame.a.id} vs {frame.b.id}")
        self._schedule_save()
        return frame

    def ranks(self) -> dict[str, int]:
        """Current ranks of the session's cohort."""
        if self.cohort_key is None:
            return {}
        return self.store.rank_cohort(self.cohort_key)

    async def close(self) -> None:
        """Flush pending writes."""
        if self.gateway is not None:
            await self.gateway.close()

    def _schedule_save(self) -> None:
        if self.gateway is not None:
            self.gateway.schedule_save()
