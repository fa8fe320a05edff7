"""Pair selection for pairwise comparisons.

Choosing the next pair happens in two steps. An *anchor* is drawn first,
weighted toward items that have played fewer matches. An *opponent* is then
picked from a small random sample of the remaining items: usually the one
rated closest to the anchor, sometimes (an "upset probe") the one rated
furthest away.

None of these functions raise. Shrinking candidate lists degrade to explicit
results: two candidates always form the pair, fewer than two yield an empty
``PairPick``.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from ..models import PairPick, RatingStats
from .sampling import Rng, rand_int, reservoir_sample, weighted_choice

if TYPE_CHECKING:
    from ..config import MatchmakingSettings

logger = logging.getLogger(__name__)

PAIR_SEPARATOR = "||"
DEFAULT_SAMPLE_SIZE = 12
MAX_REPEAT_RETRIES = 10

StatsLookup = Callable[[str], RatingStats]


def pair_signature(id_a: str, id_b: str) -> str:
    """Order-independent signature of a pair of item identities."""
    first, second = sorted((id_a, id_b))
    return f"{first}{PAIR_SEPARATOR}{second}"


def pick_anchor_index(
    candidates: Sequence[str],
    stats: StatsLookup,
    settings: MatchmakingSettings | None = None,
    last_pair_sig: str | None = None,
    rng: Rng = random.random,
) -> int:
    """Choose the first item of the next pair.

    With three or more candidates, both items of the previous pair are left
    out of the draw.

    Args:
        candidates: Item identities eligible for comparison.
        stats: Live rating/match-count lookup.
        settings: Matchmaking policy. ``None`` means uniform selection.
        last_pair_sig: Signature of the previous pair, if any.
        rng: Source of uniform floats in [0, 1).

    Returns:
        Index into ``candidates``, or -1 when there are none.
    """
    n = len(candidates)
    if n == 0:
        return -1

    allowed = list(range(n))
    if last_pair_sig and n >= 3:
        excluded = set(last_pair_sig.split(PAIR_SEPARATOR))
        remaining = [i for i in allowed if candidates[i] not in excluded]
        if remaining:
            allowed = remaining

    if settings is None or not settings.enabled or not settings.low_matches_bias.enabled:
        return allowed[rand_int(rng, len(allowed))]

    exponent = max(0.0, min(3.0, settings.low_matches_bias.exponent))
    weights = [
        1 / (1 + max(0, stats(candidates[i]).matches)) ** exponent for i in allowed
    ]
    return allowed[weighted_choice(weights, rng)]


def pick_opponent_index(
    candidates: Sequence[str],
    anchor_index: int,
    stats: StatsLookup,
    settings: MatchmakingSettings | None = None,
    rng: Rng = random.random,
) -> int:
    """Choose the second item of the next pair, given the anchor.

    Args:
        candidates: Item identities eligible for comparison.
        anchor_index: Index of the already chosen anchor.
        stats: Live rating/match-count lookup.
        settings: Matchmaking policy. ``None`` means uniform selection.
        rng: Source of uniform floats in [0, 1).

    Returns:
        Index into ``candidates`` other than ``anchor_index``, or -1 when no
        other candidate exists.
    """
    pool = [i for i in range(len(candidates)) if i != anchor_index]
    if not pool:
        return -1

    if settings is None or not settings.enabled:
        return pool[rand_int(rng, len(pool))]

    anchor = stats(candidates[anchor_index])
    similar = settings.similar_ratings
    upset = settings.upset_probes

    lower = 2 if similar.enabled else 1
    sample_size = max(lower, min(similar.sample_size or DEFAULT_SAMPLE_SIZE, len(pool)))
    sample = reservoir_sample(pool, sample_size, rng)

    if upset.enabled and rng() < upset.probability:
        best_index = -1
        best_gap = -1.0
        for j in sample:
            gap = abs(stats(candidates[j]).rating - anchor.rating)
            if gap >= upset.min_gap and gap > best_gap:
                best_index = j
                best_gap = gap
        if best_index >= 0:
            return best_index

    if similar.enabled:
        best_index = sample[0]
        best_gap = float("inf")
        best_matches = float("inf")
        for j in sample:
            s = stats(candidates[j])
            gap = abs(s.rating - anchor.rating)
            if gap < best_gap or (gap == best_gap and s.matches < best_matches):
                best_index = j
                best_gap = gap
                best_matches = s.matches
        return best_index

    return sample[rand_int(rng, len(sample))]


def pick_next_pair(
    candidates: Sequence[str],
    stats: StatsLookup,
    settings: MatchmakingSettings | None = None,
    last_pair_sig: str | None = None,
    rng: Rng = random.random,
) -> PairPick:
    """Choose the next pair and its presentation order.

    Args:
        candidates: Item identities eligible for comparison.
        stats: Live rating/match-count lookup.
        settings: Matchmaking policy. ``None`` means uniform selection.
        last_pair_sig: Signature of the previous pair, if any.
        rng: Source of uniform floats in [0, 1).

    Returns:
        PairPick with left/right indices and the pair signature. Both
        indices are -1 when fewer than two candidates exist.
    """
    n = len(candidates)
    if n < 2:
        return PairPick()

    if n == 2:
        return PairPick(
            left_index=0,
            right_index=1,
            pair_sig=pair_signature(candidates[0], candidates[1]),
        )

    anchor_index = pick_anchor_index(candidates, stats, settings, last_pair_sig, rng)
    opponent_index = pick_opponent_index(candidates, anchor_index, stats, settings, rng)
    sig = pair_signature(candidates[anchor_index], candidates[opponent_index])

    # Only reachable when the anchor exclusion fell back to the full list,
    # e.g. candidates carrying duplicate identities
    attempts = 0
    while last_pair_sig and sig == last_pair_sig and attempts < MAX_REPEAT_RETRIES:
        opponent_index = pick_opponent_index(candidates, anchor_index, stats, settings, rng)
        sig = pair_signature(candidates[anchor_index], candidates[opponent_index])
        attempts += 1

    if sig == last_pair_sig:
        logger.debug(f"Accepting repeated pair after {attempts} retries: {sig}")

    if rng() < 0.5:
        left_index, right_index = anchor_index, opponent_index
    else:
        left_index, right_index = opponent_index, anchor_index

    return PairPick(left_index=left_index, right_index=right_index, pair_sig=sig)


class MatchmakingSelector:
    """Pair selector bound to a matchmaking policy and a random source.

    Example:
        ```python
        selector = MatchmakingSelector(settings.matchmaking, seed=7)
        pick = selector.next_pair(["a", "b", "c"], store_stats, last_pair_sig=None)
        if pick.is_pair:
            left, right = candidates[pick.left_index], candidates[pick.right_index]
        ```
    """

    def __init__(
        self,
        settings: MatchmakingSettings | None = None,
        seed: int | None = None,
        rng: Rng | None = None,
    ):
        """Initialize the selector.

        Args:
            settings: Matchmaking policy. ``None`` means uniform selection.
            seed: Random seed for reproducibility (ignored when ``rng`` is given).
            rng: Explicit source of uniform floats in [0, 1).
        """
        self.settings = settings
        self._rng: Rng = rng if rng is not None else random.Random(seed).random

    def next_pair(
        self,
        candidates: Sequence[str],
        stats: StatsLookup,
        last_pair_sig: str | None = None,
        settings: MatchmakingSettings | None = None,
    ) -> PairPick:
        """Choose the next pair from ``candidates``.

        ``settings`` overrides the bound policy for this call, so callers
        whose settings may be reloaded can pass the live ones.
        """
        policy = settings if settings is not None else self.settings
        return pick_next_pair(candidates, stats, policy, last_pair_sig, self._rng)
