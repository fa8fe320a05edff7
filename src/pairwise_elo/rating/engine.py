"""Elo rating engine with convergence heuristics.

This module implements the Elo update used for pairwise comparisons. On top
of the classic formula it supports per-player effective K-factors:

- Provisional boost: amplified K during an item's first matches.
- Decay: K shrinks hyperbolically as an item plays more matches.
- Upset boost: both Ks grow when the lower-rated item wins across a wide gap.
- Draw gap boost: both Ks grow when a draw happens across a wide gap.

Provisional and decay are phases, not a multiplier stack: while an item is
provisional, decay does not apply to it. Upset and draw-gap boosts are also
exclusive for a single match (a draw is never an upset).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..models import DEFAULT_RATING, MatchOutcome, RatingUpdate

if TYPE_CHECKING:
    from ..config import EloHeuristics


class RatingEngine:
    """Stateless Elo calculations.

    Every method is pure and total: inputs are not sanitized and nothing is
    raised. Callers keep K positive and ratings finite.

    Example:
        ```python
        # Two fresh items, first one wins
        update = RatingEngine.update_ratings(1500, 1500, 0, 0, MatchOutcome.FIRST_WINS, 24)
        # update.new_a == 1512.0, update.new_b == 1488.0

        # K for an experienced item under decay
        RatingEngine.effective_k(24, 200, heuristics)  # 12.0
        ```
    """

    DEFAULT_RATING = DEFAULT_RATING
    DEFAULT_K = 24

    @staticmethod
    def expected_score(rating_a: float, rating_b: float) -> float:
        """Calculate expected score for item A against item B.

        Args:
            rating_a: Elo rating of item A.
            rating_b: Elo rating of item B.

        Returns:
            Expected score between 0 and 1.

        Example:
            ```python
            RatingEngine.expected_score(1500, 1500)  # 0.5
            RatingEngine.expected_score(1600, 1400)  # ~0.76
            ```
        """
        return 1 / (1 + 10 ** ((rating_b - rating_a) / 400))

    @staticmethod
    def effective_k(
        base_k: float,
        matches_played: int,
        heuristics: EloHeuristics | None = None,
    ) -> float:
        """Calculate the K-factor for one item given its experience.

        Args:
            base_k: Configured base K-factor.
            matches_played: Matches the item played before this one.
            heuristics: Heuristic settings. ``None`` means classic Elo.

        Returns:
            The effective K for this item.
        """
        if heuristics is None:
            return base_k

        provisional = heuristics.provisional
        if provisional.enabled and matches_played < provisional.matches:
            return base_k * provisional.multiplier

        decay = heuristics.decay
        if decay.enabled:
            # A floor above the base K would turn decay into a boost
            min_k = min(decay.min_k, base_k)
            return max(min_k, base_k / (1 + matches_played / decay.half_life))

        return base_k

    @staticmethod
    def update_ratings(
        rating_a: float,
        rating_b: float,
        matches_a: int,
        matches_b: int,
        outcome: MatchOutcome,
        base_k: float = DEFAULT_K,
        heuristics: EloHeuristics | None = None,
    ) -> RatingUpdate:
        """Update both ratings after one comparison.

        Effective Ks come from the pre-match counts. Because the two items
        may be in different phases, the update is zero-sum only when both
        end up with the same K.

        Args:
            rating_a: Current rating of the first item.
            rating_b: Current rating of the second item.
            matches_a: Matches played by the first item before this one.
            matches_b: Matches played by the second item before this one.
            outcome: Result from the first item's point of view.
            base_k: Configured base K-factor (default 24).
            heuristics: Heuristic settings. ``None`` means classic Elo.

        Returns:
            RatingUpdate with both new ratings and the Ks that produced them.

        Example:
            ```python
            # Upset: the underdog gains more than the favorite would have
            update = RatingEngine.update_ratings(1400, 1600, 30, 30, MatchOutcome.FIRST_WINS)
            # update.new_a ≈ 1418.2, update.new_b ≈ 1581.8
            ```
        """
        expected_a = RatingEngine.expected_score(rating_a, rating_b)
        expected_b = 1 - expected_a

        score_a = outcome.score_a
        score_b = 1 - score_a

        k_a = RatingEngine.effective_k(base_k, matches_a, heuristics)
        k_b = RatingEngine.effective_k(base_k, matches_b, heuristics)

        if heuristics is not None:
            gap = abs(rating_a - rating_b)
            upset = heuristics.upset_boost
            draw_gap = heuristics.draw_gap_boost

            underdog_won = (outcome is MatchOutcome.FIRST_WINS and rating_a < rating_b) or (
                outcome is MatchOutcome.SECOND_WINS and rating_b < rating_a
            )

            if upset.enabled and underdog_won and gap >= upset.threshold:
                k_a *= upset.multiplier
                k_b *= upset.multiplier
            elif draw_gap.enabled and outcome is MatchOutcome.DRAW and gap >= draw_gap.threshold:
                k_a *= draw_gap.multiplier
                k_b *= draw_gap.multiplier

        new_a = rating_a + k_a * (score_a - expected_a)
        new_b = rating_b + k_b * (score_b - expected_b)

        return RatingUpdate(
            new_a=new_a,
            new_b=new_b,
            k_a=k_a,
            k_b=k_b,
            expected_a=expected_a,
        )
