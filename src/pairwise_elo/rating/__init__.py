"""Rating module for Pairwise Elo.

This module provides the Elo rating engine used to update item ratings after
each pairwise comparison.

Components:
    - RatingEngine: Expected score, effective K and rating updates

Example:
    ```python
    from pairwise_elo.rating import RatingEngine

    update = RatingEngine.update_ratings(1500, 1400, 3, 7, MatchOutcome.DRAW)
    print(update.new_a, update.new_b)
    ```
"""

from .engine import RatingEngine

__all__ = [
    "RatingEngine",
]
