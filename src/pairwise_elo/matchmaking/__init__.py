"""Matchmaking module for Pairwise Elo.

Decides which two items are compared next.

Components:
    - MatchmakingSelector: Seedable pair selector bound to a policy
    - pick_anchor_index / pick_opponent_index / pick_next_pair: The selection steps
    - weighted_choice / reservoir_sample: Sampling primitives
"""

from .sampling import reservoir_sample, weighted_choice
from .selector import (
    MatchmakingSelector,
    pair_signature,
    pick_anchor_index,
    pick_next_pair,
    pick_opponent_index,
)

__all__ = [
    "MatchmakingSelector",
    "pair_signature",
    "pick_anchor_index",
    "pick_next_pair",
    "pick_opponent_index",
    "reservoir_sample",
    "weighted_choice",
]
