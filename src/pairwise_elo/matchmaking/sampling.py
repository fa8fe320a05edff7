"""Random sampling primitives for matchmaking.

Both functions draw from an injected ``rng`` returning floats in [0, 1), so a
``random.Random(seed).random`` makes every draw reproducible.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")

Rng = Callable[[], float]


def rand_int(rng: Rng, high_exclusive: int) -> int:
    """Uniform integer in ``[0, high_exclusive)``."""
    return int(rng() * high_exclusive)


def weighted_choice(weights: Sequence[float], rng: Rng) -> int:
    """Pick an index with probability proportional to its weight.

    Negative weights count as zero. When no weight is positive the pick is
    uniform over all indices.

    Args:
        weights: One weight per index.
        rng: Source of uniform floats in [0, 1).

    Returns:
        The chosen index.
    """
    total = sum(max(0.0, w) for w in weights)
    if total <= 0:
        return rand_int(rng, len(weights))

    remainder = rng() * total
    for i, w in enumerate(weights):
        remainder -= max(0.0, w)
        if remainder <= 0:
            return i
    # Float rounding can leave a sliver of remainder
    return len(weights) - 1


def reservoir_sample(stream: Iterable[T], k: int, rng: Rng) -> list[T]:
    """Uniform random sample of up to ``k`` elements in a single pass.

    Args:
        stream: Elements to sample from.
        k: Maximum sample size.
        rng: Source of uniform floats in [0, 1).

    Returns:
        A list of ``min(k, len(stream))`` elements.
    """
    out: list[T] = []
    if k <= 0:
        return out

    for seen, item in enumerate(stream, start=1):
        if len(out) < k:
            out.append(item)
        else:
            j = rand_int(rng, seen)
            if j < k:
                out[j] = item
    return out
