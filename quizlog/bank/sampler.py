"""Unbiased random ordering and fixed-size sampling (Fisher-Yates)."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly shuffled copy of ``items``; the input is left untouched."""
    rng = rng or random
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def sample(questions: Sequence[T], count: int, rng: random.Random | None = None) -> list[T]:
    """
    Draw ``count`` questions uniformly at random.

    Args:
        questions: Pool to draw from
        count: Number wanted; a pool of that size or smaller comes back whole
        rng: Optional random source for reproducible draws

    Returns:
        Distinct elements of the pool in random order
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    shuffled = shuffle(questions, rng)
    if len(shuffled) <= count:
        return shuffled
    return shuffled[:count]
