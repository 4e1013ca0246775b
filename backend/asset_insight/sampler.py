# backend/asset_insight/sampler.py

import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_CAP = 6


def select(batch: Sequence[T], cap: int = DEFAULT_CAP, rng: Optional[random.Random] = None) -> List[T]:
    """
    Pick the assets that will actually be sent to Gemini.

    Small batches pass through untouched (same order). Larger ones are
    shuffled and truncated to `cap`; pass a seeded `random.Random` as `rng`
    to make the pick reproducible.
    """
    if cap < 0:
        raise ValueError(f"cap must be >= 0, got {cap}")

    pool = list(batch)
    if len(pool) <= cap:
        return pool

    (rng or random).shuffle(pool)
    return pool[:cap]
