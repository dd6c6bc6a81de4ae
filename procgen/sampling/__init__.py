"""
Sampling Layer

RESPONSIBILITY: Draw candidates from pools using an injected RNG
ALLOWED INPUTS: Sequences of records, a set of already-used ids, an RNG
OUTPUTS: Lists / single records, in draw order

WHAT THIS LAYER MUST NOT DO:
============================
- Own or seed an RNG (the caller threads its per-request instance through)
- Mutate the caller's pool
- Loop without bound once uniqueness is exhausted
"""

from __future__ import annotations
from typing import Callable, Hashable, List, MutableSet, Optional, Sequence, TypeVar

from ..randomness import draw_index


T = TypeVar("T")

Rng = Callable[[], float]


def _record_id(item) -> Hashable:
    return item.id


def sample_without_replacement(pool: Sequence[T], k: int, rng: Rng) -> List[T]:
    """
    Draw min(k, len(pool)) elements without replacement.

    Each draw picks a uniform index into a shrinking working copy and
    removes it, so no element is drawn twice and k >= len(pool) returns a
    permutation of the full pool.
    """
    working = list(pool)
    drawn: List[T] = []
    for _ in range(max(0, k)):
        if not working:
            break
        drawn.append(working.pop(draw_index(rng, len(working))))
    return drawn


def pick_unique_bounded(
    pool: Sequence[T],
    used_ids: MutableSet[Hashable],
    rng: Rng,
    id_fn: Callable[[T], Hashable] = _record_id,
) -> Optional[T]:
    """
    Draw an element whose id is not in used_ids and record it.

    Once every distinct id of the pool has been used, draw exactly once and
    accept a repeat. Returns None only for an empty pool.
    """
    if not pool:
        return None

    distinct = {id_fn(item) for item in pool}
    if len(used_ids & distinct) >= len(distinct):
        return pool[draw_index(rng, len(pool))]

    candidate = pool[draw_index(rng, len(pool))]
    while id_fn(candidate) in used_ids:
        candidate = pool[draw_index(rng, len(pool))]
    used_ids.add(id_fn(candidate))
    return candidate
