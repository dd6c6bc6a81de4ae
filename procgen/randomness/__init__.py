"""
RNG Provider Layer

RESPONSIBILITY: Turn a seed string into a reproducible stream of floats
ALLOWED INPUTS: Optional seed string, algorithm choice, injectable clock
OUTPUTS: SeededRng (callable returning a float in [0, 1))

WHAT THIS LAYER MUST NOT DO:
============================
- Touch module-level random state (no random.seed, no np.random.seed)
- Share a generator between requests
- Fail on any seed, including the empty string

GUARANTEES:
===========
- Output of the n-th call is a pure function of (seed, algorithm, n)
- A missing seed is derived from the clock and exposed as rng.seed so the
  caller can echo it and replay the request
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, TypeVar
import hashlib
import time

import numpy as np


T = TypeVar("T")

_UINT32 = 0xFFFFFFFF


class RngAlgorithm(Enum):
    """Available stream generators."""
    PCG64 = "pcg64"            # numpy PCG64 keyed by SHA-256 of the seed
    MULBERRY32 = "mulberry32"  # FNV-1a + mulberry32, the offline client's stream


@dataclass
class RngConfig:
    """Configuration for RNG construction."""
    algorithm: RngAlgorithm = RngAlgorithm.PCG64


def default_seed(clock: Callable[[], float] = time.time) -> str:
    """Seed used when the caller supplies none: epoch milliseconds."""
    return str(int(clock() * 1000))


# =============================================================================
# STREAM IMPLEMENTATIONS
# =============================================================================

def fnv1a_32(text: str) -> int:
    """
    32-bit FNV-1a over UTF-16 code units.

    Code units (not code points) so that non-BMP characters hash the same
    way the offline client hashes them.
    """
    h = 2166136261
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = (h * 16777619) & _UINT32
    return h


class _Mulberry32:
    """mulberry32 over unsigned 32-bit state."""

    def __init__(self, state: int):
        self._t = state & _UINT32

    def random(self) -> float:
        self._t = (self._t + 0x6D2B79F5) & _UINT32
        t = self._t
        x = ((t ^ (t >> 15)) * (t | 1)) & _UINT32
        x ^= (x + (((x ^ (x >> 7)) * (x | 61)) & _UINT32)) & _UINT32
        return ((x ^ (x >> 14)) & _UINT32) / 4294967296.0


def _pcg64_generator(seed: str) -> np.random.Generator:
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return np.random.Generator(np.random.PCG64(int.from_bytes(digest, "big")))


# =============================================================================
# PUBLIC INTERFACE
# =============================================================================

class SeededRng:
    """
    Per-request random stream.

    Calling the instance (or next()) returns the next float in [0, 1).
    draw_count is the index of the next draw.
    """

    def __init__(self, seed: str, algorithm: RngAlgorithm = RngAlgorithm.PCG64):
        self._seed = seed
        self._algorithm = algorithm
        self._draws = 0
        if algorithm is RngAlgorithm.MULBERRY32:
            self._source = _Mulberry32(fnv1a_32(seed))
        else:
            self._source = _pcg64_generator(seed)

    def next(self) -> float:
        self._draws += 1
        return float(self._source.random())

    __call__ = next

    @property
    def seed(self) -> str:
        return self._seed

    @property
    def algorithm(self) -> RngAlgorithm:
        return self._algorithm

    @property
    def draw_count(self) -> int:
        return self._draws

    def __repr__(self) -> str:
        return f"SeededRng(seed={self._seed!r}, algorithm={self._algorithm.value}, draws={self._draws})"


def create_rng(
    seed: Optional[str] = None,
    algorithm: RngAlgorithm = RngAlgorithm.PCG64,
    clock: Callable[[], float] = time.time,
) -> SeededRng:
    """Build a fresh stream; a None seed is derived from the clock."""
    effective = seed if seed is not None else default_seed(clock)
    return SeededRng(effective, algorithm)


def draw_index(rng: Callable[[], float], size: int) -> int:
    """floor(rng() * size), clamped against float rounding at the top end."""
    return min(int(rng() * size), size - 1)


def pick(items: Sequence[T], rng: Callable[[], float]) -> T:
    """Uniformly pick one element. items must be non-empty."""
    return items[draw_index(rng, len(items))]
