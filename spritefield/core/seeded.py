from __future__ import annotations

import random
from typing import Sequence, TypeVar

MASK32 = 0xFFFFFFFF
SEED_ALPHABET = "0123456789ABCDEF"
SEED_LENGTH = 8

T = TypeVar("T")


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK32


def hash_seed(seed: str) -> int:
    """Mix a seed string into an unsigned 32-bit integer."""
    h = (0x6A09E667 ^ len(seed)) & MASK32
    for ch in seed:
        h = _imul(h ^ ord(ch), 0xCC9E2D51)
        h = ((h << 13) | (h >> 19)) & MASK32
    h = _imul(h ^ (h >> 16), 0x85EBCA6B)
    h ^= h >> 13
    h = _imul(h, 0xC2B2AE35)
    return (h ^ (h >> 16)) & MASK32


class SeededStream:
    """Counter-based 32-bit generator (Mulberry32).

    Calling the stream returns the next float in [0, 1). Two streams built
    from the same seed produce the same sequence forever.
    """

    INCREMENT = 0x6D2B79F5

    def __init__(self, seed32: int):
        self._state = int(seed32) & MASK32
        self.draws = 0

    def __call__(self) -> float:
        self._state = (self._state + self.INCREMENT) & MASK32
        t = self._state
        r = _imul(t ^ (t >> 15), 1 | t)
        r ^= (r + _imul(r ^ (r >> 7), 61 | r)) & MASK32
        self.draws += 1
        return ((r ^ (r >> 14)) & MASK32) / 4294967296.0

    def uniform(self, lo: float, hi: float) -> float:
        return lo + self() * (hi - lo)

    def index(self, n: int) -> int:
        return min(n - 1, int(self() * n))

    def choice(self, items: Sequence[T]) -> T:
        return items[self.index(len(items))]

    def sign(self) -> int:
        return 1 if self() > 0.5 else -1


def make_stream(seed32: int) -> SeededStream:
    return SeededStream(seed32)


def derive_stream(seed: str, suffix: str = "") -> SeededStream:
    # one stream per concern: "", "-color", "-position", "-blend"
    return make_stream(hash_seed(f"{seed}{suffix}"))


def generate_seed_string(rng: random.Random | None = None, avoid: str | None = None) -> str:
    rng = rng or random.Random()
    while True:
        seed = "".join(rng.choice(SEED_ALPHABET) for _ in range(SEED_LENGTH))
        if seed != avoid:
            return seed
