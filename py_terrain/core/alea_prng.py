"""
Alea PRNG used as the single random stream of a generation pass.

Based on Johannes Baagøe's Alea algorithm. Every randomized decision of a
pass (site sampling, coastline direction, lake seeds and growth, river
endpoints, tributary branch points) draws from one instance, in a fixed
order, so a seed fully determines the generated map.
"""

from typing import Sequence, TypeVar, Union

T = TypeVar("T")

_MASH_SEED = 0xEFC8249D
_TWO_POW_32 = 0x100000000
_TWO_POW_MINUS_32 = 2.3283064365386963e-10


def _uint32(n) -> int:
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class _Mash:
    """Alea's string hashing function; keeps state between calls."""

    def __init__(self):
        self.n = _MASH_SEED

    def __call__(self, data) -> float:
        for char in str(data):
            self.n += ord(char)
            h = 0.02519603282416938 * self.n
            self.n = _uint32(h)
            h -= self.n
            h *= self.n
            self.n = _uint32(h)
            h -= self.n
            self.n += h * _TWO_POW_32
        return _uint32(self.n) * _TWO_POW_MINUS_32


class AleaPRNG:
    """
    Seeded random stream handed to every generator of a pass.

    Generators receive the same instance by reference; reordering generator
    calls changes every downstream draw.
    """

    def __init__(self, seed: Union[str, int, float]):
        self.seed = str(seed)
        self.call_count = 0

        mash = _Mash()
        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        self.s0 -= mash(self.seed)
        if self.s0 < 0:
            self.s0 += 1
        self.s1 -= mash(self.seed)
        if self.s1 < 0:
            self.s1 += 1
        self.s2 -= mash(self.seed)
        if self.s2 < 0:
            self.s2 += 1

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        t = 2091639 * self.s0 + self.c * _TWO_POW_MINUS_32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2

    def randint(self, n: int) -> int:
        """Random index in [0, n), i.e. ``floor(random() * n)``."""
        return int(self.random() * n)

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self.randint(len(seq))]

    def __repr__(self) -> str:
        return f"AleaPRNG(seed={self.seed!r}, calls={self.call_count})"
