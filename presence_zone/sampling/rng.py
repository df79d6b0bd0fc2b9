"""
Seeded Random Generator
=======================

Mulberry32: a 32-bit state generator producing floats in [0, 1).

Output matches the widely used JavaScript implementation bit for bit, so a
seed reproduces the same point layout across restarts and across clients.
"""

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5


def _imul(a: int, b: int) -> int:
    """32-bit integer multiply (low 32 bits, unsigned)."""
    return (a * b) & _MASK32


class Mulberry32:
    """
    Deterministic generator with a single 32-bit integer of state.

    Usage:
        rng = Mulberry32(123456)
        x = rng.random()  # same value on every run for this seed
    """

    def __init__(self, seed: int):
        self._state = seed & _MASK32

    @property
    def state(self) -> int:
        """Current 32-bit state (advanced on every draw)."""
        return self._state

    def next_uint32(self) -> int:
        self._state = (self._state + _INCREMENT) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return (t ^ (t >> 14)) & _MASK32

    def random(self) -> float:
        """Next float in [0, 1)."""
        return self.next_uint32() / 4294967296.0

    __call__ = random
