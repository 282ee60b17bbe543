"""
StockScratch - Seeded Ticket RNG

Deterministic 32-bit generator that fixes a ticket's grid from its seed
(normally the ticket id). Any implementation that follows the two steps
below reproduces the exact same sequence, which is what lets a server
re-derive and audit a prize from the ticket id alone.

    1. Fold the seed string into a 32-bit state with FNV-1a over its
       UTF-16 code units: state = (state ^ unit) * 16777619 (mod 2^32),
       starting from the offset basis 2166136261.
    2. Each next() advances the state with xorshift32 (13, 7, 5) and
       returns state / 2^32.

Usage:
    from sim_engine.scratch.rng import SeededRandomSource
    rng = SeededRandomSource.from_seed("ticket-42")
    r = rng.next()       # float in [0, 1)
"""

from __future__ import annotations

from typing import Union

MASK_32 = 0xFFFFFFFF
FNV_OFFSET_BASIS = 0x811C9DC5     # 2166136261
FNV_PRIME = 0x01000193            # 16777619
TWO_POW_32 = 0x100000000


def fold_seed(seed: Union[str, int]) -> int:
    """FNV-1a fold of ``str(seed)`` into a non-zero 32-bit state."""
    text = str(seed)
    # surrogatepass keeps lone surrogates as their own code units
    data = text.encode("utf-16-le", "surrogatepass")
    state = FNV_OFFSET_BASIS
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        state = ((state ^ unit) * FNV_PRIME) & MASK_32
    # xorshift never leaves 0
    if state == 0:
        state = FNV_OFFSET_BASIS
    return state


class SeededRandomSource:
    """Xorshift32 generator owned by a single ticket."""

    __slots__ = ("state",)

    def __init__(self, state: int):
        state &= MASK_32
        if state == 0:
            raise ValueError("xorshift32 state must be non-zero")
        self.state = state

    @classmethod
    def from_seed(cls, seed: Union[str, int]) -> "SeededRandomSource":
        return cls(fold_seed(seed))

    def next_u32(self) -> int:
        """Advance one step and return the raw 32-bit state."""
        x = self.state
        x ^= (x << 13) & MASK_32
        x ^= x >> 7
        x ^= (x << 5) & MASK_32
        self.state = x
        return x

    def next(self) -> float:
        """Float in [0, 1)."""
        return self.next_u32() / TWO_POW_32

    # Lets the generator stand in for random.Random in simulation code.
    random = next

    def copy(self) -> "SeededRandomSource":
        return SeededRandomSource(self.state)

    def __repr__(self) -> str:
        return f"SeededRandomSource(state=0x{self.state:08x})"
