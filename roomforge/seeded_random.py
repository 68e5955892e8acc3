"""
Deterministic random numbers for dungeon generation.

Every generator in this package draws from a SeededRandom instead of the
global `random` module, so a story seed always produces the same dungeon,
the same tile maps and the same room contents regardless of the order in
which rooms are generated.
"""

from typing import List, Sequence, TypeVar

T = TypeVar("T")

# Linear congruential generator constants
_MULTIPLIER: int = 9301
_INCREMENT: int = 49297
_MODULUS: int = 233280


class SeededRandom:
    """A small linear congruential generator with a reproducible stream."""

    def __init__(self, seed: int) -> None:
        self.seed: int = int(seed)

    def next(self) -> float:
        """Returns the next float in [0, 1)."""
        self.seed = (self.seed * _MULTIPLIER + _INCREMENT) % _MODULUS
        return self.seed / _MODULUS

    def next_int(self, min_value: int, max_value: int) -> int:
        """Returns an integer in [min_value, max_value], both inclusive."""
        return int(self.next() * (max_value - min_value + 1)) + min_value

    def choice(self, items: Sequence[T]) -> T:
        """Picks one element of a non-empty sequence."""
        return items[int(self.next() * len(items))]

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """
        Returns a shuffled copy of items (Fisher-Yates).

        The input sequence is left untouched.
        """
        shuffled = list(items)
        for i in range(len(shuffled) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled
