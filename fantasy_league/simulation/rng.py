"""
Seeded random source threaded through the match engine and squad draws.
No module-level random state is used anywhere in the simulation.
"""
from __future__ import annotations

import random
from typing import Sequence, TypeVar

T = TypeVar("T")

SEED_MAX = 2**31 - 1


def new_seed() -> int:
    """Fresh seed for a match that was not given one; stored with the Match for replay."""
    return random.SystemRandom().randint(1, SEED_MAX)


class SeededRNG:
    """Wrapper around random.Random for reproducible simulations."""

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed if seed is not None else new_seed()
        self._rng = random.Random(self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    def random(self) -> float:
        return self._rng.random()

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self._rng.random()

    def chance(self, probability: float) -> bool:
        """One Bernoulli trial."""
        return self._rng.random() < probability

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def sample(self, seq: Sequence[T], k: int) -> list[T]:
        """Up to k distinct items; fewer when seq is shorter."""
        return self._rng.sample(list(seq), min(k, len(seq)))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)
