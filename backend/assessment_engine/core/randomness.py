from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar('T')


class RandomSource(ABC):
    """Source of non-deterministic orderings (question and option shuffling)."""

    @abstractmethod
    def shuffle(self, items: Sequence[T]) -> list[T]:
        """Return a new list holding ``items`` in shuffled order."""


class SeededRandomSource(RandomSource):
    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def shuffle(self, items: Sequence[T]) -> list[T]:
        shuffled = list(items)
        self._rng.shuffle(shuffled)
        return shuffled


class IdentityRandomSource(RandomSource):
    """Keeps the original order; useful when shuffling must be disabled."""

    def shuffle(self, items: Sequence[T]) -> list[T]:
        return list(items)
