from __future__ import annotations

from typing import Any, Sequence

from arena.contracts import RandomSource

DEFAULT_SEED = "arena-default-seed"

_MASK = 0xFFFFFFFF
_TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


def normalize_seed(seed: str | None) -> str:
    if seed is None:
        return DEFAULT_SEED
    stripped = seed.strip()
    return stripped or DEFAULT_SEED


def _hash_seed(seed: str) -> int:
    h = (1779033703 ^ len(seed)) & _MASK
    for ch in seed:
        h = _imul(h ^ ord(ch), 3432918353)
        h = ((h << 13) | (h >> 19)) & _MASK
    h = _imul(h ^ (h >> 16), 2246822507)
    h = _imul(h ^ (h >> 13), 3266489909)
    return (h ^ (h >> 16)) & _MASK


class SeededRandomSource(RandomSource):
    """String-seeded 32-bit generator; identical seeds replay identical draws."""

    def __init__(self, seed: str | None = None) -> None:
        self.seed = normalize_seed(seed)
        self._state = _hash_seed(self.seed)

    def __call__(self) -> float:
        return self.rand()

    def rand(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
        return ((t ^ (t >> 14)) & _MASK) / _TWO_POW_32

    def pick_index(self, length: int) -> int:
        if length <= 0:
            raise ValueError("pick_index length must be positive")
        return min(length - 1, int(self.rand() * length))

    def randint(self, a: int, b: int) -> int:
        if b < a:
            raise ValueError("randint upper bound must be >= lower bound")
        return a + self.pick_index(b - a + 1)

    def choice(self, items: Sequence[Any]) -> Any:
        if not items:
            raise ValueError("choice items must not be empty")
        return items[self.pick_index(len(items))]

    def shuffle(self, items: list[Any]) -> None:
        for i in range(len(items) - 1, 0, -1):
            j = self.pick_index(i + 1)
            items[i], items[j] = items[j], items[i]

    def spawn(self, substream_id: str) -> RandomSource:
        return SeededRandomSource(f"{self.seed}:{substream_id}")


def create_rng(seed: str | None) -> SeededRandomSource:
    return SeededRandomSource(seed)


def turn_random(seed_key: str, turn_number: int) -> SeededRandomSource:
    return SeededRandomSource(f"{seed_key}:{turn_number}")
