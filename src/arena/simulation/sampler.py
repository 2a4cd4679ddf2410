from __future__ import annotations

from typing import Callable, Sequence, TypeVar

from arena.contracts import RandomSource

DUEL_SIZE = 2
MAX_EVENT_PARTICIPANTS = 6
MULTI_BASE_CHANCE = 0.01
MULTI_DECAY = 0.5
MULTI_TOTAL_CAP = 0.02

T = TypeVar("T")


def multi_participant_chances(alive_count: int) -> list[tuple[int, float]]:
    """Per-size chance for events larger than a duel, scaled so the total stays under the cap."""
    upper = min(MAX_EVENT_PARTICIPANTS, alive_count)
    chances = [(k, MULTI_BASE_CHANCE * MULTI_DECAY ** (k - 3)) for k in range(3, upper + 1)]
    total = sum(c for _, c in chances)
    if total > MULTI_TOTAL_CAP:
        scale = MULTI_TOTAL_CAP / total
        chances = [(k, c * scale) for k, c in chances]
    return chances


def sample_participant_count(alive_count: int, rng: Callable[[], float]) -> int:
    if alive_count <= DUEL_SIZE:
        return alive_count
    roll = rng()
    cumulative = 0.0
    for k, chance in multi_participant_chances(alive_count):
        cumulative += chance
        if roll < cumulative:
            return k
    return DUEL_SIZE


def choose_participants(pool: Sequence[T], count: int, rng: RandomSource) -> list[T]:
    remaining = list(pool)
    selected: list[T] = []
    for _ in range(min(count, len(remaining))):
        selected.append(remaining.pop(rng.pick_index(len(remaining))))
    return selected
