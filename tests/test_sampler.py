from __future__ import annotations

import pytest

from arena.core import create_rng
from arena.simulation.sampler import (
    DUEL_SIZE,
    MULTI_TOTAL_CAP,
    choose_participants,
    multi_participant_chances,
    sample_participant_count,
)


def test_multi_participant_chances_decay_and_respect_cap():
    chances = multi_participant_chances(48)
    assert [k for k, _ in chances] == [3, 4, 5, 6]
    assert chances[0][1] == pytest.approx(0.01)
    assert all(a[1] > b[1] for a, b in zip(chances, chances[1:]))
    assert sum(c for _, c in chances) <= MULTI_TOTAL_CAP
    assert multi_participant_chances(3) == [(3, pytest.approx(0.01))]
    assert multi_participant_chances(2) == []


def test_small_fields_always_use_everyone():
    assert sample_participant_count(2, lambda: 0.0) == 2
    assert sample_participant_count(1, lambda: 0.0) == 1


def test_low_roll_produces_group_event_and_high_roll_a_duel():
    assert sample_participant_count(10, lambda: 0.005) == 3
    assert sample_participant_count(10, lambda: 0.012) == 4
    assert sample_participant_count(10, lambda: 0.5) == DUEL_SIZE


def test_duels_dominate_over_many_draws():
    rng = create_rng("sampler")
    counts = [sample_participant_count(24, rng) for _ in range(5000)]
    assert counts.count(DUEL_SIZE) / len(counts) > 0.95
    assert max(counts) <= 6


def test_choose_participants_is_distinct_and_bounded():
    pool = [f"p{i}" for i in range(10)]
    rng = create_rng("choose")
    for _ in range(100):
        picked = choose_participants(pool, 3, rng)
        assert len(picked) == 3
        assert len(set(picked)) == 3
        assert set(picked) <= set(pool)
    assert sorted(choose_participants(pool[:2], 5, rng)) == ["p0", "p1"]
    assert pool == [f"p{i}" for i in range(10)]
