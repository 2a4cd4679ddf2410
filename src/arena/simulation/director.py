from __future__ import annotations

from dataclasses import dataclass

from arena.contracts import CyclePhase

ELIMINATION_RELEASE = -8
CALM_BUILDUP = 7
FINALE_PRESSURE = 5
FINALE_PRESSURE_ALIVE = 6
FINALE_ALIVE = 2


@dataclass(frozen=True, slots=True)
class DirectorState:
    turn_number: int
    cycle_phase: CyclePhase
    alive_count: int
    tension_level: float


def next_cycle_phase(turn_number: int, alive_count: int) -> CyclePhase:
    if turn_number == 0:
        return CyclePhase.BLOODBATH
    if alive_count <= FINALE_ALIVE:
        return CyclePhase.FINALE
    return CyclePhase.DAY if turn_number % 2 == 1 else CyclePhase.NIGHT


def next_tension_level(current: float, had_elimination: bool, alive_count: int) -> float:
    delta = ELIMINATION_RELEASE if had_elimination else CALM_BUILDUP
    if alive_count <= FINALE_PRESSURE_ALIVE:
        delta += FINALE_PRESSURE
    return float(min(100.0, max(0.0, current + delta)))


def advance_director(state: DirectorState, had_elimination: bool, next_alive_count: int) -> DirectorState:
    turn_number = state.turn_number + 1
    if state.cycle_phase == CyclePhase.FINALE:
        cycle_phase = CyclePhase.FINALE
    else:
        cycle_phase = next_cycle_phase(turn_number, next_alive_count)
    return DirectorState(
        turn_number=turn_number,
        cycle_phase=cycle_phase,
        alive_count=next_alive_count,
        tension_level=next_tension_level(state.tension_level, had_elimination, next_alive_count),
    )
