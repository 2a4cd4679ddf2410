from __future__ import annotations

from dataclasses import dataclass

from arena.contracts import MatchPhase


@dataclass(slots=True)
class ArchivePolicy:
    archive_finished: bool = True
    archive_god_mode_matches: bool = True
    archive_long_matches: bool = True
    long_match_turns: int = 40


@dataclass(slots=True)
class MatchArchiveContext:
    match_id: str
    phase: MatchPhase
    turn_number: int
    god_mode_events: int
    tagged_for_archive: bool = False


def should_archive_match(policy: ArchivePolicy, context: MatchArchiveContext) -> bool:
    if context.tagged_for_archive:
        return True
    if context.phase != MatchPhase.FINISHED:
        return False
    if policy.archive_finished:
        return True
    if context.god_mode_events > 0 and policy.archive_god_mode_matches:
        return True
    if context.turn_number >= policy.long_match_turns and policy.archive_long_matches:
        return True
    return False
