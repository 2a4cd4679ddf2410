from __future__ import annotations

import argparse
import logging
from pathlib import Path

from arena.contracts import ActionRequest, ActionType
from arena.core import make_id
from arena.export import render_match_timeline
from arena.simulation import ArenaRuntime
from arena.simulation.roster import build_default_roster


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Arena: seeded elimination tournament simulator")
    parser.add_argument("--seed", type=str, default=None, help="seed for deterministic runs")
    parser.add_argument("--roster-size", type=int, default=24, help="number of tributes (10-48)")
    parser.add_argument("--root", type=Path, default=None, help="runtime root for archive, exports and forensics")
    parser.add_argument("--chart", type=Path, default=None, help="write a tension/survivors PNG to this path")
    parser.add_argument("--max-turns", type=int, default=500, help="safety cap on advanced turns")
    parser.add_argument("--verbose", action="store_true", help="print structured engine logs")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(message)s")

    runtime = ArenaRuntime(root=args.root)
    roster, names = build_default_roster(args.roster_size)
    created = runtime.handle_action(
        ActionRequest(
            make_id("req"),
            ActionType.CREATE_MATCH,
            {"roster_character_ids": roster, "participant_names": names, "settings": {"seed": args.seed}},
        )
    )
    if not created.success:
        print(f"Create failed: {created.message}")
        return 1
    match_id = created.data["match_id"]
    runtime.handle_action(ActionRequest(make_id("req"), ActionType.START_MATCH, {"match_id": match_id}))

    for _ in range(args.max_turns):
        advanced = runtime.handle_action(ActionRequest(make_id("req"), ActionType.ADVANCE_TURN, {"match_id": match_id}))
        if not advanced.success:
            print(advanced.message)
            print(advanced.data)
            return 1
        event = advanced.data["event"]
        print(f"[{advanced.data['turn_number']:>3}] {event['narrative_text']}")
        if advanced.data["finished"]:
            break

    state = runtime.engine.get_match_state(match_id)
    if state is None:
        return 1
    winner = next((p for p in state.participants if p.id == state.winner_id), None)
    print(f"Winner: {winner.display_name if winner else 'none'} after {state.turn_number} turns")

    ledger = runtime.engine.turn_ledger(match_id) or []
    if args.chart is not None and ledger:
        print(f"Chart: {render_match_timeline(ledger, args.chart, title=f'Match {match_id}')}")

    if args.root is not None:
        exported = runtime.handle_action(ActionRequest(make_id("req"), ActionType.EXPORT_ARCHIVE, {"match_id": match_id}))
        if exported.success:
            print("Exported datasets:")
            for p in exported.data["paths"]:
                print(f"- {p}")
        else:
            print(f"Export unavailable: {exported.message}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
