from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import duckdb

from arena.contracts import CyclePhase, SourceType, StoredMatch, TurnLedgerEntry
from arena.core import utc_iso

ARCHIVE_TABLES = ("arena_matches", "arena_events", "arena_turn_ledger")


class MatchArchive:
    """Analytical copy of finished matches; the live store stays in memory."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> Any:
        return duckdb.connect(str(self.db_path))

    def initialize_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS arena_matches (
                    match_id VARCHAR PRIMARY KEY,
                    seed VARCHAR,
                    ruleset_version VARCHAR,
                    phase VARCHAR,
                    turn_number INTEGER,
                    tension_level DOUBLE,
                    roster_size INTEGER,
                    survivors INTEGER,
                    winner_id VARCHAR,
                    winner_name VARCHAR,
                    created_at VARCHAR,
                    ended_at VARCHAR,
                    archived_at VARCHAR
                );

                CREATE TABLE IF NOT EXISTS arena_events (
                    event_id VARCHAR PRIMARY KEY,
                    match_id VARCHAR,
                    turn_number INTEGER,
                    template_id VARCHAR,
                    event_type VARCHAR,
                    source_type VARCHAR,
                    phase VARCHAR,
                    location VARCHAR,
                    participant_count INTEGER,
                    intensity INTEGER,
                    lethal BOOLEAN,
                    narrative_text VARCHAR,
                    created_at VARCHAR
                );

                CREATE TABLE IF NOT EXISTS arena_turn_ledger (
                    match_id VARCHAR,
                    turn_number INTEGER,
                    cycle_phase VARCHAR,
                    template_id VARCHAR,
                    source_type VARCHAR,
                    participant_ids VARCHAR,
                    eliminated_ids VARCHAR,
                    tension_level DOUBLE,
                    survivors_count INTEGER,
                    replay_signature VARCHAR,
                    god_mode_events INTEGER,
                    PRIMARY KEY(match_id, turn_number)
                );
                """
            )

    def archive_match(self, stored: StoredMatch) -> None:
        self.initialize_schema()
        match = stored.match
        alive = [p for p in stored.participants if p.is_alive]
        winner = alive[0] if len(alive) == 1 else None
        match_row = (
            match.id,
            match.seed,
            match.ruleset_version,
            match.phase.value,
            match.turn_number,
            float(match.tension_level),
            len(stored.participants),
            len(alive),
            winner.id if winner else None,
            winner.display_name if winner else None,
            match.created_at.isoformat(),
            match.ended_at.isoformat() if match.ended_at else None,
            utc_iso(),
        )
        event_rows = [
            (
                e.id,
                e.match_id,
                e.turn_number,
                e.template_id,
                e.type.value,
                e.source_type.value,
                e.phase.value,
                e.location.value,
                e.participant_count,
                e.intensity,
                e.lethal,
                e.narrative_text,
                e.created_at.isoformat(),
            )
            for e in stored.recent_events
        ]
        ledger_rows = [
            (
                match.id,
                entry.turn_number,
                entry.cycle_phase.value,
                entry.template_id,
                entry.source_type.value,
                json.dumps(entry.participant_ids),
                json.dumps(entry.eliminated_ids),
                float(entry.tension_level),
                entry.survivors_count,
                entry.replay_signature,
                entry.god_mode_events,
            )
            for entry in stored.ledger
        ]
        with self.connect() as conn:
            self._upsert_rows(conn, "arena_matches", "match_id", [match_row])
            conn.execute("DELETE FROM arena_events WHERE match_id = ?", [match.id])
            self._insert_rows(conn, "arena_events", event_rows)
            conn.execute("DELETE FROM arena_turn_ledger WHERE match_id = ?", [match.id])
            self._insert_rows(conn, "arena_turn_ledger", ledger_rows)

    def list_archived_matches(self) -> list[dict[str, Any]]:
        self.initialize_schema()
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT match_id, seed, phase, turn_number, roster_size, survivors, winner_id, winner_name, ended_at
                FROM arena_matches
                ORDER BY archived_at, match_id
                """
            )
            columns = [d[0] for d in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def load_turn_ledger(self, match_id: str) -> list[TurnLedgerEntry]:
        self.initialize_schema()
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT turn_number, cycle_phase, template_id, source_type, participant_ids, eliminated_ids,
                       tension_level, survivors_count, replay_signature, god_mode_events
                FROM arena_turn_ledger
                WHERE match_id = ?
                ORDER BY turn_number
                """,
                [match_id],
            ).fetchall()
        return [
            TurnLedgerEntry(
                turn_number=int(r[0]),
                cycle_phase=CyclePhase(r[1]),
                template_id=r[2],
                source_type=SourceType(r[3]),
                participant_ids=json.loads(r[4]),
                eliminated_ids=json.loads(r[5]),
                tension_level=float(r[6]),
                survivors_count=int(r[7]),
                replay_signature=r[8],
                god_mode_events=int(r[9]),
            )
            for r in rows
        ]

    def _upsert_rows(self, conn: Any, table: str, key_col: str, rows: list[tuple]) -> None:
        if not rows:
            return
        keys = [r[0] for r in rows]
        placeholders = ",".join(["?"] * len(keys))
        conn.execute(f"DELETE FROM {table} WHERE {key_col} IN ({placeholders})", keys)
        self._insert_rows(conn, table, rows)

    def _insert_rows(self, conn: Any, table: str, rows: list[tuple]) -> None:
        if not rows:
            return
        values_placeholder = ",".join(["?"] * len(rows[0]))
        conn.executemany(f"INSERT INTO {table} VALUES ({values_placeholder})", rows)
