from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Sequence

from arena.contracts import ForensicArtifact
from arena.core.checksum import to_plain
from arena.core.ids import make_id, now_utc


class EngineIntegrityError(RuntimeError):
    """Engine state or configuration can no longer be trusted; the runtime halts on it."""

    def __init__(self, artifact: ForensicArtifact) -> None:
        super().__init__(f"{artifact.engine_scope}:{artifact.error_code}: {artifact.message}")
        self.artifact = artifact


class CatalogConfigurationError(EngineIntegrityError):
    """The event catalog cannot serve a phase; a deployment defect, never retried."""


def build_forensic_artifact(
    engine_scope: str,
    error_code: str,
    message: str,
    *,
    state_snapshot: Mapping[str, Any] | None = None,
    context: Mapping[str, Any] | None = None,
    identifiers: Mapping[str, str] | None = None,
    causal_fragment: Sequence[str] = (),
) -> ForensicArtifact:
    return ForensicArtifact(
        artifact_id=make_id("forensic"),
        timestamp=now_utc(),
        engine_scope=engine_scope,
        error_code=error_code,
        message=message,
        state_snapshot=dict(state_snapshot or {}),
        context=dict(context or {}),
        identifiers=dict(identifiers or {}),
        causal_fragment=list(causal_fragment),
    )


def persist_forensic_artifact(artifact: ForensicArtifact, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = artifact.timestamp.strftime("%Y%m%dT%H%M%S")
    path = output_dir / f"{artifact.engine_scope}_{artifact.error_code.lower()}_{stamp}_{artifact.artifact_id}.json"
    path.write_text(json.dumps(to_plain(artifact), indent=2, sort_keys=True, default=str), encoding="utf-8")
    return path
