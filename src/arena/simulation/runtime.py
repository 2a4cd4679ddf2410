from __future__ import annotations

from pathlib import Path
from typing import Any

from arena.contracts import (
    ActionRequest,
    ActionResult,
    ActionType,
    EngineResult,
    ErrorCode,
    ForensicArtifact,
    ValidationError,
)
from arena.core import (
    EngineConfig,
    EngineIntegrityError,
    build_forensic_artifact,
    persist_forensic_artifact,
    to_plain,
)
from arena.export import ExportService
from arena.persistence import (
    ArchivePolicy,
    MatchArchive,
    MatchArchiveContext,
    MatchStore,
    should_archive_match,
)
from arena.simulation.lifecycle import MatchEngine
from arena.simulation.validation import RequestValidator


class RuntimePaths:
    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def archive_path(self) -> Path:
        return self.root / "data" / "arena.duckdb"

    @property
    def export_dir(self) -> Path:
        return self.root / "exports"

    @property
    def forensic_dir(self) -> Path:
        return self.root / "forensics"


class ArenaRuntime:
    def __init__(
        self,
        root: Path | None = None,
        store: MatchStore | None = None,
        config: EngineConfig | None = None,
        engine: MatchEngine | None = None,
        archive_policy: ArchivePolicy | None = None,
    ) -> None:
        self.paths = RuntimePaths(root) if root is not None else None
        self.engine = engine or MatchEngine(store=store, config=config)
        self.validator = RequestValidator(self.engine.config)
        self.archive_policy = archive_policy or ArchivePolicy()
        self.archive = MatchArchive(self.paths.archive_path) if self.paths is not None else None

        self.halted = False
        self.last_forensic_path: str | None = None
        self.last_forensic_artifact: ForensicArtifact | None = None

    def handle_action(self, request: ActionRequest) -> ActionResult:
        if self.halted:
            return ActionResult(
                request.request_id,
                False,
                f"runtime halted after integrity failure; forensic={self.last_forensic_path}",
                {"error_code": ErrorCode.RUNTIME_HALTED.value, "forensic_path": self.last_forensic_path},
            )

        try:
            return self._handle_action_core(request)
        except EngineIntegrityError as exc:
            self._halt(exc.artifact)
            return ActionResult(
                request.request_id,
                False,
                f"integrity failure: {exc.artifact.error_code}",
                {"error_code": exc.artifact.error_code, "forensic_path": self.last_forensic_path},
            )
        except Exception as exc:
            artifact = build_forensic_artifact(
                engine_scope="runtime",
                error_code="UNHANDLED_RUNTIME_EXCEPTION",
                message=str(exc),
                state_snapshot={"matches": len(self.engine.store.list_ids())},
                context={"action_type": str(request.action_type), "payload": to_plain(request.payload)},
                identifiers={"request_id": request.request_id},
                causal_fragment=["runtime_dispatch"],
            )
            self._halt(artifact)
            return ActionResult(
                request.request_id,
                False,
                f"runtime hard-stopped: {exc}",
                {"error_code": "UNHANDLED_RUNTIME_EXCEPTION", "forensic_path": self.last_forensic_path},
            )

    def _halt(self, artifact: ForensicArtifact) -> None:
        self.last_forensic_artifact = artifact
        if self.paths is not None:
            self.last_forensic_path = str(persist_forensic_artifact(artifact, self.paths.forensic_dir))
        self.halted = True

    def _handle_action_core(self, request: ActionRequest) -> ActionResult:
        try:
            action = self._normalize_action(request.action_type)
        except ValueError:
            return ActionResult(
                request.request_id,
                False,
                f"Unsupported action '{request.action_type}'",
                {"error_code": ErrorCode.UNSUPPORTED_ACTION.value},
            )

        payload = request.payload
        try:
            if action == ActionType.CREATE_MATCH:
                parsed = self.validator.parse_create_request(payload)
                return self._result(
                    request,
                    self.engine.create_match(parsed.roster_character_ids, parsed.participant_names, parsed.settings),
                    "match created",
                )
            if action == ActionType.START_MATCH:
                match_id = self.validator.require_match_id(payload)
                return self._result(request, self.engine.start_match(match_id), "match started")
            if action == ActionType.QUEUE_GOD_MODE:
                match_id = self.validator.require_match_id(payload)
                actions = self.validator.parse_god_mode_actions(payload)
                return self._result(request, self.engine.queue_god_mode_actions(match_id, actions), "god mode queued")
            if action == ActionType.ADVANCE_TURN:
                match_id = self.validator.require_match_id(payload)
                advanced = self.engine.advance_turn(match_id)
                result = self._result(request, advanced, "turn advanced")
                if advanced.ok and advanced.value is not None and advanced.value.finished:
                    result.data["archived"] = self._archive_if_retained(match_id)
                return result
            if action == ActionType.GET_MATCH_STATE:
                match_id = self.validator.require_match_id(payload)
                view = self.engine.get_match_state(match_id)
                if view is None:
                    return self._result(request, EngineResult.failure(ErrorCode.MATCH_NOT_FOUND, "Match not found."), "")
                return ActionResult(request.request_id, True, "match state", to_plain(view))
            if action == ActionType.EXPORT_SNAPSHOT:
                match_id = self.validator.require_match_id(payload)
                return self._result(request, self.engine.export_snapshot(match_id), "snapshot exported")
            if action == ActionType.RESUME_MATCH:
                envelope = payload.get("envelope")
                if not isinstance(envelope, (dict, str)):
                    return self._result(
                        request,
                        EngineResult.failure(ErrorCode.SNAPSHOT_INVALID, "envelope must be an object or JSON text"),
                        "",
                    )
                return self._result(request, self.engine.resume_match(envelope), "match resumed")
            if action == ActionType.EXPORT_ARCHIVE:
                return self._export_archive(request)
        except ValidationError as exc:
            return self._result(request, EngineResult.failure(ErrorCode.VALIDATION_FAILED, str(exc), exc.issues), "")

        return ActionResult(
            request.request_id,
            False,
            f"Unsupported action '{request.action_type}'",
            {"error_code": ErrorCode.UNSUPPORTED_ACTION.value},
        )

    def _result(self, request: ActionRequest, result: EngineResult[Any], message: str) -> ActionResult:
        error = result.error
        if result.ok or error is None:
            data = to_plain(result.value)
            return ActionResult(request.request_id, True, message, data if isinstance(data, dict) else {"value": data})
        return ActionResult(
            request.request_id,
            False,
            error.message,
            {"error_code": error.code.value, "issues": to_plain(error.issues)},
        )

    def _archive_if_retained(self, match_id: str, tagged: bool = False) -> bool:
        if self.archive is None:
            return False
        stored = self.engine.store.get(match_id)
        if stored is None:
            return False
        context = MatchArchiveContext(
            match_id=match_id,
            phase=stored.match.phase,
            turn_number=stored.match.turn_number,
            god_mode_events=sum(entry.god_mode_events for entry in stored.ledger),
            tagged_for_archive=tagged,
        )
        if not should_archive_match(self.archive_policy, context):
            return False
        self.archive.archive_match(stored)
        return True

    def _export_archive(self, request: ActionRequest) -> ActionResult:
        if self.paths is None or self.archive is None:
            return ActionResult(
                request.request_id,
                False,
                "archive export requires a runtime root",
                {"error_code": ErrorCode.UNSUPPORTED_ACTION.value},
            )
        match_id = request.payload.get("match_id")
        if not isinstance(match_id, str) or not match_id:
            match_id = None
        if match_id is not None:
            if self.engine.store.get(match_id) is None:
                return self._result(request, EngineResult.failure(ErrorCode.MATCH_NOT_FOUND, "Match not found."), "")
            self._archive_if_retained(match_id, tagged=True)
        outputs = self.export(match_id)
        return ActionResult(request.request_id, True, "archive exported", {"paths": [str(p) for p in outputs]})

    def export(self, match_id: str | None = None) -> list[Path]:
        if self.paths is None or self.archive is None:
            raise RuntimeError("archive export requires a runtime root")
        self.archive.initialize_schema()
        service = ExportService(self.paths.archive_path)
        return service.export_required_datasets(self.paths.export_dir, match_id=match_id)

    def _normalize_action(self, action: ActionType | str) -> ActionType:
        if isinstance(action, ActionType):
            return action
        return ActionType(action)
