from .checksum import stable_checksum, stable_json, to_plain
from .errors import CatalogConfigurationError, EngineIntegrityError, build_forensic_artifact, persist_forensic_artifact
from .events import EventBus
from .ids import make_id, now_utc, utc_iso
from .observability import LatencyRecorder, emit_structured_log
from .randomness import DEFAULT_SEED, SeededRandomSource, create_rng, normalize_seed, turn_random
from .rules import (
    PHASE_BASE_ELIMINATION,
    RULESET_VERSION,
    SNAPSHOT_VERSION,
    SPECIAL_EVENT_RULES,
    EngineConfig,
    default_engine_config,
    engine_config_from_overrides,
)

__all__ = [
    "CatalogConfigurationError",
    "DEFAULT_SEED",
    "EngineConfig",
    "EngineIntegrityError",
    "EventBus",
    "LatencyRecorder",
    "PHASE_BASE_ELIMINATION",
    "RULESET_VERSION",
    "SNAPSHOT_VERSION",
    "SPECIAL_EVENT_RULES",
    "SeededRandomSource",
    "build_forensic_artifact",
    "create_rng",
    "default_engine_config",
    "emit_structured_log",
    "engine_config_from_overrides",
    "make_id",
    "normalize_seed",
    "now_utc",
    "persist_forensic_artifact",
    "stable_checksum",
    "stable_json",
    "to_plain",
    "turn_random",
    "utc_iso",
]
