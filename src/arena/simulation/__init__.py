from .lifecycle import MatchEngine
from .replay import ReplayHarness, ReplayStep
from .runtime import ArenaRuntime, RuntimePaths
from .validation import CreateMatchRequest, RequestValidator

__all__ = [
    "ArenaRuntime",
    "CreateMatchRequest",
    "MatchEngine",
    "ReplayHarness",
    "ReplayStep",
    "RequestValidator",
    "RuntimePaths",
]
