from __future__ import annotations

import json
import logging
import math
from collections import defaultdict, deque
from typing import Deque, Union

from arena.core.ids import utc_iso

TelemetryValue = Union[str, int, float, bool, None]

LATENCY_SERIES_LIMIT = 200

logger = logging.getLogger("arena")


def emit_structured_log(event: str, **payload: TelemetryValue | list[str]) -> dict[str, object]:
    record: dict[str, object] = {"timestamp": utc_iso(), "event": event, **payload}
    logger.info(json.dumps(record, default=str, sort_keys=True))
    return record


def _stable_key(metric: str, dimensions: dict[str, TelemetryValue] | None) -> str:
    if not dimensions:
        return metric
    parts = "|".join(f"{k}:{dimensions[k]}" for k in sorted(dimensions))
    return f"{metric}|{parts}"


def _rounded_ms(value: float) -> float:
    return max(0.0, round(value * 100) / 100)


def percentile95(samples: list[float]) -> float:
    if not samples:
        return 0.0
    ordered = sorted(samples)
    index = max(0, math.ceil(len(ordered) * 0.95) - 1)
    return ordered[index]


class LatencyRecorder:
    def __init__(self, limit: int = LATENCY_SERIES_LIMIT) -> None:
        self._limit = limit
        self._series: defaultdict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=self._limit))

    def record(
        self,
        metric: str,
        duration_ms: float,
        dimensions: dict[str, TelemetryValue] | None = None,
    ) -> dict[str, float]:
        series = self._series[_stable_key(metric, dimensions)]
        series.append(_rounded_ms(duration_ms))
        p95 = _rounded_ms(percentile95(list(series)))
        emit_structured_log(
            "metric.latency",
            metric=metric,
            duration_ms=_rounded_ms(duration_ms),
            p95_ms=p95,
            samples=len(series),
            unit="ms",
            **(dimensions or {}),
        )
        return {"p95_ms": p95, "samples": float(len(series))}

    def reset(self) -> None:
        self._series.clear()
