"""In-process audit metrics: labelled counters and bucketed latency histograms. No Prometheus dependency."""

import bisect
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Upper bounds (ms) for audited request durations; the last bucket is +Inf.
LATENCY_BUCKETS_MS: Tuple[float, ...] = (5, 10, 25, 50, 100, 250, 500, 1000, 2500)


def series_name(name: str, **labels: Optional[str]) -> str:
    """Exposition-style series key: `audit_records_written{entity_type="vehicle"}`."""
    present = sorted((k, v) for k, v in labels.items() if v is not None)
    if not present:
        return name
    rendered = ",".join(f'{k}="{v}"' for k, v in present)
    return f"{name}{{{rendered}}}"


@dataclass
class _Histogram:
    bucket_counts: List[int] = field(default_factory=lambda: [0] * (len(LATENCY_BUCKETS_MS) + 1))
    count: int = 0
    total: float = 0.0
    max: float = 0.0

    def observe(self, value: float) -> None:
        self.bucket_counts[bisect.bisect_left(LATENCY_BUCKETS_MS, value)] += 1
        self.count += 1
        self.total += value
        self.max = max(self.max, value)

    def summary(self) -> Dict[str, Any]:
        buckets: Dict[str, int] = {}
        running = 0
        for bound, hits in zip(LATENCY_BUCKETS_MS + (float("inf"),), self.bucket_counts):
            running += hits
            buckets["+Inf" if bound == float("inf") else f"{bound:g}"] = running
        return {"count": self.count, "sum": self.total, "max": self.max, "buckets": buckets}


class MetricsCollector:
    """
    Counters: audit_records_written, audit_records_failed, audit_changes_skipped
    (optionally labelled by entity_type). Histogram: audited_request_duration_ms
    (optionally labelled by method). Thread-safe.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, float] = {}
        self._totals: Dict[str, float] = {}
        self._histograms: Dict[str, _Histogram] = {}

    def increment(self, name: str, value: float = 1.0, *, entity_type: Optional[str] = None) -> None:
        key = series_name(name, entity_type=entity_type)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value
            self._totals[name] = self._totals.get(name, 0) + value

    def observe_latency(self, name: str, latency_ms: float, *, method: Optional[str] = None) -> None:
        key = series_name(name, method=method)
        with self._lock:
            self._histograms.setdefault(key, _Histogram()).observe(latency_ms)

    def value(self, name: str, **labels: Optional[str]) -> float:
        """Current value of one counter series; 0 if never incremented."""
        with self._lock:
            return self._counters.get(series_name(name, **labels), 0)

    def total(self, name: str) -> float:
        """Sum of a counter across all of its label sets."""
        with self._lock:
            return self._totals.get(name, 0)

    def snapshot(self) -> Dict[str, Any]:
        """Point-in-time copy of every series."""
        with self._lock:
            return {
                "counters": dict(self._counters),
                "histograms": {k: h.summary() for k, h in self._histograms.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._totals.clear()
            self._histograms.clear()
