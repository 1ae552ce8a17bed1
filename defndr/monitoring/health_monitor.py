"""
defndr/monitoring/health_monitor.py
On-device model health telemetry: rolling latency/confidence buffers,
anomaly counters and confidence drift detection.

Privacy: nothing here leaves the device. Only numbers are stored —
never message content, senders or fingerprints.

Concurrency: one lock owns both buffers and the counters. Append, eviction,
snapshot and drift checks each run entirely under it, so a snapshot always
sees a prefix-consistent buffer state.
"""

import logging
import math
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, Sequence

from defndr.models.record import HealthSnapshot

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY          = 1000
DEFAULT_DRIFT_WINDOW      = 300
DEFAULT_ANOMALY_THRESHOLD = 0.25

VERY_LOW_CONFIDENCE = 'veryLowConfidence'
LOW_CONFIDENCE      = 'lowConfidence'
HIGH_LATENCY        = 'highLatency'

VERY_LOW_CONFIDENCE_BELOW = 0.1
LOW_CONFIDENCE_BELOW      = 0.4
HIGH_LATENCY_ABOVE_MS     = 200.0


# ── STATISTICS ───────────────────────────────────────────────

def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return math.fsum(values) / len(values)


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation (n-1 denominator). 0.0 below two samples."""
    n = len(values)
    if n < 2:
        return 0.0
    m = mean(values)
    return math.sqrt(math.fsum((v - m) ** 2 for v in values) / (n - 1))


def percentile(values: Sequence[float], p: float) -> float:
    """Nearest-rank: sorted ascending, index floor(n * p), clamped to last."""
    if not values:
        return 0.0
    ordered = sorted(values)
    index = int(len(ordered) * p)
    return ordered[min(index, len(ordered) - 1)]


class HealthMonitor:
    """
    Thread-safe rolling health state for the scoring process.

    Usage:
        monitor = HealthMonitor()
        monitor.record_prediction(latency_ms=12.5, confidence=0.93)
        snap = monitor.snapshot()
        if monitor.detect_drift(): ...
    """

    def __init__(
        self,
        capacity:          int   = DEFAULT_CAPACITY,
        drift_window:      int   = DEFAULT_DRIFT_WINDOW,
        anomaly_threshold: float = DEFAULT_ANOMALY_THRESHOLD,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if drift_window < 1:
            raise ValueError("drift_window must be >= 1")
        self.capacity = capacity
        self.drift_window = drift_window
        self.anomaly_threshold = anomaly_threshold

        self._latencies:   Deque[float]   = deque(maxlen=capacity)
        self._confidences: Deque[float]   = deque(maxlen=capacity)
        self._anomalies:   Dict[str, int] = {}
        self._lock = threading.Lock()

    # ── MUTATION ──────────────────────────────────────────────

    def record_prediction(self, latency_ms: float, confidence: float) -> None:
        """
        Append one sample to both buffers (oldest evicted past capacity)
        and bump every anomaly counter whose check fires. The two
        low-confidence checks overlap on purpose: a very low sample counts
        toward both. A sample whose latency or confidence is not a finite
        number is dropped with a warning.
        """
        try:
            latency_ms = float(latency_ms)
            confidence = float(confidence)
        except (TypeError, ValueError):
            logger.warning("ML health: sample dropped (non-numeric value)")
            return
        if not (math.isfinite(latency_ms) and math.isfinite(confidence)):
            logger.warning("ML health: sample dropped (non-finite value)")
            return
        with self._lock:
            self._latencies.append(latency_ms)
            self._confidences.append(confidence)

            if confidence < VERY_LOW_CONFIDENCE_BELOW:
                self._increment(VERY_LOW_CONFIDENCE)
            if confidence < LOW_CONFIDENCE_BELOW:
                self._increment(LOW_CONFIDENCE)
            if latency_ms > HIGH_LATENCY_ABOVE_MS:
                self._increment(HIGH_LATENCY)

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "ML health: mean_latency_ms=%.2f mean_confidence=%.3f samples=%d",
                    mean(self._latencies), mean(self._confidences), len(self._latencies),
                )

    def clear(self) -> None:
        """Empty both buffers and reset all counters. Never called automatically."""
        with self._lock:
            self._latencies.clear()
            self._confidences.clear()
            self._anomalies.clear()

    def _increment(self, kind: str) -> None:
        self._anomalies[kind] = self._anomalies.get(kind, 0) + 1

    # ── READS ─────────────────────────────────────────────────

    @property
    def sample_count(self) -> int:
        with self._lock:
            return len(self._confidences)

    def latencies(self) -> list:
        """Copy of the latency buffer, oldest first."""
        with self._lock:
            return list(self._latencies)

    def confidences(self) -> list:
        """Copy of the confidence buffer, oldest first."""
        with self._lock:
            return list(self._confidences)

    def snapshot(self) -> HealthSnapshot:
        with self._lock:
            latencies = list(self._latencies)
            confidences = list(self._confidences)
            anomalies = dict(self._anomalies)
        return HealthSnapshot(
            timestamp        = datetime.now(timezone.utc),
            model_latency_ms = mean(latencies),
            confidence_mean  = mean(confidences),
            confidence_std   = sample_std(confidences),
            anomalies        = anomalies,
            latency_p95      = percentile(latencies, 0.95),
        )

    def detect_drift(self) -> bool:
        """
        Compare the mean of the newest drift_window confidences against the
        mean of everything older. False until at least 2 * drift_window
        samples exist — drift is an early warning, not a gate.
        """
        with self._lock:
            window = self.drift_window
            if len(self._confidences) < window * 2:
                return False
            values = list(self._confidences)
            threshold = self.anomaly_threshold
        recent = values[-window:]
        historic = values[:-window]
        drifted = abs(mean(recent) - mean(historic)) >= threshold
        if drifted:
            logger.info("Confidence drift detected: window=%d samples=%d", window, len(values))
        return drifted
