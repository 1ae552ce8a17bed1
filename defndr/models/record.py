"""
defndr/models/record.py
Shared dataclass schema. The pipeline, engine, monitor and facade
all use these types. Do not add logic here — data only.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class ProcessedMessage:
    """One preprocessed message. Never carries the raw input text."""
    fingerprint:           str          # SHA-256 hex of normalized text (cache key, not a credential)
    normalized_text:       str
    tokens:                Tuple[str, ...]
    language:              Optional[str]
    original_length:       int
    normalized_length:     int
    token_count:           int
    shallow_features:      Dict[str, float] = field(default_factory=dict)
    embedding_fingerprint: Optional[str]    = None   # "gen:64" / "cached:64" in verbose mode


@dataclass(frozen=True)
class ScoreResult:
    """Output of one signal evaluation."""
    raw_score:           float            # unbounded weighted sum
    normalized_score:    float            # logistic squash, 0..1
    triggered:           Tuple[str, ...]
    reason:              str
    effective_threshold: float = 0.0

    @property
    def meets_threshold(self) -> bool:
        return self.normalized_score >= self.effective_threshold


@dataclass(frozen=True)
class HealthSnapshot:
    """Point-in-time view of the health monitor's rolling buffers."""
    timestamp:        datetime
    model_latency_ms: float
    confidence_mean:  float
    confidence_std:   float
    anomalies:        Dict[str, int]
    latency_p95:      float


@dataclass(frozen=True)
class ScoringOutcome:
    """One full decision cycle as returned by the MessageScorer facade."""
    message:    ProcessedMessage
    result:     ScoreResult
    model_vote: Optional[float]
    latency_ms: float
