"""
defndr/api.py
─────────────────────────────────────────────────────────────────────────────
Defndr — importable scoring facade for the host message filter.

    from defndr.api import MessageScorer
    scorer  = MessageScorer(model=MyCoreMLAdapter())
    outcome = scorer.score(raw_text, sender="+15550001")
    if outcome.result.meets_threshold: ...

One call = one decision cycle:
    raw text → preprocessing → model vote (optional) → signal scoring
    → health monitor records latency + confidence of the cycle

The block/allow decision stays with the caller. So does the minConfidence
gate on the model vote (see ScoringConfig.min_confidence).

PRIVACY NOTE:
  No network, no IPC, no disk. Logs carry counts and latencies only —
  never message text, tokens, senders or fingerprints.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from defndr.config import merge_settings
from defndr.classifier.base import SpamModelAdapter
from defndr.models.record import HealthSnapshot, ProcessedMessage, ScoringOutcome
from defndr.monitoring.health_monitor import HealthMonitor
from defndr.preprocessing.cache import EmbeddingCache
from defndr.preprocessing.pipeline import MessagePreprocessingPipeline, PipelineMode
from defndr.scoring.config import ScoringConfig
from defndr.scoring.engine import SignalScoringEngine

logger = logging.getLogger(__name__)


class MessageScorer:
    """
    Wires the three stages together and feeds the health monitor.
    Every component is safe to share across threads; so is this class.
    """

    def __init__(
        self,
        pipeline: Optional[MessagePreprocessingPipeline] = None,
        engine:   Optional[SignalScoringEngine]          = None,
        monitor:  Optional[HealthMonitor]                = None,
        model:    Optional[SpamModelAdapter]             = None,
    ):
        self.pipeline = pipeline or MessagePreprocessingPipeline()
        self.engine = engine or SignalScoringEngine()
        self.monitor = monitor or HealthMonitor()
        self.model = model

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Dict[str, Any]] = None,
        config:   Optional[ScoringConfig]  = None,
        model:    Optional[SpamModelAdapter] = None,
    ) -> "MessageScorer":
        """Build all components from a runtime settings dict (see defndr.config)."""
        s = merge_settings(settings)
        return cls(
            pipeline=MessagePreprocessingPipeline(
                mode=PipelineMode(s["pipeline_mode"]),
                cache=EmbeddingCache(max_entries=s["cache_max_entries"]),
            ),
            engine=SignalScoringEngine(config),
            monitor=HealthMonitor(
                capacity=s["health_capacity"],
                drift_window=s["drift_window"],
                anomaly_threshold=s["anomaly_threshold"],
            ),
            model=model,
        )

    # ── MODEL VOTE ────────────────────────────────────────────

    def _model_vote(self, message: ProcessedMessage) -> Optional[float]:
        """
        Ask the adapter for a spam probability. Any failure — unavailable,
        exception, non-numeric or out-of-range value — means no vote.
        """
        if self.model is None:
            return None
        name = getattr(self.model, "name", "unknown")
        try:
            if not self.model.is_available():
                return None
            vote = self.model.predict(message)
        except Exception as e:
            logger.warning("Model vote failed (%s): %s", name, type(e).__name__)
            return None
        if vote is None:
            return None
        try:
            vote = float(vote)
        except (TypeError, ValueError):
            logger.warning("Model vote dropped (%s): non-numeric", name)
            return None
        if math.isnan(vote) or not 0.0 <= vote <= 1.0:
            logger.warning("Model vote dropped (%s): out of range", name)
            return None
        return vote

    # ── SCORING ───────────────────────────────────────────────

    def score(self, raw_text: str, sender: Optional[str] = None) -> ScoringOutcome:
        start = time.perf_counter()
        message = self.pipeline.process(raw_text)
        vote = self._model_vote(message)
        result = self.engine.evaluate(message.shallow_features, model_vote=vote, sender=sender)
        latency_ms = (time.perf_counter() - start) * 1000.0

        # Decision confidence: distance from a coin flip in either direction
        p = vote if vote is not None else result.normalized_score
        confidence = max(p, 1.0 - p)
        self.monitor.record_prediction(latency_ms=latency_ms, confidence=confidence)

        return ScoringOutcome(
            message=message,
            result=result,
            model_vote=vote,
            latency_ms=latency_ms,
        )

    def score_batch(
        self,
        items: Iterable[Union[str, Tuple[str, Optional[str]]]],
    ) -> List[ScoringOutcome]:
        """
        Score many messages in order. Items are raw text or (text, sender).
        Logs operation count and latency only.
        """
        start = time.perf_counter()
        outcomes: List[ScoringOutcome] = []
        for item in items:
            if isinstance(item, tuple):
                text, sender = item
            else:
                text, sender = item, None
            outcomes.append(self.score(text, sender=sender))

        elapsed = time.perf_counter() - start
        flagged = sum(1 for o in outcomes if o.result.meets_threshold)
        logger.info(
            "Scorer batch complete: count=%s flagged=%s latency_sec=%.3f",
            len(outcomes), flagged, elapsed,
        )
        return outcomes

    # ── ADMIN ─────────────────────────────────────────────────

    def reconfigure(self, data: Union[bytes, str]) -> ScoringConfig:
        """Swap in a new scoring configuration. Raises ConfigParseError."""
        return self.engine.load_config(data)

    def health(self) -> HealthSnapshot:
        return self.monitor.snapshot()

    def drift_detected(self) -> bool:
        return self.monitor.detect_drift()
