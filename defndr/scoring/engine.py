"""
defndr/scoring/engine.py
Hybrid signal scoring — heuristic features plus an optional model vote.

Each active signal, in configuration order, maps to a feature-reading
rule. Contributions are summed into an unbounded raw score, squashed
with a steep logistic centred on 0.5, and compared against the global
threshold adjusted by a per-sender delta.

The engine makes no block/allow decision. It does NOT gate mlSpamVote on
minConfidence either; callers that want that gate apply it before
passing the vote in.

Configuration is a single-writer, multi-reader snapshot: readers take one
reference to an immutable (version, config) pair, writers build a new
pair and swap it in under a lock. A reader never sees a torn mix of old
signals and a new threshold.
"""

import logging
import math
import threading
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from defndr.errors import ConfigParseError
from defndr.models.record import ScoreResult
from defndr.preprocessing.pipeline import (
    CAPS_RATIO,
    CURRENCY_COUNT,
    NUMERIC_DENSITY,
    PUNCTUATION_RATE,
    SHORT_MSG_WITH_URL,
    URL_COUNT,
)
from defndr.scoring import config as cfg
from defndr.scoring.config import ScoringConfig, default_config, parse_config

logger = logging.getLogger(__name__)

SQUASH_STEEPNESS = 12.0
SQUASH_MIDPOINT  = 0.5
ML_VOTE_TRIGGER  = 0.5


def squash(raw_score: float) -> float:
    """1 / (1 + exp(-12 * (raw - 0.5))), overflow-safe on both tails."""
    z = SQUASH_STEEPNESS * (raw_score - SQUASH_MIDPOINT)
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    e = math.exp(z)
    return e / (1.0 + e)


def _feature(features: Mapping[str, float], name: str) -> float:
    """Missing or unreadable features count as 0.0."""
    value = features.get(name, 0.0)
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(value) else value


# ── HEURISTIC RULES ──────────────────────────────────────────
# Each returns the contribution when the signal triggers, else None.

def _url_presence(f: Mapping[str, float], weight: float) -> Optional[float]:
    count = _feature(f, URL_COUNT)
    return weight * min(1.0, count) if count >= 1 else None


def _punctuation_burst(f: Mapping[str, float], weight: float) -> Optional[float]:
    rate = _feature(f, PUNCTUATION_RATE)
    return weight * (rate * 10.0) if rate > 0.06 else None


def _caps_burst(f: Mapping[str, float], weight: float) -> Optional[float]:
    ratio = _feature(f, CAPS_RATIO)
    return weight * (ratio * 2.0) if ratio > 0.25 else None


def _currency_burst(f: Mapping[str, float], weight: float) -> Optional[float]:
    count = _feature(f, CURRENCY_COUNT)
    return weight * min(1.0, count) if count >= 1 else None


def _numeric_density(f: Mapping[str, float], weight: float) -> Optional[float]:
    density = _feature(f, NUMERIC_DENSITY)
    return weight * density if density > 0.3 else None


def _short_msg_with_url(f: Mapping[str, float], weight: float) -> Optional[float]:
    return weight if _feature(f, SHORT_MSG_WITH_URL) != 0 else None


HEURISTIC_RULES: Dict[str, Callable[[Mapping[str, float], float], Optional[float]]] = {
    cfg.URL_PRESENCE:       _url_presence,
    cfg.PUNCTUATION_BURST:  _punctuation_burst,
    cfg.CAPS_BURST:         _caps_burst,
    cfg.CURRENCY_BURST:     _currency_burst,
    cfg.NUMERIC_DENSITY:    _numeric_density,
    cfg.SHORT_MSG_WITH_URL: _short_msg_with_url,
}


def decision_reason(normalized: float, threshold: float) -> str:
    if normalized >= threshold:
        return f"Score >= threshold ({normalized:.2f} >= {threshold:.2f})"
    return f"Score below threshold ({normalized:.2f} < {threshold:.2f})"


class SignalScoringEngine:
    """
    Usage:
        engine = SignalScoringEngine()
        result = engine.evaluate(processed.shallow_features, model_vote=0.8, sender="+15550001")
        if result.meets_threshold: ...
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self._snapshot: Tuple[int, ScoringConfig] = (0, config or default_config())
        self._write_lock = threading.Lock()

    @property
    def config(self) -> ScoringConfig:
        return self._snapshot[1]

    @property
    def config_version(self) -> int:
        return self._snapshot[0]

    # ── RECONFIGURATION ───────────────────────────────────────

    def load_config(self, data) -> ScoringConfig:
        """
        Parse a complete configuration document and atomically make it the
        active snapshot. On failure the prior snapshot stays active and
        ConfigParseError is raised.
        """
        try:
            parsed = parse_config(data)
        except ConfigParseError as e:
            logger.warning(
                "Scoring config rejected; keeping version %d (%s)",
                self.config_version, e.reason,
            )
            raise
        with self._write_lock:
            version = self._snapshot[0] + 1
            self._snapshot = (version, parsed)
        logger.info(
            "Scoring config loaded: version=%d signals=%d overrides=%d",
            version, len(parsed.signals), len(parsed.per_sender_overrides),
        )
        return parsed

    def try_load_config(self, data) -> bool:
        """Non-raising load_config(): True on success, False on parse failure."""
        try:
            self.load_config(data)
        except ConfigParseError:
            return False
        return True

    # ── EVALUATION ────────────────────────────────────────────

    def effective_threshold(self, sender: Optional[str] = None,
                            config: Optional[ScoringConfig] = None) -> float:
        """Global threshold + exact-match sender delta, clamped to [0, 1]."""
        config = config or self.config
        delta = config.per_sender_overrides.get(sender, 0.0) if sender is not None else 0.0
        return max(0.0, min(1.0, config.global_threshold + delta))

    def evaluate(
        self,
        shallow_features: Mapping[str, float],
        model_vote:       Optional[float] = None,
        sender:           Optional[str]   = None,
    ) -> ScoreResult:
        config = self._snapshot[1]
        features = shallow_features or {}

        if model_vote is not None:
            try:
                model_vote = float(model_vote)
            except (TypeError, ValueError):
                model_vote = None
            else:
                if not math.isfinite(model_vote):
                    model_vote = None

        raw_score = 0.0
        triggered: List[str] = []

        for signal in config.signals:
            if not signal.active:
                continue
            if signal.name == cfg.ML_SPAM_VOTE:
                if model_vote is not None:
                    raw_score += signal.weight * model_vote
                    if model_vote >= ML_VOTE_TRIGGER:
                        triggered.append(signal.name)
                continue
            rule = HEURISTIC_RULES.get(signal.name)
            if rule is None:
                continue
            contribution = rule(features, signal.weight)
            if contribution is not None:
                raw_score += contribution
                triggered.append(signal.name)

        threshold = self.effective_threshold(sender, config)
        normalized = squash(raw_score)

        return ScoreResult(
            raw_score           = raw_score,
            normalized_score    = normalized,
            triggered           = tuple(triggered),
            reason              = decision_reason(normalized, threshold),
            effective_threshold = threshold,
        )
