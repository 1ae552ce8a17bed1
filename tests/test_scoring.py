"""
tests/test_scoring.py
Signal scoring engine and configuration document tests.
"""

import json
import math
import threading

import pytest

from defndr.errors import ConfigParseError
from defndr.models.record import ScoreResult
from defndr.preprocessing.pipeline import MessagePreprocessingPipeline
from defndr.scoring.config import (
    ScoringConfig,
    Signal,
    config_to_json,
    default_config,
    example_config,
    example_config_json,
    parse_config,
)
from defndr.scoring.engine import SignalScoringEngine, decision_reason, squash


def _doc(signals, threshold=0.65, overrides=None, min_confidence=0.3) -> str:
    return json.dumps({
        "globalThreshold": threshold,
        "minConfidence": min_confidence,
        "signals": [
            {"name": name, "weight": weight, "active": active}
            for name, weight, active in signals
        ],
        "perSenderOverrides": overrides or {},
    })


def _engine(signals, **kwargs) -> SignalScoringEngine:
    engine = SignalScoringEngine()
    engine.load_config(_doc(signals, **kwargs))
    return engine


# ── DEFAULTS ─────────────────────────────────────────────────

class TestDefaults:

    def test_default_config(self):
        config = default_config()
        assert config.global_threshold == 0.65
        assert config.min_confidence == 0.3
        assert [s.name for s in config.signals] == [
            'urlPresence', 'punctuationBurst', 'numericDensity', 'shortMsgWithUrl',
            'capsBurst', 'currencyBurst', 'mlSpamVote',
        ]
        assert config.per_sender_overrides == {}

    def test_engine_starts_with_defaults(self):
        engine = SignalScoringEngine()
        assert engine.config == default_config()
        assert engine.config_version == 0


# ── SIGNAL RULES ─────────────────────────────────────────────

class TestSignalRules:

    def test_url_presence_capped_at_one(self):
        engine = _engine([("urlPresence", 0.25, True)])
        result = engine.evaluate({"urlCount": 3.0})
        assert result.raw_score == pytest.approx(0.25)
        assert result.triggered == ('urlPresence',)

    def test_punctuation_burst_strictly_above(self):
        engine = _engine([("punctuationBurst", 0.10, True)])
        assert engine.evaluate({"punctuationRate": 0.06}).triggered == ()
        result = engine.evaluate({"punctuationRate": 0.07})
        assert result.raw_score == pytest.approx(0.07)

    def test_caps_burst(self):
        engine = _engine([("capsBurst", 0.08, True)])
        assert engine.evaluate({"capsRatio": 0.25}).raw_score == 0.0
        assert engine.evaluate({"capsRatio": 0.5}).raw_score == pytest.approx(0.08)

    def test_currency_burst(self):
        engine = _engine([("currencyBurst", 0.06, True)])
        assert engine.evaluate({"currencyCount": 0.0}).triggered == ()
        assert engine.evaluate({"currencyCount": 4.0}).raw_score == pytest.approx(0.06)

    def test_numeric_density(self):
        engine = _engine([("numericDensity", 0.05, True)])
        assert engine.evaluate({"numericDensity": 0.3}).triggered == ()
        assert engine.evaluate({"numericDensity": 0.5}).raw_score == pytest.approx(0.025)

    def test_short_msg_with_url(self):
        engine = _engine([("shortMsgWithUrl", 0.20, True)])
        assert engine.evaluate({"shortMsgWithUrl": 0.0}).triggered == ()
        assert engine.evaluate({"shortMsgWithUrl": 1.0}).raw_score == pytest.approx(0.20)

    def test_ml_vote_contributes_below_trigger(self):
        engine = _engine([("mlSpamVote", 0.30, True)])
        low = engine.evaluate({}, model_vote=0.4)
        assert low.raw_score == pytest.approx(0.12)
        assert low.triggered == ()
        high = engine.evaluate({}, model_vote=0.5)
        assert high.raw_score == pytest.approx(0.15)
        assert high.triggered == ('mlSpamVote',)

    def test_ml_vote_absent(self):
        engine = _engine([("mlSpamVote", 0.30, True)])
        assert engine.evaluate({}, model_vote=None).raw_score == 0.0
        assert engine.evaluate({}, model_vote=float('nan')).raw_score == 0.0

    @pytest.mark.parametrize("vote", ["abc", object(), float("inf")])
    def test_unusable_ml_vote_treated_as_absent(self, vote):
        engine = _engine([("mlSpamVote", 0.30, True)])
        result = engine.evaluate({}, model_vote=vote)
        assert result.raw_score == 0.0
        assert result.triggered == ()

    def test_unknown_and_inactive_signals_ignored(self):
        engine = _engine([("futureSignal", 5.0, True), ("urlPresence", 0.25, False)])
        result = engine.evaluate({"urlCount": 1.0}, model_vote=1.0)
        assert result.raw_score == 0.0
        assert result.triggered == ()

    def test_duplicate_signals_double_count(self):
        engine = _engine([("urlPresence", 0.25, True), ("urlPresence", 0.25, True)])
        result = engine.evaluate({"urlCount": 1.0})
        assert result.raw_score == pytest.approx(0.5)
        assert result.triggered == ('urlPresence', 'urlPresence')

    def test_missing_or_garbage_features_default_to_zero(self):
        engine = SignalScoringEngine()
        for features in ({}, None, {"urlCount": "many"}, {"capsRatio": float('nan')}):
            result = engine.evaluate(features)
            assert result.raw_score == 0.0
            assert result.triggered == ()
        assert engine.evaluate({}).reason == "Score below threshold (0.00 < 0.65)"

    def test_url_monotonicity(self):
        engine = SignalScoringEngine()
        base = {"punctuationRate": 0.1, "capsRatio": 0.4, "urlCount": 0.0}
        with_url = dict(base, urlCount=1.0)
        assert engine.evaluate(with_url).raw_score >= engine.evaluate(base).raw_score

    def test_triggered_follows_config_order(self):
        engine = _engine([("capsBurst", 0.1, True), ("urlPresence", 0.1, True)])
        result = engine.evaluate({"urlCount": 1.0, "capsRatio": 0.9})
        assert result.triggered == ('capsBurst', 'urlPresence')


# ── NORMALIZATION & THRESHOLDS ───────────────────────────────

class TestThresholds:

    def test_squash_midpoint_and_tails(self):
        assert squash(0.5) == pytest.approx(0.5)
        assert squash(1e6) == 1.0
        assert squash(-1e6) == 0.0
        assert squash(0.0) == pytest.approx(1 / (1 + math.exp(6)))

    def test_boundary_is_inclusive(self):
        assert decision_reason(0.65, 0.65) == "Score >= threshold (0.65 >= 0.65)"
        assert ScoreResult(0.0, 0.65, (), "", effective_threshold=0.65).meets_threshold
        assert not ScoreResult(0.0, 0.649999, (), "", effective_threshold=0.65).meets_threshold

    def test_engine_meets_exact_threshold(self):
        features = {"urlCount": 1.0, "shortMsgWithUrl": 1.0}
        normalized = SignalScoringEngine().evaluate(features).normalized_score
        engine = _engine(
            [("urlPresence", 0.25, True), ("punctuationBurst", 0.10, True),
             ("numericDensity", 0.05, True), ("shortMsgWithUrl", 0.20, True),
             ("capsBurst", 0.08, True), ("currencyBurst", 0.06, True),
             ("mlSpamVote", 0.30, True)],
            threshold=normalized,
        )
        result = engine.evaluate(features)
        assert result.normalized_score == normalized
        assert result.meets_threshold
        assert result.reason.startswith("Score >= threshold")

    def test_sender_override_lowers_threshold(self):
        engine = SignalScoringEngine(example_config())
        features = {"urlCount": 1.0, "punctuationRate": 0.25}
        plain = engine.evaluate(features)
        trusted = engine.evaluate(features, sender="TrustedBrand")
        assert plain.raw_score == trusted.raw_score == pytest.approx(0.5)
        assert plain.effective_threshold == pytest.approx(0.65)
        assert trusted.effective_threshold == pytest.approx(0.45)
        assert not plain.meets_threshold
        assert trusted.meets_threshold
        assert trusted.reason == "Score >= threshold (0.50 >= 0.45)"

    def test_sender_lookup_is_exact(self):
        engine = SignalScoringEngine(example_config())
        assert engine.effective_threshold("trustedbrand") == pytest.approx(0.65)
        assert engine.effective_threshold(None) == pytest.approx(0.65)

    def test_effective_threshold_clamped(self):
        engine = _engine([], overrides={"up": 0.9, "down": -0.9})
        assert engine.effective_threshold("up") == 1.0
        assert engine.effective_threshold("down") == 0.0

    def test_end_to_end_spam_example(self):
        processed = MessagePreprocessingPipeline().process("WIN FREE CASH NOW!!! http://bit.ly/x")
        result = SignalScoringEngine().evaluate(processed.shallow_features)
        assert result.raw_score > 0.5
        assert result.raw_score == pytest.approx(0.25 + 0.10 * (80 / 36) + 0.20 + 0.08)
        assert result.normalized_score > 0.95
        assert result.triggered == ('urlPresence', 'punctuationBurst', 'shortMsgWithUrl', 'capsBurst')
        assert result.reason == "Score >= threshold (0.95 >= 0.65)"


# ── CONFIG DOCUMENT ──────────────────────────────────────────

class TestConfigDocument:

    def test_example_round_trip(self):
        text = example_config_json()
        parsed = parse_config(text)
        assert parsed == example_config()
        assert parsed.per_sender_overrides == {"TrustedBrand": -0.2}
        assert [s.name for s in parsed.signals] == ['urlPresence', 'punctuationBurst', 'mlSpamVote']

    def test_example_is_sorted_camel_case(self):
        data = json.loads(example_config_json())
        assert list(data) == sorted(data)
        assert set(data) == {"globalThreshold", "minConfidence", "signals", "perSenderOverrides"}

    def test_bytes_accepted(self):
        assert parse_config(example_config_json().encode("utf-8")) == example_config()
        assert parse_config(bytearray(example_config_json(), "utf-8")) == example_config()

    def test_missing_description_omitted(self):
        config = ScoringConfig(
            global_threshold=0.5, min_confidence=0.1,
            signals=(Signal(name="urlPresence", weight=1.0, active=True),),
            per_sender_overrides={},
        )
        data = json.loads(config_to_json(config))
        assert "description" not in data["signals"][0]
        assert parse_config(config_to_json(config)) == config

    def test_unknown_top_level_fields_ignored(self):
        data = json.loads(example_config_json())
        data["futureField"] = {"x": 1}
        assert parse_config(json.dumps(data)) == example_config()

    @pytest.mark.parametrize("bad", [
        b"",
        b"not json",
        b"[]",
        b'{"globalThreshold": 0.5}',
        _doc([("urlPresence", 0.25, True)], threshold=1.5).encode(),
        _doc([("urlPresence", 0.25, True)], min_confidence=-0.1).encode(),
        _doc([("urlPresence", -0.25, True)]).encode(),
        b'{"globalThreshold": 0.5, "minConfidence": 0.1, "signals": [{"name": "x", "weight": 1}], "perSenderOverrides": {}}',
        b'{"globalThreshold": 0.5, "minConfidence": 0.1, "signals": [{"name": "x", "weight": Infinity, "active": true}], "perSenderOverrides": {}}',
        b'{"globalThreshold": 0.5, "minConfidence": 0.1, "signals": [], "perSenderOverrides": {"Bank": NaN}}',
        b'{"globalThreshold": NaN, "minConfidence": 0.1, "signals": [], "perSenderOverrides": {}}',
    ])
    def test_malformed_documents_rejected(self, bad):
        with pytest.raises(ConfigParseError) as exc:
            parse_config(bad)
        assert exc.value.reason

    def test_wrong_input_type_rejected(self):
        with pytest.raises(ConfigParseError):
            parse_config(None)


# ── RECONFIGURATION ──────────────────────────────────────────

class TestReconfiguration:

    def test_successful_load_swaps_config(self):
        engine = SignalScoringEngine()
        loaded = engine.load_config(example_config_json())
        assert engine.config is loaded
        assert engine.config_version == 1

    def test_failed_load_keeps_prior_config(self):
        engine = SignalScoringEngine()
        engine.load_config(example_config_json())
        before = engine.config
        with pytest.raises(ConfigParseError):
            engine.load_config(b'{"globalThreshold": "high"}')
        assert engine.config is before
        assert engine.config_version == 1

    def test_try_load_config(self):
        engine = SignalScoringEngine()
        assert engine.try_load_config(b"garbage") is False
        assert engine.config_version == 0
        assert engine.try_load_config(example_config_json()) is True
        assert engine.config_version == 1

    def test_rejection_logged_without_document(self, caplog):
        engine = SignalScoringEngine()
        secret_sender = "+15550009999"
        with caplog.at_level("WARNING", logger="defndr.scoring.engine"):
            engine.try_load_config(
                '{"globalThreshold": 0.5, "minConfidence": 0.1, "signals": [], '
                '"perSenderOverrides": {"%s": "x"}}' % secret_sender
            )
        assert caplog.records
        assert all(secret_sender not in r.getMessage() for r in caplog.records)

    def test_readers_never_see_torn_config(self):
        # A: low threshold, one signal. B: high threshold, two signals.
        doc_a = _doc([("urlPresence", 0.25, True)], threshold=0.2)
        doc_b = _doc([("urlPresence", 0.25, True), ("shortMsgWithUrl", 0.2, True)], threshold=0.9)
        engine = SignalScoringEngine()
        engine.load_config(doc_a)
        features = {"urlCount": 1.0, "shortMsgWithUrl": 1.0}
        expected = {
            0.2: ('urlPresence',),
            0.9: ('urlPresence', 'shortMsgWithUrl'),
        }
        torn = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                result = engine.evaluate(features)
                key = round(result.effective_threshold, 1)
                if expected.get(key) != result.triggered:
                    torn.append(result)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        for i in range(200):
            engine.load_config(doc_b if i % 2 == 0 else doc_a)
        stop.set()
        for t in readers:
            t.join()
        assert torn == []
        assert engine.config_version == 201
