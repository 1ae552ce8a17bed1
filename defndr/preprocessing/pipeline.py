"""
defndr/preprocessing/pipeline.py
Turns raw SMS text into a ProcessedMessage for heuristics and models.

Steps, in order — each one total, never raising on odd input:
  1. normalize   — NFKC, whitespace/control cleanup, collapse, trim
  2. tokenize    — split on whitespace + punctuation/symbols, lowercase, cap length
  3. language    — best-effort guess, None when undecidable
  4. features    — shallow counting features over the ORIGINAL text
  5. fingerprint — SHA-256 of normalized text (cache key only)
  6. embedding   — verbose mode only, deterministic placeholder via cache

Privacy: raw text lives only for the duration of process(). Nothing is
logged except counts.
"""

import logging
import re
import unicodedata
from enum import Enum
from typing import Dict, List, Optional

from defndr.models.record import ProcessedMessage
from defndr.preprocessing.cache import EmbeddingCache
from defndr.preprocessing.fingerprint import fingerprint, pseudo_embedding
from defndr.preprocessing.language import detect_language

logger = logging.getLogger(__name__)

MAX_TOKEN_LENGTH     = 50
SHORT_MESSAGE_LENGTH = 60
CAPS_MIN_TOKEN_LEN   = 3

CURRENCY_SYMBOLS = frozenset('$€£¥₹₱₽₩฿')

URL_RE        = re.compile(r'(?:https?://|www\.)[^\s]+', re.IGNORECASE)
_WHITESPACE_RE = re.compile(r'\s+')

# Feature names, shared with the scoring engine
PUNCTUATION_RATE   = 'punctuationRate'
CAPS_RATIO         = 'capsRatio'
URL_COUNT          = 'urlCount'
CURRENCY_COUNT     = 'currencyCount'
NUMERIC_DENSITY    = 'numericDensity'
SHORT_MSG_WITH_URL = 'shortMsgWithUrl'

FEATURE_NAMES = (
    PUNCTUATION_RATE, CAPS_RATIO, URL_COUNT,
    CURRENCY_COUNT, NUMERIC_DENSITY, SHORT_MSG_WITH_URL,
)


class PipelineMode(Enum):
    MINIMAL  = 'minimal'    # cleaning, tokens, features
    STANDARD = 'standard'   # + language guess
    VERBOSE  = 'verbose'    # + placeholder embedding through the cache


# ── TEXT TRANSFORMS ──────────────────────────────────────────

def _is_punctuation(ch: str) -> bool:
    return unicodedata.category(ch).startswith('P')


def _is_symbol(ch: str) -> bool:
    return unicodedata.category(ch).startswith('S')


def _normalize_pass(text: str) -> str:
    s = unicodedata.normalize('NFKC', text)
    kept = []
    for ch in s:
        if ch.isspace():
            kept.append(' ')
        elif not unicodedata.category(ch).startswith('C'):
            kept.append(ch)
    return _WHITESPACE_RE.sub(' ', ''.join(kept)).strip()


def normalize(text: str) -> str:
    """
    NFKC-normalize, turn every whitespace/control-whitespace char into an
    ASCII space, drop other invisible control/format chars, collapse runs
    of spaces and trim. normalize(normalize(t)) == normalize(t).
    """
    if not text:
        return ''
    current = _normalize_pass(text)
    # dropping format chars can expose new NFKC compositions; repeat until stable
    while True:
        again = _normalize_pass(current)
        if again == current:
            return current
        current = again


def split_tokens(normalized: str) -> List[str]:
    """
    Case-preserving split on whitespace and punctuation/symbol boundaries.
    Boundaries are consumed, so no token starts or ends with punctuation.
    """
    tokens: List[str] = []
    buf: List[str] = []
    for ch in normalized:
        if ch.isspace() or _is_punctuation(ch) or _is_symbol(ch):
            if buf:
                tokens.append(''.join(buf))
                buf = []
        else:
            buf.append(ch)
    if buf:
        tokens.append(''.join(buf))
    return tokens


def _clean_tokens(raw_tokens: List[str]) -> List[str]:
    return [t.lower()[:MAX_TOKEN_LENGTH] for t in raw_tokens]


def tokenize(normalized: str) -> List[str]:
    """Lowercase tokens in message order, each capped at MAX_TOKEN_LENGTH chars."""
    return _clean_tokens(split_tokens(normalized))


def extract_urls(text: str) -> List[str]:
    """URL-looking spans (http://, https://, www.) in order of appearance."""
    return URL_RE.findall(text or '')


def shallow_features(original: str, raw_tokens: List[str]) -> Dict[str, float]:
    """
    Cheap counting features. Rates use the original (pre-normalization)
    text length; caps ratio uses case-preserved tokens.
    """
    original = original or ''
    length = max(1, len(original))

    punctuation_count = sum(1 for ch in original if _is_punctuation(ch))

    alpha_tokens = [t for t in raw_tokens if any(ch.isalpha() for ch in t)]
    caps_count = sum(
        1 for t in alpha_tokens if len(t) >= CAPS_MIN_TOKEN_LEN and t.isupper()
    )
    caps_ratio = caps_count / len(alpha_tokens) if alpha_tokens else 0.0

    url_count = len(extract_urls(original))
    currency_count = sum(
        1 for ch in original if ch in CURRENCY_SYMBOLS or _is_symbol(ch)
    )
    numeric_count = sum(1 for ch in original if ch.isnumeric())

    short_with_url = 1.0 if len(original) < SHORT_MESSAGE_LENGTH and url_count >= 1 else 0.0

    return {
        PUNCTUATION_RATE:   punctuation_count / length,
        CAPS_RATIO:         caps_ratio,
        URL_COUNT:          float(url_count),
        CURRENCY_COUNT:     float(currency_count),
        NUMERIC_DENSITY:    numeric_count / length,
        SHORT_MSG_WITH_URL: short_with_url,
    }


# ── PIPELINE ─────────────────────────────────────────────────

class MessagePreprocessingPipeline:
    """
    Deterministic preprocessing for on-device inference.
    Identical text + identical mode → identical ProcessedMessage.

    Usage:
        pipeline = MessagePreprocessingPipeline(mode=PipelineMode.VERBOSE)
        processed = pipeline.process(raw_text)
    """

    def __init__(
        self,
        mode:  PipelineMode = PipelineMode.STANDARD,
        cache: Optional[EmbeddingCache] = None,
    ):
        self.mode = PipelineMode(mode)
        self.cache = cache if cache is not None else EmbeddingCache()

    def process(self, raw_text: str) -> ProcessedMessage:
        raw_text = raw_text or ''
        normalized = normalize(raw_text)
        raw_tokens = split_tokens(normalized)
        tokens = _clean_tokens(raw_tokens)

        language = None
        if self.mode is not PipelineMode.MINIMAL:
            language = detect_language(normalized, tokens)

        features = shallow_features(raw_text, raw_tokens)
        fp = fingerprint(normalized)

        embedding_fp = None
        if self.mode is PipelineMode.VERBOSE:
            embedding_fp = self._embedding_fingerprint(fp, tokens)

        return ProcessedMessage(
            fingerprint           = fp,
            normalized_text       = normalized,
            tokens                = tuple(tokens),
            language              = language,
            original_length       = len(raw_text),
            normalized_length     = len(normalized),
            token_count           = len(tokens),
            shallow_features      = features,
            embedding_fingerprint = embedding_fp,
        )

    def _embedding_fingerprint(self, key: str, tokens: List[str]) -> str:
        cached = self.cache.get(key)
        if cached is not None:
            return f"cached:{len(cached)}"
        embedding = pseudo_embedding(tokens)
        self.cache.set(key, embedding)
        return f"gen:{len(embedding)}"
