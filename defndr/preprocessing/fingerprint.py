"""
defndr/preprocessing/fingerprint.py
Deterministic content identity and placeholder embeddings.

fingerprint() is a pure function of the text it is given: same normalized
text → same hex digest, across calls and process restarts. It is a cache
key and message identity only — never use it as a security credential.
"""

import hashlib
import unicodedata
from typing import List, Sequence

EMBEDDING_DIM = 64

_MASK64       = 0xFFFFFFFFFFFFFFFF
_GOLDEN_GAMMA = 0x9E3779B97F4A7C15
_FNV_OFFSET   = 1469598103934665603
_FNV_PRIME    = 1099511628211


def fingerprint(text: str) -> str:
    """SHA-256 hex digest of NFKC(text) with surrounding whitespace trimmed."""
    canonical = unicodedata.normalize('NFKC', text).strip()
    return hashlib.sha256(canonical.encode('utf-8', errors='surrogatepass')).hexdigest()


def pseudo_embedding(tokens: Sequence[str], dim: int = EMBEDDING_DIM) -> List[float]:
    """
    Deterministic fixed-length pseudo-vector derived from the token sequence.
    Not a semantic embedding. Each token is folded with an FNV-style hash
    into a running 64-bit state; one value in [0, 1) is emitted per token
    until `dim` values exist, then the tail is zero-padded.
    """
    out: List[float] = []
    state = _GOLDEN_GAMMA
    for token in tokens:
        h = _FNV_OFFSET
        for b in token.encode('utf-8', errors='surrogatepass'):
            h ^= b
            h = (h * _FNV_PRIME + _GOLDEN_GAMMA) & _MASK64
        state = (state + h) & _MASK64
        out.append(((state & 0xFFFF) % 1000) / 1000.0)
        if len(out) >= dim:
            break
    out.extend([0.0] * (dim - len(out)))
    return out
