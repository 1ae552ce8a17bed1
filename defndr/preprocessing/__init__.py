"""
defndr/preprocessing — text normalization, tokens, shallow features,
fingerprints and the embedding cache.
"""

from defndr.preprocessing.cache import EmbeddingCache
from defndr.preprocessing.fingerprint import fingerprint, pseudo_embedding
from defndr.preprocessing.pipeline import (
    FEATURE_NAMES,
    MessagePreprocessingPipeline,
    PipelineMode,
    extract_urls,
    normalize,
    shallow_features,
    tokenize,
)

__all__ = [
    "EmbeddingCache",
    "FEATURE_NAMES",
    "MessagePreprocessingPipeline",
    "PipelineMode",
    "extract_urls",
    "fingerprint",
    "normalize",
    "pseudo_embedding",
    "shallow_features",
    "tokenize",
]
