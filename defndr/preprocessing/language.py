"""
defndr/preprocessing/language.py
Best-effort dominant-language guess. Pure Python, fully offline.

Counts letters per Unicode script block. Non-Latin scripts map straight
to a language tag; Latin text is resolved by a small stop-word vote.
Anything undecidable returns None — absence is not an error.
"""

from collections import Counter
from typing import Dict, Iterable, Optional, Tuple

# ── SCRIPT BLOCKS ────────────────────────────────────────────
# (first codepoint, last codepoint, script name)
SCRIPT_RANGES: Tuple[Tuple[int, int, str], ...] = (
    (0x0041, 0x024F, 'latin'),
    (0x0370, 0x03FF, 'greek'),
    (0x0400, 0x04FF, 'cyrillic'),
    (0x0590, 0x05FF, 'hebrew'),
    (0x0600, 0x06FF, 'arabic'),
    (0x0900, 0x097F, 'devanagari'),
    (0x0B80, 0x0BFF, 'tamil'),
    (0x0C00, 0x0C7F, 'telugu'),
    (0x0D00, 0x0D7F, 'malayalam'),
    (0x0E00, 0x0E7F, 'thai'),
    (0x3040, 0x30FF, 'kana'),
    (0x4E00, 0x9FFF, 'han'),
    (0xAC00, 0xD7AF, 'hangul'),
)

SCRIPT_LANGUAGE: Dict[str, str] = {
    'greek':      'el',
    'cyrillic':   'ru',
    'hebrew':     'he',
    'arabic':     'ar',
    'devanagari': 'hi',
    'tamil':      'ta',
    'telugu':     'te',
    'malayalam':  'ml',
    'thai':       'th',
    'kana':       'ja',
    'han':        'zh',
    'hangul':     'ko',
}

# Extend freely. Short, high-frequency function words only.
LATIN_STOPWORDS: Dict[str, frozenset] = {
    'en': frozenset({'the', 'and', 'you', 'your', 'is', 'to', 'for', 'of', 'now', 'this', 'are', 'with'}),
    'es': frozenset({'el', 'la', 'los', 'las', 'que', 'y', 'es', 'por', 'para', 'con', 'tu', 'su'}),
    'fr': frozenset({'le', 'la', 'les', 'et', 'est', 'vous', 'pour', 'des', 'une', 'votre', 'avec', 'sur'}),
    'de': frozenset({'der', 'die', 'das', 'und', 'ist', 'sie', 'ihr', 'nicht', 'mit', 'fur', 'ein', 'eine'}),
    'pt': frozenset({'o', 'os', 'que', 'e', 'para', 'com', 'voce', 'seu', 'sua', 'uma', 'nao', 'do'}),
    'it': frozenset({'il', 'che', 'di', 'per', 'con', 'sono', 'non', 'una', 'tuo', 'della', 'gli', 'ha'}),
}


def _script_of(ch: str) -> Optional[str]:
    cp = ord(ch)
    for first, last, script in SCRIPT_RANGES:
        if first <= cp <= last:
            return script
    return None


def dominant_script(text: str) -> Optional[str]:
    """Script holding the most letters in text, or None if there are none."""
    counts: Counter = Counter()
    for ch in text:
        if ch.isalpha():
            script = _script_of(ch)
            if script:
                counts[script] += 1
    if not counts:
        return None
    # Japanese mixes kana and han; any kana tips it to Japanese
    if counts.get('kana') and counts.get('han'):
        return 'kana'
    return counts.most_common(1)[0][0]


def _vote_latin(tokens: Iterable[str]) -> Optional[str]:
    votes: Counter = Counter()
    for token in tokens:
        for lang, words in LATIN_STOPWORDS.items():
            if token in words:
                votes[lang] += 1
    if not votes:
        return None
    ranked = votes.most_common(2)
    if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
        return None
    return ranked[0][0]


def detect_language(text: str, tokens: Iterable[str] = ()) -> Optional[str]:
    """
    Guess the dominant language of normalized text.
    tokens: lowercase tokens of the same text, used for the Latin vote.
    Returns a short language tag (e.g. 'en', 'ru') or None.
    """
    script = dominant_script(text)
    if script is None:
        return None
    if script == 'latin':
        return _vote_latin(tokens)
    return SCRIPT_LANGUAGE.get(script)
