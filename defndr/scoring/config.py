"""
defndr/scoring/config.py
Scoring configuration document — schema, defaults, parse and serialize.

The document uses camelCase wire names:
    {
      "globalThreshold": 0.65,
      "minConfidence": 0.3,
      "signals": [{"name": "urlPresence", "weight": 0.25,
                   "description": "...", "active": true}],
      "perSenderOverrides": {"TrustedBrand": -0.2}
    }

Signals are data, not code. Duplicate names are kept as given and each
copy contributes; unknown names are carried but never evaluated.
Parsing is all-or-nothing: any defect raises ConfigParseError.
"""

import json
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, ValidationError

from defndr.errors import ConfigParseError

# Signal names the engine knows how to evaluate
URL_PRESENCE       = 'urlPresence'
PUNCTUATION_BURST  = 'punctuationBurst'
CAPS_BURST         = 'capsBurst'
CURRENCY_BURST     = 'currencyBurst'
NUMERIC_DENSITY    = 'numericDensity'
SHORT_MSG_WITH_URL = 'shortMsgWithUrl'
ML_SPAM_VOTE       = 'mlSpamVote'


class Signal(BaseModel):
    """One weighted rule descriptor. Positive weight raises risk."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    name:        str
    weight:      FiniteFloat = Field(ge=0.0)
    description: Optional[str] = None
    active:      bool


class ScoringConfig(BaseModel):
    """
    Complete scoring configuration. Immutable: reconfiguration swaps the
    whole object, never individual fields.
    """
    model_config = ConfigDict(
        frozen=True, populate_by_name=True, extra='ignore', allow_inf_nan=False,
    )

    global_threshold:     float                  = Field(alias='globalThreshold', ge=0.0, le=1.0)
    min_confidence:       float                  = Field(alias='minConfidence', ge=0.0, le=1.0)
    signals:              Tuple[Signal, ...]
    per_sender_overrides: Dict[str, FiniteFloat] = Field(alias='perSenderOverrides')


def default_config() -> ScoringConfig:
    """Startup configuration: all seven known signals active."""
    return ScoringConfig(
        global_threshold=0.65,
        min_confidence=0.3,
        signals=(
            Signal(name=URL_PRESENCE,       weight=0.25, description="Non-whitelisted URL detected", active=True),
            Signal(name=PUNCTUATION_BURST,  weight=0.10, description="Excess punctuation detected", active=True),
            Signal(name=NUMERIC_DENSITY,    weight=0.05, description="High numeric density", active=True),
            Signal(name=SHORT_MSG_WITH_URL, weight=0.20, description="Short message containing URL", active=True),
            Signal(name=CAPS_BURST,         weight=0.08, description="High ALL CAPS usage", active=True),
            Signal(name=CURRENCY_BURST,     weight=0.06, description="Many currency symbols", active=True),
            Signal(name=ML_SPAM_VOTE,       weight=0.30, description="ML model predicted spam with high confidence", active=True),
        ),
        per_sender_overrides={},
    )


def example_config() -> ScoringConfig:
    """Smaller documented example, including one trusted-sender override."""
    return ScoringConfig(
        global_threshold=0.65,
        min_confidence=0.3,
        signals=(
            Signal(name=URL_PRESENCE,      weight=0.25, description="Non-whitelisted URL detected", active=True),
            Signal(name=PUNCTUATION_BURST, weight=0.10, description="Excess punctuation detected", active=True),
            Signal(name=ML_SPAM_VOTE,      weight=0.30, description="ML model predicted spam with high confidence", active=True),
        ),
        per_sender_overrides={'TrustedBrand': -0.2},
    )


def config_to_dict(config: ScoringConfig) -> Dict:
    """Wire-format dict (camelCase keys, absent descriptions omitted)."""
    return config.model_dump(by_alias=True, exclude_none=True, mode='json')


def config_to_json(config: ScoringConfig, indent: Optional[int] = 2) -> str:
    """Pretty, key-sorted JSON document accepted back by parse_config()."""
    return json.dumps(config_to_dict(config), indent=indent, sort_keys=True)


def example_config_json() -> str:
    return config_to_json(example_config())


def _summarize(err: ValidationError) -> str:
    """Short error summary. Sender identifiers are masked out of locations."""
    parts = []
    for item in err.errors()[:5]:
        path = list(item.get('loc', ()))
        if len(path) > 1 and path[0] in ('perSenderOverrides', 'per_sender_overrides'):
            path[1] = '<sender>'
        loc = '.'.join(str(p) for p in path) or '<document>'
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    more = err.error_count() - len(parts)
    if more > 0:
        parts.append(f"+{more} more")
    return '; '.join(parts)


def parse_config(data: Union[bytes, bytearray, memoryview, str]) -> ScoringConfig:
    """
    Parse and validate a complete configuration document.
    Raises ConfigParseError on malformed JSON, wrong types, out-of-range
    thresholds, negative weights or missing required fields.
    """
    if isinstance(data, (bytearray, memoryview)):
        data = bytes(data)
    if not isinstance(data, (bytes, str)):
        raise ConfigParseError(f"expected bytes or str, got {type(data).__name__}")
    try:
        return ScoringConfig.model_validate_json(data)
    except ValidationError as e:
        raise ConfigParseError(_summarize(e)) from e
