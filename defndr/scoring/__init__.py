"""
defndr/scoring — configurable hybrid signal scoring.
"""

from defndr.scoring.config import (
    ScoringConfig,
    Signal,
    config_to_json,
    default_config,
    example_config,
    example_config_json,
    parse_config,
)
from defndr.scoring.engine import SignalScoringEngine, squash

__all__ = [
    "ScoringConfig",
    "Signal",
    "SignalScoringEngine",
    "config_to_json",
    "default_config",
    "example_config",
    "example_config_json",
    "parse_config",
    "squash",
]
