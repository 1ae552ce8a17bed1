"""
defndr/config.py
Runtime settings for wiring the scoring core. In-memory only — the host
owns reading the document from wherever it lives.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Union

from defndr.errors import SettingsError
from defndr.monitoring.health_monitor import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_CAPACITY,
    DEFAULT_DRIFT_WINDOW,
)
from defndr.preprocessing.cache import DEFAULT_MAX_ENTRIES
from defndr.preprocessing.pipeline import PipelineMode

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "pipeline_mode":     PipelineMode.STANDARD.value,
    "cache_max_entries": DEFAULT_MAX_ENTRIES,
    "health_capacity":   DEFAULT_CAPACITY,
    "drift_window":      DEFAULT_DRIFT_WINDOW,
    "anomaly_threshold": DEFAULT_ANOMALY_THRESHOLD,
}

_POSITIVE_INTS = ("cache_max_entries", "health_capacity", "drift_window")


def validate_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Raise SettingsError on the first unusable value. Returns settings."""
    try:
        PipelineMode(settings["pipeline_mode"])
    except ValueError:
        raise SettingsError("pipeline_mode", settings["pipeline_mode"]) from None
    for key in _POSITIVE_INTS:
        value = settings[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise SettingsError(key, value)
    threshold = settings["anomaly_threshold"]
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or threshold < 0:
        raise SettingsError("anomaly_threshold", threshold)
    return settings


def merge_settings(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Defaults overlaid with known keys from overrides; unknown keys dropped."""
    merged = dict(DEFAULT_SETTINGS)
    for key, value in (overrides or {}).items():
        if key not in DEFAULT_SETTINGS:
            logger.warning(f"Ignoring unknown setting: {key}")
            continue
        merged[key] = value
    return validate_settings(merged)


def load_settings(raw: Union[bytes, str, None] = None) -> Dict[str, Any]:
    """
    Parse an in-memory JSON settings document over the defaults.
    Malformed JSON or a non-object document falls back to defaults;
    well-formed documents with unusable values raise SettingsError.
    """
    if not raw:
        return dict(DEFAULT_SETTINGS)
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Settings load failed: {e}")
        return dict(DEFAULT_SETTINGS)
    if not isinstance(data, dict):
        logger.warning("Settings load failed: document is not an object")
        return dict(DEFAULT_SETTINGS)
    return merge_settings(data)
