"""
defndr/monitoring/health_export.py
Health snapshot export for the local diagnostics UI.

Output: JSON (primary) and a plain dict with the same schema.
Fields: timestamp, modelLatencyMs, confidenceMean, confidenceStd,
anomalies, latencyP95. Never transmitted off-device.
"""

import json
from typing import Any, Dict, Optional

from defndr.models.record import HealthSnapshot


def snapshot_to_dict(snapshot: HealthSnapshot) -> Dict[str, Any]:
    """camelCase, JSON-serializable dict; timestamp as ISO-8601 UTC."""
    return {
        "timestamp":      snapshot.timestamp.isoformat(),
        "modelLatencyMs": snapshot.model_latency_ms,
        "confidenceMean": snapshot.confidence_mean,
        "confidenceStd":  snapshot.confidence_std,
        "anomalies":      dict(snapshot.anomalies),
        "latencyP95":     snapshot.latency_p95,
    }


def export_snapshot_json(snapshot: HealthSnapshot, indent: Optional[int] = 2) -> str:
    return json.dumps(snapshot_to_dict(snapshot), indent=indent, sort_keys=True)
