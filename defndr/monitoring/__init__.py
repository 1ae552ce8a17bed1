"""
defndr/monitoring — on-device health telemetry for the scoring process.
"""

from defndr.monitoring.health_export import export_snapshot_json, snapshot_to_dict
from defndr.monitoring.health_monitor import HealthMonitor

__all__ = [
    "HealthMonitor",
    "export_snapshot_json",
    "snapshot_to_dict",
]
