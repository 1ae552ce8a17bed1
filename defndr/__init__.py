"""
defndr — on-device SMS spam scoring core.
Preprocessing, hybrid signal scoring and health monitoring. Offline only.
"""

__version__ = "1.0.0"
