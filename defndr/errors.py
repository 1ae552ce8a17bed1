"""
defndr/errors.py
Error taxonomy for the scoring core.

Every failure inside the core is local and recoverable. Text transforms,
scoring and drift checks never raise on data input; only configuration
handling surfaces typed errors to the caller.
"""


class DefndrError(Exception):
    """Base class for all errors raised by defndr."""


class ConfigParseError(DefndrError):
    """
    Scoring configuration document could not be decoded or validated.
    The previously active configuration stays in effect.
    """

    def __init__(self, reason: str):
        super().__init__(f"Invalid scoring configuration: {reason}")
        self.reason = reason


class SettingsError(DefndrError):
    """Runtime setting passed programmatically has an unusable value."""

    def __init__(self, key: str, value: object):
        super().__init__(f"Invalid value for setting '{key}': {value!r}")
        self.key = key
        self.value = value
