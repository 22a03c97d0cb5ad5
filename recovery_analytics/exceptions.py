"""Exceptions raised for malformed calls into the scoring core.

Normal missing-data conditions never raise; they produce ``None`` results or
excluded score components instead.
"""


class RecoveryAnalyticsError(Exception):
    """Base class for recovery analytics errors."""


class InsufficientDataError(RecoveryAnalyticsError, ValueError):
    """A calculation was called with fewer data points than it requires."""


class ZoneConfigurationError(RecoveryAnalyticsError, ValueError):
    """Zone boundaries are not strictly increasing."""


class OutOfOrderError(RecoveryAnalyticsError, ValueError):
    """Training load updates were applied out of date order."""
