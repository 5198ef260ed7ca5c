"""Custom exception classes for tariff rating and cost allocation.

Provides domain-specific exceptions for clear error handling and reporting.
Usage anomalies (backwards meter readings, negative common-area usage) are
not exceptions: they are clamped and returned as NegativeUsageAnomaly records.
"""


class RatingError(Exception):
    """Base exception for rating and allocation errors."""

    pass


class ConfigurationError(RatingError):
    """Rate table or engine input is missing data required for a calculation."""

    pass


class NoActiveTenantsError(RatingError):
    """Allocation attempted without any active tenant."""

    pass


class ReconciliationMismatch(RatingError):
    """Allocated shares do not add up to the authoritative total.

    Always a programming defect, never a user-facing result.
    """

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report
