"""
Exception classes for tagged_metrics.

Declaration mistakes (bad names, wrong arity, mistyped tag values) are
configuration errors and are raised immediately where the mistake is made.
Faults raised by user code or by a reporter are never wrapped.
"""


class MetricsError(Exception):
    """Base exception class for all tagged_metrics exceptions."""

    pass


class ConfigurationError(MetricsError, ValueError):
    """
    Raised when a source, schema or config value is declared incorrectly.

    Example:
        >>> raise ConfigurationError(
        ...     "invalid tag name",
        ...     details={"name": "cpu usage", "source": "host.cpu"}
        ... )
    """

    def __init__(self, reason: str, details: dict = None):
        self.reason = reason
        self.details = details or {}
        message = f"{reason}"
        if self.details:
            message += f" - {self.details}"
        super().__init__(message)
