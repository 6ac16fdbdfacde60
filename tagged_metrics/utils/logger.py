import logging
import sys

PACKAGE_LOGGER = "tagged_metrics"


class _PackageFilter(logging.Filter):
    """Marks handlers installed by configure_logging() so they are not added twice."""

    def filter(self, record: logging.LogRecord) -> bool:
        return True


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def configure_logging(level: str = "INFO") -> None:
    """
    Send tagged_metrics logs to stdout at the given level.

    Only the tagged_metrics namespace is touched; the root logger is left
    to the host application. Safe to call multiple times (idempotent).
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for h in package_logger.handlers:
        if any(isinstance(f, _PackageFilter) for f in h.filters):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter())
    handler.addFilter(_PackageFilter())
    package_logger.addHandler(handler)


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Get a module-specific logger under the tagged_metrics namespace."""
    return logging.getLogger(name)


logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())
