"""Background maintenance for the Zenith Tasks productivity app."""

from .config import Settings, settings
from .log import (
    get_logger,
    setup_logging,
    setup_production_logging,
    setup_test_logging,
)
from .types import Environment, Frequency, Priority

__all__ = [
    "Environment",
    "Frequency",
    "Priority",
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
    "setup_production_logging",
    "setup_test_logging",
]
