"""
twbuild.core - Foundation layer: logging, subprocess and timing helpers.
"""

from twbuild.core.utils import (
    log,
    Logger,
    run_cmd,
    redact,
    relative_to_root,
)
from twbuild.core.timing import (
    StepTimings,
    format_duration,
)

__all__ = [
    # Logging
    "log",
    "Logger",
    # Runtime utilities
    "run_cmd",
    "redact",
    "relative_to_root",
    # Timing
    "StepTimings",
    "format_duration",
]
