"""Core module exports."""

from diffinsight.core.errors import (
    ConfigError,
    ContentError,
    DiffInsightError,
    ErrorCode,
    ExtractionError,
    InternalError,
)
from diffinsight.core.logging import (
    bind_artifact,
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "ContentError",
    "DiffInsightError",
    "ErrorCode",
    "ExtractionError",
    "InternalError",
    # Logging
    "bind_artifact",
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
