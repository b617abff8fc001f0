"""Logging for analysis runs.

Every ``analyze`` invocation gets a short run id; every log line emitted
while a batch is in flight carries it, and lines emitted while one
artifact is being analyzed also carry ``artifact=<path>``. Events go
through structlog into stdlib handlers, one handler per configured
output, so a run can log human-readable lines to stderr and JSON to a
file at different levels.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from diffinsight.config.models import LoggingConfig, LogOutputConfig

RUN_ID_LENGTH = 12

# Third-party loggers that are noisy below WARNING.
_QUIET_LOGGERS = ("asyncio",)

_run_id: ContextVar[str | None] = ContextVar("diffinsight_run_id", default=None)


def get_run_id() -> str | None:
    return _run_id.get()


def set_run_id(run_id: str | None = None) -> str:
    """Start a run. Generates a fresh id unless one is given."""
    value = run_id or uuid4().hex[:RUN_ID_LENGTH]
    _run_id.set(value)
    return value


def clear_run_id() -> None:
    _run_id.set(None)


@contextmanager
def bind_artifact(path: str) -> Iterator[None]:
    """Tag every event logged inside the block with the artifact path.

    Bindings live in structlog's context variables, so concurrent
    analyses running as separate asyncio tasks never see each other's path.
    """
    with structlog.contextvars.bound_contextvars(artifact=path):
        yield


def _inject_run_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    run_id = _run_id.get()
    if run_id is not None:
        event_dict.setdefault("run_id", run_id)
    return event_dict


def _level_number(name: str | None, fallback: int) -> int:
    if not name:
        return fallback
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else fallback


def _pre_chain() -> list[structlog.types.Processor]:
    """Processors applied to both structlog events and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _inject_run_id,  # type: ignore[list-item]
    ]


def _open_stream(destination: str) -> logging.Handler:
    streams = {"stderr": sys.stderr, "stdout": sys.stdout}
    if destination in streams:
        return logging.StreamHandler(streams[destination])
    log_path = Path(destination)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_path, mode="a", encoding="utf-8")


def _renderer(output: LogOutputConfig) -> structlog.types.Processor:
    if output.format == "json":
        return structlog.processors.JSONRenderer()
    stream = sys.stdout if output.destination == "stdout" else sys.stderr
    colored = output.destination in ("stderr", "stdout") and stream.isatty()
    return structlog.dev.ConsoleRenderer(colors=colored, pad_event_to=0, pad_level=False)


def _build_handler(output: LogOutputConfig, level: int, pre_chain: list[structlog.types.Processor]) -> logging.Handler:
    handler = _open_stream(output.destination)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=_renderer(output), foreign_pre_chain=pre_chain)
    )
    return handler


def _reset_root(level: int) -> logging.Logger:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)
    return root


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Install handlers for a run, replacing any from an earlier call.

    Without ``config`` a single stderr output is used, rendered as JSON
    when ``json_format`` is set. With ``config``, its level and outputs win
    over the keyword arguments.
    """
    from diffinsight.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    root_level = _level_number(config.level, logging.INFO)
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Loggers are re-resolved on every call so a second configure applies.
        cache_logger_on_first_use=False,
    )

    root = _reset_root(root_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for output in config.outputs:
        root.addHandler(_build_handler(output, _level_number(output.level, root_level), pre_chain))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    return logger.bind(logger=name) if name else logger  # type: ignore[no-any-return]
