"""Runtime logging helpers."""

from __future__ import annotations

import sys
from typing import Any, Literal

import loguru
from loguru import logger

from parley.config import get_settings

LogProfile = Literal["default", "compact", "json"]

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "compact": "{level} | {extra[command]} | {message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[command]} | {message}",
    "json": "{message}",
}
_CONFIGURED_PROFILE: LogProfile | None = None


def configure_logging(*, profile: LogProfile = "default", level: str | None = None, sink: Any = None) -> None:
    """Configure process-level logging once.

    Every record carries the running command in ``extra["command"]`` (``-``
    outside a run). The ``json`` profile writes one serialized record per line.
    ``level`` defaults to ``PARLEY_LOG_LEVEL``.
    """
    from parley.invocation import current_command

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["command"] = current_command()

    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    logger.remove()
    logger.add(
        sink or sys.stderr,
        level=(level or get_settings().log_level).upper(),
        format=_PROFILE_FORMATS[profile],
        serialize=profile == "json",
        backtrace=False,
        diagnose=False,
    )
    logger.configure(patcher=inject_context)
    _CONFIGURED_PROFILE = profile
