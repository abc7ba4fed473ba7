"""Logging configuration for proxyhost.

Logging goes through loguru and is disabled by default (library behavior).
Call ``setup_logging`` to enable it:

    from proxyhost import LogConfig, setup_logging

    handler_ids = setup_logging(LogConfig(level="DEBUG", console=True))
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from loguru import logger

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"]

_CONTEXT_KEYS = ("provider", "component", "instance", "zone")


def _format_context(record: Any) -> str:
    extra = record.get("extra", {})
    parts = [f"{k}={extra[k]}" for k in _CONTEXT_KEYS if k in extra]
    return f" [{' '.join(parts)}]" if parts else ""


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
    "<dim>{extra[_ctx]}</dim> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line}{extra[_ctx]} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum log level for the console sink.
        file: Path to log file. None disables file output.
        console: Whether to log to stderr.
        rotation: File rotation policy (e.g., "50 MB", "1 day").
        retention: Number of old log files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = ".proxyhost/proxyhost.log"
    console: bool = False
    rotation: str = "50 MB"
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Enable proxyhost logging and return the ids of the added sinks."""
    # loguru's default handler logs to stderr whatever `console` says.
    logger.remove()
    logger.enable("proxyhost")
    logger.configure(patcher=lambda r: r["extra"].update(_ctx=_format_context(r)))
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(
            sys.stderr,
            level=config.level,
            format=CONSOLE_FORMAT,
            colorize=True,
            filter="proxyhost",
        ))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(logger.add(
            config.file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            diagnose=False,
            filter="proxyhost",
        ))

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove sinks added by ``setup_logging`` and silence the library again."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("proxyhost")
