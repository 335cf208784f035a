"""Logging helpers for id3mat.

The package logs through loguru and keeps its messages disabled until
:func:`enable_logging` is called, so importing id3mat never writes to
stderr on its own.

Note:
    Importing this module removes loguru's default handler (ID 0).
    Applications that rely on it should configure their own handlers after
    importing id3mat.
"""
from __future__ import annotations

import contextlib
import sys
import threading
from typing import ClassVar, Final, Literal

from loguru import logger

PACKAGE_NAME: Final[str] = __name__.split(".")[0]

# Drop loguru's default stderr handler so enable_logging() output is not
# duplicated.  Already removed if another library got there first.
with contextlib.suppress(ValueError):
    logger.remove(0)

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)


class LoggingHandle:
    """Handle returned by :func:`enable_logging`.

    Removing the last active handle disables the id3mat logger again.  The
    handle works as a context manager.
    """

    _active_ids: ClassVar[set[int]] = set()
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, handler_id: int):
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        with LoggingHandle._lock:
            if self.handler_id is None:
                return
            LoggingHandle._active_ids.discard(self.handler_id)
            with contextlib.suppress(ValueError):
                logger.remove(self.handler_id)
            self.handler_id = None
            if not LoggingHandle._active_ids:
                logger.disable(PACKAGE_NAME)

    def __enter__(self) -> LoggingHandle:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disable()


def enable_logging(*, level: LogLevel = "INFO", sink=None) -> LoggingHandle:
    """
    Route id3mat log records to ``sink`` (stderr by default).

    Parameters
    ----------
    level : str, default="INFO"
        Minimum level shown.  ``"DEBUG"`` prints one line per split and leaf
        created by the tree builder.
    sink : file-like or callable, optional
        Any loguru sink.  Defaults to ``sys.stderr``.

    Returns
    -------
    LoggingHandle
        Handle that removes the handler again.
    """
    logger.enable(PACKAGE_NAME)
    handler_id = logger.add(
        sink if sink is not None else sys.stderr,
        level=level,
        format=_FORMAT,
        filter=PACKAGE_NAME,
    )
    return LoggingHandle(handler_id)
