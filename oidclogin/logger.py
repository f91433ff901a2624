"""Logging to standard error with verbosity levels."""

from __future__ import annotations

import sys
from typing import Any, TextIO


class Logger:
    """Writes messages to standard error; verbose messages only up to a level."""

    def __init__(self, stream: TextIO | None = None, verbosity: int = 0) -> None:
        self._stream = stream
        self.verbosity = verbosity

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def _write(self, fmt: str, args: tuple[Any, ...]) -> None:
        message = fmt % args if args else fmt
        if not message.endswith("\n"):
            message += "\n"
        self.stream.write(message)
        self.stream.flush()

    def printf(self, fmt: str, *args: Any) -> None:
        """Write a formatted message unconditionally."""
        self._write(fmt, args)

    def log(self, level: int, fmt: str, *args: Any) -> None:
        """Write a formatted message if the level is enabled."""
        if self.is_enabled(level):
            self._write(fmt, args)

    def is_enabled(self, level: int) -> bool:
        """Return True if messages at the level are written."""
        return level <= self.verbosity