"""Reading user input from standard input."""

from __future__ import annotations

import getpass
import sys
from typing import TextIO


class Reader:
    """Reads lines and passwords, writing prompts to standard error."""

    def __init__(self, stdin: TextIO | None = None, stderr: TextIO | None = None) -> None:
        self._stdin = stdin
        self._stderr = stderr

    @property
    def stdin(self) -> TextIO:
        return self._stdin if self._stdin is not None else sys.stdin

    @property
    def stderr(self) -> TextIO:
        return self._stderr if self._stderr is not None else sys.stderr

    def read_string(self, prompt: str) -> str:
        """Prompt and read one line; raise EOFError if input ends first."""
        self.stderr.write(prompt)
        self.stderr.flush()
        line = self.stdin.readline()
        if not line.endswith("\n"):
            raise EOFError("read error: EOF")
        return line.rstrip("\r\n")

    def read_password(self, prompt: str) -> str:
        """Prompt and read a password without echo."""
        try:
            return getpass.getpass(prompt=prompt, stream=self.stderr)
        except EOFError as e:
            raise EOFError(f"read error: {e}") from e