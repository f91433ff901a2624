"""Opening URLs in a browser."""

from __future__ import annotations

import contextlib
import os
import subprocess
import sys
import webbrowser
from typing import Iterator

_STDOUT_FD = 1
_STDERR_FD = 2


@contextlib.contextmanager
def _stdout_to_stderr() -> Iterator[None]:
    # A launcher writing to stdout would corrupt the credential JSON for kubectl.
    try:
        sys.stdout.flush()
        saved = os.dup(_STDOUT_FD)
        os.dup2(_STDERR_FD, _STDOUT_FD)
    except (OSError, ValueError):
        yield
        return
    try:
        yield
    finally:
        os.dup2(saved, _STDOUT_FD)
        os.close(saved)


class Browser:
    """Opens URLs with the default browser or a given command."""

    def open(self, url: str) -> None:
        """Open the URL in the default browser."""
        with _stdout_to_stderr():
            opened = webbrowser.open(url)
        if not opened:
            raise OSError(f"could not open the browser for {url}")

    def open_command(self, url: str, command: str) -> None:
        """Run the command with the URL as its argument and wait for it."""
        subprocess.run([command, url], stdout=_STDERR_FD, stderr=_STDERR_FD, check=True)