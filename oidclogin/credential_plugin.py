"""Output of the client-go credential plugin protocol."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TextIO

API_VERSION = "client.authentication.k8s.io/v1beta1"


@dataclass(frozen=True)
class Output:
    """A token and its expiry to hand to kubectl."""

    token: str
    expiry: datetime | None


def exec_credential(output: Output) -> dict[str, Any]:
    """Build the ExecCredential object for the output."""
    status: dict[str, Any] = {
        "expirationTimestamp": (
            output.expiry.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
            if output.expiry is not None
            else None
        )
    }
    if output.token:
        status["token"] = output.token
    return {
        "kind": "ExecCredential",
        "apiVersion": API_VERSION,
        "spec": {"interactive": False},
        "status": status,
    }


def write_credential(output: Output, stdout: TextIO | None = None) -> None:
    """Write the ExecCredential as one line of JSON for kubectl."""
    stream = stdout if stdout is not None else sys.stdout
    text = json.dumps(exec_credential(output), separators=(",", ":"), ensure_ascii=False)
    for char, escaped in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escaped)
    stream.write(text + "\n")
    stream.flush()