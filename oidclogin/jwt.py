"""Decoding of JSON Web Tokens without signature verification."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

_BASE64URL_CHARS = re.compile(r"[A-Za-z0-9_-]*")


class JWTDecodeError(ValueError):
    """Raised when a token cannot be decoded."""


class _Clock(Protocol):
    def now(self) -> datetime: ...


@dataclass(frozen=True)
class Claims:
    """Claims of an ID token."""

    subject: str
    expiry: datetime
    pretty: str  # representation for debugging and logging

    def is_expired(self, clock: _Clock) -> bool:
        """Return True if the token expired before the clock's current time."""
        return self.expiry < clock.now()


def _decode_segment(segment: str) -> bytes:
    if not _BASE64URL_CHARS.fullmatch(segment):
        raise JWTDecodeError("invalid base64: illegal character in input")
    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise JWTDecodeError(f"invalid base64: {e}") from e


def decode_payload_as_raw_json(token: str) -> bytes:
    """Extract the payload segment of the token and return its raw JSON bytes."""
    parts = token.split(".", 2)
    if len(parts) != 3:
        raise JWTDecodeError(f"wants 3 segments but got {len(parts)} segments")
    try:
        return _decode_segment(parts[1])
    except JWTDecodeError as e:
        raise JWTDecodeError(f"could not decode the payload: {e}") from e


def _indent(payload: bytes) -> str:
    try:
        value = json.loads(payload)
    except ValueError as e:
        raise JWTDecodeError(f"could not indent the json of token: {e}") from e
    return json.dumps(value, indent=2, ensure_ascii=False)


def decode_payload_as_pretty_json(token: str) -> str:
    """Decode the token and return its payload as indented JSON."""
    try:
        payload = decode_payload_as_raw_json(token)
    except JWTDecodeError as e:
        raise JWTDecodeError(f"could not decode the payload: {e}") from e
    return _indent(payload)


def decode_without_verify(token: str) -> Claims:
    """Decode the token and return its claims. The signature is not verified."""
    try:
        payload = decode_payload_as_raw_json(token)
    except JWTDecodeError as e:
        raise JWTDecodeError(f"could not decode the payload: {e}") from e
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise JWTDecodeError(f"could not decode the json of token: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise JWTDecodeError("could not decode the json of token: payload is not an object")
    subject = data.get("sub") or ""
    expires_at = data.get("exp") or 0
    if not isinstance(subject, str):
        raise JWTDecodeError("could not decode the json of token: sub must be a string")
    if isinstance(expires_at, bool) or not isinstance(expires_at, int):
        raise JWTDecodeError("could not decode the json of token: exp must be an integer")
    return Claims(
        subject=subject,
        expiry=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        pretty=_indent(payload),
    )