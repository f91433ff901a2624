from datetime import datetime, timezone

import pytest

from oidclogin.jwt import (
    Claims,
    JWTDecodeError,
    decode_payload_as_pretty_json,
    decode_payload_as_raw_json,
    decode_without_verify,
)

HEADER = "eyJ0eXAiOiJKV1QiLA0KICJhbGciOiJIUzI1NiJ9"
PAYLOAD = (
    "eyJpc3MiOiJqb2UiLA0KICJleHAiOjEzMDA4MTkzODAsDQogImh0dHA6Ly9leGFtcGxlLmNvbS9pc19yb290Ijp0cnVlfQ"
)
SIGNATURE = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
TOKEN = HEADER + "." + PAYLOAD + "." + SIGNATURE

PRETTY = """{
  "iss": "joe",
  "exp": 1300819380,
  "http://example.com/is_root": true
}"""


class FixedClock:
    def __init__(self, now):
        self._now = now

    def now(self):
        return self._now


def test_decode_valid_token():
    got = decode_without_verify(TOKEN)
    assert got == Claims(
        subject="",
        expiry=datetime.fromtimestamp(1300819380, tz=timezone.utc),
        pretty=PRETTY,
    )


def test_decode_invalid_token():
    with pytest.raises(JWTDecodeError):
        decode_without_verify("HEADER.INVALID_TOKEN.SIGNATURE")


def test_decode_wrong_number_of_segments():
    with pytest.raises(JWTDecodeError, match="wants 3 segments but got 2 segments"):
        decode_payload_as_raw_json("a.b")


def test_pretty_json_matches_claims():
    assert decode_payload_as_pretty_json(TOKEN) == PRETTY


def test_raw_json_contains_issuer():
    raw = decode_payload_as_raw_json(TOKEN)
    assert raw.startswith(b'{"iss":"joe"')


def test_claims_is_expired():
    claims = Claims(
        subject="",
        expiry=datetime(2019, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        pretty="",
    )
    assert claims.is_expired(FixedClock(datetime(2019, 1, 2, 4, 0, 0, tzinfo=timezone.utc))) is True
    assert claims.is_expired(FixedClock(datetime(2019, 1, 2, 0, 0, 0, tzinfo=timezone.utc))) is False