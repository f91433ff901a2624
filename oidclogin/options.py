"""Command line options for authentication and TLS, and the settings built from them."""

from __future__ import annotations

import argparse
import csv
import enum
import os
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Sequence

DEFAULT_LISTEN_ADDRESS = ("127.0.0.1:8000", "127.0.0.1:18000")
DEFAULT_AUTHENTICATION_TIMEOUT_SEC = 180

GRANT_TYPES = ("auto", "authcode", "authcode-keyboard", "password", "device-code")
ALL_GRANT_TYPE = "|".join(GRANT_TYPES)


class OptionError(ValueError):
    """Raised when the command line options are invalid."""


def expand_homedir(path: str) -> str:
    """Replace a leading "~" of the path with the home directory."""
    if not path.startswith("~"):
        return path
    rest = path[1:].lstrip(os.sep + (os.altsep or ""))
    return os.path.normpath(os.path.join(str(Path.home()), rest))


class Renegotiation(enum.IntEnum):
    """How a TLS client answers renegotiation requests from a server."""

    NEVER = 0
    ONCE_AS_CLIENT = 1
    FREELY_AS_CLIENT = 2


@dataclass
class TLSClientConfig:
    """Settings of the TLS client used to talk to the provider."""

    ca_cert_filename: list[str] = field(default_factory=list)
    ca_cert_data: list[str] = field(default_factory=list)
    skip_tls_verify: bool = False
    renegotiation: Renegotiation = Renegotiation.NEVER


@dataclass
class BrowserOption:
    """Settings of the authorization code flow with a browser."""

    bind_address: list[str] = field(default_factory=list)
    skip_open_browser: bool = False
    browser_command: str = ""
    authentication_timeout: timedelta = timedelta(0)
    local_server_cert_file: str = ""
    local_server_key_file: str = ""
    open_url_after_authentication: str = ""
    redirect_url_hostname: str = ""
    auth_request_extra_params: dict[str, str] = field(default_factory=dict)


@dataclass
class KeyboardOption:
    """Settings of the authorization code flow with keyboard input."""

    auth_request_extra_params: dict[str, str] = field(default_factory=dict)


@dataclass
class ROPCOption:
    """Settings of the resource owner password credentials grant."""

    username: str = ""
    password: str = ""


@dataclass
class DeviceCodeOption:
    """Settings of the device authorization grant."""

    skip_open_browser: bool = False
    browser_command: str = ""


@dataclass
class GrantOptionSet:
    """The chosen grant; exactly one field is set."""

    auth_code_browser_option: BrowserOption | None = None
    auth_code_keyboard_option: KeyboardOption | None = None
    ropc_option: ROPCOption | None = None
    device_code_option: DeviceCodeOption | None = None


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> Any:  # type: ignore[override]
        raise OptionError(message)


def _csv_fields(value: str) -> list[str]:
    return next(csv.reader([value]), [])


class _StringSliceAction(argparse.Action):
    """Appends comma separated values; the first use replaces the default."""

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            items = _csv_fields(values)
        except csv.Error as e:
            raise argparse.ArgumentError(self, f"invalid value {values!r}: {e}") from e
        current = getattr(namespace, self.dest, None) or []
        setattr(namespace, self.dest, [*current, *items])


class _IntSliceAction(argparse.Action):
    """Appends comma separated integers and warns that the flag is deprecated."""

    def __init__(self, *args: Any, deprecation: str = "", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.deprecation = deprecation

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            items = [int(v.strip()) for v in values.split(",")] if values else []
        except ValueError as e:
            raise argparse.ArgumentError(self, f"invalid integer in {values!r}") from e
        if self.deprecation:
            sys.stderr.write(f"Flag {option_string} has been deprecated, {self.deprecation}\n")
        current = getattr(namespace, self.dest, None) or []
        setattr(namespace, self.dest, [*current, *items])


class _StringToStringAction(argparse.Action):
    """Merges key=value pairs, given comma separated, into a mapping."""

    def __call__(self, parser, namespace, values, option_string=None):
        count = values.count("=")
        if count == 0:
            raise argparse.ArgumentError(self, f"{values} must be formatted as key=value")
        if count == 1:
            pairs = [values.strip('"')]
        else:
            try:
                pairs = _csv_fields(values)
            except csv.Error as e:
                raise argparse.ArgumentError(self, f"invalid value {values!r}: {e}") from e
        current = dict(getattr(namespace, self.dest, None) or {})
        for pair in pairs:
            key, sep, value = pair.partition("=")
            if not sep:
                raise argparse.ArgumentError(self, f"{pair} must be formatted as key=value")
            current[key] = value
        setattr(namespace, self.dest, current)


def add_authentication_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the authentication flags to the parser."""
    parser.add_argument(
        "--grant-type",
        default="auto",
        help=f"Authorization grant type to use. One of ({ALL_GRANT_TYPE})",
    )
    parser.add_argument(
        "--listen-address",
        action=_StringSliceAction,
        default=None,
        help="[authcode] Address to bind to the local server. "
        "If multiple addresses are set, it will try binding in order "
        f"(default {','.join(DEFAULT_LISTEN_ADDRESS)})",
    )
    parser.add_argument(
        "--listen-port",
        action=_IntSliceAction,
        default=None,
        deprecation="use --listen-address instead",
        help=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--skip-open-browser",
        action="store_true",
        help="[authcode] Do not open the browser automatically",
    )
    parser.add_argument(
        "--browser-command", default="", help="[authcode] Command to open the browser"
    )
    parser.add_argument(
        "--authentication-timeout-sec",
        type=int,
        default=DEFAULT_AUTHENTICATION_TIMEOUT_SEC,
        help="[authcode] Timeout of authentication in seconds",
    )
    parser.add_argument(
        "--local-server-cert",
        default="",
        help="[authcode] Certificate path for the local server",
    )
    parser.add_argument(
        "--local-server-key",
        default="",
        help="[authcode] Certificate key path for the local server",
    )
    parser.add_argument(
        "--open-url-after-authentication",
        default="",
        help="[authcode] If set, open the URL in the browser after authentication",
    )
    parser.add_argument(
        "--oidc-redirect-url-hostname",
        default="localhost",
        help="[authcode] Hostname of the redirect URL",
    )
    parser.add_argument(
        "--oidc-auth-request-extra-params",
        action=_StringToStringAction,
        default=None,
        help="[authcode, authcode-keyboard] Extra query parameters to send with "
        "an authentication request",
    )
    parser.add_argument(
        "--username",
        default="",
        help="[password] Username for resource owner password credentials grant",
    )
    parser.add_argument(
        "--password",
        default="",
        help="[password] Password for resource owner password credentials grant",
    )


def add_tls_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the TLS flags to the parser."""
    parser.add_argument(
        "--certificate-authority",
        action="append",
        default=None,
        help="Path to a cert file for the certificate authority",
    )
    parser.add_argument(
        "--certificate-authority-data",
        action="append",
        default=None,
        help="Base64 encoded cert for the certificate authority",
    )
    parser.add_argument(
        "--insecure-skip-tls-verify",
        action="store_true",
        help="If set, the server's certificate will not be checked for validity. "
        "This will make your HTTPS connections insecure",
    )
    parser.add_argument(
        "--tls-renegotiation-once",
        action="store_true",
        help="If set, allow a remote server to request renegotiation once per connection",
    )
    parser.add_argument(
        "--tls-renegotiation-freely",
        action="store_true",
        help="If set, allow a remote server to repeatedly request renegotiation",
    )


@dataclass
class AuthenticationOptions:
    """Values of the authentication flags."""

    grant_type: str = "auto"
    listen_address: list[str] = field(default_factory=lambda: list(DEFAULT_LISTEN_ADDRESS))
    listen_port: list[int] = field(default_factory=list)  # deprecated
    authentication_timeout_sec: int = DEFAULT_AUTHENTICATION_TIMEOUT_SEC
    skip_open_browser: bool = False
    browser_command: str = ""
    local_server_cert_file: str = ""
    local_server_key_file: str = ""
    open_url_after_authentication: str = ""
    redirect_url_hostname: str = "localhost"
    auth_request_extra_params: dict[str, str] = field(default_factory=dict)
    username: str = ""
    password: str = ""

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> AuthenticationOptions:
        """Build the options from parsed arguments."""
        listen_address = namespace.listen_address
        return cls(
            grant_type=namespace.grant_type,
            listen_address=(
                list(DEFAULT_LISTEN_ADDRESS) if listen_address is None else list(listen_address)
            ),
            listen_port=list(namespace.listen_port or []),
            authentication_timeout_sec=namespace.authentication_timeout_sec,
            skip_open_browser=namespace.skip_open_browser,
            browser_command=namespace.browser_command,
            local_server_cert_file=namespace.local_server_cert,
            local_server_key_file=namespace.local_server_key,
            open_url_after_authentication=namespace.open_url_after_authentication,
            redirect_url_hostname=namespace.oidc_redirect_url_hostname,
            auth_request_extra_params=dict(namespace.oidc_auth_request_extra_params or {}),
            username=namespace.username,
            password=namespace.password,
        )

    def determine_listen_address(self) -> list[str]:
        """Return the bind addresses; the deprecated ports take precedence if given."""
        if not self.listen_port:
            return list(self.listen_address)
        return [f"127.0.0.1:{port}" for port in self.listen_port]

    def expand_homedir(self) -> None:
        """Expand "~" in the local server certificate paths."""
        self.local_server_cert_file = expand_homedir(self.local_server_cert_file)
        self.local_server_key_file = expand_homedir(self.local_server_key_file)

    def grant_option_set(self) -> GrantOptionSet:
        """Choose the grant from the options; raise OptionError for an unknown grant type."""
        grant = self.grant_type
        if grant == "authcode" or (grant == "auto" and not self.username):
            return GrantOptionSet(
                auth_code_browser_option=BrowserOption(
                    bind_address=self.determine_listen_address(),
                    skip_open_browser=self.skip_open_browser,
                    browser_command=self.browser_command,
                    authentication_timeout=timedelta(seconds=self.authentication_timeout_sec),
                    local_server_cert_file=self.local_server_cert_file,
                    local_server_key_file=self.local_server_key_file,
                    open_url_after_authentication=self.open_url_after_authentication,
                    redirect_url_hostname=self.redirect_url_hostname,
                    auth_request_extra_params=dict(self.auth_request_extra_params),
                )
            )
        if grant == "authcode-keyboard":
            return GrantOptionSet(
                auth_code_keyboard_option=KeyboardOption(
                    auth_request_extra_params=dict(self.auth_request_extra_params),
                )
            )
        if grant == "password" or (grant == "auto" and self.username):
            return GrantOptionSet(
                ropc_option=ROPCOption(username=self.username, password=self.password)
            )
        if grant == "device-code":
            return GrantOptionSet(
                device_code_option=DeviceCodeOption(
                    skip_open_browser=self.skip_open_browser,
                    browser_command=self.browser_command,
                )
            )
        raise OptionError(f"grant-type must be one of ({ALL_GRANT_TYPE})")


@dataclass
class TLSOptions:
    """Values of the TLS flags."""

    ca_cert_filename: list[str] = field(default_factory=list)
    ca_cert_data: list[str] = field(default_factory=list)
    skip_tls_verify: bool = False
    renegotiate_once_as_client: bool = False
    renegotiate_freely_as_client: bool = False

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> TLSOptions:
        """Build the options from parsed arguments."""
        return cls(
            ca_cert_filename=list(namespace.certificate_authority or []),
            ca_cert_data=list(namespace.certificate_authority_data or []),
            skip_tls_verify=namespace.insecure_skip_tls_verify,
            renegotiate_once_as_client=namespace.tls_renegotiation_once,
            renegotiate_freely_as_client=namespace.tls_renegotiation_freely,
        )

    def expand_homedir(self) -> None:
        """Expand "~" in the certificate authority paths."""
        self.ca_cert_filename = [expand_homedir(p) for p in self.ca_cert_filename]

    def _renegotiation(self) -> Renegotiation:
        if self.renegotiate_once_as_client:
            return Renegotiation.ONCE_AS_CLIENT
        if self.renegotiate_freely_as_client:
            return Renegotiation.FREELY_AS_CLIENT
        return Renegotiation.NEVER

    def tls_client_config(self) -> TLSClientConfig:
        """Return the TLS client settings."""
        return TLSClientConfig(
            ca_cert_filename=list(self.ca_cert_filename),
            ca_cert_data=list(self.ca_cert_data),
            skip_tls_verify=self.skip_tls_verify,
            renegotiation=self._renegotiation(),
        )


def parse_authentication_options(argv: Sequence[str] | None = None) -> AuthenticationOptions:
    """Parse the authentication flags; raise OptionError on invalid arguments."""
    parser = _Parser(add_help=False)
    add_authentication_arguments(parser)
    return AuthenticationOptions.from_namespace(parser.parse_args(list(argv or [])))


def parse_tls_options(argv: Sequence[str] | None = None) -> TLSOptions:
    """Parse the TLS flags; raise OptionError on invalid arguments."""
    parser = _Parser(add_help=False)
    add_tls_arguments(parser)
    return TLSOptions.from_namespace(parser.parse_args(list(argv or [])))