"""A stub OpenID Connect provider served over HTTP on localhost, for testing clients.

It skips security checks and is only meant for tests.
"""

from __future__ import annotations

import dataclasses
import html
import json
import logging
import ssl
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, NamedTuple, Protocol
from urllib.parse import parse_qs, urlsplit

_log = logging.getLogger(__name__)

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _encode_json(value: Any) -> bytes:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _JSON_ESCAPES:
        text = text.replace(char, escaped)
    return (text + "\n").encode("utf-8")


@dataclass
class DiscoveryResponse:
    """The OpenID Provider configuration document."""

    issuer: str = ""
    authorization_endpoint: str = ""
    token_endpoint: str = ""
    userinfo_endpoint: str = ""
    revocation_endpoint: str = ""
    jwks_uri: str = ""
    response_types_supported: list[str] | None = None
    subject_types_supported: list[str] | None = None
    id_token_signing_alg_values_supported: list[str] | None = None
    scopes_supported: list[str] | None = None
    token_endpoint_auth_methods_supported: list[str] | None = None
    claims_supported: list[str] | None = None
    code_challenge_methods_supported: list[str] | None = None


@dataclass
class CertificatesResponseKey:
    """A JSON Web Key."""

    kty: str = ""
    alg: str = ""
    use: str = ""
    kid: str = ""
    n: str = ""
    e: str = ""


@dataclass
class CertificatesResponse:
    """A JSON Web Key Set."""

    keys: list[CertificatesResponseKey] | None = None


@dataclass
class AuthenticationRequest:
    """An authentication request received at the authorization endpoint."""

    redirect_uri: str = ""
    state: str = ""
    scope: str = ""  # space separated
    nonce: str = ""
    code_challenge: str = ""
    code_challenge_method: str = ""
    raw_query: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class TokenRequest:
    """An authorization code exchange request received at the token endpoint."""

    code: str = ""
    code_verifier: str = ""


@dataclass
class TokenResponse:
    """A successful response of the token endpoint."""

    access_token: str = ""
    token_type: str = ""
    refresh_token: str = ""
    expires_in: int = 0
    id_token: str = ""


class ErrorResponse(Exception):
    """An OAuth 2.0 error response; the handler answers it with status 400."""

    def __init__(self, code: str, description: str = "") -> None:
        super().__init__(code, description)
        self.code = code
        self.description = description

    def __str__(self) -> str:
        return f"{self.code}({self.description})"

    def to_json(self) -> dict[str, str]:
        return {"error": self.code, "error_description": self.description}


class Provider(Protocol):
    """Discovery and authentication behaviour behind the handler.

    Raising ErrorResponse makes the handler answer 400 with its JSON;
    any other exception makes it answer 500.
    """

    def discovery(self) -> DiscoveryResponse: ...

    def get_certificates(self) -> CertificatesResponse: ...

    def authenticate_code(self, req: AuthenticationRequest) -> str: ...

    def exchange(self, req: TokenRequest) -> TokenResponse: ...

    def authenticate_password(self, username: str, password: str, scope: str) -> TokenResponse: ...

    def refresh(self, refresh_token: str) -> TokenResponse: ...


class _Reply(NamedTuple):
    status: int
    headers: dict[str, str]
    body: bytes


class _HandlerError(Exception):
    pass


def _first(values: dict[str, list[str]], key: str) -> str:
    found = values.get(key)
    return found[0] if found else ""


def _json_reply(value: Any) -> _Reply:
    payload = value if isinstance(value, dict) else dataclasses.asdict(value)
    return _Reply(200, {"Content-Type": "application/json"}, _encode_json(payload))


def _find_error_response(err: BaseException | None) -> ErrorResponse | None:
    while err is not None:
        if isinstance(err, ErrorResponse):
            return err
        err = err.__cause__
    return None


def _call(prefix: str, func: Any, *args: Any) -> Any:
    try:
        return func(*args)
    except ErrorResponse:
        raise
    except Exception as e:
        raise _HandlerError(f"{prefix}: {e}") from e


class Handler:
    """Routes HTTP requests to the provider."""

    def __init__(self, provider: Provider) -> None:
        self.provider = provider

    def handle(self, method: str, target: str, body: bytes = b"") -> _Reply:
        """Handle one request and return its status, headers and body."""
        try:
            reply = self._serve(method, target, body)
        except Exception as err:
            error_response = _find_error_response(err)
            if error_response is not None:
                _log.info("400 %s %s: %s", method, target, err)
                return _Reply(
                    400, {"Content-Type": "application/json"}, _encode_json(error_response.to_json())
                )
            _log.info("500 %s %s: %s", method, target, err)
            return _Reply(
                500,
                {
                    "Content-Type": "text/plain; charset=utf-8",
                    "X-Content-Type-Options": "nosniff",
                },
                f"{err}\n".encode("utf-8"),
            )
        _log.info("%d %s %s", reply.status, method, target)
        return reply

    def _serve(self, method: str, target: str, body: bytes) -> _Reply:
        url = urlsplit(target)
        path = url.path
        query = parse_qs(url.query, keep_blank_values=True)
        if method == "GET" and path == "/.well-known/openid-configuration":
            return _json_reply(self.provider.discovery())
        if method == "GET" and path == "/certs":
            return _json_reply(self.provider.get_certificates())
        if method == "GET" and path == "/auth":
            return self._authenticate(query)
        if method == "POST" and path == "/token":
            return self._token(query, body)
        return _Reply(
            404,
            {"Content-Type": "text/plain; charset=utf-8", "X-Content-Type-Options": "nosniff"},
            b"404 page not found\n",
        )

    def _authenticate(self, query: dict[str, list[str]]) -> _Reply:
        redirect_uri, state = _first(query, "redirect_uri"), _first(query, "state")
        req = AuthenticationRequest(
            redirect_uri=redirect_uri,
            state=state,
            scope=_first(query, "scope"),
            nonce=_first(query, "nonce"),
            code_challenge=_first(query, "code_challenge"),
            code_challenge_method=_first(query, "code_challenge_method"),
            raw_query=query,
        )
        code = _call("authentication error", self.provider.authenticate_code, req)
        location = f"{redirect_uri}?state={state}&code={code}"
        page = f'<a href="{html.escape(location)}">Found</a>.\n\n'
        return _Reply(
            302,
            {"Location": location, "Content-Type": "text/html; charset=utf-8"},
            page.encode("utf-8"),
        )

    def _token(self, query: dict[str, list[str]], body: bytes) -> _Reply:
        try:
            posted = parse_qs(body.decode("utf-8"), keep_blank_values=True)
        except UnicodeDecodeError as e:
            raise _HandlerError(f"could not parse the form: {e}") from e
        form = {key: [*posted.get(key, []), *query.get(key, [])] for key in {*posted, *query}}
        grant_type = _first(form, "grant_type")
        if grant_type == "authorization_code":
            req = TokenRequest(code=_first(form, "code"), code_verifier=_first(form, "code_verifier"))
            return _json_reply(_call("token request error", self.provider.exchange, req))
        if grant_type == "password":
            response = _call(
                "authentication error",
                self.provider.authenticate_password,
                _first(form, "username"),
                _first(form, "password"),
                _first(form, "scope"),
            )
            return _json_reply(response)
        if grant_type == "refresh_token":
            response = _call(
                "token refresh error", self.provider.refresh, _first(form, "refresh_token")
            )
            return _json_reply(response)
        raise ErrorResponse("invalid_grant", f"unknown grant_type {grant_type}")


class _Server(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, handler: Handler) -> None:
        super().__init__(("localhost", 0), _RequestHandler)
        self.stub_handler = handler


class _RequestHandler(BaseHTTPRequestHandler):
    server: _Server

    def _dispatch(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        reply = self.server.stub_handler.handle(self.command, self.path, body)
        self.send_response(reply.status)
        for name, value in reply.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(reply.body)))
        self.end_headers()
        self.wfile.write(reply.body)

    do_GET = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_DELETE = _dispatch
    do_PATCH = _dispatch

    def log_message(self, format: str, *args: Any) -> None:
        _log.debug(format, *args)


class RunningServer:
    """A stub provider listening on localhost."""

    def __init__(self, url: str, server: _Server, thread: threading.Thread) -> None:
        self.url = url
        self._server = server
        self._thread = thread

    def shutdown(self) -> None:
        """Stop serving and close the listening socket."""
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()

    def __enter__(self) -> RunningServer:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()


def start(
    provider: Provider, cert_path: str | None = None, key_path: str | None = None
) -> RunningServer:
    """Serve the provider on a free localhost port, with TLS if a key pair is given."""
    if (cert_path is None) != (key_path is None):
        raise ValueError("cert_path and key_path must be given together")
    server = _Server(Handler(provider))
    port = server.server_address[1]
    if cert_path is None:
        url = f"http://localhost:{port}"
    else:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        try:
            context.load_cert_chain(cert_path, key_path)
        except Exception:
            server.server_close()
            raise
        server.socket = context.wrap_socket(server.socket, server_side=True)
        url = f"https://localhost:{port}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return RunningServer(url, server, thread)