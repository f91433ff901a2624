import argparse
import os
from datetime import timedelta

import pytest

from oidclogin.options import (
    DEFAULT_AUTHENTICATION_TIMEOUT_SEC,
    DEFAULT_LISTEN_ADDRESS,
    AuthenticationOptions,
    BrowserOption,
    DeviceCodeOption,
    GrantOptionSet,
    KeyboardOption,
    OptionError,
    Renegotiation,
    ROPCOption,
    TLSClientConfig,
    TLSOptions,
    add_authentication_arguments,
    add_tls_arguments,
    expand_homedir,
    parse_authentication_options,
    parse_tls_options,
)

password = "password"

AUTH_CASES = {
    "NoFlag": (
        [],
        GrantOptionSet(
            auth_code_browser_option=BrowserOption(
                bind_address=list(DEFAULT_LISTEN_ADDRESS),
                authentication_timeout=timedelta(seconds=DEFAULT_AUTHENTICATION_TIMEOUT_SEC),
                redirect_url_hostname="localhost",
            )
        ),
    ),
    "FullOptions": (
        [
            "--grant-type", "authcode",
            "--listen-address", "127.0.0.1:10080",
            "--listen-address", "127.0.0.1:20080",
            "--skip-open-browser",
            "--browser-command", "firefox",
            "--authentication-timeout-sec", "10",
            "--local-server-cert", "/path/to/local-server-cert",
            "--local-server-key", "/path/to/local-server-key",
            "--open-url-after-authentication", "https://example.com/success.html",
            "--oidc-redirect-url-hostname", "example",
            "--oidc-auth-request-extra-params", "ttl=86400",
            "--oidc-auth-request-extra-params", "reauth=true",
            "--username", "USER",
            "--password", password,
        ],
        GrantOptionSet(
            auth_code_browser_option=BrowserOption(
                bind_address=["127.0.0.1:10080", "127.0.0.1:20080"],
                skip_open_browser=True,
                browser_command="firefox",
                authentication_timeout=timedelta(seconds=10),
                local_server_cert_file="/path/to/local-server-cert",
                local_server_key_file="/path/to/local-server-key",
                open_url_after_authentication="https://example.com/success.html",
                redirect_url_hostname="example",
                auth_request_extra_params={"ttl": "86400", "reauth": "true"},
            )
        ),
    ),
    "listen-port converts to address": (
        ["--listen-port", "10080", "--listen-port", "20080"],
        GrantOptionSet(
            auth_code_browser_option=BrowserOption(
                bind_address=["127.0.0.1:10080", "127.0.0.1:20080"],
                authentication_timeout=timedelta(seconds=DEFAULT_AUTHENTICATION_TIMEOUT_SEC),
                redirect_url_hostname="localhost",
            )
        ),
    ),
    "listen-port ignores listen-address": (
        [
            "--listen-port", "10080",
            "--listen-port", "20080",
            "--listen-address", "127.0.0.1:30080",
            "--listen-address", "127.0.0.1:40080",
        ],
        GrantOptionSet(
            auth_code_browser_option=BrowserOption(
                bind_address=["127.0.0.1:10080", "127.0.0.1:20080"],
                authentication_timeout=timedelta(seconds=DEFAULT_AUTHENTICATION_TIMEOUT_SEC),
                redirect_url_hostname="localhost",
            )
        ),
    ),
    "GrantType=authcode-keyboard": (
        ["--grant-type", "authcode-keyboard"],
        GrantOptionSet(auth_code_keyboard_option=KeyboardOption()),
    ),
    "GrantType=ropc": (
        [
            "--grant-type", "password",
            "--listen-address", "127.0.0.1:10080",
            "--listen-address", "127.0.0.1:20080",
            "--username", "USER",
            "--password", password,
        ],
        GrantOptionSet(ropc_option=ROPCOption(username="USER", password=password)),
    ),
    "GrantType=auto": (
        [
            "--listen-address", "127.0.0.1:10080",
            "--listen-address", "127.0.0.1:20080",
            "--username", "USER",
            "--password", password,
        ],
        GrantOptionSet(ropc_option=ROPCOption(username="USER", password=password)),
    ),
}


@pytest.mark.parametrize("args,want", list(AUTH_CASES.values()), ids=list(AUTH_CASES))
def test_grant_option_set(args, want):
    got = parse_authentication_options(args).grant_option_set()
    assert got == want


def test_grant_option_set_device_code():
    got = parse_authentication_options(
        ["--grant-type", "device-code", "--skip-open-browser", "--browser-command", "firefox"]
    ).grant_option_set()
    assert got == GrantOptionSet(
        device_code_option=DeviceCodeOption(skip_open_browser=True, browser_command="firefox")
    )


def test_grant_option_set_invalid_grant_type():
    options = parse_authentication_options(["--grant-type", "unknown"])
    with pytest.raises(OptionError, match="grant-type must be one of"):
        options.grant_option_set()


def test_listen_address_comma_separated():
    options = parse_authentication_options(["--listen-address", "127.0.0.1:1,127.0.0.1:2"])
    assert options.determine_listen_address() == ["127.0.0.1:1", "127.0.0.1:2"]


def test_listen_port_prints_deprecation(capsys):
    options = parse_authentication_options(["--listen-port", "10080"])
    assert options.listen_port == [10080]
    assert "use --listen-address instead" in capsys.readouterr().err


def test_listen_port_invalid_integer():
    with pytest.raises(OptionError):
        parse_authentication_options(["--listen-port", "abc"])


def test_extra_params_requires_key_value():
    with pytest.raises(OptionError):
        parse_authentication_options(["--oidc-auth-request-extra-params", "novalue"])


def test_extra_params_comma_separated():
    options = parse_authentication_options(["--oidc-auth-request-extra-params", "a=1,b=2"])
    assert options.auth_request_extra_params == {"a": "1", "b": "2"}


def test_unknown_flag_raises():
    with pytest.raises(OptionError):
        parse_authentication_options(["--no-such-flag"])


def test_combined_parser_from_namespace():
    parser = argparse.ArgumentParser()
    add_authentication_arguments(parser)
    add_tls_arguments(parser)
    ns = parser.parse_args(["--username", "USER", "--insecure-skip-tls-verify"])
    assert AuthenticationOptions.from_namespace(ns).username == "USER"
    assert TLSOptions.from_namespace(ns).tls_client_config().skip_tls_verify is True


TLS_CASES = {
    "NoFlag": ([], TLSClientConfig()),
    "SkipTLSVerify": (["--insecure-skip-tls-verify"], TLSClientConfig(skip_tls_verify=True)),
    "CACertFilename1": (
        ["--certificate-authority", "/path/to/cert1"],
        TLSClientConfig(ca_cert_filename=["/path/to/cert1"]),
    ),
    "CACertFilename2": (
        ["--certificate-authority", "/path/to/cert1", "--certificate-authority", "/path/to/cert2"],
        TLSClientConfig(ca_cert_filename=["/path/to/cert1", "/path/to/cert2"]),
    ),
    "CACertData1": (
        ["--certificate-authority-data", "base64encoded1"],
        TLSClientConfig(ca_cert_data=["base64encoded1"]),
    ),
    "CACertData2": (
        [
            "--certificate-authority-data", "base64encoded1",
            "--certificate-authority-data", "base64encoded2",
        ],
        TLSClientConfig(ca_cert_data=["base64encoded1", "base64encoded2"]),
    ),
    "RenegotiateOnceAsClient": (
        ["--tls-renegotiation-once"],
        TLSClientConfig(renegotiation=Renegotiation.ONCE_AS_CLIENT),
    ),
    "RenegotiateFreelyAsClient": (
        ["--tls-renegotiation-freely"],
        TLSClientConfig(renegotiation=Renegotiation.FREELY_AS_CLIENT),
    ),
}


@pytest.mark.parametrize("args,want", list(TLS_CASES.values()), ids=list(TLS_CASES))
def test_tls_client_config(args, want):
    assert parse_tls_options(args).tls_client_config() == want


def test_renegotiation_once_takes_precedence():
    config = parse_tls_options(
        ["--tls-renegotiation-once", "--tls-renegotiation-freely"]
    ).tls_client_config()
    assert config.renegotiation is Renegotiation.ONCE_AS_CLIENT


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    return str(tmp_path)


def test_expand_homedir_with_tilde(home):
    assert expand_homedir("~/.kube/cache") == os.path.join(home, ".kube", "cache")


def test_expand_homedir_only_tilde(home):
    assert expand_homedir("~") == os.path.normpath(home)


def test_expand_homedir_without_tilde(home):
    assert expand_homedir("/etc/ca.crt") == "/etc/ca.crt"


def test_tls_options_expand_homedir(home):
    options = parse_tls_options(
        ["--certificate-authority", "~/ca.crt", "--certificate-authority", "/abs/ca.crt"]
    )
    options.expand_homedir()
    assert options.ca_cert_filename == [os.path.join(home, "ca.crt"), "/abs/ca.crt"]


def test_authentication_options_expand_homedir(home):
    options = parse_authentication_options(
        ["--local-server-cert", "~/cert.pem", "--local-server-key", "/key.pem"]
    )
    options.expand_homedir()
    assert options.local_server_cert_file == os.path.join(home, "cert.pem")
    assert options.local_server_key_file == "/key.pem"