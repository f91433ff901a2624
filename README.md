# oidclogin

Pieces for logging in to Kubernetes through an OpenID Connect provider.

- `oidclogin.jwt`: decodes the payload of an ID token without checking its
  signature, and tells whether the token has expired.
- `oidclogin.kubeconfig`: finds the `oidc` auth-provider of the current
  context or of a given user in a kubeconfig, and writes refreshed tokens back
  into the file the user came from.
- `oidclogin.credential_plugin`: renders an `ExecCredential`
  (`client.authentication.k8s.io/v1beta1`) for kubectl.
- `oidclogin.options`: the command-line options for grant types and TLS, and
  how they become a `GrantOptionSet` and a `TLSClientConfig`.
- `oidclogin.mutex`: a lock file in the home directory, so that only one
  process holds a lock of a given name at a time.
- `oidclogin.reader`, `oidclogin.browser`, `oidclogin.clock`,
  `oidclogin.logger`: prompts on the terminal, opening the browser, the system
  clock and logging to standard error.
- `oidclogin.stub_provider`: a small OpenID Connect provider stub on localhost
  for tests.

Requires Python 3.10 or later. Runtime dependencies are PyYAML and filelock.

## Decoding an ID token

```python
from oidclogin.clock import Clock
from oidclogin.jwt import JWTDecodeError, decode_without_verify

try:
    claims = decode_without_verify(id_token)
except JWTDecodeError as error:
    print(f"not a usable token: {error}")
else:
    print(claims.subject, claims.expiry)
    print(claims.pretty)
    if claims.is_expired(Clock()):
        print("the token has expired")
```

The signature is never verified. `decode_payload_as_pretty_json` and
`decode_payload_as_raw_json` return the payload alone, indented or as raw
bytes. `Claims.expiry` is a timezone-aware UTC `datetime`; a token without
`exp` gets the Unix epoch.

## Reading and updating a kubeconfig

```python
from oidclogin.kubeconfig import (
    KubeconfigError,
    get_current_auth_provider,
    update_auth_provider,
)

try:
    provider = get_current_auth_provider("", "", "")
except KubeconfigError as error:
    print(f"could not find the auth provider: {error}")
else:
    print(provider.idp_issuer_url, provider.client_id)
    update_auth_provider(provider)
```

An empty file name follows the usual lookup (the files listed in
`KUBECONFIG`, otherwise `~/.kube/config`); when several files are merged,
entries from earlier files win. An empty context name means the current
context; a user name, when given, takes priority over the context. The user's
auth-provider must be named `oidc`. `load_config` and
`find_current_auth_provider` expose the two steps separately.

`update_auth_provider` writes the values back into the file recorded in
`AuthProvider.location_of_origin`. Empty values are removed from the
auth-provider config, and extra scopes are stored comma separated.

## Answering kubectl as a credential plugin

```python
import sys
from datetime import datetime, timezone

from oidclogin.credential_plugin import Output, write_credential

output = Output(token="token", expiry=datetime(2030, 1, 1, tzinfo=timezone.utc))
write_credential(output, sys.stdout)
```

`exec_credential` returns the same object as a dictionary instead of writing it.

## Grant types and TLS options

`oidclogin.options` accepts `--grant-type` with one of `auto`, `authcode`,
`authcode-keyboard`, `password` or `device-code`. With `auto`, the
authorization code flow in the browser is chosen unless `--username` is set,
in which case the resource owner password grant is used. The local server
addresses default to `127.0.0.1:8000`, then `127.0.0.1:18000`, unless
`--listen-address` says otherwise; the deprecated `--listen-port` overrides
them with `127.0.0.1:<port>`. Authentication times out after 180 seconds by
default.

```python
from oidclogin.options import OptionError, parse_authentication_options, parse_tls_options

options = parse_authentication_options(["--grant-type", "authcode-keyboard"])
try:
    grant = options.grant_option_set()
except OptionError as error:
    print(error)

tls = parse_tls_options(["--certificate-authority", "~/ca.crt"])
tls.expand_homedir()
print(tls.tls_client_config())
```

Invalid arguments raise `OptionError` rather than exiting.
`add_authentication_arguments` and `add_tls_arguments` add the same flags to
an `argparse` parser of your own; `AuthenticationOptions.from_namespace` and
`TLSOptions.from_namespace` read them back.

## Locking

```python
from oidclogin.mutex import Mutex

mutex = Mutex()
lock = mutex.acquire("example", timeout=10)
try:
    ...
finally:
    mutex.release(lock)
```

The lock file is `.kubelogin.<name>.lock` in the home directory (or the
temporary directory if there is no home). Without a timeout, `acquire` waits
as long as it takes; with one, it raises `filelock.Timeout`.

## Stub provider for tests

`oidclogin.stub_provider.start(provider)` serves any object that follows the
`Provider` protocol on a free localhost port, over TLS when a certificate and
key path are given. It answers discovery, `/certs`, `/auth` and the
`authorization_code`, `password` and `refresh_token` grants at `/token`. A
provider method that raises `ErrorResponse` produces a 400 JSON error; any
other exception produces a 500. The returned `RunningServer` has `url`,
`shutdown()`, and can be used as a context manager. `Handler.handle` routes a
single request without a network.

## What this package does not do

There is no command-line program and no login flow: nothing here talks to a
real provider, runs the authorization code, device code or password grants
described by a `GrantOptionSet`, applies a `TLSClientConfig` to a connection,
or caches tokens between runs. The package supplies the pieces around those
steps.

## Running the tests

Install the package with its `test` extra and run pytest from the project
directory.