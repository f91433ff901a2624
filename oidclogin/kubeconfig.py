"""Reading and updating the OIDC auth-provider of a kubeconfig."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class KubeconfigError(Exception):
    """Raised when a kubeconfig cannot be loaded, resolved or written."""


@dataclass
class AuthProvider:
    """The context, user and auth-provider resolved from a kubeconfig."""

    location_of_origin: str
    user_name: str
    context_name: str = ""
    idp_issuer_url: str = ""
    client_id: str = ""
    client_secret: str = ""
    idp_certificate_authority: str = ""
    idp_certificate_authority_data: str = ""
    extra_scopes: list[str] = field(default_factory=list)
    id_token: str = ""
    refresh_token: str = ""


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise KubeconfigError(f"could not parse {path}: {e}") from e
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise KubeconfigError(f"could not parse {path}: not a mapping")
    return document


def _default_paths() -> list[str]:
    env = os.environ.get("KUBECONFIG", "")
    if env:
        return [p for p in env.split(os.pathsep) if p]
    return [str(Path.home() / ".kube" / "config")]


def load_config(explicit_filename: str) -> dict[str, Any]:
    """Load and merge kubeconfig files by the default rules.

    Returns a mapping with "current-context", "contexts" (name to context)
    and "users" (name to user, each carrying its "location-of-origin").
    Entries from earlier files take precedence.
    """
    if explicit_filename:
        if not os.path.exists(explicit_filename):
            raise KubeconfigError(f"load error: stat {explicit_filename}: no such file or directory")
        paths = [explicit_filename]
    else:
        paths = [p for p in _default_paths() if os.path.exists(p)]

    merged: dict[str, Any] = {"current-context": "", "contexts": {}, "users": {}}
    for path in paths:
        try:
            document = _read_yaml(path)
        except OSError as e:
            raise KubeconfigError(f"load error: {e}") from e
        except KubeconfigError as e:
            raise KubeconfigError(f"load error: {e}") from e
        if not merged["current-context"]:
            merged["current-context"] = document.get("current-context") or ""
        for entry in document.get("contexts") or []:
            name = entry.get("name", "")
            merged["contexts"].setdefault(name, dict(entry.get("context") or {}))
        for entry in document.get("users") or []:
            name = entry.get("name", "")
            user = dict(entry.get("user") or {})
            user["location-of-origin"] = os.path.abspath(path)
            merged["users"].setdefault(name, user)
    return merged


def find_current_auth_provider(
    config: dict[str, Any], context_name: str, user_name: str
) -> AuthProvider:
    """Resolve the auth-provider of the given user, or of the user of the context."""
    if not user_name:
        if not context_name:
            context_name = config.get("current-context") or ""
        context = config.get("contexts", {}).get(context_name)
        if context is None:
            raise KubeconfigError(f"context {context_name} does not exist")
        user_name = context.get("user") or ""
    user = config.get("users", {}).get(user_name)
    if user is None:
        raise KubeconfigError(f"user {user_name} does not exist")
    auth_provider = user.get("auth-provider")
    if auth_provider is None:
        raise KubeconfigError("auth-provider is missing")
    name = auth_provider.get("name") or ""
    if name != "oidc":
        raise KubeconfigError(f"auth-provider.name must be oidc but is {name}")
    raw = auth_provider.get("config")
    if raw is None:
        raise KubeconfigError("auth-provider.config is missing")

    m = {str(k): "" if v is None else str(v) for k, v in raw.items()}
    extra_scopes = m["extra-scopes"].split(",") if m.get("extra-scopes") else []
    return AuthProvider(
        location_of_origin=user.get("location-of-origin", ""),
        user_name=user_name,
        context_name=context_name,
        idp_issuer_url=m.get("idp-issuer-url", ""),
        client_id=m.get("client-id", ""),
        client_secret=m.get("client-secret", ""),
        idp_certificate_authority=m.get("idp-certificate-authority", ""),
        idp_certificate_authority_data=m.get("idp-certificate-authority-data", ""),
        extra_scopes=extra_scopes,
        id_token=m.get("id-token", ""),
        refresh_token=m.get("refresh-token", ""),
    )


def get_current_auth_provider(
    explicit_filename: str, context_name: str, user_name: str
) -> AuthProvider:
    """Load the kubeconfig and resolve the current OIDC auth-provider."""
    try:
        config = load_config(explicit_filename)
    except KubeconfigError as e:
        raise KubeconfigError(f"could not load the kubeconfig: {e}") from e
    try:
        return find_current_auth_provider(config, context_name, user_name)
    except KubeconfigError as e:
        raise KubeconfigError(f"could not find the current auth provider: {e}") from e


def _set_or_delete(m: dict[str, Any], key: str, value: str) -> None:
    if value:
        m[key] = value
    else:
        m.pop(key, None)


def update_auth_provider(provider: AuthProvider) -> None:
    """Write the provider's values into its user entry in the originating file."""
    path = provider.location_of_origin
    try:
        document = _read_yaml(path)
    except (OSError, KubeconfigError) as e:
        raise KubeconfigError(f"could not load {path}: {e}") from e

    user_entry = next(
        (u for u in document.get("users") or [] if u.get("name") == provider.user_name),
        None,
    )
    if user_entry is None:
        raise KubeconfigError(f"user {provider.user_name} does not exist")
    user = user_entry.get("user") or {}
    auth_provider = user.get("auth-provider")
    if auth_provider is None:
        raise KubeconfigError("auth-provider is missing")
    name = auth_provider.get("name") or ""
    if name != "oidc":
        raise KubeconfigError(f"auth-provider must be oidc but is {name}")

    m = auth_provider.get("config")
    if m is None:
        m = auth_provider["config"] = {}
    _set_or_delete(m, "idp-issuer-url", provider.idp_issuer_url)
    _set_or_delete(m, "client-id", provider.client_id)
    _set_or_delete(m, "client-secret", provider.client_secret)
    _set_or_delete(m, "idp-certificate-authority", provider.idp_certificate_authority)
    _set_or_delete(m, "idp-certificate-authority-data", provider.idp_certificate_authority_data)
    _set_or_delete(m, "extra-scopes", ",".join(provider.extra_scopes))
    _set_or_delete(m, "id-token", provider.id_token)
    _set_or_delete(m, "refresh-token", provider.refresh_token)

    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(document, f, sort_keys=False, default_flow_style=False)
    except OSError as e:
        raise KubeconfigError(f"could not update {path}: {e}") from e