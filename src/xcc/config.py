"""Configuration parsing and validation for xcc."""

from __future__ import annotations

import base64
import binascii
import os
import re
import textwrap
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import API_KEYS_URL, AuthenticationError, ConfigurationError

ENV_PREFIX = "XCC_"

_PEM_MARKER = re.compile(r"-----(?:BEGIN|END) ([A-Z ]*PRIVATE KEY)-----")
_PEM_LINE_LENGTH = 64


@dataclass(frozen=True)
class Credentials:
    """App Store Connect API key used to sign request tokens."""

    issuer_id: str
    key_id: str
    private_key: str

    def __repr__(self) -> str:
        return f"Credentials(issuer_id={self.issuer_id!r}, key_id={self.key_id!r}, private_key='***')"


@dataclass(frozen=True)
class Config:
    """Validated runtime settings for a single build request."""

    credentials: Credentials
    product: Optional[str] = None
    workflow: Optional[str] = None
    reference: Optional[str] = None
    pull_request: Optional[int] = None


def normalize_private_key(value: str) -> str:
    """Return ``value`` as a canonical PEM document.

    Keys pasted into environment variables arrive in many shapes: with or
    without the BEGIN/END markers, on one line, with literal ``\\n`` escapes or
    with stray indentation. The base64 body is extracted and re-wrapped.

    Raises:
        ConfigurationError: If no base64 body remains or it does not decode.
    """
    text = value.replace("\\n", "\n")
    label_match = _PEM_MARKER.search(text)
    label = label_match.group(1) if label_match else "PRIVATE KEY"

    body = "".join(_PEM_MARKER.sub("", text).split())
    if not body:
        raise ConfigurationError("The private key is empty.")

    try:
        base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError(
            "The private key is not a valid PEM key. Paste the contents of the "
            "AuthKey_<key id>.p8 file downloaded from App Store Connect."
        ) from exc

    lines = textwrap.wrap(body, _PEM_LINE_LENGTH)
    return f"-----BEGIN {label}-----\n" + "\n".join(lines) + f"\n-----END {label}-----\n"


def _resolve(value: Optional[str], env_name: str, environ: Mapping[str, str]) -> Optional[str]:
    """Prefer an explicit flag value, falling back to ``XCC_<env_name>``."""
    if value is not None and value.strip():
        return value.strip()
    env_value = environ.get(ENV_PREFIX + env_name, "").strip()
    return env_value or None


def _resolve_pull_request(value: Optional[int], environ: Mapping[str, str]) -> Optional[int]:
    if value is not None:
        return value

    raw = environ.get(ENV_PREFIX + "PULL_REQUEST", "").strip()
    if not raw:
        return None
    try:
        number = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid value for '{ENV_PREFIX}PULL_REQUEST': expected a pull request number, got '{raw}'."
        ) from exc
    if number <= 0:
        raise ConfigurationError(
            f"Invalid value for '{ENV_PREFIX}PULL_REQUEST': expected an integer greater than 0."
        )
    return number


def _missing_credential(flag: str, env_name: str, what: str) -> AuthenticationError:
    return AuthenticationError(
        f"Missing {what}. Pass '{flag}' or set the '{ENV_PREFIX}{env_name}' environment variable. "
        f"API keys can be created at {API_KEYS_URL}"
    )


def load_config(
    issuer_id: Optional[str] = None,
    private_key_id: Optional[str] = None,
    private_key: Optional[str] = None,
    product: Optional[str] = None,
    workflow: Optional[str] = None,
    reference: Optional[str] = None,
    pull_request: Optional[int] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Merge command-line values with ``XCC_*`` environment variables.

    Flags win over environment variables. Validation happens here so that a
    bad invocation never reaches the network.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If both a reference and a pull request are given,
            or the private key is malformed.
        AuthenticationError: If the issuer id, key id or private key is missing.
    """
    env = os.environ if environ is None else environ

    resolved_reference = _resolve(reference, "REFERENCE", env)
    resolved_pull_request = _resolve_pull_request(pull_request, env)
    if resolved_reference is not None and resolved_pull_request is not None:
        raise ConfigurationError(
            "Only one of '--reference' and '--pull-request' can be used; "
            f"got reference '{resolved_reference}' and pull request #{resolved_pull_request}."
        )

    resolved_issuer_id = _resolve(issuer_id, "ISSUER_ID", env)
    if resolved_issuer_id is None:
        raise _missing_credential("--issuer-id", "ISSUER_ID", "App Store Connect issuer id")

    resolved_key_id = _resolve(private_key_id, "PRIVATE_KEY_ID", env)
    if resolved_key_id is None:
        raise _missing_credential("--private-key-id", "PRIVATE_KEY_ID", "App Store Connect private key id")

    resolved_key = _resolve(private_key, "PRIVATE_KEY", env)
    if resolved_key is None:
        raise _missing_credential("--private-key", "PRIVATE_KEY", "App Store Connect private key")

    return Config(
        credentials=Credentials(
            issuer_id=resolved_issuer_id,
            key_id=resolved_key_id,
            private_key=normalize_private_key(resolved_key),
        ),
        product=_resolve(product, "PRODUCT", env),
        workflow=_resolve(workflow, "WORKFLOW", env),
        reference=resolved_reference,
        pull_request=resolved_pull_request,
    )
