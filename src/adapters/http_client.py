"""httpx wrapper.

- Standardizes timeouts and default headers for every vendor call.
- Loads the mutual-TLS client identity from PEM strings.
- `transport` lets tests plug in an `httpx.MockTransport`.
"""

from __future__ import annotations

import ssl
import tempfile
from pathlib import Path
from typing import Any, Callable

import httpx

from core.config import AppSettings
from core.errors import NetworkError


def build_ssl_context(cert_pem: str, key_pem: str) -> ssl.SSLContext:
    """Default verifying context carrying a client certificate.

    `load_cert_chain` only reads files, so the PEMs go through a private temporary
    directory that is removed as soon as the chain is loaded.
    """

    context = ssl.create_default_context()
    with tempfile.TemporaryDirectory(prefix="psa-connect-") as tmp:
        cert_file = Path(tmp) / "client.crt"
        key_file = Path(tmp) / "client.key"
        cert_file.write_text(cert_pem, encoding="ascii")
        key_file.write_text(key_pem, encoding="ascii")
        key_file.chmod(0o600)
        context.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
    return context


def build_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    identity: tuple[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create a blocking `httpx.Client` with the project defaults.

    `identity` is a `(cert_pem, key_pem)` pair for mutual TLS.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {"Accept": "application/json"}
    if extra_headers:
        headers.update(extra_headers)

    kwargs: dict[str, Any] = {
        "timeout": httpx.Timeout(settings.http_timeout_seconds),
        "headers": headers,
    }
    if identity is not None:
        kwargs["verify"] = build_ssl_context(*identity)
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.Client(**kwargs)


def send(call: Callable[..., httpx.Response], url: str, **kwargs: Any) -> httpx.Response:
    """Run `client.get/post(url, ...)`, mapping transport failures to `NetworkError`."""

    try:
        return call(url, **kwargs)
    except httpx.TransportError as exc:
        raise NetworkError(f"{type(exc).__name__} while calling {url}: {exc}") from exc
