"""PKCS#12 client certificate extraction.

The vendor's container is encrypted with RC2-40-CBC (PBES1), which OpenSSL 3 only
ships in its *legacy* provider. `cryptography` loads that provider unless
`CRYPTOGRAPHY_OPENSSL_NO_LEGACY` is set, so the variable is cleared before the
bindings are imported. The legacy path is used to decrypt only; nothing is ever
encrypted with it.

The opt-in only works if this module is imported before anything else loads
`cryptography`: the provider set is fixed when the bindings load. The CLI
satisfies this (`cli.doctor` and the extractor import this module first); other
entry points must import it early, or start without the variable set.
"""

from __future__ import annotations

import logging
import os
from typing import NamedTuple

os.environ.pop("CRYPTOGRAPHY_OPENSSL_NO_LEGACY", None)

from cryptography.exceptions import UnsupportedAlgorithm  # noqa: E402
from cryptography.hazmat.primitives.serialization import (  # noqa: E402
    Encoding,
    NoEncryption,
    PrivateFormat,
    pkcs12,
)

from core.errors import CryptoError, CryptoFailure  # noqa: E402

logger = logging.getLogger(__name__)


class ClientIdentity(NamedTuple):
    cert_pem: str
    key_pem: str


def legacy_ciphers_available() -> bool:
    """Whether OpenSSL's legacy provider (RC2, PBES1) is loaded."""

    try:
        from cryptography.hazmat.bindings._rust import openssl as rust_openssl
    except ImportError:  # pragma: no cover - non-OpenSSL builds
        return False
    return bool(getattr(rust_openssl, "_legacy_provider_loaded", True))


def _looks_like_pfx(data: bytes) -> bool:
    """Cheap DER check: `SEQUENCE { INTEGER 3, ... }`."""

    if len(data) < 8 or data[0] != 0x30:
        return False
    first = data[1]
    if first == 0x80:  # BER indefinite length
        pos = 2
    elif first & 0x80:
        count = first & 0x7F
        if not 1 <= count <= 4:
            return False
        length = int.from_bytes(data[2 : 2 + count], "big")
        pos = 2 + count
        if pos + length > len(data):
            return False
    else:
        pos = 2
        if pos + first > len(data):
            return False
    return data[pos : pos + 3] == b"\x02\x01\x03"


def extract_identity(container: bytes, passphrase: str) -> ClientIdentity:
    """Decrypt a PKCS#12 container into a PEM certificate and a PKCS#8 PEM key."""

    if not _looks_like_pfx(container):
        raise CryptoError(CryptoFailure.MALFORMED_CONTAINER, "Certificate container is not a PKCS#12 file")

    password = passphrase.encode("utf-8") if passphrase else None
    try:
        key, cert, _extra = pkcs12.load_key_and_certificates(container, password)
    except UnsupportedAlgorithm as exc:
        raise CryptoError(
            CryptoFailure.UNSUPPORTED_CIPHER,
            f"Unsupported certificate container cipher: {exc}",
        ) from exc
    except ValueError as exc:
        if not legacy_ciphers_available():
            raise CryptoError(
                CryptoFailure.UNSUPPORTED_CIPHER,
                "Certificate container could not be decrypted and the OpenSSL legacy provider is not loaded",
                hint="Unset CRYPTOGRAPHY_OPENSSL_NO_LEGACY or use a cryptography build with the legacy provider",
            ) from exc
        raise CryptoError(
            CryptoFailure.WRONG_PASSPHRASE,
            "Wrong passphrase for the certificate container",
        ) from exc

    if key is None or cert is None:
        raise CryptoError(CryptoFailure.MALFORMED_CONTAINER, "Certificate container lacks a key or certificate")

    cert_pem = cert.public_bytes(Encoding.PEM).decode("ascii")
    key_pem = key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()).decode("ascii")
    logger.debug("Decrypted client certificate for %s", cert.subject.rfc4514_string())
    return ClientIdentity(cert_pem=cert_pem, key_pem=key_pem)
