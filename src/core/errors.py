"""Error taxonomy shared by the core and the adapters.

Rules:
- Every failure is terminal at its origin: nothing is retried automatically.
- Adapters translate library exceptions into one of these classes (`raise ... from exc`)
  so callers (CLI, tests) can branch on the failure kind.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class PSAConnectError(Exception):
    """Base error with an optional recovery hint for the CLI."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class ArchiveError(PSAConnectError):
    """The package archive (or one of its entries) cannot be read."""


class FormatError(PSAConnectError):
    """Malformed JSON, resource table or persisted session."""


class CryptoFailure(str, Enum):
    WRONG_PASSPHRASE = "wrong_passphrase"
    UNSUPPORTED_CIPHER = "unsupported_cipher"
    MALFORMED_CONTAINER = "malformed_container"


class CryptoError(PSAConnectError):
    """The certificate container could not be decrypted."""

    def __init__(self, reason: CryptoFailure, message: str, *, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.reason = reason


class SelectionError(PSAConnectError):
    """The requested locale is not one of the discovered parameter files."""

    def __init__(self, locale: str, available: list[str]) -> None:
        super().__init__(
            f"Selected culture {locale!r} not found",
            hint="Available: " + (", ".join(available) if available else "none"),
        )
        self.locale = locale
        self.available = available


class BrandLookupError(PSAConnectError):
    """The package identifier is not a known brand."""

    def __init__(self, package: str) -> None:
        super().__init__(f"Unknown package identifier {package!r}")
        self.package = package


class AuthFailure(str, Enum):
    REJECTED = "rejected"
    LOOKUP_FAILED = "lookup_failed"
    TOKEN_REQUEST_FAILED = "token_request_failed"


class AuthenticationError(PSAConnectError):
    """Legacy login, customer lookup or OAuth token request failed."""

    def __init__(
        self,
        reason: AuthFailure,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.reason = reason
        self.details = details or {}


class NetworkError(PSAConnectError):
    """Opaque transport failure (DNS, TLS, connection reset, timeout)."""
