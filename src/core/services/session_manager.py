"""Authentication orchestration.

`SessionManager` owns the persisted `SessionRecord` and is the only code that
mutates it. Lifecycle:

    NO_SESSION -> LEGACY_LOGIN_PENDING -> IDENTITY_RESOLVED
        -> TOKEN_ISSUED/TOKEN_VALID -> TOKEN_EXPIRED -> (refresh) TOKEN_VALID

- `bootstrap` runs the legacy ticket login and customer lookup once; a cached
  customer id short-circuits it.
- `ensure_valid_token` is the single gate for token freshness. Once a refresh
  token exists it is always used; a refused refresh grant is reported, not
  retried with the password.
- Check-then-refresh runs under one lock, so concurrent callers never issue two
  token requests for the same session.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

import httpx

from adapters import psa_auth_api
from core.config import AppSettings
from core.domain.models import PackageCredentials, SessionRecord, TokenRequest
from core.errors import AuthenticationError, AuthFailure
from core.interfaces.session import SessionRepository

logger = logging.getLogger(__name__)

OAUTH_SCOPE = "profile openid"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    NO_SESSION = "no_session"
    LEGACY_LOGIN_PENDING = "legacy_login_pending"
    IDENTITY_RESOLVED = "identity_resolved"
    TOKEN_ISSUED = "token_issued"
    TOKEN_VALID = "token_valid"
    TOKEN_EXPIRED = "token_expired"


class SessionManager:
    """Drives the legacy bootstrap and the OAuth token lifecycle for one session."""

    def __init__(
        self,
        record: SessionRecord | None = None,
        *,
        repository: SessionRepository | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        if record is None:
            record = repository.load() if repository is not None else SessionRecord()
        self._record = record
        self._settings = settings or AppSettings()
        self._transport = transport
        self._clock = clock or _utcnow
        self._lock = threading.Lock()

    @property
    def record(self) -> SessionRecord:
        return self._record

    @property
    def state(self) -> SessionState:
        record = self._record
        api = record.api
        if not api.client_id:
            return SessionState.NO_SESSION
        if not record.customer_id:
            return SessionState.LEGACY_LOGIN_PENDING
        if not api.access_token:
            return SessionState.IDENTITY_RESOLVED
        if api.token_expires is None:
            return SessionState.TOKEN_ISSUED
        if api.token_expires > self._clock():
            return SessionState.TOKEN_VALID
        return SessionState.TOKEN_EXPIRED

    def has_operator(self) -> bool:
        return bool(self._record.api.client_email and self._record.api.client_password)

    def seed(self, credentials: PackageCredentials) -> None:
        """Install freshly extracted package credentials.

        The cached customer id and tokens belong to the previous package and are dropped.
        """

        with self._lock:
            record = self._record
            api = record.api
            api.realm = credentials.realm
            api.oauth_url = credentials.oauth_url
            api.host_api_prod = credentials.host_api_prod
            api.client_id = credentials.client_id
            api.client_secret = credentials.client_secret
            record.cert = credentials.cert
            record.key = credentials.key
            record.host_brandid_prod = credentials.host_brandid_prod
            record.site_code = credentials.site_code
            record.culture = credentials.culture
            record.brand_code = credentials.brand_code
            record.customer_id = ""
            self._clear_tokens()
        logger.info("Session seeded for brand %s (%s)", credentials.brand_code, credentials.culture)

    def set_operator(self, email: str, password: str) -> None:
        with self._lock:
            api = self._record.api
            if api.client_email and api.client_email != email:
                self._record.customer_id = ""
                self._clear_tokens()
            api.client_email = email
            api.client_password = password

    def reset_tokens(self) -> None:
        with self._lock:
            self._clear_tokens()

    def _clear_tokens(self) -> None:
        api = self._record.api
        api.access_token = ""
        api.refresh_token = ""
        api.token_expires = None

    def save(self) -> None:
        if self._repository is not None:
            self._repository.save(self._record)

    def bootstrap(self) -> str:
        """Resolve (once) and return the customer id."""

        with self._lock:
            record = self._record
            if record.customer_id:
                return record.customer_id
            if not record.api.client_id or not record.cert:
                raise AuthenticationError(
                    AuthFailure.REJECTED,
                    "Session has no package credentials",
                    details={"missing": "package_credentials"},
                    hint="Run `psa-connect setup`",
                )
            if not self.has_operator():
                raise AuthenticationError(
                    AuthFailure.REJECTED,
                    "Session has no operator e-mail/password",
                    details={"missing": "operator"},
                    hint="Run `psa-connect setup`",
                )

            api = record.api
            ticket = psa_auth_api.request_legacy_ticket(
                record.host_brandid_prod,
                record.site_code,
                api.client_email,
                api.client_password,
                settings=self._settings,
                transport=self._transport,
            )
            record.customer_id = psa_auth_api.resolve_customer_id(
                record.brand_code,
                record.culture,
                record.site_code,
                ticket,
                (record.cert, record.key),
                settings=self._settings,
                transport=self._transport,
            )
            customer_id = record.customer_id

        self.save()
        return customer_id

    def _build_grant(self) -> TokenRequest:
        api = self._record.api
        if api.refresh_token:
            return TokenRequest(
                realm=api.realm,
                grant_type="refresh_token",
                refresh_token=api.refresh_token,
                scope=OAUTH_SCOPE,
            )
        if not self.has_operator():
            raise AuthenticationError(
                AuthFailure.TOKEN_REQUEST_FAILED,
                "No refresh token and no operator credentials to request one",
                hint="Run `psa-connect setup`",
            )
        return TokenRequest(
            realm=api.realm,
            grant_type="password",
            username=api.client_email,
            password=api.client_password,
            scope=OAUTH_SCOPE,
        )

    def ensure_valid_token(self) -> str:
        """Return a usable access token, requesting one only when the cached one expired."""

        with self._lock:
            api = self._record.api
            now = self._clock()
            if api.access_token and api.token_expires is not None and api.token_expires > now:
                return api.access_token

            grant = self._build_grant()
            logger.info("Requesting OAuth token (%s grant)", grant.grant_type)
            token = psa_auth_api.request_token(
                api.oauth_url,
                api.client_id,
                api.client_secret,
                grant,
                settings=self._settings,
                transport=self._transport,
            )
            api.access_token = token.access_token
            api.refresh_token = token.refresh_token
            api.token_expires = now + timedelta(seconds=token.expires_in)
            logger.debug("Access token valid until %s", api.token_expires.isoformat())
            return api.access_token

    def authorization_headers(self) -> dict[str, str]:
        token = self.ensure_valid_token()
        return {
            "Authorization": f"Bearer {token}",
            "x-introspect-realm": self._record.api.realm,
        }
