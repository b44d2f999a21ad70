"""Vendor authentication endpoints.

Three calls, reproduced as the Android app sends them:
1. `POST {brandIdHost}/GetAccessToken?jsonRequest=...` -> legacy ticket
2. `POST https://mw-<brand>-m2c.../api/v1/user` (mutual TLS) -> customer id
3. `POST {oauthEndpoint}` (form + HTTP Basic) -> OAuth tokens
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from adapters.http_client import build_client, send
from core.config import AppSettings
from core.domain.models import (
    FieldValue,
    LegacyTicketRequest,
    LegacyTicketResponse,
    TokenRequest,
    TokenResponse,
    UserLookupRequest,
    UserLookupResponse,
)
from core.errors import AuthenticationError, AuthFailure

logger = logging.getLogger(__name__)

SOURCE_AGENT = "App-Android"
LEGACY_USER_AGENT = "okhttp/2.3.0"
APP_USER_AGENT = "okhttp/4.8.0"

_M = TypeVar("_M", bound=BaseModel)


def _app_headers(settings: AppSettings) -> dict[str, str]:
    return {
        "Source-Agent": SOURCE_AGENT,
        "Version": settings.app_version,
        "User-Agent": APP_USER_AGENT,
    }


def _parse(response: httpx.Response, model: type[_M], reason: AuthFailure, what: str) -> _M:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        details: dict[str, Any] = {"status": response.status_code, "body": response.text[:500]}
        raise AuthenticationError(
            reason,
            f"Unexpected {what} response (HTTP {response.status_code})",
            details=details,
        ) from exc


def request_legacy_ticket(
    host_brandid: str,
    site_code: str,
    email: str,
    password: str,
    *,
    settings: AppSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Legacy brand-id login; returns the opaque ticket when `returnCode == "OK"`."""

    settings = settings or AppSettings()
    payload = LegacyTicketRequest(
        site_code=site_code,
        culture=settings.legacy_culture,
        action="authenticate",
        fields={
            "USR_EMAIL": FieldValue(value=email),
            "USR_PASSWORD": FieldValue(value=password),
        },
    )
    url = f"{host_brandid.rstrip('/')}/GetAccessToken"
    headers = {"User-Agent": LEGACY_USER_AGENT, "Content-Type": "application/json"}

    with build_client(settings, extra_headers=headers, transport=transport) as client:
        response = send(client.post, url, params={"jsonRequest": payload.model_dump_json(by_alias=True)})

    body = _parse(response, LegacyTicketResponse, AuthFailure.REJECTED, "GetAccessToken")
    if body.return_code != "OK" or not body.access_token:
        raise AuthenticationError(
            AuthFailure.REJECTED,
            f"GetAccessToken rejected the login (returnCode={body.return_code})",
            details={"returnCode": body.return_code},
            hint="Check the account e-mail and password",
        )
    logger.info("Legacy ticket issued for site %s", site_code)
    return body.access_token


def resolve_customer_id(
    brand_code: str,
    culture: str,
    site_code: str,
    ticket: str,
    identity: tuple[str, str],
    *,
    settings: AppSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Look the customer up with the legacy ticket over mutual TLS."""

    settings = settings or AppSettings()
    url = settings.user_lookup_url_template.format(brand=brand_code.lower())
    params = {"culture": culture, "width": "1080", "version": settings.app_version}
    headers = {
        **_app_headers(settings),
        "Content-Type": "application/json;charset=UTF-8",
        "Token": ticket,
    }
    body = UserLookupRequest(site_code=site_code, ticket=ticket).model_dump(by_alias=True)

    with build_client(settings, extra_headers=headers, identity=identity, transport=transport) as client:
        response = send(client.post, url, params=params, json=body)

    result = _parse(response, UserLookupResponse, AuthFailure.LOOKUP_FAILED, "user lookup")
    if result.success is None:
        raise AuthenticationError(
            AuthFailure.LOOKUP_FAILED,
            "Customer lookup failed",
            details=result.errors or {"status": response.status_code},
        )
    logger.info("Resolved customer identity for brand %s", brand_code)
    return result.success.id


def request_token(
    oauth_url: str,
    client_id: str,
    client_secret: str,
    grant: TokenRequest,
    *,
    settings: AppSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> TokenResponse:
    """Submit a password or refresh-token grant to the brand's OAuth endpoint."""

    settings = settings or AppSettings()
    with build_client(settings, extra_headers=_app_headers(settings), transport=transport) as client:
        response = send(
            client.post,
            oauth_url,
            data=grant.to_form(),
            auth=httpx.BasicAuth(client_id, client_secret),
        )

    if response.is_error:
        raise AuthenticationError(
            AuthFailure.TOKEN_REQUEST_FAILED,
            f"{grant.grant_type} grant refused (HTTP {response.status_code})",
            details={"status": response.status_code, "body": response.text[:500]},
            hint="Run `psa-connect setup --reset-tokens` to log in with the password again"
            if grant.grant_type == "refresh_token"
            else None,
        )
    return _parse(response, TokenResponse, AuthFailure.TOKEN_REQUEST_FAILED, "token")
