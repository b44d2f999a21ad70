"""Credential extraction from a vendor application package.

This module strings the adapters together (archive -> parameters -> resource
table -> certificate -> brand registry) and returns one immutable
`PackageCredentials`. It never prompts: the caller lists the locales with
`list_locales`, chooses one, and passes it to `extract`.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from pydantic.config import ConfigDict

from adapters import arsc
from adapters.apk_archive import ApkArchive, discover_locales
from adapters.pkcs12 import extract_identity
from core.config import AppSettings
from core.domain import brands
from core.domain.locale import Locale, brand_code_of
from core.domain.models import PackageCredentials
from core.errors import FormatError, SelectionError

logger = logging.getLogger(__name__)

KEY_HOST_BRANDID = "HOST_BRANDID_PROD"
KEY_HOST_API = "HOST_PSA_API_PROD"
KEY_SITE_CODE = "nologin_siteCode"


class ParametersFile(BaseModel):
    """`res/raw-<lang>-r<COUNTRY>/parameters.json` (only the fields we use)."""

    model_config = ConfigDict(extra="ignore")

    cvs_client_id: str = Field(..., alias="cvsClientId")
    cvs_secret: str = Field(..., alias="cvsSecret")


def list_locales(archive_path: Path) -> list[str]:
    """Sorted locales for which the package ships a parameters file."""

    with ApkArchive(archive_path) as apk:
        return sorted(discover_locales(apk.names()))


def _load_parameters(raw: bytes, entry: str) -> ParametersFile:
    try:
        return ParametersFile.model_validate_json(raw)
    except ValidationError as exc:
        raise FormatError(f"Invalid {entry}: {exc.error_count()} error(s)", hint=str(exc)) from exc


def _require_string(table: arsc.ResourceTable, package: str, key: str) -> str:
    value = table.resolve_string(package, key)
    if value is None:
        raise FormatError(f"String resource {key!r} missing from package {package}")
    return value


def extract(
    archive_path: Path,
    locale: str,
    settings: AppSettings | None = None,
) -> PackageCredentials:
    settings = settings or AppSettings()

    with ApkArchive(archive_path) as apk:
        candidates = discover_locales(apk.names())
        if locale not in candidates:
            raise SelectionError(locale, sorted(candidates))
        selected = Locale.parse(locale)

        entry = candidates[locale]
        parameters = _load_parameters(apk.read(entry), entry)
        logger.info("Loaded client parameters from %s", entry)

        table = arsc.parse(apk.read(settings.resource_table_entry))
        package = table.main_package()
        host_brandid = _require_string(table, package.name, KEY_HOST_BRANDID)
        host_api = _require_string(table, package.name, KEY_HOST_API)
        template = _require_string(table, package.name, KEY_SITE_CODE)
        if len(template) < 2:
            raise FormatError(f"Site code template {template!r} is too short to carry a brand code")

        site_code = selected.site_code_for(template)
        brand_code = brand_code_of(template)
        if brand_code != site_code[:2]:
            logger.warning("Brand code %s differs from site code %s prefix", brand_code, site_code)

        identity = extract_identity(apk.read(settings.certificate_entry), settings.certificate_passphrase)

    brand = brands.require(package.name)
    logger.info("Extracted credentials for %s (%s, site %s)", package.name, locale, site_code)

    return PackageCredentials(
        package=package.name,
        client_id=parameters.cvs_client_id,
        client_secret=parameters.cvs_secret,
        cert=identity.cert_pem,
        key=identity.key_pem,
        host_brandid_prod=host_brandid,
        host_api_prod=host_api,
        site_code=site_code,
        culture=locale,
        brand_code=brand_code,
        realm=brand.realm,
        oauth_url=brand.oauth_url,
    )
