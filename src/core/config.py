"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking into the CLI.
- Adapters (archive, HTTP, session store) read their constants from one place.
- Values baked into the vendor app change with each release; they are settings,
  not code.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "psa-connect"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "psa-connect"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "psa-connect"
    return Path.home() / ".config" / "psa-connect"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Application-wide settings.

    Values that are baked into the vendor app (certificate path and passphrase,
    app version, legacy culture) are overridable so a new app release does not
    require a code change.
    """

    model_config = SettingsConfigDict(
        env_prefix="PSA_CONNECT_",
        extra="ignore",
        case_sensitive=False,
        # Project first (dev), then the per-user config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout per request (seconds).",
    )
    app_version: str = Field(
        default="1.33.0",
        min_length=1,
        description="Vendor app version announced in request headers.",
    )

    certificate_entry: str = Field(
        default="assets/MWPMYMA1.pfx",
        min_length=1,
        description="Archive path of the PKCS#12 client certificate container.",
    )
    certificate_passphrase: str = Field(
        default="y5Y2my5B",
        description="Passphrase of the embedded certificate container.",
    )
    resource_table_entry: str = Field(
        default="resources.arsc",
        min_length=1,
        description="Archive path of the compiled resource table.",
    )

    legacy_culture: str = Field(
        default="fr-FR",
        description="Culture sent with the legacy GetAccessToken call.",
    )
    user_lookup_url_template: str = Field(
        default="https://mw-{brand}-m2c.mym.awsmpsa.com/api/v1/user",
        min_length=8,
        description="Customer lookup endpoint; `{brand}` is the lowercased brand code.",
    )

    session_path: Path = Field(
        default=Path("config.json"),
        description="Persisted session (credentials, customer id, tokens).",
    )
    vehicles_path: Path = Field(
        default=Path("cars.json"),
        description="Cached vehicle list.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Root log level for the CLI.",
    )
