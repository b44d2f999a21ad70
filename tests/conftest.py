"""Shared fixtures: PKCS#12 containers, synthetic packages and sessions."""

from __future__ import annotations

import json
import os
import zipfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

# cryptography is imported here before adapters.pkcs12 gets a chance to opt in.
os.environ.pop("CRYPTOGRAPHY_OPENSSL_NO_LEGACY", None)

import pytest  # noqa: E402
from cryptography import x509  # noqa: E402
from cryptography.hazmat.primitives import hashes, serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import ec  # noqa: E402
from cryptography.x509.oid import NameOID  # noqa: E402

from core.config import AppSettings  # noqa: E402
from core.domain.models import SessionRecord  # noqa: E402
from tests.helpers import DEFAULT_STRINGS, PASSPHRASE, FakeClock, build_resource_table  # noqa: E402

DATA_DIR = Path(__file__).parent / "data"


# --- PKCS#12 ----------------------------------------------------------------


@pytest.fixture(scope="session")
def client_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def client_cert(client_key: ec.EllipticCurvePrivateKey) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "MWPMYMA1")])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(client_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(client_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def legacy_pfx() -> bytes:
    """Vendor-style container: certificate bag under RC2-40-CBC, key bag under 3DES, SHA1 MAC.

    Written by `openssl pkcs12 -export -legacy -certpbe PBE-SHA1-RC2-40`; `cryptography`
    cannot produce RC2 containers itself.
    """

    return (DATA_DIR / "rc2_40.pfx").read_bytes()


@pytest.fixture(scope="session")
def legacy_cert() -> x509.Certificate:
    return x509.load_pem_x509_certificate((DATA_DIR / "rc2_40.crt").read_bytes())


@pytest.fixture(scope="session")
def identity_pems(client_key, client_cert) -> tuple[str, str]:
    cert_pem = client_cert.public_bytes(serialization.Encoding.PEM).decode()
    key_pem = client_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    return cert_pem, key_pem


# --- packages ---------------------------------------------------------------


@pytest.fixture
def build_apk(tmp_path: Path, legacy_pfx: bytes) -> Callable[..., Path]:
    def _build(
        *,
        locales: tuple[str, ...] = ("fr-FR", "nl-NL"),
        parameters: dict | str | None = None,
        strings: dict[str, str] | None = None,
        package: str = "com.psa.mym.mypeugeot",
        resource_table: bytes | None = None,
        pfx: bytes | None = None,
        name: str = "app.apk",
    ) -> Path:
        path = tmp_path / name
        params = parameters if parameters is not None else {"cvsClientId": "client-id", "cvsSecret": "s3cret"}
        raw_params = params if isinstance(params, str) else json.dumps(params)
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("AndroidManifest.xml", b"\x03\x00\x08\x00")
            zf.writestr("res/raw/parameters.json", "{}")
            for locale in locales:
                lang, country = locale.split("-")
                zf.writestr(f"res/raw-{lang}-r{country}/parameters.json", raw_params)
                zf.writestr(f"res/raw-{lang}-r{country}/other.json", "{}")
            if resource_table is None:
                resource_table = build_resource_table(strings or DEFAULT_STRINGS, package=package)
            zf.writestr("resources.arsc", resource_table)
            zf.writestr("assets/MWPMYMA1.pfx", legacy_pfx if pfx is None else pfx)
        return path

    return _build


# --- sessions ---------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        session_path=tmp_path / "config.json",
        vehicles_path=tmp_path / "cars.json",
    )


@pytest.fixture
def seeded_record(identity_pems) -> SessionRecord:
    record = SessionRecord()
    api = record.api
    api.realm = "clientsB2CPeugeot"
    api.oauth_url = "https://idpcvs.peugeot.com/am/oauth2/access_token"
    api.host_api_prod = "https://api.groupe-psa.com"
    api.client_id = "client-id"
    api.client_secret = "s3cret"
    api.client_email = "driver@example.com"
    api.client_password = "hunter2"
    record.cert, record.key = identity_pems
    record.host_brandid_prod = "https://id-dcr.peugeot.com/mobile-services"
    record.site_code = "AP_NL_ESP"
    record.culture = "nl-NL"
    record.brand_code = "AP"
    return record
