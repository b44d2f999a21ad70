"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation and self-documenting fields without tying the core to I/O.
- The same models validate vendor responses and the persisted session.

Notes:
- These models describe *what* the credentials and the session are, not *how*
  they are obtained.
- Wire models keep the vendor's field names as aliases; Python code uses snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_serializer
from pydantic.config import ConfigDict


class BrandEntry(BaseModel):
    """OAuth routing for one vendor app (package identifier)."""

    model_config = ConfigDict(frozen=True)

    realm: str = Field(..., min_length=1)
    oauth_url: str = Field(..., min_length=8)


class PackageCredentials(BaseModel):
    """Everything extracted from one application package.

    Invariants:
    - `site_code` is the resource template with its `_FR_` marker replaced by the
      selected locale's country.
    - `brand_code` is the first two characters of the template site code.
    """

    model_config = ConfigDict(frozen=True)

    package: str = Field(..., min_length=1, description="Package identifier (e.g. com.psa.mym.mypeugeot).")
    client_id: str = Field(..., description="OAuth client id (cvsClientId).")
    client_secret: str = Field(..., description="OAuth client secret (cvsSecret).")
    cert: str = Field(..., description="Client certificate, PEM.")
    key: str = Field(..., description="Client private key, PKCS#8 PEM.")
    host_brandid_prod: str = Field(..., description="Legacy brand-id host.")
    host_api_prod: str = Field(..., description="Connected-car API host.")
    site_code: str
    culture: str
    brand_code: str = Field(..., min_length=2, max_length=2)
    realm: str
    oauth_url: str


class ApiSession(BaseModel):
    """OAuth side of the session; mutated only by the session manager."""

    model_config = ConfigDict(validate_assignment=True)

    realm: str = ""
    oauth_url: str = ""
    host_api_prod: str = ""
    client_id: str = ""
    client_secret: str = ""
    client_email: str = ""
    client_password: str = ""
    refresh_token: str = ""
    access_token: str = ""
    token_expires: datetime | None = Field(
        default=None,
        description="Access token expiry (UTC); persisted as epoch seconds.",
    )

    @field_serializer("token_expires")
    def _serialize_expiry(self, value: datetime | None) -> int | None:
        if value is None:
            return None
        return int(value.timestamp())


class SessionRecord(BaseModel):
    """Persisted session store: OAuth session plus legacy bootstrap data."""

    model_config = ConfigDict(extra="ignore")

    api: ApiSession = Field(default_factory=ApiSession)
    cert: str = ""
    key: str = ""
    host_brandid_prod: str = ""
    site_code: str = ""
    culture: str = ""
    brand_code: str = ""
    customer_id: str = ""


# --- Legacy ticket login ----------------------------------------------------


class FieldValue(BaseModel):
    value: str


class LegacyTicketRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    site_code: str = Field(..., alias="siteCode")
    culture: str
    action: str = "authenticate"
    fields: dict[str, FieldValue]


class LegacyTicketResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    return_code: str = Field(..., alias="returnCode")
    access_token: str | None = Field(default=None, alias="accessToken")


class UserLookupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    site_code: str = Field(..., alias="siteCode")
    ticket: str


class CustomerIdentity(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str


class UserLookupResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    errors: dict[str, Any] | None = None
    success: CustomerIdentity | None = None


# --- OAuth ------------------------------------------------------------------


class TokenRequest(BaseModel):
    """Form body of the OAuth token request; `None` fields are not sent."""

    realm: str
    grant_type: str
    username: str | None = None
    password: str | None = None
    scope: str = "profile openid"
    refresh_token: str | None = None

    def to_form(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., validation_alias=AliasChoices("access_token", "accessToken"))
    refresh_token: str = Field(..., validation_alias=AliasChoices("refresh_token", "refreshToken"))
    expires_in: int = Field(..., ge=0, validation_alias=AliasChoices("expires_in", "expiresIn"))
    token_type: str | None = Field(default=None, validation_alias=AliasChoices("token_type", "tokenType"))
    scope: str | None = None
    id_token: str | None = Field(default=None, validation_alias=AliasChoices("id_token", "idToken"))


# --- Connected car (pure data) ----------------------------------------------


class VehicleListElement(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    vin: str
    brand: str | None = None
    pictures: list[str] = Field(default_factory=list)
    links: dict[str, Any] = Field(default_factory=dict, alias="_links")


class VehiclesList(BaseModel):
    vehicles: list[VehicleListElement] = Field(default_factory=list)


class VehicleListResponse(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    total: int = 0
    current_page: int | None = Field(default=None, alias="currentPage")
    total_page: int | None = Field(default=None, alias="totalPage")
    embedded: VehiclesList = Field(default_factory=VehiclesList, alias="_embedded")


class VehicleStatus(BaseModel):
    """Vehicle status document; kept open-ended, only a few fields are typed."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    energy: list[dict[str, Any]] = Field(default_factory=list)
    odometer: dict[str, Any] | None = None
    battery: dict[str, Any] | None = None
