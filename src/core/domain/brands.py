"""Static brand registry: package identifier -> OAuth realm and endpoint."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from core.domain.models import BrandEntry
from core.errors import BrandLookupError

BRANDS: Mapping[str, BrandEntry] = MappingProxyType(
    {
        "com.psa.mym.myopel": BrandEntry(
            realm="clientsB2COpel",
            oauth_url="https://idpcvs.opel.com/am/oauth2/access_token",
        ),
        "com.psa.mym.mypeugeot": BrandEntry(
            realm="clientsB2CPeugeot",
            oauth_url="https://idpcvs.peugeot.com/am/oauth2/access_token",
        ),
        "com.psa.mym.mycitroen": BrandEntry(
            realm="clientsB2CCitroen",
            oauth_url="https://idpcvs.citroen.com/am/oauth2/access_token",
        ),
        "com.psa.mym.myds": BrandEntry(
            realm="clientsB2CDS",
            oauth_url="https://idpcvs.driveds.com/am/oauth2/access_token",
        ),
        "com.psa.mym.myvauxhall": BrandEntry(
            realm="clientsB2CVauxhall",
            oauth_url="https://idpcvs.vauxhall.co.uk/am/oauth2/access_token",
        ),
    }
)


def lookup(package: str) -> BrandEntry | None:
    return BRANDS.get(package)


def require(package: str) -> BrandEntry:
    """Like `lookup` but unknown packages are a hard failure, never a default brand."""

    entry = lookup(package)
    if entry is None:
        raise BrandLookupError(package)
    return entry
