"""Locale utilities.

The vendor ships one `parameters.json` per `<lang>-<COUNTRY>` pair and encodes the
country in its site codes (`AP_FR_ESP` style). This module keeps both rules in one
place so the extractor and the tests share them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_COUNTRY_TOKEN = "_FR_"

_LOCALE_RE = re.compile(r"^([a-z]{2})-([A-Z]{2})$")


@dataclass(frozen=True)
class Locale:
    """A `<lang>-<COUNTRY>` culture such as `nl-NL`."""

    language: str
    country: str

    @classmethod
    def parse(cls, value: str) -> "Locale":
        match = _LOCALE_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid locale {value!r}, expected <lang>-<COUNTRY>")
        return cls(language=match.group(1), country=match.group(2))

    def __str__(self) -> str:
        return f"{self.language}-{self.country}"

    def site_code_for(self, template: str) -> str:
        """Replace the default-country marker of a site code template with this country."""

        return template.replace(DEFAULT_COUNTRY_TOKEN, f"_{self.country}_")


def brand_code_of(template_site_code: str) -> str:
    """Brand code: the first two characters of the (un-substituted) site code template."""

    return template_site_code[:2]
