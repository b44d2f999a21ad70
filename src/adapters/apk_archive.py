"""Read-only access to an application package (zip container).

Every `zipfile`/OS failure is reported as `ArchiveError`.
"""

from __future__ import annotations

import logging
import re
import zipfile
import zlib
from pathlib import Path
from typing import Iterable

from core.errors import ArchiveError

logger = logging.getLogger(__name__)

PARAMETERS_RE = re.compile(r"^res/raw-([a-z]{2})-r([A-Z]{2})/parameters\.json$")


def discover_locales(names: Iterable[str]) -> dict[str, str]:
    """Map `<lang>-<COUNTRY>` to the archive path of its `parameters.json`."""

    found: dict[str, str] = {}
    for name in names:
        match = PARAMETERS_RE.match(name)
        if match:
            found[f"{match.group(1)}-{match.group(2)}"] = name
    return found


class ApkArchive:
    """Thin wrapper over `zipfile.ZipFile` used as a context manager."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            self._zip = zipfile.ZipFile(self.path)
        except FileNotFoundError as exc:
            raise ArchiveError(f"Package not found: {self.path}") from exc
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveError(f"Cannot open package {self.path}: {exc}") from exc
        logger.debug("Opened package %s (%d entries)", self.path, len(self._zip.namelist()))

    def __enter__(self) -> "ApkArchive":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def names(self) -> list[str]:
        return self._zip.namelist()

    def read(self, name: str) -> bytes:
        try:
            return self._zip.read(name)
        except KeyError as exc:
            raise ArchiveError(f"Missing entry {name!r} in {self.path.name}") from exc
        except (zipfile.BadZipFile, zlib.error, OSError, RuntimeError) as exc:
            raise ArchiveError(f"Cannot read entry {name!r}: {exc}") from exc
