"""JSON persistence for the session record and the vehicle cache.

- UTF-8, stable key order, overwritten in place (no atomic rename).
- The session file holds secrets: it is written with 0600 permissions.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from core.domain.models import SessionRecord, VehiclesList
from core.errors import FormatError

logger = logging.getLogger(__name__)


def _write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )


class JsonSessionStore:
    """`SessionRepository` backed by a JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> SessionRecord:
        if not self.path.exists():
            logger.debug("No session at %s, starting empty", self.path)
            return SessionRecord()
        try:
            return SessionRecord.model_validate_json(self.path.read_bytes())
        except ValidationError as exc:
            raise FormatError(
                f"Corrupt session file {self.path}",
                hint="Delete it and run `psa-connect setup` again",
            ) from exc

    def save(self, record: SessionRecord) -> None:
        _write_json(self.path, record.model_dump(mode="json"))
        if os.name == "posix":
            self.path.chmod(0o600)
        logger.debug("Session saved to %s", self.path)


def load_vehicles(path: Path) -> VehiclesList | None:
    """Cached vehicle list, or None when absent or unreadable."""

    if not path.exists():
        return None
    try:
        return VehiclesList.model_validate_json(path.read_bytes())
    except ValidationError:
        logger.warning("Ignoring unreadable vehicle cache %s", path)
        return None


def save_vehicles(path: Path, vehicles: VehiclesList) -> Path:
    _write_json(path, vehicles.model_dump(mode="json", by_alias=True))
    return path
