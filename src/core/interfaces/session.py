"""Session persistence contract.

The session manager only needs `load`/`save`; the concrete store (JSON file,
keyring, in-memory for tests) lives in `adapters`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import SessionRecord


@runtime_checkable
class SessionRepository(Protocol):
    """Minimal contract for a durable session store.

    Rules:
    - `load` returns an empty `SessionRecord` when nothing was stored yet.
    - `save` overwrites the previous record.
    """

    def load(self) -> SessionRecord:
        ...

    def save(self, record: SessionRecord) -> None:
        ...
