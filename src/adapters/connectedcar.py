"""Connected-car REST client (read-only).

Every call passes through `SessionManager.authorization_headers`, which refreshes
the token when needed.
"""

from __future__ import annotations

from typing import Any

import httpx

from adapters.http_client import build_client, send
from core.config import AppSettings
from core.domain.models import VehicleListResponse, VehicleStatus
from core.errors import NetworkError
from core.services.session_manager import SessionManager


class ConnectedCarClient:
    def __init__(
        self,
        sessions: SessionManager,
        settings: AppSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._sessions = sessions
        self._settings = settings or AppSettings()
        self._transport = transport

    def _get(self, path: str) -> Any:
        api = self._sessions.record.api
        headers = self._sessions.authorization_headers()
        url = f"{api.host_api_prod.rstrip('/')}/{path}"
        with build_client(self._settings, extra_headers=headers, transport=self._transport) as client:
            response = send(client.get, url, params={"client_id": api.client_id})
        if response.is_error:
            raise NetworkError(f"GET {path} failed (HTTP {response.status_code})")
        return response.json()

    def list_vehicles(self) -> VehicleListResponse:
        return VehicleListResponse.model_validate(self._get("connectedcar/v4/user/vehicles"))

    def get_vehicle_status(self, vehicle_id: str) -> VehicleStatus:
        return VehicleStatus.model_validate(self._get(f"connectedcar/v4/user/vehicles/{vehicle_id}/status"))
