from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence
from urllib.parse import quote

import httpx

from ..errors import AdminApiError
from ..models import (
    HealthEntry,
    ProcessInfo,
    RemoteFile,
    SearchApplicationHandle,
    ServiceApplicationInfo,
    SystemStatus,
    TopologyComponent,
    VolumeInfo,
)
from .base import (
    AdminApi,
    handle_from_dict,
    health_from_dicts,
    service_apps_from_dicts,
    status_from_dict,
    topology_from_dicts,
)


class HttpAdminApi(AdminApi):
    """Talks JSON to an administration gateway running inside the farm."""

    def __init__(self, base_url: str, timeout: float = 120.0) -> None:
        if not base_url:
            raise AdminApiError("http backend requires a gateway URL", operation="connect")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, *, operation: str, allow_missing: bool = False, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, url, **kwargs)
                if allow_missing and response.status_code == 404:
                    return None
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AdminApiError(f"{operation} failed: {exc}", operation=operation) from exc
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise AdminApiError(f"{operation} returned invalid JSON", operation=operation) from exc

    @staticmethod
    def _app_path(app: SearchApplicationHandle) -> str:
        return f"/search/applications/{quote(app.identity, safe='')}"

    # search administration
    def list_search_applications(self) -> List[SearchApplicationHandle]:
        payload = self._request("GET", "/search/applications", operation="list_search_applications")
        return [handle_from_dict(item) for item in payload or [] if isinstance(item, dict)]

    def get_search_application(self, name: str) -> Optional[SearchApplicationHandle]:
        payload = self._request(
            "GET", "/search/applications/by-name", operation="get_search_application",
            allow_missing=True, params={"name": name},
        )
        return handle_from_dict(payload) if isinstance(payload, dict) else None

    def get_topology(self, app: SearchApplicationHandle) -> List[TopologyComponent]:
        payload = self._request("GET", self._app_path(app) + "/topology", operation="get_topology")
        return topology_from_dicts(payload or [])

    def get_search_status(self, app: SearchApplicationHandle) -> SystemStatus:
        payload = self._request("GET", self._app_path(app) + "/status", operation="get_search_status")
        return status_from_dict(payload if isinstance(payload, dict) else {})

    def get_component_health(self, app: SearchApplicationHandle, component: str) -> List[HealthEntry]:
        path = self._app_path(app) + f"/components/{quote(component, safe='')}/health"
        return health_from_dicts(self._request("GET", path, operation="get_component_health") or [])

    # remote hosts
    def list_remote_directories(self, server: str, path: str) -> List[str]:
        payload = self._request(
            "GET", f"/hosts/{quote(server, safe='')}/directories",
            operation="list_remote_directories", params={"path": path},
        )
        return [str(name) for name in payload or []]

    def list_remote_files(self, server: str, path: str) -> List[RemoteFile]:
        payload = self._request(
            "GET", f"/hosts/{quote(server, safe='')}/files",
            operation="list_remote_files", params={"path": path, "recursive": "true"},
        )
        try:
            return [
                RemoteFile(path=str(item.get("path", "")), size=int(item.get("size") or 0))
                for item in payload or []
                if isinstance(item, dict)
            ]
        except (TypeError, ValueError) as exc:
            raise AdminApiError(f"list_remote_files returned malformed data: {exc}", operation="list_remote_files") from exc

    def get_volume(self, server: str, drive: str) -> VolumeInfo:
        payload = self._request(
            "GET", f"/hosts/{quote(server, safe='')}/volumes/{quote(drive, safe='')}", operation="get_volume",
        ) or {}
        try:
            return VolumeInfo(
                free_space=int(payload.get("free_space") or 0),
                capacity=int(payload.get("capacity") or 0),
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise AdminApiError(f"get_volume returned malformed data: {exc}", operation="get_volume") from exc

    def list_processes(self, server: str, name: str) -> List[ProcessInfo]:
        payload = self._request(
            "GET", f"/hosts/{quote(server, safe='')}/processes", operation="list_processes", params={"name": name},
        )
        try:
            return [
                ProcessInfo(pid=int(item["pid"]), name=str(item.get("name", name)))
                for item in payload or []
                if isinstance(item, dict) and "pid" in item
            ]
        except (TypeError, ValueError) as exc:
            raise AdminApiError(f"list_processes returned malformed data: {exc}", operation="list_processes") from exc

    def get_process_command_line(self, server: str, pid: int) -> Optional[str]:
        payload = self._request(
            "GET", f"/hosts/{quote(server, safe='')}/processes/{pid}", operation="get_process_command_line",
            allow_missing=True,
        )
        if not isinstance(payload, dict):
            return None
        value = payload.get("command_line")
        return value if isinstance(value, str) else None

    # diagnostic logs
    def merge_logs(self, output_path: Path, start: datetime, event_ids: Sequence[str]) -> None:
        url = f"{self.base_url}/logs/merge"
        body = {"start": start.isoformat(), "event_ids": list(event_ids)}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                with client.stream("POST", url, json=body) as response:
                    response.raise_for_status()
                    lines = [line for line in response.iter_lines() if line]
        except httpx.HTTPError as exc:
            raise AdminApiError(f"merge_logs failed: {exc}", operation="merge_logs") from exc
        if lines:
            Path(output_path).write_text("\n".join(lines) + "\n", encoding="utf-8")

    # active directory
    def organizational_unit_exists(self, dn: str) -> bool:
        payload = self._request(
            "GET", "/directory/ou", operation="organizational_unit_exists", allow_missing=True, params={"dn": dn},
        )
        return payload is not None

    def create_organizational_unit(self, name: str, parent_dn: str, protect: bool = True) -> None:
        self._request(
            "POST", "/directory/ou", operation="create_organizational_unit",
            json={"name": name, "parent": parent_dn, "protected": protect},
        )

    def set_organizational_unit_protection(self, dn: str, protect: bool) -> None:
        self._request(
            "PATCH", "/directory/ou", operation="set_organizational_unit_protection",
            json={"dn": dn, "protected": protect},
        )

    def remove_organizational_unit(self, dn: str, recursive: bool = False) -> None:
        self._request(
            "DELETE", "/directory/ou", operation="remove_organizational_unit",
            params={"dn": dn, "recursive": "true" if recursive else "false"},
        )

    # central administration
    def list_service_applications(self) -> List[ServiceApplicationInfo]:
        payload = self._request("GET", "/farm/service-applications", operation="list_service_applications")
        return service_apps_from_dicts(payload or [])

    def list_link_urls(self, list_title: str) -> List[str]:
        payload = self._request(
            "GET", f"/farm/lists/{quote(list_title, safe='')}/items", operation="list_link_urls",
        )
        return [str(item.get("url", "")) for item in payload or [] if isinstance(item, dict)]

    def add_link_item(self, list_title: str, title: str, url: str) -> None:
        self._request(
            "POST", f"/farm/lists/{quote(list_title, safe='')}/items", operation="add_link_item",
            json={"title": title, "url": url},
        )
