from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from ..models import (
    ComponentState,
    ComponentStatus,
    HealthEntry,
    ProcessInfo,
    RemoteFile,
    SearchApplicationHandle,
    ServiceApplicationInfo,
    SystemStatus,
    TopologyComponent,
    VolumeInfo,
)


class AdminApi(ABC):
    """Administrative surface of the farm: search admin, hosts, logs, AD and Central Administration."""

    # search administration
    @abstractmethod
    def list_search_applications(self) -> List[SearchApplicationHandle]:
        ...

    @abstractmethod
    def get_search_application(self, name: str) -> Optional[SearchApplicationHandle]:
        ...

    @abstractmethod
    def get_topology(self, app: SearchApplicationHandle) -> List[TopologyComponent]:
        ...

    @abstractmethod
    def get_search_status(self, app: SearchApplicationHandle) -> SystemStatus:
        ...

    @abstractmethod
    def get_component_health(self, app: SearchApplicationHandle, component: str) -> List[HealthEntry]:
        ...

    # remote hosts
    @abstractmethod
    def list_remote_directories(self, server: str, path: str) -> List[str]:
        ...

    @abstractmethod
    def list_remote_files(self, server: str, path: str) -> List[RemoteFile]:
        """All files below ``path``, recursively."""

    @abstractmethod
    def get_volume(self, server: str, drive: str) -> VolumeInfo:
        ...

    @abstractmethod
    def list_processes(self, server: str, name: str) -> List[ProcessInfo]:
        ...

    @abstractmethod
    def get_process_command_line(self, server: str, pid: int) -> Optional[str]:
        ...

    # diagnostic logs
    @abstractmethod
    def merge_logs(self, output_path: Path, start: datetime, event_ids: Sequence[str]) -> None:
        """Write the merged log lines since ``start`` to ``output_path``; may write nothing."""

    # active directory
    @abstractmethod
    def organizational_unit_exists(self, dn: str) -> bool:
        ...

    @abstractmethod
    def create_organizational_unit(self, name: str, parent_dn: str, protect: bool = True) -> None:
        ...

    @abstractmethod
    def set_organizational_unit_protection(self, dn: str, protect: bool) -> None:
        ...

    @abstractmethod
    def remove_organizational_unit(self, dn: str, recursive: bool = False) -> None:
        ...

    # central administration
    @abstractmethod
    def list_service_applications(self) -> List[ServiceApplicationInfo]:
        ...

    @abstractmethod
    def list_link_urls(self, list_title: str) -> List[str]:
        ...

    @abstractmethod
    def add_link_item(self, list_title: str, title: str, url: str) -> None:
        ...


def _text(value: Any, default: str = "") -> str:
    return str(value) if value is not None else default


def handle_from_dict(data: dict) -> SearchApplicationHandle:
    return SearchApplicationHandle(
        identity=_text(data.get("identity") or data.get("id") or data.get("name")),
        name=_text(data.get("name")),
        constellation=_text(data.get("constellation")),
    )


def topology_from_dicts(items: Iterable[Any]) -> List[TopologyComponent]:
    components: List[TopologyComponent] = []
    for item in items or ():
        if not isinstance(item, dict):
            continue
        root = item.get("root_directory")
        components.append(
            TopologyComponent(
                name=_text(item.get("name")),
                server=_text(item.get("server")),
                kind=_text(item.get("kind")),
                root_directory=root if isinstance(root, str) and root else None,
            )
        )
    return components


def health_from_dicts(items: Iterable[Any]) -> List[HealthEntry]:
    entries: List[HealthEntry] = []
    for item in items or ():
        if not isinstance(item, dict):
            continue
        entries.append(
            HealthEntry(
                name=_text(item.get("name")),
                message=_text(item.get("message")),
                level=_text(item.get("level"), "Ok"),
            )
        )
    return entries


def status_from_dict(data: dict) -> SystemStatus:
    components: List[ComponentStatus] = []
    for item in data.get("components") or ():
        if not isinstance(item, dict):
            continue
        details_raw = item.get("details") or {}
        details = {str(k): _text(v) for k, v in details_raw.items()} if isinstance(details_raw, dict) else {}
        raw_state = _text(item.get("state"))
        components.append(
            ComponentStatus(
                name=_text(item.get("name")),
                state=ComponentState.parse(raw_state),
                raw_state=raw_state,
                details=details,
            )
        )
    admin = data.get("primary_admin_component")
    home = data.get("home_directory")
    return SystemStatus(
        components=tuple(components),
        health=tuple(health_from_dicts(data.get("health") or ())),
        primary_admin_component=admin if isinstance(admin, str) else None,
        home_directory=home if isinstance(home, str) else None,
    )


def service_apps_from_dicts(items: Iterable[Any]) -> List[ServiceApplicationInfo]:
    return [
        ServiceApplicationInfo(
            name=_text(item.get("name")),
            type_name=_text(item.get("type_name")),
            url=_text(item.get("url")),
        )
        for item in items or ()
        if isinstance(item, dict)
    ]
