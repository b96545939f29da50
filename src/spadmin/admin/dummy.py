"""In-memory administration backend driven by a JSON-compatible fixture.

Used by the test-suite and for offline demos (``--backend dummy``). Every call is
recorded in ``calls`` so callers can assert on what was queried.
"""

from __future__ import annotations

import copy
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, List, Optional, Sequence

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


def _norm(path: str) -> str:
    return path.replace("/", "\\").rstrip("\\").lower()


class DummyAdminApi(AdminApi):
    def __init__(self, fixture: Optional[dict] = None) -> None:
        self.fixture: dict = copy.deepcopy(fixture) if fixture is not None else default_fixture()
        self.calls: List[tuple] = []

    @classmethod
    def from_file(cls, path: str | Path) -> "DummyAdminApi":
        return cls(json.loads(Path(path).read_text(encoding="utf-8")))

    def _app(self, app: SearchApplicationHandle) -> dict:
        for item in self.fixture.get("search_applications", []):
            if item.get("identity", item.get("name")) == app.identity:
                return item
        raise AdminApiError(f"Unknown search application {app.name!r}", operation="lookup")

    def _host(self, server: str) -> dict:
        hosts = self.fixture.get("hosts", {})
        for name, host in hosts.items():
            if name.lower() == server.lower():
                return host
        raise AdminApiError(f"Host {server} is unreachable", operation="host")

    # search administration
    def list_search_applications(self) -> List[SearchApplicationHandle]:
        self.calls.append(("list_search_applications",))
        return [handle_from_dict(item) for item in self.fixture.get("search_applications", [])]

    def get_search_application(self, name: str) -> Optional[SearchApplicationHandle]:
        self.calls.append(("get_search_application", name))
        for item in self.fixture.get("search_applications", []):
            if str(item.get("name", "")).lower() == name.lower():
                return handle_from_dict(item)
        return None

    def get_topology(self, app: SearchApplicationHandle) -> List[TopologyComponent]:
        self.calls.append(("get_topology", app.name))
        data = self._app(app)
        if data.get("unavailable"):
            raise AdminApiError("Search administration endpoint unreachable", operation="get_topology")
        return topology_from_dicts(data.get("topology", []))

    def get_search_status(self, app: SearchApplicationHandle) -> SystemStatus:
        self.calls.append(("get_search_status", app.name))
        data = self._app(app)
        if data.get("unavailable"):
            raise AdminApiError("Search administration endpoint unreachable", operation="get_search_status")
        return status_from_dict(data.get("status", {}))

    def get_component_health(self, app: SearchApplicationHandle, component: str) -> List[HealthEntry]:
        self.calls.append(("get_component_health", app.name, component))
        data = self._app(app)
        per_component = data.get("component_health", {})
        if component not in per_component:
            raise AdminApiError(f"No health report for {component}", operation="get_component_health")
        return health_from_dicts(per_component[component])

    # remote hosts
    def list_remote_directories(self, server: str, path: str) -> List[str]:
        self.calls.append(("list_remote_directories", server, path))
        prefix = _norm(path) + "\\"
        names: set[str] = set()
        for full in self._host(server).get("files", {}):
            candidate = full.replace("/", "\\")
            if not candidate.lower().startswith(prefix):
                continue
            rest = candidate[len(prefix):]
            if "\\" in rest:
                names.add(rest.split("\\", 1)[0])
        return sorted(names)

    def list_remote_files(self, server: str, path: str) -> List[RemoteFile]:
        self.calls.append(("list_remote_files", server, path))
        prefix = _norm(path) + "\\"
        return [
            RemoteFile(path=full, size=int(size))
            for full, size in self._host(server).get("files", {}).items()
            if full.replace("/", "\\").lower().startswith(prefix)
        ]

    def get_volume(self, server: str, drive: str) -> VolumeInfo:
        self.calls.append(("get_volume", server, drive))
        volumes = self._host(server).get("volumes", {})
        free, capacity = volumes.get(drive.upper(), (0, 0))
        return VolumeInfo(free_space=int(free), capacity=int(capacity))

    def list_processes(self, server: str, name: str) -> List[ProcessInfo]:
        self.calls.append(("list_processes", server, name))
        return [
            ProcessInfo(pid=int(proc["pid"]), name=str(proc["name"]))
            for proc in self._host(server).get("processes", [])
            if str(proc.get("name", "")).lower() == name.lower()
        ]

    def get_process_command_line(self, server: str, pid: int) -> Optional[str]:
        self.calls.append(("get_process_command_line", server, pid))
        for proc in self._host(server).get("processes", []):
            if int(proc.get("pid", -1)) == pid:
                return proc.get("command_line")
        return None

    # diagnostic logs
    def merge_logs(self, output_path: Path, start: datetime, event_ids: Sequence[str]) -> None:
        self.calls.append(("merge_logs", str(output_path), start, tuple(event_ids)))
        lines = self.fixture.get("logs", [])
        if not lines:
            return
        Path(output_path).write_text("\n".join(lines) + "\n", encoding="utf-8")

    # active directory
    def _ous(self) -> dict:
        return self.fixture.setdefault("organizational_units", {})

    def organizational_unit_exists(self, dn: str) -> bool:
        self.calls.append(("organizational_unit_exists", dn))
        return dn.lower() in {k.lower() for k in self._ous()}

    def create_organizational_unit(self, name: str, parent_dn: str, protect: bool = True) -> None:
        self.calls.append(("create_organizational_unit", name, parent_dn, protect))
        self._ous()[f"OU={name},{parent_dn}"] = {"protected": protect}

    def set_organizational_unit_protection(self, dn: str, protect: bool) -> None:
        self.calls.append(("set_organizational_unit_protection", dn, protect))
        for key, value in self._ous().items():
            if key.lower() == dn.lower():
                value["protected"] = protect
                return
        raise AdminApiError(f"Organizational unit {dn} not found", operation="set_protection")

    def remove_organizational_unit(self, dn: str, recursive: bool = False) -> None:
        self.calls.append(("remove_organizational_unit", dn, recursive))
        ous = self._ous()
        suffix = "," + dn.lower()
        target = [k for k in ous if k.lower() == dn.lower()]
        if not target:
            raise AdminApiError(f"Organizational unit {dn} not found", operation="remove")
        if ous[target[0]].get("protected"):
            raise AdminApiError(f"Organizational unit {dn} is protected from deletion", operation="remove")
        children = [k for k in ous if k.lower().endswith(suffix)]
        if children and not recursive:
            raise AdminApiError(f"Organizational unit {dn} is not empty", operation="remove")
        for key in children + target:
            del ous[key]

    # central administration
    def list_service_applications(self) -> List[ServiceApplicationInfo]:
        self.calls.append(("list_service_applications",))
        return service_apps_from_dicts(self.fixture.get("service_applications", []))

    def list_link_urls(self, list_title: str) -> List[str]:
        self.calls.append(("list_link_urls", list_title))
        return [item["url"] for item in self.fixture.get("link_lists", {}).get(list_title, [])]

    def add_link_item(self, list_title: str, title: str, url: str) -> None:
        self.calls.append(("add_link_item", list_title, title, url))
        self.fixture.setdefault("link_lists", {}).setdefault(list_title, []).append({"title": title, "url": url})


def _uls_line(ts: datetime, component: str, group: str, total: int, master: int) -> str:
    ratio = master * 100.0 / total if total else 0.0
    return (
        f"{ts:%Y-%m-%d %H:%M:%S}.00 \tOWSTIMER.EXE (0x1A2C)\t0x2F10\tSearch\tSearch Component\taie8l\tMedium\t"
        f"{component}: master merge triggered (MergeManager) {group}, total={total}, "
        f"master={master}, ratio={ratio:.1f}%, targetRatio=50%"
    )


def default_fixture(now: Optional[datetime] = None) -> dict[str, Any]:
    """A single-farm fixture with one healthy and one unreachable index cell."""
    now = now or datetime.now()
    root = r"\\SP-IDX01\C$\Program Files\Microsoft Office Servers\15.0\Data\Office Server\Applications"
    cell_dir = root + r"\Search\Nodes\A1B2C3\IndexComponent1"
    return {
        "search_applications": [
            {
                "identity": "7f3b1c2e-ssa",
                "name": "Search Service Application",
                "constellation": "A1B2C3",
                "topology": [
                    {"name": "AdminComponent1", "server": "SP-APP01", "kind": "Admin"},
                    {"name": "IndexComponent1", "server": "SP-IDX01", "kind": "Index"},
                    {"name": "IndexComponent2", "server": "SP-IDX02", "kind": "Index"},
                ],
                "status": {
                    "components": [
                        {"name": "AdminComponent1", "state": "Active", "details": {"Host": "SP-APP01", "Primary": "True"}},
                        {
                            "name": "IndexComponent1",
                            "state": "Active",
                            "details": {"Host": "SP-IDX01", "Partition": "0", "Primary": "True"},
                        },
                        {
                            "name": "IndexComponent2",
                            "state": "Unknown",
                            "details": {"Host": "SP-IDX02", "Partition": "0", "Primary": "False"},
                        },
                    ],
                    "health": [
                        {"name": "Primary search administration", "message": "AdminComponent1", "level": "Ok"},
                        {"name": "Crawl component health", "message": "Healthy", "level": "Ok"},
                    ],
                    "primary_admin_component": "AdminComponent1",
                    "home_directory": r"C:\Program Files\Microsoft Office Servers\15.0",
                },
                "component_health": {
                    "AdminComponent1": [],
                    "IndexComponent1": [
                        {"name": "Count of active documents", "message": "125000", "level": "Ok"},
                        {"name": "Checkpoint size", "message": "4096", "level": "Ok"},
                        {"name": "Newest generation id", "message": "5123", "level": "Ok"},
                        {"name": "Master merge running (SPA1B2C3.0.0)", "message": "false", "level": "Ok"},
                    ],
                },
            }
        ],
        "hosts": {
            "SP-APP01": {"files": {}, "volumes": {"C": [50 * 1024**3, 100 * 1024**3]}, "processes": []},
            "SP-IDX01": {
                "files": {
                    cell_dir + r"\SPA1B2C3.0.0-20240101\index.dat": 300 * 1024**2,
                    cell_dir + r"\SPA1B2C3.0.0-20240101\meta\journal.bin": 20 * 1024**2,
                },
                "volumes": {"C": [80 * 1024**3, 200 * 1024**3]},
                "processes": [
                    {
                        "pid": 4242,
                        "name": "noderunner.exe",
                        "command_line": r'"NodeRunner.exe" --noderoot "' + cell_dir + '" --addstartargs IndexComponent1',
                    }
                ],
            },
            "SP-IDX02": {"files": {}, "volumes": {"C": [0, 0]}, "processes": []},
        },
        "logs": [
            _uls_line(now - timedelta(minutes=4), "IndexComponent1", "default", 1200, 700),
            _uls_line(now - timedelta(minutes=2), "IndexComponent1", "archive", 400, 150),
        ],
        "organizational_units": {},
        "service_applications": [
            {"name": "Search Service Application", "type_name": "Search Service Application", "url": "/_admin/search/searchadministration.aspx"},
            {"name": "Managed Metadata Service", "type_name": "Managed Metadata Service", "url": "/_admin/ManageMetadataService.aspx"},
        ],
        "link_lists": {"Service Applications": []},
    }
