from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from .admin.base import AdminApi


class ComponentState(str, Enum):
    ACTIVE = "Active"
    UNKNOWN = "Unknown"
    OTHER = "Other"

    @classmethod
    def parse(cls, raw: str | None) -> "ComponentState":
        text = (raw or "").strip().lower()
        if text == "active":
            return cls.ACTIVE
        if text == "unknown" or not text:
            return cls.UNKNOWN
        return cls.OTHER

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HealthEntry:
    name: str
    message: str = ""
    level: str = "Ok"


@dataclass(frozen=True)
class TopologyComponent:
    name: str
    server: str
    kind: str = ""
    root_directory: Optional[str] = None


@dataclass(frozen=True)
class ComponentStatus:
    """Health snapshot of one topology component."""

    name: str
    state: ComponentState
    raw_state: str = ""
    details: Dict[str, str] = field(default_factory=dict)
    metrics: Dict[str, int] = field(default_factory=dict)

    @property
    def server(self) -> str:
        return self.details.get("Host", "")

    @property
    def partition(self) -> Optional[int]:
        return _to_int(self.details.get("Partition"))


@dataclass(frozen=True)
class SystemStatus:
    components: Tuple[ComponentStatus, ...]
    health: Tuple[HealthEntry, ...] = ()
    primary_admin_component: Optional[str] = None
    home_directory: Optional[str] = None


@dataclass(frozen=True)
class MergeEvent:
    timestamp: datetime
    component: str
    update_group: str
    total: int
    master: int
    ratio: float
    target_ratio: float


@dataclass(frozen=True)
class ProcessRef:
    server: str
    pid: int
    name: str
    command_line: str = ""

    def refresh(self, api: "AdminApi") -> Optional["ProcessRef"]:
        """Re-read the process from its host; ``None`` once it has exited."""
        for proc in api.list_processes(self.server, self.name):
            if proc.pid == self.pid:
                command_line = api.get_process_command_line(self.server, self.pid)
                return ProcessRef(self.server, self.pid, self.name, command_line or "")
        return None


@dataclass(frozen=True)
class CellReport:
    component: str
    server: str
    partition: Optional[int]
    cell: Optional[int]
    primary: bool
    active_documents: int = 0
    generation_id: int = 0
    checkpoint_size: int = 0
    merge_running: bool = False
    merge_events: Tuple[MergeEvent, ...] = ()
    process: Optional[ProcessRef] = None
    extra: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class DiskReport:
    server: str
    component: str
    path: str
    size: int
    free_space: int = 0
    capacity: int = 0

    @property
    def size_mb(self) -> float:
        return _mb(self.size)

    @property
    def free_mb(self) -> float:
        return _mb(self.free_space)

    @property
    def capacity_mb(self) -> float:
        return _mb(self.capacity)


@dataclass(frozen=True)
class LogExportEntry:
    category: str
    path: Path
    last_write: datetime


@dataclass(frozen=True)
class RemoteFile:
    path: str
    size: int


@dataclass(frozen=True)
class VolumeInfo:
    free_space: int
    capacity: int


@dataclass(frozen=True)
class ProcessInfo:
    pid: int
    name: str


@dataclass(frozen=True)
class ServiceApplicationInfo:
    name: str
    type_name: str
    url: str


@dataclass(frozen=True)
class ReportOptions:
    detailed: bool = False
    include_disk_reports: bool = False
    include_extra_log_reports: bool = False
    skip_report_generation: bool = False
    return_raw_data_only: bool = False
    force_refresh: bool = False

    @property
    def wants_disk_reports(self) -> bool:
        return self.detailed or self.include_disk_reports

    @property
    def may_generate_logs(self) -> bool:
        return self.detailed or self.include_extra_log_reports


@dataclass
class SearchApplicationHandle:
    """One resolved search application plus everything cached on it for this process."""

    identity: str
    name: str
    constellation: str = ""
    topology: Optional[Tuple[TopologyComponent, ...]] = None
    status: Optional[SystemStatus] = None
    status_checked_at: Optional[datetime] = None
    known_components: Tuple[ComponentStatus, ...] = ()
    unknown_components: Tuple[ComponentStatus, ...] = ()
    merge_events: Tuple[MergeEvent, ...] = ()
    merge_watermark: Optional[datetime] = None
    log_exports: Dict[str, LogExportEntry] = field(default_factory=dict)
    cell_reports: Tuple[CellReport, ...] = ()
    disk_reports: Tuple[DiskReport, ...] = ()
    processes: Dict[str, ProcessRef] = field(default_factory=dict)
    report_time: Optional[datetime] = None

    def indexer_components(self, marker: str = "IndexComponent") -> Tuple[TopologyComponent, ...]:
        return tuple(c for c in self.topology or () if marker in c.name or c.kind == "Index")


def _to_int(value: str | None) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _mb(value: int) -> float:
    return round(value / (1024 * 1024), 1)
