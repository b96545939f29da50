from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ..admin.base import AdminApi
from ..errors import AdminApiError
from ..models import (
    CellReport,
    ComponentStatus,
    DiskReport,
    HealthEntry,
    MergeEvent,
    ProcessRef,
    ReportOptions,
    SearchApplicationHandle,
    TopologyComponent,
    VolumeInfo,
)
from ..settings import Settings

logger = logging.getLogger("spadmin.synthesizer")

MASTER_MERGE_ENTRY = "master merge running"
_DOTTED_ID = re.compile(r"[\w-]+(?:\.[\w-]+){2,}")
_DRIVE_PATH = re.compile(r"^(?P<drive>[A-Za-z]):[\\/]?(?P<rest>.*)$")
_UNC_PATH = re.compile(r"^\\\\[^\\]+\\(?P<drive>[A-Za-z])\$(?:\\(?P<rest>.*))?$")
_TRUE = {"true", "yes", "1"}
_RESERVED_DETAILS = {"partition", "primary", "host"}


def _parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUE


def parse_merge_entry(entries: Sequence[HealthEntry]) -> Tuple[bool, Optional[int]]:
    """Merge flag and cell id from the "master merge running" health entry."""
    for entry in entries:
        if MASTER_MERGE_ENTRY not in entry.name.lower():
            continue
        cell: Optional[int] = None
        match = _DOTTED_ID.search(entry.name)
        if match:
            segment = match.group(0).split(".")[2]
            cell = int(segment) if segment.isdigit() else None
        return _parse_bool(entry.message), cell
    return False, None


def to_unc(server: str, path: str, template: str) -> Tuple[str, Optional[str]]:
    """Map a local drive path on ``server`` to its admin share; returns (path, drive)."""
    unc = _UNC_PATH.match(path)
    if unc:
        return path.rstrip("\\"), unc.group("drive").upper()
    local = _DRIVE_PATH.match(path)
    if not local:
        return path, None
    drive = local.group("drive").upper()
    rest = local.group("rest").replace("/", "\\").strip("\\")
    return template.format(server=server, drive=drive, path=rest).rstrip("\\"), drive


def events_in_window(
    events: Sequence[MergeEvent],
    component: str,
    check_time: Optional[datetime],
    window,
) -> Tuple[MergeEvent, ...]:
    if check_time is None:
        return ()
    start = check_time - window
    return tuple(e for e in events if e.component == component and start <= e.timestamp <= check_time)


class ReportSynthesizer:
    def __init__(self, api: AdminApi, settings: Settings) -> None:
        self.api = api
        self.settings = settings

    def synthesize(
        self,
        handle: SearchApplicationHandle,
        options: ReportOptions,
        now: Optional[datetime] = None,
    ) -> None:
        if handle.status is None:
            handle.cell_reports = ()
            handle.disk_reports = ()
            handle.processes = {}
            return
        handle.processes = self.correlate_processes(handle)
        handle.cell_reports = self.build_cell_reports(handle, options, now=now)
        handle.disk_reports = self.build_disk_reports(handle, options) if options.wants_disk_reports else ()

    def _health(self, handle: SearchApplicationHandle, component: str) -> List[HealthEntry]:
        try:
            return self.api.get_component_health(handle, component)
        except AdminApiError as exc:
            logger.warning("Merge status for %s/%s unavailable: %s", handle.name, component, exc)
            return []

    def check_time(self, handle: SearchApplicationHandle, now: Optional[datetime] = None) -> Optional[datetime]:
        return now or handle.status_checked_at

    def build_cell_reports(
        self,
        handle: SearchApplicationHandle,
        options: ReportOptions,
        now: Optional[datetime] = None,
    ) -> Tuple[CellReport, ...]:
        check_time = self.check_time(handle, now)
        return tuple(
            self._cell_report(handle, component, check_time)
            for component in handle.known_components
        )

    def _cell_report(
        self,
        handle: SearchApplicationHandle,
        component: ComponentStatus,
        check_time: Optional[datetime],
    ) -> CellReport:
        merge_running, cell = parse_merge_entry(self._health(handle, component.name))
        extra = tuple(sorted(
            (key, value) for key, value in component.details.items() if key.lower() not in _RESERVED_DETAILS
        ))
        return CellReport(
            component=component.name,
            server=component.server,
            partition=component.partition,
            cell=cell,
            primary=_parse_bool(component.details.get("Primary")),
            active_documents=component.metrics.get("active_documents", 0),
            generation_id=component.metrics.get("generation_id", 0),
            checkpoint_size=component.metrics.get("checkpoint_size", 0),
            merge_running=merge_running,
            merge_events=events_in_window(
                handle.merge_events, component.name, check_time, self.settings.merge_window
            ),
            process=handle.processes.get(component.name),
            extra=extra,
        )

    def _index_path(self, handle: SearchApplicationHandle, component: TopologyComponent) -> Tuple[str, Optional[str]]:
        if component.root_directory:
            local = component.root_directory
        else:
            local = self.settings.index_path_template.format(
                root=self.settings.default_index_root.rstrip("\\"),
                constellation=handle.constellation,
                component=component.name,
            )
        return to_unc(component.server, local, self.settings.unc_template)

    def _cell_folder(self, handle: SearchApplicationHandle, component: TopologyComponent, base: str) -> str:
        fragment = self.settings.cell_folder_template.format(
            component=component.name, constellation=handle.constellation,
        ).lower()
        names = sorted(
            name for name in self.api.list_remote_directories(component.server, base) if fragment in name.lower()
        )
        if not names:
            return base
        # lexicographically last name is the newest dated folder
        return f"{base}\\{names[-1]}"

    def build_disk_reports(self, handle: SearchApplicationHandle, options: ReportOptions) -> Tuple[DiskReport, ...]:
        reports: List[DiskReport] = []
        for component in handle.indexer_components(self.settings.index_component_marker):
            base, drive = self._index_path(handle, component)
            try:
                path = self._cell_folder(handle, component, base)
                size = sum(f.size for f in self.api.list_remote_files(component.server, path))
            except AdminApiError as exc:
                logger.warning("Index folder on %s unreadable: %s", component.server, exc)
                continue
            if size == 0:
                logger.debug("Skipping empty index folder %s on %s", path, component.server)
                continue
            volume = VolumeInfo(0, 0)
            if drive:
                try:
                    volume = self.api.get_volume(component.server, drive)
                except AdminApiError as exc:
                    logger.warning("Volume %s: on %s unavailable: %s", drive, component.server, exc)
            reports.append(
                DiskReport(
                    server=component.server,
                    component=component.name,
                    path=path,
                    size=size,
                    free_space=volume.free_space,
                    capacity=volume.capacity,
                )
            )
        return tuple(reports)

    def correlate_processes(self, handle: SearchApplicationHandle) -> Dict[str, ProcessRef]:
        """Map indexer component name -> the host process serving it."""
        by_server: Dict[str, List[str]] = {}
        for component in handle.indexer_components(self.settings.index_component_marker):
            by_server.setdefault(component.server, []).append(component.name)

        found: Dict[str, ProcessRef] = {}
        process_name = self.settings.index_process_name
        for server, names in by_server.items():
            try:
                processes = self.api.list_processes(server, process_name)
            except AdminApiError as exc:
                logger.warning("Process list on %s unavailable: %s", server, exc)
                continue
            for proc in processes:
                try:
                    command_line = self.api.get_process_command_line(server, proc.pid) or ""
                except AdminApiError as exc:
                    logger.warning("Command line of %s on %s unavailable: %s", proc.pid, server, exc)
                    continue
                for name in names:
                    if name not in found and re.search(rf"\b{re.escape(name)}\b", command_line):
                        found[name] = ProcessRef(server=server, pid=proc.pid, name=proc.name, command_line=command_line)
        return found
