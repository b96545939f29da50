from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.table import Table

from ..models import ReportOptions, SearchApplicationHandle

DEFAULT_UPDATE_GROUP = "default"


def _opt(value) -> str:
    return "-" if value is None else str(value)


class ReportRenderer:
    """Formats a synthesized handle as console tables. Never mutates the handle."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]WARNING:[/] {message}")

    def render(self, handle: SearchApplicationHandle, options: ReportOptions) -> None:
        self.console.rule(f"[bold]Index report: {handle.name}")
        if handle.status is None:
            self.warn(f"Search status for '{handle.name}' is unavailable; no report produced.")
            return

        self._cells(handle)
        self._unknown(handle)
        self._disks(handle)
        self._merge_events(handle, options)
        self._missing_merge_events(handle)
        self._health(handle)
        if options.detailed:
            self.console.print(f"Primary search admin component: {_opt(handle.status.primary_admin_component)}")
            self.console.print(f"Search home directory: {_opt(handle.status.home_directory)}")

    def _cells(self, handle: SearchApplicationHandle) -> None:
        table = Table(title="Index cells")
        for column in ("Component", "Server", "Partition", "Cell", "Primary", "Active docs",
                       "Generation", "Checkpoint", "Merging", "Triggers", "PID"):
            table.add_column(column)
        rows = sorted(handle.cell_reports, key=lambda r: (
            r.partition if r.partition is not None else -1,
            r.cell if r.cell is not None else -1,
        ))
        for r in rows:
            table.add_row(
                r.component,
                r.server,
                _opt(r.partition),
                _opt(r.cell),
                "yes" if r.primary else "no",
                str(r.active_documents),
                str(r.generation_id),
                str(r.checkpoint_size),
                "yes" if r.merge_running else "no",
                str(len(r.merge_events)),
                _opt(r.process.pid if r.process else None),
            )
        self.console.print(table)

    def _unknown(self, handle: SearchApplicationHandle) -> None:
        if not handle.unknown_components:
            return
        self.warn("Components in unknown state:")
        for component in handle.unknown_components:
            self.console.print(
                f"  {component.name} (partition {_opt(component.partition)}) on {component.server or '?'}"
            )

    def _disks(self, handle: SearchApplicationHandle) -> None:
        if not handle.disk_reports:
            return
        table = Table(title="Index disk usage")
        for column in ("Component", "Server", "Path", "Size (MB)", "Free (MB)", "Capacity (MB)"):
            table.add_column(column)
        for d in sorted(handle.disk_reports, key=lambda d: d.component):
            table.add_row(
                d.component, d.server, d.path,
                f"{d.size_mb:.1f}", f"{d.free_mb:.1f}", f"{d.capacity_mb:.1f}",
            )
        self.console.print(table)

    def _merge_events(self, handle: SearchApplicationHandle, options: ReportOptions) -> None:
        events = handle.merge_events
        if not options.detailed:
            events = tuple(e for e in events if e.update_group == DEFAULT_UPDATE_GROUP)
        if not events:
            return
        table = Table(title="Master merge triggers")
        for column in ("Time", "Component", "Update group", "Total", "Master", "Ratio", "Target"):
            table.add_column(column)
        for e in sorted(events, key=lambda e: (e.component, e.update_group)):
            table.add_row(
                f"{e.timestamp:%Y-%m-%d %H:%M:%S}", e.component, e.update_group,
                str(e.total), str(e.master), f"{e.ratio:.1f}%", f"{e.target_ratio:g}%",
            )
        self.console.print(table)

    def _missing_merge_events(self, handle: SearchApplicationHandle) -> None:
        with_cells = {r.component for r in handle.cell_reports}
        with_events = {e.component for e in handle.merge_events}
        missing = sorted(with_cells - with_events)
        if missing:
            self.warn("No master merge triggers logged for: " + ", ".join(missing))

    def _health(self, handle: SearchApplicationHandle) -> None:
        if not handle.status.health:
            return
        table = Table(title="Search administration health")
        for column in ("Name", "Message", "Level"):
            table.add_column(column)
        for entry in sorted(handle.status.health, key=lambda e: e.name):
            table.add_row(entry.name, entry.message, entry.level)
        self.console.print(table)
