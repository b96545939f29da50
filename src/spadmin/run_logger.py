from __future__ import annotations

from textwrap import shorten
from typing import TYPE_CHECKING, Optional, Sequence

from rich.console import Console

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from pathlib import Path

    from .models import SearchApplicationHandle


def _preview(text: str, *, limit: int = 400) -> str:
    data = (text or "").strip()
    if not data:
        return "<empty>"
    return shorten(data.replace("\n", " ⏎ "), width=limit, placeholder=" …")


class NullRunLogger:
    """No-op logger used when tracing is disabled."""

    def on_resolve(self, handles: Sequence["SearchApplicationHandle"]) -> None:  # pragma: no cover - no behaviour
        return

    def on_collect(self, handle: "SearchApplicationHandle", cached: bool) -> None:  # pragma: no cover
        return

    def on_log_export(self, handle: "SearchApplicationHandle", path: Optional["Path"]) -> None:  # pragma: no cover
        return

    def on_synthesize(self, handle: "SearchApplicationHandle") -> None:  # pragma: no cover
        return

    def on_target_error(self, name: str, error: BaseException) -> None:  # pragma: no cover
        return


class RunLogger(NullRunLogger):
    """Rich-powered tracing of the index report stages."""

    def __init__(self, console: Console, *, preview_limit: int = 400) -> None:
        self.console = console
        self.preview_limit = preview_limit

    def on_resolve(self, handles: Sequence["SearchApplicationHandle"]) -> None:
        self.console.rule("[bold cyan]Targets")
        if not handles:
            self.console.log("No search application resolved.")
            return
        for idx, handle in enumerate(handles, start=1):
            self.console.log(f"Target {idx}: {handle.name}", f"constellation={handle.constellation or '?'}")

    def on_collect(self, handle: "SearchApplicationHandle", cached: bool) -> None:
        self.console.rule(f"[bold green]Status → {handle.name}")
        if handle.status is None:
            self.console.log("status", "unavailable")
            return
        source = "cache" if cached else "live"
        self.console.log(
            "status",
            f"source={source}",
            f"known={len(handle.known_components)}",
            f"unknown={len(handle.unknown_components)}",
        )

    def on_log_export(self, handle: "SearchApplicationHandle", path: Optional["Path"]) -> None:
        if path is None:
            self.console.log("logs", "no export available")
            return
        self.console.log("logs", _preview(str(path), limit=self.preview_limit), f"events={len(handle.merge_events)}")

    def on_synthesize(self, handle: "SearchApplicationHandle") -> None:
        self.console.log("cells", len(handle.cell_reports), "disks", len(handle.disk_reports))

    def on_target_error(self, name: str, error: BaseException) -> None:
        self.console.rule(f"[bold red]Error → {name}")
        self.console.log(repr(error))


__all__ = [
    "RunLogger",
    "NullRunLogger",
]
