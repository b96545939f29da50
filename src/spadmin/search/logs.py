"""Merged diagnostic log exports and the master-merge trigger parser."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from ..admin.base import AdminApi
from ..errors import AdminApiError
from ..models import LogExportEntry, MergeEvent, ReportOptions, SearchApplicationHandle
from ..settings import Settings

logger = logging.getLogger("spadmin.logs")

MERGE_TRIGGER_PATTERN = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2})(?:\.\d+)?"
    r".*?OWSTIMER"
    r".*?(?P<component>\w*IndexComponent\d+)"
    r".*?\)\s*(?P<update_group>[\w-]+),"
    r"\s*total=(?P<total>\d+),"
    r"\s*master=(?P<master>\d+),"
    r"\s*ratio=(?P<ratio>\d+(?:\.\d+)?)%,"
    r"\s*targetRatio=(?P<target_ratio>\d+(?:\.\d+)?)%"
)


def parse_merge_line(line: str) -> Optional[MergeEvent]:
    match = MERGE_TRIGGER_PATTERN.match(line.strip())
    if not match:
        return None
    try:
        timestamp = datetime.fromisoformat(match.group("timestamp").replace("T", " "))
    except ValueError:
        return None
    return MergeEvent(
        timestamp=timestamp,
        component=match.group("component"),
        update_group=match.group("update_group"),
        total=int(match.group("total")),
        master=int(match.group("master")),
        ratio=float(match.group("ratio")),
        target_ratio=float(match.group("target_ratio")),
    )


def parse_merge_events(lines: Iterable[str]) -> List[MergeEvent]:
    """Parse every matching line; anything else is ignored."""
    events: List[MergeEvent] = []
    for line in lines:
        event = parse_merge_line(line)
        if event is not None:
            events.append(event)
    return events


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime)


class LogWindowExtractor:
    def __init__(self, api: AdminApi, settings: Settings) -> None:
        self.api = api
        self.settings = settings

    def folder_for(self, category: str, constellation: str) -> Path:
        return Path(self.settings.temp_dir) / "spadmin" / category / (constellation or "default")

    @staticmethod
    def _prune(files: List[Path], keep: Path) -> None:
        for stale in files:
            if stale == keep:
                continue
            try:
                stale.unlink()
            except FileNotFoundError:
                continue
            logger.debug("Removed stale log export %s", stale)

    def find_export(
        self,
        category: str,
        constellation: str,
        window_start: datetime,
        generate: bool = False,
        now: Optional[datetime] = None,
    ) -> Optional[Path]:
        """Return a log export newer than ``window_start``, merging a new one when allowed.

        At most one export per category survives a call.
        """
        folder = self.folder_for(category, constellation)
        files: List[Path] = []
        if folder.is_dir():
            files = sorted(
                (p for p in folder.iterdir() if p.is_file()),
                key=_mtime,
                reverse=True,
            )
        elif generate:
            folder.mkdir(parents=True, exist_ok=True)

        if files:
            newest = files[0]
            if _mtime(newest) > window_start:
                self._prune(files, keep=newest)
                return newest

        if not generate:
            return None

        now = now or datetime.now()
        output = folder / f"{category}-{now:%Y%m%d-%H%M%S-%f}.log"
        logger.info("Merging %s log events since %s into %s", category, window_start, output)
        try:
            self.api.merge_logs(output, window_start, self.settings.merge_event_ids)
        except AdminApiError as exc:
            logger.warning("Log merge for %s failed: %s", category, exc)
            return None
        if not output.is_file():
            logger.info("Log merge for %s produced no output", category)
            return None
        self._prune(files, keep=output)
        return output

    def extract(
        self,
        handle: SearchApplicationHandle,
        options: ReportOptions,
        now: Optional[datetime] = None,
    ) -> Optional[Path]:
        """Load merge-trigger events for ``handle`` and advance its watermark."""
        now = now or datetime.now()
        category = self.settings.log_category
        window_start = now - self.settings.log_lookback
        if handle.merge_watermark and handle.merge_watermark > window_start:
            window_start = handle.merge_watermark
        path = self.find_export(
            category,
            handle.constellation,
            window_start,
            generate=options.may_generate_logs,
            now=now,
        )
        if path is None:
            handle.merge_events = ()
            handle.log_exports.pop(category, None)
            return None

        with path.open("r", encoding="utf-8", errors="replace") as fh:
            events = parse_merge_events(fh)
        handle.merge_events = tuple(events)
        handle.log_exports[category] = LogExportEntry(category=category, path=path, last_write=_mtime(path))
        if events:
            handle.merge_watermark = max(e.timestamp for e in events)
        return path
