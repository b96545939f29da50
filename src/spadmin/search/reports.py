from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from rich.console import Console

from ..admin.base import AdminApi
from ..errors import SpAdminError
from ..models import ReportOptions, SearchApplicationHandle
from ..run_logger import NullRunLogger
from ..settings import Settings, settings as default_settings
from .collector import StatusCollector
from .logs import LogWindowExtractor
from .render import ReportRenderer
from .resolver import resolve_targets
from .synthesizer import ReportSynthesizer

logger = logging.getLogger("spadmin.reports")

RawReports = Union[SearchApplicationHandle, Dict[str, SearchApplicationHandle]]


class IndexReportPipeline:
    """Resolve -> collect -> extract logs -> synthesize -> render, one target at a time."""

    def __init__(
        self,
        api: AdminApi,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        run_logger: Optional[NullRunLogger] = None,
    ) -> None:
        self.api = api
        self.settings = settings or default_settings
        self.collector = StatusCollector(api, self.settings)
        self.extractor = LogWindowExtractor(api, self.settings)
        self.synthesizer = ReportSynthesizer(api, self.settings)
        self.renderer = ReportRenderer(console)
        self.run_logger = run_logger or NullRunLogger()

    def refresh(self, handle: SearchApplicationHandle, options: ReportOptions, now: Optional[datetime] = None) -> None:
        now = now or datetime.now()
        cached = self.collector.collect(handle, options, now=now)
        self.run_logger.on_collect(handle, cached)
        if handle.status is None:
            self.synthesizer.synthesize(handle, options, now=now)
            return
        path = self.extractor.extract(handle, options, now=now)
        self.run_logger.on_log_export(handle, path)
        self.synthesizer.synthesize(handle, options, now=now)
        handle.report_time = now
        self.run_logger.on_synthesize(handle)

    def run(
        self,
        targets: Any = None,
        options: ReportOptions = ReportOptions(),
        now: Optional[datetime] = None,
    ) -> Optional[RawReports]:
        handles = resolve_targets(self.api, targets)
        self.run_logger.on_resolve(handles)

        processed: List[SearchApplicationHandle] = []
        for handle in handles:
            try:
                self.refresh(handle, options, now=now)
            except (SpAdminError, OSError) as exc:
                logger.warning("Index report for %s failed: %s", handle.name, exc)
                self.run_logger.on_target_error(handle.name, exc)
                continue
            processed.append(handle)

        if options.skip_report_generation:
            return None
        if options.return_raw_data_only:
            if len(processed) == 1:
                return processed[0]
            return {h.name: h for h in processed}
        for handle in processed:
            self.renderer.render(handle, options)
        return None


def get_index_reports(
    api: AdminApi,
    targets: Any = None,
    options: ReportOptions = ReportOptions(),
    *,
    settings: Optional[Settings] = None,
    console: Optional[Console] = None,
    run_logger: Optional[NullRunLogger] = None,
    now: Optional[datetime] = None,
) -> Optional[RawReports]:
    """Build (and by default print) index health reports for the given search applications."""
    pipeline = IndexReportPipeline(api, settings=settings, console=console, run_logger=run_logger)
    return pipeline.run(targets, options, now=now)
