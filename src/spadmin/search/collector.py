from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..admin.base import AdminApi
from ..errors import AdminApiError
from ..models import (
    ComponentState,
    ComponentStatus,
    HealthEntry,
    ReportOptions,
    SearchApplicationHandle,
)
from ..settings import Settings

logger = logging.getLogger("spadmin.collector")

_NUMBER = re.compile(r"-?\d[\d,]*")


def _first_int(text: str) -> int:
    match = _NUMBER.search(text or "")
    if not match:
        return 0
    try:
        return int(match.group(0).replace(",", ""))
    except ValueError:
        return 0


# metric id -> (health entry name prefix, value extractor)
METRIC_EXTRACTORS: Dict[str, Tuple[str, Callable[[HealthEntry], int]]] = {
    "active_documents": ("count of active documents", lambda e: _first_int(e.message)),
    "checkpoint_size": ("checkpoint size", lambda e: _first_int(e.message)),
    "generation_id": ("newest generation id", lambda e: _first_int(e.message)),
}


def extract_metrics(entries: Sequence[HealthEntry]) -> Dict[str, int]:
    """Pull the known metrics out of a flat health report; missing ones are 0."""
    metrics: Dict[str, int] = {}
    for metric_id, (prefix, extract) in METRIC_EXTRACTORS.items():
        value = 0
        for entry in entries:
            if entry.name.strip().lower().startswith(prefix):
                value = extract(entry)
                break
        metrics[metric_id] = value
    return metrics


def is_unknown(component: ComponentStatus) -> bool:
    return component.state is ComponentState.UNKNOWN


class StatusCollector:
    def __init__(self, api: AdminApi, settings: Settings) -> None:
        self.api = api
        self.settings = settings

    def is_fresh(self, handle: SearchApplicationHandle, now: datetime) -> bool:
        if handle.status is None or handle.status_checked_at is None:
            return False
        return now - handle.status_checked_at < self.settings.status_ttl

    def collect(
        self,
        handle: SearchApplicationHandle,
        options: ReportOptions,
        now: Optional[datetime] = None,
    ) -> bool:
        """Refresh status fields on ``handle``. Returns True when cached data was reused."""
        now = now or datetime.now()
        if not options.force_refresh and self.is_fresh(handle, now):
            logger.debug("Reusing status for %s checked at %s", handle.name, handle.status_checked_at)
            return True

        try:
            topology = self.api.get_topology(handle)
            status = self.api.get_search_status(handle)
        except AdminApiError as exc:
            logger.warning("Search status for %s unavailable: %s", handle.name, exc)
            handle.topology = None
            handle.status = None
            handle.status_checked_at = None
            handle.known_components = ()
            handle.unknown_components = ()
            return False

        unknown: List[ComponentStatus] = []
        known: List[ComponentStatus] = []
        for component in status.components:
            if is_unknown(component):
                unknown.append(component)
                continue
            known.append(replace(component, metrics=extract_metrics(self.component_health(handle, component.name))))

        handle.topology = tuple(topology)
        handle.status = status
        handle.status_checked_at = now
        handle.known_components = tuple(known)
        handle.unknown_components = tuple(unknown)
        if unknown:
            logger.warning(
                "%s: %d component(s) in unknown state: %s",
                handle.name, len(unknown), ", ".join(c.name for c in unknown),
            )
        return False

    def component_health(self, handle: SearchApplicationHandle, component: str) -> List[HealthEntry]:
        try:
            return self.api.get_component_health(handle, component)
        except AdminApiError as exc:
            logger.warning("Health report for %s/%s unavailable: %s", handle.name, component, exc)
            return []
