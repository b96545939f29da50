from __future__ import annotations

import logging
from typing import List

from .admin.base import AdminApi

logger = logging.getLogger("spadmin.links")


def link_service_applications(api: AdminApi, list_title: str) -> List[str]:
    """Add a Central Administration link for every service application not yet listed."""
    existing = {url.strip().lower() for url in api.list_link_urls(list_title)}
    added: List[str] = []
    for app in api.list_service_applications():
        if not app.url or app.url.strip().lower() in existing:
            continue
        api.add_link_item(list_title, app.name, app.url)
        existing.add(app.url.strip().lower())
        added.append(app.name)
        logger.info("Linked %s (%s) into %s", app.name, app.url, list_title)
    return added
