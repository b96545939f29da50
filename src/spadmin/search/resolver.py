from __future__ import annotations

import logging
from typing import Any, Iterable, List

from ..admin.base import AdminApi
from ..errors import AmbiguousTargetError
from ..models import SearchApplicationHandle

logger = logging.getLogger("spadmin.resolver")


def _resolve_default(api: AdminApi) -> List[SearchApplicationHandle]:
    candidates = api.list_search_applications()
    if len(candidates) > 1:
        raise AmbiguousTargetError([c.name for c in candidates])
    return list(candidates)


def _resolve_one(api: AdminApi, target: Any) -> List[SearchApplicationHandle]:
    if isinstance(target, SearchApplicationHandle):
        return [target]
    if isinstance(target, str):
        found = api.get_search_application(target)
        if found is None:
            logger.warning("Search application %r not found; skipping", target)
            return []
        return [found]
    return _resolve_default(api)


def resolve_targets(api: AdminApi, targets: Any = None) -> List[SearchApplicationHandle]:
    """Resolve ``targets`` (none, a name, a handle, or an iterable of those) to handles.

    With nothing given, the environment must contain at most one search application;
    otherwise :class:`AmbiguousTargetError` is raised. Unknown names are skipped, and so
    are batch items that cannot be resolved unambiguously.
    """
    if targets is None:
        return _resolve_default(api)
    if isinstance(targets, (str, SearchApplicationHandle)):
        return _resolve_one(api, targets)
    if isinstance(targets, Iterable):
        items = list(targets)
        if not items:
            return _resolve_default(api)
        resolved: List[SearchApplicationHandle] = []
        seen: set[str] = set()
        for item in items:
            try:
                found = _resolve_one(api, item)
            except AmbiguousTargetError as exc:
                logger.warning("Cannot resolve %r in batch; skipping: %s", item, exc)
                continue
            for handle in found:
                if handle.identity in seen:
                    continue
                seen.add(handle.identity)
                resolved.append(handle)
        return resolved
    return _resolve_default(api)
