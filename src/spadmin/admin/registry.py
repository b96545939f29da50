from __future__ import annotations

from typing import Dict, Type

from ..config import Config
from ..errors import SpAdminError
from ..settings import settings
from .base import AdminApi
from .dummy import DummyAdminApi
from .gateway import HttpAdminApi


BackendName = str


BACKEND_REGISTRY: Dict[BackendName, Type[AdminApi]] = {
    "dummy": DummyAdminApi,
    "http": HttpAdminApi,
}


def make_admin_api(cfg: Config) -> AdminApi:
    backend = (cfg.backend or "dummy").lower()
    if backend == "dummy":
        if cfg.fixture:
            return DummyAdminApi.from_file(cfg.fixture)
        return DummyAdminApi()
    if backend == "http":
        if not cfg.gateway_url:
            raise SpAdminError("http backend requires SPADMIN_GATEWAY_URL or --gateway-url")
        return HttpAdminApi(cfg.gateway_url, timeout=settings.gateway_timeout)
    raise SpAdminError(f"Unknown backend: {backend}")
