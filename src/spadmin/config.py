from __future__ import annotations
from pydantic import BaseModel
from pathlib import Path
import os

ENV_FILE = Path(".env")

class Config(BaseModel):
    backend: str = "dummy"             # dummy|http
    gateway_url: str | None = None     # e.g., http://sp-admin01:8080
    fixture: str | None = None         # JSON fixture for the dummy backend
    # logging
    log_level: str = "INFO"            # DEBUG|INFO|WARNING|ERROR
    log_file: str | None = None        # e.g., spadmin.log
    log_console: bool = True

    @classmethod
    def from_env(cls) -> "Config":
        data: dict = {}
        if ENV_FILE.exists():
            for line in ENV_FILE.read_text().splitlines():
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                k, v = line.split("=", 1)
                os.environ.setdefault(k.strip(), v.strip())
        data["backend"] = os.environ.get("SPADMIN_BACKEND", "dummy").strip().lower() or "dummy"
        data["gateway_url"] = os.environ.get("SPADMIN_GATEWAY_URL") or None
        data["fixture"] = os.environ.get("SPADMIN_FIXTURE") or None
        # logging
        data["log_level"] = os.environ.get("SPADMIN_LOG_LEVEL", "INFO").upper()
        data["log_file"] = os.environ.get("SPADMIN_LOG_FILE") or None
        data["log_console"] = (os.environ.get("SPADMIN_LOG_CONSOLE", "true").lower() == "true")
        return cls(**data)

def save_to_env(cfg: Config, path: str | None = None) -> None:
    p = Path(path) if path else ENV_FILE
    lines: list[str] = []
    lines.append(f"SPADMIN_BACKEND={cfg.backend}")
    lines.append(f"SPADMIN_GATEWAY_URL={cfg.gateway_url or ''}")
    lines.append(f"SPADMIN_FIXTURE={cfg.fixture or ''}")
    # logging
    lines.append(f"SPADMIN_LOG_LEVEL={cfg.log_level}")
    lines.append(f"SPADMIN_LOG_FILE={cfg.log_file or ''}")
    lines.append(f"SPADMIN_LOG_CONSOLE={'true' if cfg.log_console else 'false'}")
    p.write_text("\n".join(lines) + "\n")
