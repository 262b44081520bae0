"""
cfg-file/arg-parse is overkill for the few things that need to be configured.
k8s / docker make it trivial to define env-vars so we'll just use those.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from util.const import LogLevel


@dataclass(frozen=True)
class Settings:
    router_address: str = "192.168.1.254"
    router_port: int = 80
    # The only page on the hub that doesn't need a login
    router_poll_path: str = "nonAuth/wan_conn.xml"
    poll_timeout_seconds: float = 1.0
    # default prometheus_client implementation does not support setting the path, only the port.
    metrics_port: int = 9090
    poll_interval_seconds: float = 10.0
    datastore_dir: Path | None = None
    parse_file: Path | None = None
    log_level: LogLevel = LogLevel.INFO

    @property
    def poll_url(self) -> str:
        if self.router_port == 80:
            return f"http://{self.router_address}/{self.router_poll_path.lstrip('/')}"
        return f"http://{self.router_address}:{self.router_port}/{self.router_poll_path.lstrip('/')}"

    @property
    def referer(self) -> str:
        """The hub wants to see its own UI as the referer"""
        return f"http://{self.router_address}/"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "Settings":
        """Build settings from env-vars. Raises ValueError on a malformed number."""
        defaults = cls()

        def _path(name: str) -> Path | None:
            value = environ.get(name, "")
            return Path(value) if value else None

        log_level = environ.get("LOG_LEVEL")
        if log_level not in LogLevel.__members__:
            log_level = defaults.log_level.name

        return cls(
            router_address=environ.get("ROUTER_ADDRESS", defaults.router_address),
            router_port=int(environ.get("ROUTER_PORT", defaults.router_port)),
            router_poll_path=environ.get("ROUTER_POLL_PATH", defaults.router_poll_path),
            poll_timeout_seconds=float(
                environ.get("POLL_TIMEOUT_SECONDS", defaults.poll_timeout_seconds)
            ),
            metrics_port=int(environ.get("METRICS_PORT", defaults.metrics_port)),
            poll_interval_seconds=float(
                environ.get("METRICS_POLL_INTERVAL_SECONDS", defaults.poll_interval_seconds)
            ),
            datastore_dir=_path("DATASTORE_DIR"),
            parse_file=_path("PARSE_FILE"),
            log_level=LogLevel[log_level],
        )
